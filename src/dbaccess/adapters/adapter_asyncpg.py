# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""asyncpg implementation of ProtocolPool / ProtocolConnection.

Statements use named placeholders, ``@name`` or ``@name:type``, which are
translated into asyncpg's positional ``$n`` / ``$n::type`` form. Placeholders
inside string constants and quoted identifiers are left alone, and so are
names missing from the parameter mapping (``@>`` and friends stay operators).

Example:
    >>> pool = await create_asyncpg_pool(ModelPoolConfig.from_environment())
    >>> controller = TransactionController(ModelAccessConfig(pool=pool))
    >>> await controller.run_in_transaction(
    ...     lambda tx: tx.execute(
    ...         'update "Task" set "data"=@data:jsonb where "oid"=@oid',
    ...         {"data": {"done": True}, "oid": oid},
    ...     )
    ... )
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import AsyncIterator, Mapping
from typing import Any, Optional

import asyncpg

from dbaccess.adapters.model_pool_config import ModelPoolConfig
from dbaccess.utils import sanitize_error_message

logger = logging.getLogger(__name__)

_RE_PLACEHOLDER = re.compile(
    r"(?P<estring>(?<!\w)[eE]'(?:[^'\\]|\\.|'')*')"
    r"|(?P<string>'(?:[^']|'')*')"
    r'|(?P<ident>"(?:[^"]|"")*")'
    r"|@(?P<name>[A-Za-z_]\w*)(?::(?P<type>[A-Za-z_]\w*(?:\[\])?))?",
    re.DOTALL,
)
_JSON_TYPES = frozenset({"json", "jsonb"})


def bind_named_params(
    sql: str, params: Optional[Mapping[str, Any]]
) -> tuple[str, list[Any]]:
    """Translate named placeholders into positional ones.

    Args:
        sql: Statement using ``@name`` / ``@name:type`` placeholders.
        params: Parameter values by name.

    Returns:
        The rewritten statement and the positional arguments. A name used
        more than once maps to the same position.
    """
    if not params:
        return sql, []

    args: list[Any] = []
    positions: dict[str, int] = {}

    def _replace(match: re.Match[str]) -> str:
        name = match.group("name")
        if name is None or name not in params:
            return match.group(0)

        cast = match.group("type")
        index = positions.get(name)
        if index is None:
            value = params[name]
            if (
                cast is not None
                and cast.lower() in _JSON_TYPES
                and value is not None
                and not isinstance(value, str)
            ):
                # asyncpg's default json codecs take text.
                value = json.dumps(value, default=str)
            args.append(value)
            index = len(args)
            positions[name] = index
        return f"${index}::{cast}" if cast else f"${index}"

    return _RE_PLACEHOLDER.sub(_replace, sql), args


def parse_status_count(status: str) -> int:
    """Affected-row count from a command status such as ``UPDATE 3``."""
    tail = status.rsplit(" ", 1)[-1] if status else ""
    return int(tail) if tail.isdigit() else 0


class AsyncpgConnectionAdapter:
    """One acquired asyncpg connection; ``close()`` releases it to the pool."""

    def __init__(self, pool: asyncpg.Pool, conn: asyncpg.Connection) -> None:
        self._pool = pool
        self._conn = conn
        self._released = False

    @property
    def raw_connection(self) -> asyncpg.Connection:
        return self._conn

    async def execute(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> int:
        query, args = bind_named_params(sql, params)
        status = await self._conn.execute(query, *args)
        return parse_status_count(status)

    async def query(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> AsyncIterator[asyncpg.Record]:
        query, args = bind_named_params(sql, params)
        if self._conn.is_in_transaction():
            # Cursors stream rows but only exist inside a transaction.
            async for record in self._conn.cursor(query, *args):
                yield record
        else:
            for record in await self._conn.fetch(query, *args):
                yield record

    async def close(self) -> None:
        if self._released:
            return
        self._released = True
        await self._pool.release(self._conn)


class AsyncpgPoolAdapter:
    """Connection source backed by an ``asyncpg.Pool``."""

    def __init__(self, pool: asyncpg.Pool, acquire_timeout: Optional[float] = None) -> None:
        self._pool = pool
        self._acquire_timeout = acquire_timeout

    @property
    def pool(self) -> asyncpg.Pool:
        return self._pool

    async def connect(self) -> AsyncpgConnectionAdapter:
        conn = await self._pool.acquire(timeout=self._acquire_timeout)
        return AsyncpgConnectionAdapter(self._pool, conn)

    async def close(self) -> None:
        """Close the pool and all its connections."""
        await self._pool.close()


async def create_asyncpg_pool(
    config: Optional[ModelPoolConfig] = None,
) -> AsyncpgPoolAdapter:
    """Create an asyncpg pool and wrap it as a ``ProtocolPool``.

    Args:
        config: Pool configuration; read from the environment if omitted.

    Raises:
        Exception: asyncpg connection errors propagate unchanged.
    """
    config = config or ModelPoolConfig.from_environment()
    try:
        pool = await asyncpg.create_pool(**config.to_pool_kwargs())
    except Exception as e:
        logger.error(
            "Failed to create PostgreSQL connection pool",
            extra={
                "host": config.host,
                "port": config.port,
                "database": config.database,
                "error": sanitize_error_message(e),
            },
        )
        raise

    logger.info(
        "PostgreSQL connection pool created",
        extra={
            "host": config.host,
            "port": config.port,
            "database": config.database,
            "min_connections": config.min_connections,
            "max_connections": config.max_connections,
        },
    )
    return AsyncpgPoolAdapter(pool, acquire_timeout=config.acquire_timeout)


__all__ = [
    "AsyncpgConnectionAdapter",
    "AsyncpgPoolAdapter",
    "bind_named_params",
    "create_asyncpg_pool",
    "parse_status_count",
]
