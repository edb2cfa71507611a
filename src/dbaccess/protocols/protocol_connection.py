# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Protocol definitions for the connection/pool collaborator.

The transaction controller never talks to a driver directly. It consumes a
pool that hands out connections, and connections that execute statements and
stream rows. ``dbaccess.adapters`` ships an asyncpg implementation; tests use
an in-memory fake.

Design Decisions:
    - runtime_checkable: Enables isinstance() checks for duck typing
    - Async methods: acquisition, execution and row streaming are suspension
      points; nothing here blocks the event loop
    - Named parameters: ``params`` is a mapping; placeholder syntax
      (``@name``) is the connection implementation's concern
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class ProtocolConnection(Protocol):
    """A single database connection, exclusively owned by one transaction."""

    async def execute(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> int:
        """Execute a statement and return the number of affected rows.

        Raises:
            Exception: Driver errors propagate verbatim.
        """
        ...

    def query(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> AsyncIterator[Any]:
        """Return a lazy, finite, non-restartable sequence of rows.

        The statement runs while the iterator is consumed. Implementations
        returning an async generator should support ``aclose()`` for early
        cancellation.
        """
        ...

    async def close(self) -> None:
        """Release the connection back to its pool."""
        ...


@runtime_checkable
class ProtocolPool(Protocol):
    """Source of connections."""

    async def connect(self) -> ProtocolConnection:
        """Acquire a connection.

        Raises:
            Exception: On pool exhaustion, acquisition timeout or network failure.
        """
        ...


@runtime_checkable
class ProtocolLiteralEncoder(Protocol):
    """Encodes a Python value into SQL literal text."""

    def __call__(self, value: Any, type_hint: Optional[str] = None) -> str:
        ...


__all__ = ["ProtocolConnection", "ProtocolLiteralEncoder", "ProtocolPool"]
