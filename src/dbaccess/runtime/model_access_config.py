# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Access Layer Configuration Model.

Immutable configuration injected into a ``TransactionController``. It holds
the pool, slow-statement thresholds, observer callbacks and the timeouts that
bound the failure paths.

Build it once before spawning concurrent work. Independent controllers can
use independent configurations, which is how tests avoid shared state.

Example:
    >>> config = ModelAccessConfig(
    ...     pool=pool,
    ...     slow_sql_threshold_seconds=2.0,
    ...     on_slow_sql=lambda dataset, spent, sql, params: log_slow(sql, spent),
    ... )
    >>> controller = TransactionController(config)
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# The pre-slow diagnostic fires at this fraction of the slow threshold.
PRE_SLOW_RATIO = 0.95

DEFAULT_ROLLBACK_TIMEOUT_SECONDS = 15.0
DEFAULT_DIAGNOSTIC_CONNECT_TIMEOUT_SECONDS = 5.0


def default_error_message(sql: str, params: Any) -> str:
    """Default formatter: the statement text only; parameters may be sensitive."""
    return sql


def default_should_log_error(handle: Any, ex: BaseException) -> bool:
    return True


class ModelAccessConfig(BaseModel):
    """Configuration for a transaction controller.

    Attributes:
        pool: Connection source implementing ``ProtocolPool``.
        slow_sql_threshold_seconds: Statements taking at least this long are
            reported as slow. ``None`` disables detection unless a handle
            sets its own threshold.
        on_slow_sql: ``(dataset, elapsed_seconds, sql, params)``, called when
            a slow statement completes. Default: log a warning.
        on_pre_slow_sql: ``(conn, dataset, message)``, called at 95% of the
            threshold while the statement still runs. ``conn`` is a separate
            connection; ``message`` summarizes blocking sessions. May be a
            coroutine function. Default: no diagnostic.
        on_query: ``(sql, params)``, called when a query is issued.
        on_execute: ``(sql, params)``, called when a statement is executed.
        on_tag: ``(handle, tag, sql, params)``, called for the statement
            following ``handle.tag = ...``. Default: log a warning.
        on_access: ``(unit_of_work, access_count)``, called before a
            transaction is started, with the number already in flight.
        error_message_formatter: ``(sql, params) -> str`` for log messages.
        should_log_error: ``(handle, ex) -> bool``; return False to keep a
            driver error out of the log (it is still raised).
        rollback_timeout_seconds: Bound on the emergency rollback.
        diagnostic_connect_timeout_seconds: Bound on acquiring the
            diagnostic connection.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    pool: Any = Field(
        description="Connection source implementing ProtocolPool",
    )
    slow_sql_threshold_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Slow-statement threshold in seconds (None disables detection)",
    )
    on_slow_sql: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called with (dataset, elapsed_seconds, sql, params) for slow statements",
    )
    on_pre_slow_sql: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called with (conn, dataset, message) before a statement turns slow",
    )
    on_query: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called with (sql, params) when a query is issued",
    )
    on_execute: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called with (sql, params) when a statement is executed",
    )
    on_tag: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called with (handle, tag, sql, params) for a tagged statement",
    )
    on_access: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called with (unit_of_work, access_count) before a transaction starts",
    )
    error_message_formatter: Callable[..., str] = Field(
        default=default_error_message,
        description="Formats (sql, params) into a log message",
    )
    should_log_error: Callable[..., bool] = Field(
        default=default_should_log_error,
        description="Decides whether a driver error is logged",
    )
    rollback_timeout_seconds: float = Field(
        default=DEFAULT_ROLLBACK_TIMEOUT_SECONDS,
        gt=0,
        description="Bound on the emergency rollback in seconds",
    )
    diagnostic_connect_timeout_seconds: float = Field(
        default=DEFAULT_DIAGNOSTIC_CONNECT_TIMEOUT_SECONDS,
        gt=0,
        description="Bound on acquiring the pre-slow diagnostic connection in seconds",
    )

    @field_validator("pool")
    @classmethod
    def _require_pool(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("pool is required")
        if not callable(getattr(value, "connect", None)):
            raise ValueError("pool must provide an async connect() method")
        return value

    def pre_slow_delay(self, threshold_seconds: float) -> float:
        """Delay after which the pre-slow diagnostic fires."""
        return threshold_seconds * PRE_SLOW_RATIO

    @classmethod
    def from_environment(cls, pool: Any, **overrides: Any) -> "ModelAccessConfig":
        """Create configuration from environment variables.

        Reads ``DBACCESS_SLOW_SQL_THRESHOLD_SECONDS``,
        ``DBACCESS_ROLLBACK_TIMEOUT_SECONDS`` and
        ``DBACCESS_DIAGNOSTIC_CONNECT_TIMEOUT_SECONDS``. Keyword overrides
        (callbacks, for instance) win over the environment.
        """
        threshold = os.getenv("DBACCESS_SLOW_SQL_THRESHOLD_SECONDS")
        values: dict[str, Any] = {
            "pool": pool,
            "slow_sql_threshold_seconds": float(threshold) if threshold else None,
            "rollback_timeout_seconds": float(
                os.getenv(
                    "DBACCESS_ROLLBACK_TIMEOUT_SECONDS",
                    str(DEFAULT_ROLLBACK_TIMEOUT_SECONDS),
                )
            ),
            "diagnostic_connect_timeout_seconds": float(
                os.getenv(
                    "DBACCESS_DIAGNOSTIC_CONNECT_TIMEOUT_SECONDS",
                    str(DEFAULT_DIAGNOSTIC_CONNECT_TIMEOUT_SECONDS),
                )
            ),
        }
        values.update(overrides)
        return cls(**values)


__all__ = [
    "DEFAULT_DIAGNOSTIC_CONNECT_TIMEOUT_SECONDS",
    "DEFAULT_ROLLBACK_TIMEOUT_SECONDS",
    "PRE_SLOW_RATIO",
    "ModelAccessConfig",
    "default_error_message",
    "default_should_log_error",
]
