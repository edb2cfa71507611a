# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Transaction runtime.

Exports:
    ModelAccessConfig: Immutable controller configuration
    TransactionController: Runs units of work in transactions
    TransactionHandle: One open transaction handed to the unit of work
    RowStream: Lazy row sequence returned by ``TransactionHandle.query``
    SlowQueryMonitor: Slow-statement detection and pre-slow diagnostics
    configure, access, access_count: Module-level facade
"""

from dbaccess.runtime.model_access_config import (
    DEFAULT_DIAGNOSTIC_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_ROLLBACK_TIMEOUT_SECONDS,
    PRE_SLOW_RATIO,
    ModelAccessConfig,
    default_error_message,
    default_should_log_error,
)
from dbaccess.runtime.service_access import (
    access,
    access_count,
    configure,
    get_controller,
    reset,
)
from dbaccess.runtime.slow_query_monitor import (
    LOCK_INSPECTION_SQL,
    NO_BLOCKING_SESSIONS,
    SlowQueryMonitor,
    format_blocking_row,
)
from dbaccess.runtime.transaction_controller import TransactionController, UnitOfWork
from dbaccess.runtime.transaction_handle import RowStream, TransactionHandle

__all__: list[str] = [
    "DEFAULT_DIAGNOSTIC_CONNECT_TIMEOUT_SECONDS",
    "DEFAULT_ROLLBACK_TIMEOUT_SECONDS",
    "LOCK_INSPECTION_SQL",
    "ModelAccessConfig",
    "NO_BLOCKING_SESSIONS",
    "PRE_SLOW_RATIO",
    "RowStream",
    "SlowQueryMonitor",
    "TransactionController",
    "TransactionHandle",
    "UnitOfWork",
    "access",
    "access_count",
    "configure",
    "default_error_message",
    "default_should_log_error",
    "format_blocking_row",
    "get_controller",
    "reset",
]
