# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Module-level access facade over a default controller.

Applications that only need one database configure it once at startup:

    previous = configure(pool, slow_sql_threshold_seconds=2.0)

    async def rename(tx: TransactionHandle) -> int:
        return await tx.execute('update "Task" set "name"=@name', {"name": name})

    await access(rename)

Call ``configure`` before spawning concurrent work. Re-configuring replaces
the default controller and returns the previous pool, which tests use to
restore state. Code that needs several configurations should build
``TransactionController`` instances directly.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

from dbaccess.errors import AccessConfigurationError, ModelAccessErrorContext
from dbaccess.runtime.model_access_config import ModelAccessConfig
from dbaccess.runtime.transaction_controller import TransactionController, UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")

_controller: Optional[TransactionController] = None


def configure(pool: Any, **options: Any) -> Any:
    """Install the default configuration.

    Args:
        pool: Connection source implementing ``ProtocolPool``.
        **options: Any other ``ModelAccessConfig`` field, e.g.
            ``slow_sql_threshold_seconds``, ``on_slow_sql``,
            ``on_pre_slow_sql``, ``error_message_formatter``,
            ``should_log_error``.

    Returns:
        The previously configured pool, or None.
    """
    global _controller
    previous = _controller.config.pool if _controller is not None else None
    _controller = TransactionController(ModelAccessConfig(pool=pool, **options))
    logger.info(
        "Access layer configured",
        extra={
            "slow_sql_threshold_seconds": _controller.config.slow_sql_threshold_seconds,
        },
    )
    return previous


def reset() -> None:
    """Forget the default configuration."""
    global _controller
    _controller = None


def get_controller() -> TransactionController:
    """Get the default controller.

    Raises:
        AccessConfigurationError: If ``configure`` has not been called.
    """
    if _controller is None:
        raise AccessConfigurationError(
            "configure() must be called before access()",
            context=ModelAccessErrorContext(operation="access"),
        )
    return _controller


async def access(unit_of_work: UnitOfWork[T]) -> T:
    """Run ``unit_of_work`` in a transaction on the default controller."""
    return await get_controller().run_in_transaction(unit_of_work)


def access_count() -> int:
    """Number of transactions in flight on the default controller."""
    return _controller.access_count if _controller is not None else 0


__all__ = ["access", "access_count", "configure", "get_controller", "reset"]
