# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Transaction Controller.

Runs units of work inside a transaction:

    controller = TransactionController(ModelAccessConfig(pool=pool))

    async def load(tx: TransactionHandle) -> list[Any]:
        return await tx.query_by(["oid", "name"], "Task", {"done": False}).to_list()

    tasks = await controller.run_in_transaction(load)

Outcome:
    - unit of work returns, ``rollingback`` unset: commit
    - unit of work returns, ``rollingback`` set: roll back, result still returned
    - unit of work raises: bounded best-effort rollback, exception re-raised
      unchanged

In every path the connection is released before hooks are scheduled, and
hooks run on a deferred task: they have not necessarily run when
``run_in_transaction`` returns. ``drain()`` waits for them.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Optional, TypeVar, Union
from uuid import UUID

from dbaccess.errors import HookInvocationError, ModelAccessErrorContext
from dbaccess.runtime.model_access_config import ModelAccessConfig
from dbaccess.runtime.slow_query_monitor import SlowQueryMonitor
from dbaccess.runtime.transaction_handle import TransactionHandle
from dbaccess.utils import sanitize_error_message

logger = logging.getLogger(__name__)

T = TypeVar("T")

UnitOfWork = Callable[[TransactionHandle], Union[Awaitable[T], T]]


class TransactionController:
    """Owns the configuration, the slow-statement monitor and hook tasks.

    Controllers are independent: tests build one per configuration instead
    of mutating shared state.
    """

    def __init__(self, config: ModelAccessConfig) -> None:
        self._config = config
        self._monitor = SlowQueryMonitor(config)
        self._access_count = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def config(self) -> ModelAccessConfig:
        return self._config

    @property
    def monitor(self) -> SlowQueryMonitor:
        return self._monitor

    @property
    def access_count(self) -> int:
        """Number of transactions in flight."""
        return self._access_count

    def _release_count(self) -> None:
        self._access_count -= 1

    async def _open(self) -> TransactionHandle:
        self._access_count += 1
        try:
            conn = await self._config.pool.connect()
        except BaseException:
            self._access_count -= 1
            raise

        handle = TransactionHandle(self, conn, began_counted=True)
        try:
            await handle._begin()
        except BaseException as e:
            await handle._abort(e)
            raise
        return handle

    async def begin_explicit(self) -> TransactionHandle:
        """Acquire a connection and begin; the caller must ``close()`` the handle.

        Raises:
            Exception: The pool's acquisition error or the driver's begin error.
        """
        return await self._open()

    async def run_in_transaction(self, unit_of_work: UnitOfWork[T]) -> T:
        """Run ``unit_of_work(handle)`` in a transaction and return its result.

        Raises:
            Exception: Whatever the unit of work raised, unchanged, after the
                rollback has been attempted. Commit/rollback errors after
                a successful unit of work.
        """
        on_access = self._config.on_access
        if on_access is not None:
            on_access(unit_of_work, self._access_count)

        handle = await self._open()
        try:
            result = unit_of_work(handle)
            if inspect.isawaitable(result):
                result = await result
        except BaseException as e:
            if not handle.closed:
                await handle._abort(e)
            raise

        if not handle.closed:
            await handle._finish()
        return result

    def schedule_hooks(
        self,
        hooks: Sequence[Callable[..., Any]],
        args: tuple[Any, ...],
        transaction_id: Optional[UUID] = None,
        operation: str = "hook",
    ) -> None:
        """Run ``hooks`` one after another on a deferred task."""
        if not hooks:
            return
        try:
            task = asyncio.get_running_loop().create_task(
                self._run_hooks(list(hooks), args, transaction_id, operation)
            )
        except Exception as e:
            logger.error(
                "Failed to schedule %s hooks",
                operation,
                extra={
                    "transaction_id": str(transaction_id),
                    "error": sanitize_error_message(e),
                    "error_type": type(e).__name__,
                },
            )
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_hooks(
        self,
        hooks: list[Callable[..., Any]],
        args: tuple[Any, ...],
        transaction_id: Optional[UUID],
        operation: str,
    ) -> None:
        for hook in hooks:
            try:
                result = hook(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                error = HookInvocationError(
                    f"Failed to invoke {operation} hook {hook!r}",
                    context=ModelAccessErrorContext(
                        operation=operation,
                        transaction_id=transaction_id,
                    ),
                    error=sanitize_error_message(e),
                    error_type=type(e).__name__,
                )
                logger.error(str(error), extra=error.context)

    async def drain(self) -> None:
        """Wait for scheduled hooks and slow-statement diagnostics to finish."""
        while self._tasks or self._monitor.pending_tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await self._monitor.drain()


__all__ = ["TransactionController", "UnitOfWork"]
