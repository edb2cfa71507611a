# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Slow-statement detection with a pre-timeout lock diagnostic.

Every statement a transaction handle issues is bracketed by ``arm`` and
``report``:

1. ``arm`` schedules a one-shot timer at 95% of the slow threshold, but only
   if a threshold applies and ``on_pre_slow_sql`` is configured.
2. If the timer fires, the statement is still running, so a *separate*
   connection is acquired (bounded by its own timeout) to inspect blocking
   sessions while they are still there. The summary goes to
   ``on_pre_slow_sql``; the callback can stash it in the dataset for
   ``on_slow_sql`` to pick up.
3. ``report`` always cancels the timer. If the statement took at least the
   threshold it invokes ``on_slow_sql``, or logs a warning.

Nothing in the diagnostic or reporting path raises into the transaction:
failures are logged as ``DiagnosticError`` and swallowed.

Attribution:
    A slow ``commit`` is usually slow because of the statement before it
    (deferred constraints, triggers, lock waits), so a slow ``commit`` is
    reported with the previous statement's text and parameters.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, Optional
from uuid import UUID

from dbaccess.errors import DiagnosticError, ModelAccessErrorContext
from dbaccess.protocols import ProtocolConnection
from dbaccess.runtime.model_access_config import ModelAccessConfig
from dbaccess.utils import sanitize_error_message

logger = logging.getLogger(__name__)

LOCK_INSPECTION_SQL = """\
select blocked.pid as blocked_pid,
  blocked.query as blocked_query,
  blocking.pid as blocking_pid,
  blocking.state as blocking_state,
  now() - blocking.query_start as blocking_duration,
  blocking.query as blocking_query
from pg_stat_activity blocked
join pg_stat_activity blocking
  on blocking.pid = any(pg_blocking_pids(blocked.pid))
where cardinality(pg_blocking_pids(blocked.pid)) > 0
order by blocked.pid, blocking.pid"""

NO_BLOCKING_SESSIONS = "None"

DatasetProvider = Callable[[], dict[str, Any]]


def format_blocking_row(row: Any) -> str:
    """Render one row of ``LOCK_INSPECTION_SQL`` as a readable line."""
    return (
        f"pid {row['blocked_pid']} ({row['blocked_query']}) blocked by"
        f" pid {row['blocking_pid']} [{row['blocking_state']},"
        f" {row['blocking_duration']}]: {row['blocking_query']}"
    )


class SlowQueryMonitor:
    """Per-controller slow-statement detector.

    The monitor is stateless per statement: ``arm`` returns the timer and
    ``report`` takes it back, so one monitor serves any number of concurrent
    transactions. Diagnostic tasks are kept in a strong-reference set until
    they finish.
    """

    def __init__(self, config: ModelAccessConfig) -> None:
        self._config = config
        self._tasks: set[asyncio.Future[Any]] = set()

    @staticmethod
    def now() -> float:
        return time.perf_counter()

    def resolve_threshold(self, override: Optional[float]) -> Optional[float]:
        """Per-transaction override if set, else the configured default."""
        if override is not None:
            return override
        return self._config.slow_sql_threshold_seconds

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def arm(
        self,
        threshold_seconds: Optional[float],
        dataset_provider: DatasetProvider,
        transaction_id: Optional[UUID] = None,
    ) -> Optional[asyncio.TimerHandle]:
        """Schedule the pre-slow diagnostic for a statement about to run.

        Returns:
            The timer to pass back to ``report``, or None when there is
            nothing to arm.
        """
        if threshold_seconds is None or self._config.on_pre_slow_sql is None:
            return None

        loop = asyncio.get_running_loop()
        return loop.call_later(
            self._config.pre_slow_delay(threshold_seconds),
            self._fire_pre_slow,
            dataset_provider,
            transaction_id,
        )

    def _fire_pre_slow(
        self, dataset_provider: DatasetProvider, transaction_id: Optional[UUID]
    ) -> None:
        try:
            dataset = dataset_provider()
            self._spawn(self._run_diagnostic(dataset, transaction_id))
        except Exception as e:
            logger.error(
                "Failed to start pre-slow diagnostic",
                extra={
                    "transaction_id": str(transaction_id),
                    "error": sanitize_error_message(e),
                    "error_type": type(e).__name__,
                },
            )

    def _spawn(self, awaitable: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Slow SQL callback failed",
                extra={
                    "error": sanitize_error_message(exc),
                    "error_type": type(exc).__name__,
                },
            )

    async def _run_diagnostic(
        self, dataset: dict[str, Any], transaction_id: Optional[UUID]
    ) -> None:
        context = ModelAccessErrorContext(
            operation="pre_slow_diagnostic",
            transaction_id=transaction_id,
        )
        timeout = self._config.diagnostic_connect_timeout_seconds

        try:
            conn = await asyncio.wait_for(self._config.pool.connect(), timeout=timeout)
        except TimeoutError:
            error = DiagnosticError(
                "Timed out acquiring diagnostic connection",
                context=context,
                timeout_seconds=timeout,
            )
            logger.warning(str(error), extra=error.context)
            return
        except Exception as e:
            error = DiagnosticError(
                "Failed to acquire diagnostic connection",
                context=context,
                error=sanitize_error_message(e),
                error_type=type(e).__name__,
            )
            logger.warning(str(error), extra=error.context)
            return

        try:
            message = await self.inspect_locks(conn)
            result = self._config.on_pre_slow_sql(conn, dataset, message)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            error = DiagnosticError(
                "Pre-slow diagnostic failed",
                context=context,
                error=sanitize_error_message(e),
                error_type=type(e).__name__,
            )
            logger.error(str(error), extra=error.context)
        finally:
            try:
                await conn.close()
            except Exception as e:
                logger.warning(
                    "Failed to release diagnostic connection",
                    extra={"error": sanitize_error_message(e)},
                )

    async def inspect_locks(self, conn: ProtocolConnection) -> str:
        """Summarize sessions blocking others, or ``"None"``."""
        lines = [
            format_blocking_row(row)
            async for row in conn.query(LOCK_INSPECTION_SQL, None)
        ]
        return "\n".join(lines) if lines else NO_BLOCKING_SESSIONS

    def report(
        self,
        timer: Optional[asyncio.TimerHandle],
        started_at: float,
        sql: str,
        params: Any,
        *,
        threshold_seconds: Optional[float],
        dataset_provider: DatasetProvider,
        previous_sql: Optional[str] = None,
        previous_params: Any = None,
        transaction_id: Optional[UUID] = None,
    ) -> bool:
        """Cancel the pre-slow timer and report the statement if it was slow.

        Returns:
            True if the statement was reported as slow.
        """
        if timer is not None:
            timer.cancel()

        if threshold_seconds is None:
            return False

        elapsed = self.now() - started_at
        if elapsed < threshold_seconds:
            return False

        if sql == "commit" and previous_sql is not None:
            sql, params = previous_sql, previous_params

        callback = self._config.on_slow_sql
        if callback is None:
            logger.warning(
                "Slow SQL (%.3fs): %s",
                elapsed,
                self._config.error_message_formatter(sql, params),
                extra={
                    "transaction_id": str(transaction_id),
                    "elapsed_seconds": elapsed,
                    "threshold_seconds": threshold_seconds,
                },
            )
            return True

        try:
            result = callback(dataset_provider(), elapsed, sql, params)
            if inspect.isawaitable(result):
                self._spawn(result)
        except Exception as e:
            logger.error(
                "Slow SQL callback failed",
                extra={
                    "transaction_id": str(transaction_id),
                    "error": sanitize_error_message(e),
                    "error_type": type(e).__name__,
                },
            )
        return True

    async def drain(self) -> None:
        """Wait for outstanding diagnostic and callback tasks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


__all__ = [
    "LOCK_INSPECTION_SQL",
    "NO_BLOCKING_SESSIONS",
    "SlowQueryMonitor",
    "format_blocking_row",
]
