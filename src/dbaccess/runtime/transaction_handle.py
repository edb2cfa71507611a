# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Transaction Handle.

A ``TransactionHandle`` owns one pooled connection for the lifetime of one
transaction. It is created by ``TransactionController`` and handed to the
unit of work:

    async def rename(tx: TransactionHandle) -> int:
        tx.after_commit(lambda: cache.evict(task_id))
        return await tx.execute(
            'update "Task" set "name"=@name where "oid"=@oid',
            {"name": name, "oid": task_id},
        )

    await controller.run_in_transaction(rename)

State Machine:
    OPEN -> COMMITTING -> CLOSED
    OPEN -> ROLLING_BACK -> CLOSED

Every statement passes through the controller's ``SlowQueryMonitor``.
Hooks registered with ``after_commit``/``after_rollback`` run on a deferred
task after the connection is released, in registration order.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, Optional, Union
from uuid import UUID, uuid4

from dbaccess.enums import EnumRowLockOption, EnumTransactionState
from dbaccess.errors import (
    ModelAccessErrorContext,
    RollbackTimeoutError,
    TransactionStateError,
)
from dbaccess.protocols import ProtocolConnection
from dbaccess.runtime.model_access_config import default_error_message
from dbaccess.sql import add_columns, has_predicate, limit_one, render_where
from dbaccess.utils import sanitize_error_message

if TYPE_CHECKING:
    from dbaccess.runtime.transaction_controller import TransactionController

logger = logging.getLogger(__name__)

_RE_RETURNING = re.compile(r"^\s*returning\s", re.IGNORECASE)


class RowStream:
    """Lazy, finite, non-restartable sequence of rows from ``handle.query``.

    The statement is sent when iteration starts. Reaching the end, failing,
    or being closed early with ``aclose()`` each finish the stream exactly
    once: the underlying cursor is closed, the slow-statement check runs and
    the pre-slow timer is cancelled.

    Example:
        >>> async with tx.query('select "oid" from "Task"') as rows:
        ...     async for row in rows:
        ...         if row[0] == wanted:
        ...             break
    """

    def __init__(
        self, handle: TransactionHandle, sql: str, params: Optional[Mapping[str, Any]]
    ) -> None:
        self._handle = handle
        self._sql = sql
        self._params = params
        self._iterator: Optional[AsyncIterator[Any]] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._threshold: Optional[float] = None
        self._started_at = 0.0
        self._done = False

    @property
    def sql(self) -> str:
        return self._sql

    @property
    def done(self) -> bool:
        return self._done

    def __aiter__(self) -> RowStream:
        return self

    async def __anext__(self) -> Any:
        if self._done:
            raise StopAsyncIteration
        if self._iterator is None:
            self._start()

        try:
            return await self._iterator.__anext__()
        except StopAsyncIteration:
            await self._finish()
            raise
        except Exception as e:
            self._handle._log_statement_error("query", self._sql, self._params, e)
            await self._finish()
            raise
        except BaseException:
            await self._finish()
            raise

    def _start(self) -> None:
        handle = self._handle
        handle._require_open("query", self._sql, self._params)

        monitor = handle._monitor
        self._threshold = monitor.resolve_threshold(handle.slow_sql_threshold_seconds)
        self._timer = monitor.arm(
            self._threshold, handle._get_dataset, handle.transaction_id
        )
        self._started_at = monitor.now()
        try:
            iterator = handle._conn.query(self._sql, self._params).__aiter__()
        except Exception as e:
            handle._log_statement_error("query", self._sql, self._params, e)
            self._abandon()
            raise
        except BaseException:
            self._abandon()
            raise
        self._iterator = iterator
        handle._streams.add(self)

    def _abandon(self) -> None:
        """Finish a stream whose statement could not be sent."""
        self._done = True
        self._handle._report(
            self._timer, self._started_at, self._sql, self._params, self._threshold
        )

    async def _finish(self) -> None:
        if self._done:
            return
        self._done = True

        iterator = self._iterator
        if iterator is None:
            return

        handle = self._handle
        try:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()
        finally:
            handle._streams.discard(self)
            handle._report(
                self._timer, self._started_at, self._sql, self._params, self._threshold
            )

    async def aclose(self) -> None:
        """Stop consuming rows; a no-op if the stream already finished."""
        if self._iterator is None:
            self._done = True
            return
        await self._finish()

    async def __aenter__(self) -> RowStream:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def first(self) -> Any:
        """Return the first row, or None if there is none, and close the stream."""
        try:
            return await self.__anext__()
        except StopAsyncIteration:
            return None
        finally:
            await self.aclose()

    async def to_list(self) -> list[Any]:
        """Consume every row."""
        return [row async for row in self]


class TransactionHandle:
    """One open database transaction and its bookkeeping.

    Attributes:
        transaction_id: Correlation id used in structured logs.
        slow_sql_threshold_seconds: Per-transaction override of the
            configured slow-statement threshold.
        tag: When set, the next ``execute``/``query`` calls ``on_tag`` (or
            logs the statement) and clears it.
        began_counted: Whether this handle holds an increment of the
            controller's in-flight counter.
    """

    def __init__(
        self,
        controller: TransactionController,
        conn: ProtocolConnection,
        *,
        began_counted: bool = True,
    ) -> None:
        self._controller = controller
        self._config = controller.config
        self._monitor = controller.monitor
        self._conn = conn

        self.transaction_id: UUID = uuid4()
        self.slow_sql_threshold_seconds: Optional[float] = None
        self.tag: Any = None
        self.began_counted = began_counted

        self._state = EnumTransactionState.OPEN
        self._rollingback: Any = False
        self._dataset: Optional[dict[str, Any]] = None
        self._after_commits: list[Callable[[], Any]] = []
        self._after_rollbacks: list[Callable[[Any], Any]] = []
        self._streams: set[RowStream] = set()
        self._committed: Optional[bool] = None
        self._rollback_cause: Any = None
        self._last_sql: Optional[str] = None
        self._last_params: Any = None

    # ------------------------------------------------------------------
    # State

    @property
    def state(self) -> EnumTransactionState:
        return self._state

    @property
    def closed(self) -> bool:
        """Whether commit or rollback has completed."""
        return self._state is EnumTransactionState.CLOSED

    @property
    def rollingback(self) -> Any:
        """Forced-rollback flag and rollback-hook payload.

        ``False`` (the default) means commit unless an exception is raised.
        Any other value forces a rollback and is passed to the
        ``after_rollback`` hooks. Assigning None stores False, so the flag is
        tested with ``tx.rollingback is not False``.
        """
        return self._rollingback

    @rollingback.setter
    def rollingback(self, value: Any) -> None:
        self._rollingback = False if value is None else value

    @property
    def dataset(self) -> dict[str, Any]:
        """Application-specific data scoped to this transaction."""
        if self._dataset is None:
            self._dataset = {}
        return self._dataset

    def _get_dataset(self) -> dict[str, Any]:
        return self.dataset

    @property
    def connection(self) -> ProtocolConnection:
        return self._conn

    def _context(
        self, operation: str, statement: Optional[str] = None
    ) -> ModelAccessErrorContext:
        return ModelAccessErrorContext(
            operation=operation,
            transaction_id=self.transaction_id,
            statement=statement,
        )

    def _require_open(
        self, operation: str, sql: Optional[str] = None, params: Any = None
    ) -> None:
        if self._state is EnumTransactionState.OPEN:
            return
        statement = (
            self._config.error_message_formatter(sql, params) if sql is not None else None
        )
        message = f"Transaction is {self._state.value}"
        if statement is not None:
            message = f"{message}: {statement}"
        raise TransactionStateError(message, context=self._context(operation, statement))

    # ------------------------------------------------------------------
    # Hooks

    def after_commit(self, task: Callable[[], Any]) -> None:
        """Run ``task`` after the transaction commits.

        If the handle is already closed, the task is scheduled right away
        when the transaction committed, and dropped otherwise.
        """
        if self.closed:
            if self._committed:
                self._controller.schedule_hooks(
                    [task], (), self.transaction_id, "after_commit"
                )
            else:
                logger.debug(
                    "Dropping after_commit hook on rolled-back transaction",
                    extra={"transaction_id": str(self.transaction_id)},
                )
            return
        self._after_commits.append(task)

    def after_rollback(self, task: Callable[[Any], Any]) -> None:
        """Run ``task(cause)`` after the transaction rolls back.

        ``cause`` is the exception that caused the rollback, or the value
        assigned to ``rollingback``.
        """
        if self.closed:
            if self._committed is False:
                self._controller.schedule_hooks(
                    [task], (self._rollback_cause,), self.transaction_id, "after_rollback"
                )
            else:
                logger.debug(
                    "Dropping after_rollback hook on committed transaction",
                    extra={"transaction_id": str(self.transaction_id)},
                )
            return
        self._after_rollbacks.append(task)

    # ------------------------------------------------------------------
    # Statements

    def _check_tag(self, sql: str, params: Any) -> None:
        tag = self.tag
        if tag is None:
            return
        try:
            on_tag = self._config.on_tag
            if on_tag is not None:
                on_tag(self, tag, sql, params)
            else:
                logger.warning(
                    "[%s] SQL: %s",
                    tag,
                    default_error_message(sql, params),
                    extra={"transaction_id": str(self.transaction_id)},
                )
        finally:
            self.tag = None

    def _log_statement_error(
        self, operation: str, sql: str, params: Any, error: Exception
    ) -> None:
        if not self._config.should_log_error(self, error):
            return
        logger.error(
            "Failed to %s: %s",
            operation,
            self._config.error_message_formatter(sql, params),
            extra={
                "transaction_id": str(self.transaction_id),
                "operation": operation,
                "error": sanitize_error_message(error),
                "error_type": type(error).__name__,
            },
        )

    def _report(
        self,
        timer: Optional[asyncio.TimerHandle],
        started_at: float,
        sql: str,
        params: Any,
        threshold: Optional[float],
    ) -> None:
        self._monitor.report(
            timer,
            started_at,
            sql,
            params,
            threshold_seconds=threshold,
            dataset_provider=self._get_dataset,
            previous_sql=self._last_sql,
            previous_params=self._last_params,
            transaction_id=self.transaction_id,
        )
        self._last_sql = sql
        self._last_params = params

    async def _run_statement(
        self, sql: str, params: Optional[Mapping[str, Any]], *, check_tag: bool = True
    ) -> int:
        if check_tag:
            self._check_tag(sql, params)
        on_execute = self._config.on_execute
        if on_execute is not None:
            on_execute(sql, params)

        threshold = self._monitor.resolve_threshold(self.slow_sql_threshold_seconds)
        timer = self._monitor.arm(threshold, self._get_dataset, self.transaction_id)
        started_at = self._monitor.now()
        try:
            return await self._conn.execute(sql, params)
        except Exception as e:
            self._log_statement_error("execute", sql, params, e)
            raise
        finally:
            self._report(timer, started_at, sql, params, threshold)

    async def execute(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> int:
        """Execute ``sql`` and return the number of affected rows.

        Raises:
            TransactionStateError: If the handle is not open.
            Exception: Driver errors propagate unchanged.
        """
        self._require_open("execute", sql, params)
        return await self._run_statement(sql, params)

    def query(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> RowStream:
        """Return the rows of ``sql`` as a ``RowStream``.

        Raises:
            TransactionStateError: If the handle is not open.
        """
        self._require_open("query", sql, params)
        self._check_tag(sql, params)
        on_query = self._config.on_query
        if on_query is not None:
            on_query(sql, params)
        return RowStream(self, sql, params)

    async def query_any(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> Any:
        """Return the first row of ``sql``, or None if not found."""
        return await self.query(limit_one(sql), params).first()

    def query_with(
        self,
        fields: Optional[Iterable[str]],
        table: Optional[str],
        where_clause: Optional[str],
        where_values: Optional[Mapping[str, Any]] = None,
        *,
        from_clause: Optional[str] = None,
        shortcut: Optional[str] = None,
        option: Union[EnumRowLockOption, str, None] = None,
    ) -> RowStream:
        """Query ``fields`` of ``table`` with a prepared where clause.

        Args:
            fields: Columns to select. None selects all columns.
            table: Table name; ignored if ``from_clause`` is given.
            where_clause: Predicate without ``where``, e.g.
                ``"removedAt" is not null``. None loads the whole table.
            where_values: Parameters referenced by ``where_clause``.
            from_clause: Replaces the table, without ``from``, e.g.
                ``"Task" T inner join "Assignee" A on ...``.
            shortcut: Table alias prefixing the column names.
            option: ``EnumRowLockOption.FOR_UPDATE`` or ``FOR_SHARE``.
        """
        parts = ["select "]
        add_columns(parts, fields, shortcut)
        parts.append(" from ")
        if from_clause is not None:
            parts.append(from_clause)
        elif shortcut is not None:
            parts.append(f'"{table}" {shortcut}')
        else:
            parts.append(f'"{table}"')
        if where_clause is not None:
            parts.append(f" where {where_clause}")
        if option is not None:
            parts.append(f" {EnumRowLockOption(option).value}")
        return self.query("".join(parts), where_values)

    async def query_any_with(
        self,
        fields: Optional[Iterable[str]],
        table: Optional[str],
        where_clause: Optional[str],
        where_values: Optional[Mapping[str, Any]] = None,
        *,
        from_clause: Optional[str] = None,
        shortcut: Optional[str] = None,
        option: Union[EnumRowLockOption, str, None] = None,
    ) -> Any:
        """Like ``query_with`` but returns the first row, or None."""
        return await self.query_with(
            fields,
            table,
            where_clause,
            where_values,
            from_clause=from_clause,
            shortcut=shortcut,
            option=option,
        ).first()

    @staticmethod
    def _where_by(
        where_values: Mapping[str, Any], trailing: Optional[str] = None
    ) -> str:
        clause = render_where(where_values, trailing)
        if has_predicate(where_values):
            return clause
        return f"true {clause}" if clause else "true"

    def query_by(
        self,
        fields: Optional[Iterable[str]],
        table: str,
        where_values: Mapping[str, Any],
        option: Union[EnumRowLockOption, str, None] = None,
    ) -> RowStream:
        """Query ``fields`` of ``table`` matching ``where_values`` (AND-ed).

        ``where_values`` is a condition map as accepted by ``render_where``.
        """
        return self.query_with(
            fields, table, self._where_by(where_values), option=option
        )

    async def query_any_by(
        self,
        fields: Optional[Iterable[str]],
        table: str,
        where_values: Mapping[str, Any],
        option: Union[EnumRowLockOption, str, None] = None,
    ) -> Any:
        """First row of ``table`` matching ``where_values``, or None."""
        return await self.query_with(
            fields, table, self._where_by(where_values, "limit 1"), option=option
        ).first()

    async def insert(
        self,
        table: str,
        data: Mapping[str, Any],
        *,
        types: Optional[Mapping[str, str]] = None,
        append: Optional[str] = None,
    ) -> Any:
        """Insert ``data`` as one row of ``table``.

        Args:
            table: Table name.
            data: Column name to value.
            types: Optional column name to SQL type, rendered as ``@name:type``.
            append: Text appended to the statement, e.g. ``returning "oid"``.

        Returns:
            The first column of the returned row if ``append`` starts with
            ``returning``, else the number of inserted rows.
        """
        if not data:
            raise ValueError(f"Nothing to insert into {table!r}")

        columns = ",".join(f'"{name}"' for name in data)
        placeholders = ",".join(
            f"@{name}:{types[name]}" if types and name in types else f"@{name}"
            for name in data
        )
        sql = f'insert into "{table}"({columns}) values({placeholders})'
        if append:
            sql = f"{sql} {append}"

        if append and _RE_RETURNING.search(append):
            row = await self.query(sql, data).first()
            return row[0] if row is not None else None
        return await self.execute(sql, data)

    async def delete_by(self, table: str, where_values: Mapping[str, Any]) -> int:
        """Delete the rows of ``table`` matching ``where_values``."""
        return await self.execute(
            f'delete from "{table}" where {self._where_by(where_values)}'
        )

    # ------------------------------------------------------------------
    # Lifecycle

    async def _begin(self) -> None:
        await self._run_statement("begin", None, check_tag=False)
        logger.debug(
            "Transaction began",
            extra={"transaction_id": str(self.transaction_id)},
        )

    async def close(self) -> None:
        """Commit, or roll back if ``rollingback`` is set, and release.

        On failure the transaction is rolled back (bounded by
        ``rollback_timeout_seconds``), the connection released and the
        original error re-raised.

        Raises:
            TransactionStateError: If the handle is not open.
        """
        self._require_open("close")
        await self._finish()

    async def _finish(self) -> None:
        await self._close_streams()

        cause = self._rollingback
        try:
            if cause is False:
                self._state = EnumTransactionState.COMMITTING
                await self._run_statement("commit", None, check_tag=False)
            else:
                self._state = EnumTransactionState.ROLLING_BACK
                await self._run_statement("rollback", None, check_tag=False)
        except BaseException as e:
            await self._abort(e)
            raise

        await self._close(None if cause is False else cause)

    async def _abort(self, error: BaseException) -> None:
        """Emergency rollback, then close with ``error`` as the rollback cause."""
        await self._close_streams()
        await self._emergency_rollback()
        await self._close(error)

    async def _close_streams(self) -> None:
        for stream in list(self._streams):
            try:
                await stream.aclose()
            except Exception as e:
                logger.warning(
                    "Failed to close row stream",
                    extra={
                        "transaction_id": str(self.transaction_id),
                        "error": sanitize_error_message(e),
                    },
                )

    async def _emergency_rollback(self) -> None:
        self._state = EnumTransactionState.ROLLING_BACK
        timeout = self._config.rollback_timeout_seconds
        try:
            await asyncio.wait_for(self._conn.execute("rollback", None), timeout=timeout)
        except TimeoutError:
            error = RollbackTimeoutError(
                f"Rollback did not finish within {timeout}s; closing anyway",
                context=self._context("rollback", "rollback"),
                timeout_seconds=timeout,
            )
            logger.warning(str(error), extra=error.context)
        except Exception as e:
            logger.warning(
                "Failed to rollback",
                extra={
                    "transaction_id": str(self.transaction_id),
                    "error": sanitize_error_message(e),
                    "error_type": type(e).__name__,
                },
            )

    async def _close(self, error: Any) -> None:
        """Mark closed, release the connection and schedule the hooks.

        ``error`` None means committed; anything else is the rollback cause.
        The handle stays COMMITTING/ROLLING_BACK until the release returns,
        so hooks registered meanwhile are queued behind the earlier ones.
        """
        try:
            await self._conn.close()
        except Exception as e:
            logger.warning(
                "Failed to release connection",
                extra={
                    "transaction_id": str(self.transaction_id),
                    "error": sanitize_error_message(e),
                    "error_type": type(e).__name__,
                },
            )
        finally:
            self._state = EnumTransactionState.CLOSED
            self._committed = error is None
            self._rollback_cause = error

            if self.began_counted:
                self.began_counted = False
                self._controller._release_count()

            if error is None:
                hooks: list[Callable[..., Any]] = list(self._after_commits)
                args: tuple[Any, ...] = ()
                operation = "after_commit"
            else:
                hooks = list(self._after_rollbacks)
                args = (error,)
                operation = "after_rollback"
            self._after_commits.clear()
            self._after_rollbacks.clear()
            self._controller.schedule_hooks(hooks, args, self.transaction_id, operation)

            logger.debug(
                "Transaction %s",
                "committed" if error is None else "rolled back",
                extra={"transaction_id": str(self.transaction_id)},
            )


__all__ = ["RowStream", "TransactionHandle"]
