# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for TransactionHandle statements, row streams and helpers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import pytest

from dbaccess.enums import EnumAccessErrorCode, EnumRowLockOption, EnumTransactionState
from dbaccess.errors import TransactionStateError
from dbaccess.runtime import TransactionController, TransactionHandle
from dbaccess.sql import in_list
from dbaccess.utils import is_unique_violation
from tests.helpers import FakePool, FakeSqlStateError, filter_records


class TestHandleState:
    """Tests for state, dataset and rollingback."""

    @pytest.mark.asyncio
    async def test_state_transitions(self, controller: TransactionController) -> None:
        """Test that the handle is open during work and closed afterwards."""
        handles: list[TransactionHandle] = []

        async def work(tx: TransactionHandle) -> EnumTransactionState:
            handles.append(tx)
            return tx.state

        assert await controller.run_in_transaction(work) is EnumTransactionState.OPEN
        assert handles[0].state is EnumTransactionState.CLOSED
        assert handles[0].closed is True

    @pytest.mark.asyncio
    async def test_dataset_is_lazy_and_stable(self, controller: TransactionController) -> None:
        """Test that the dataset is created once per handle and not shared."""
        datasets: list[dict[str, Any]] = []

        async def work(tx: TransactionHandle) -> None:
            tx.dataset["key"] = "value"
            assert tx.dataset["key"] == "value"
            datasets.append(tx.dataset)

        await controller.run_in_transaction(work)
        await controller.run_in_transaction(work)

        assert datasets[0] is not datasets[1]

    @pytest.mark.asyncio
    async def test_transaction_ids_are_unique(self, controller: TransactionController) -> None:
        """Test that every handle gets its own correlation id."""
        ids = [
            await controller.run_in_transaction(lambda tx: tx.transaction_id)
            for _ in range(3)
        ]
        assert len(set(ids)) == 3


class TestExecute:
    """Tests for execute."""

    @pytest.mark.asyncio
    async def test_returns_rowcount_and_passes_params(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test that execute returns the affected row count."""
        fake_pool.rowcount = 3

        async def work(tx: TransactionHandle) -> int:
            return await tx.execute("update t set a=@a", {"a": 1})

        assert await controller.run_in_transaction(work) == 3
        assert ("update t set a=@a", {"a": 1}) in fake_pool.first.statements

    @pytest.mark.asyncio
    async def test_statements_after_close_raise(
        self, controller: TransactionController
    ) -> None:
        """Test that every statement on a closed handle raises TransactionStateError."""
        tx = await controller.begin_explicit()
        await tx.close()

        for _ in range(2):
            with pytest.raises(TransactionStateError) as exc_info:
                await tx.execute("select 1")
            assert exc_info.value.error_code == EnumAccessErrorCode.INVALID_STATE
            with pytest.raises(TransactionStateError):
                tx.query("select 1")
            with pytest.raises(TransactionStateError):
                await tx.query_any("select 1")

    @pytest.mark.asyncio
    async def test_driver_error_propagates_unchanged(
        self,
        controller: TransactionController,
        fake_pool: FakePool,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test that driver errors are logged and re-raised verbatim."""
        error = FakeSqlStateError("duplicate key", "23505")
        fake_pool.failures["insert"] = error

        async def work(tx: TransactionHandle) -> bool:
            try:
                await tx.execute("insert into t values(1)")
            except FakeSqlStateError as e:
                return is_unique_violation(e)
            return False

        with caplog.at_level(logging.ERROR):
            assert await controller.run_in_transaction(work) is True

        errors = filter_records(
            caplog.records, "dbaccess.runtime.transaction_handle", logging.ERROR
        )
        assert [r.getMessage() for r in errors] == [
            "Failed to execute: insert into t values(1)"
        ]

    @pytest.mark.asyncio
    async def test_logged_driver_error_is_sanitized(
        self,
        controller: TransactionController,
        fake_pool: FakePool,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test that the raw driver message and traceback stay out of the log."""
        fake_pool.failures["update"] = RuntimeError(
            "could not connect: postgresql://app:hunter2@db/app"
        )

        with caplog.at_level(logging.WARNING):
            with pytest.raises(RuntimeError):
                await controller.run_in_transaction(
                    lambda tx: tx.execute("update t set a=1")
                )

        errors = filter_records(
            caplog.records, "dbaccess.runtime.transaction_handle", logging.ERROR
        )
        assert len(errors) == 1
        assert errors[0].exc_info is None
        assert errors[0].error_type == "RuntimeError"
        assert "hunter2" not in errors[0].error
        assert "hunter2" not in caplog.text

    @pytest.mark.asyncio
    async def test_error_formatter_and_should_log_error(
        self,
        make_controller: Callable[..., TransactionController],
        fake_pool: FakePool,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test the configurable error message and log-worthiness predicate."""
        fake_pool.failures["update"] = RuntimeError("deadlock")
        fake_pool.failures["delete"] = RuntimeError("expected")

        def should_log(tx: TransactionHandle, ex: BaseException) -> bool:
            return "expected" not in str(ex)

        controller = make_controller(
            error_message_formatter=lambda sql, params: f"<{sql}> {params}",
            should_log_error=should_log,
        )

        async def update(tx: TransactionHandle) -> None:
            await tx.execute("update t set a=1", {"a": 1})

        async def delete(tx: TransactionHandle) -> None:
            await tx.execute("delete from t")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(RuntimeError, match="deadlock"):
                await controller.run_in_transaction(update)
            with pytest.raises(RuntimeError, match="expected"):
                await controller.run_in_transaction(delete)

        errors = filter_records(
            caplog.records, "dbaccess.runtime.transaction_handle", logging.ERROR
        )
        assert [r.getMessage() for r in errors] == [
            "Failed to execute: <update t set a=1> {'a': 1}"
        ]

    @pytest.mark.asyncio
    async def test_on_execute_and_on_query_observers(
        self, make_controller: Callable[..., TransactionController]
    ) -> None:
        """Test that statement observers see every statement."""
        executed: list[str] = []
        queried: list[str] = []
        controller = make_controller(
            on_execute=lambda sql, params: executed.append(sql),
            on_query=lambda sql, params: queried.append(sql),
        )

        async def work(tx: TransactionHandle) -> None:
            await tx.execute("update t set a=1")
            await tx.query("select 1").to_list()

        await controller.run_in_transaction(work)

        assert executed == ["begin", "update t set a=1", "commit"]
        assert queried == ["select 1"]


class TestTag:
    """Tests for statement tagging."""

    @pytest.mark.asyncio
    async def test_on_tag_called_once(
        self, make_controller: Callable[..., TransactionController]
    ) -> None:
        """Test that a tag applies to the next statement only."""
        tagged: list[tuple[Any, str, Any]] = []
        controller = make_controller(
            on_tag=lambda tx, tag, sql, params: tagged.append((tag, sql, params))
        )

        async def work(tx: TransactionHandle) -> Any:
            tx.tag = "audit"
            await tx.execute("update t set a=@a", {"a": 1})
            await tx.execute("update t set b=2")
            return tx.tag

        assert await controller.run_in_transaction(work) is None
        assert tagged == [("audit", "update t set a=@a", {"a": 1})]

    @pytest.mark.asyncio
    async def test_tag_logged_without_callback(
        self, controller: TransactionController, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a tagged statement is logged when no on_tag is configured."""

        async def work(tx: TransactionHandle) -> None:
            tx.tag = "trace"
            await tx.query("select 1").to_list()

        with caplog.at_level(logging.WARNING):
            await controller.run_in_transaction(work)

        warnings = filter_records(caplog.records, "dbaccess.runtime.transaction_handle")
        assert [r.getMessage() for r in warnings] == ["[trace] SQL: select 1"]


class TestRowStream:
    """Tests for query row streams."""

    @pytest.mark.asyncio
    async def test_to_list(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test consuming every row."""
        fake_pool.rows["select"] = [(1,), (2,)]

        async def work(tx: TransactionHandle) -> list[Any]:
            return await tx.query("select a from t").to_list()

        assert await controller.run_in_transaction(work) == [(1,), (2,)]
        assert fake_pool.first.cursors_closed == 1

    @pytest.mark.asyncio
    async def test_async_iteration(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test async for over a row stream."""
        fake_pool.rows["select"] = [(1,), (2,), (3,)]

        async def work(tx: TransactionHandle) -> int:
            total = 0
            async for row in tx.query("select a from t"):
                total += row[0]
            return total

        assert await controller.run_in_transaction(work) == 6

    @pytest.mark.asyncio
    async def test_first_and_query_any(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test first-row helpers and limit 1 splicing."""
        fake_pool.rows["select a"] = [(1,), (2,)]

        async def work(tx: TransactionHandle) -> tuple[Any, Any, Any]:
            return (
                await tx.query("select a from t").first(),
                await tx.query_any("select a from t"),
                await tx.query_any("select b from t"),
            )

        assert await controller.run_in_transaction(work) == ((1,), (1,), None)
        assert "select a from t limit 1" in fake_pool.statements
        assert fake_pool.first.cursors_closed == 3

    @pytest.mark.asyncio
    async def test_early_close(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test that leaving an async with block closes the cursor early."""
        fake_pool.rows["select"] = [(1,), (2,), (3,)]
        streams: list[Any] = []

        async def work(tx: TransactionHandle) -> list[Any]:
            seen = []
            async with tx.query("select a from t") as rows:
                streams.append(rows)
                async for row in rows:
                    seen.append(row)
                    break
            return seen

        assert await controller.run_in_transaction(work) == [(1,)]
        assert streams[0].done is True
        assert fake_pool.first.cursors_closed == 1

    @pytest.mark.asyncio
    async def test_not_restartable(self, controller: TransactionController, fake_pool: FakePool) -> None:
        """Test that a consumed stream yields nothing more."""
        fake_pool.rows["select"] = [(1,)]

        async def work(tx: TransactionHandle) -> tuple[list[Any], list[Any]]:
            rows = tx.query("select a from t")
            return await rows.to_list(), await rows.to_list()

        assert await controller.run_in_transaction(work) == ([(1,)], [])

    @pytest.mark.asyncio
    async def test_error_mid_stream(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test that a failing stream raises, closes and rolls back."""
        fake_pool.rows["select"] = [(1,), RuntimeError("connection lost")]

        async def work(tx: TransactionHandle) -> None:
            async for _ in tx.query("select a from t"):
                pass

        with pytest.raises(RuntimeError, match="connection lost"):
            await controller.run_in_transaction(work)

        assert fake_pool.statements == ["begin", "select a from t", "rollback"]
        assert fake_pool.first.cursors_closed == 1

    @pytest.mark.asyncio
    async def test_abandoned_stream_closed_before_commit(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test that a partially consumed stream is closed when the handle closes."""
        fake_pool.rows["select"] = [(1,), (2,)]

        async def work(tx: TransactionHandle) -> Any:
            rows = tx.query("select a from t")
            return await rows.__anext__()

        assert await controller.run_in_transaction(work) == (1,)
        assert fake_pool.first.cursors_closed == 1
        assert fake_pool.statements == ["begin", "select a from t", "commit"]

    @pytest.mark.asyncio
    async def test_unstarted_stream_sends_nothing(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test that the statement runs only when iteration starts."""

        async def work(tx: TransactionHandle) -> None:
            rows = tx.query("select a from t")
            await rows.aclose()

        await controller.run_in_transaction(work)
        assert fake_pool.statements == ["begin", "commit"]


class TestQueryHelpers:
    """Tests for statement-building helpers."""

    @staticmethod
    async def _run(
        controller: TransactionController, work: Callable[[TransactionHandle], Any]
    ) -> Any:
        return await controller.run_in_transaction(work)

    @pytest.mark.asyncio
    async def test_query_with(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test select statements built by query_with."""

        async def work(tx: TransactionHandle) -> None:
            await tx.query_with(["a", "b"], "Task", '"x" is not null').to_list()
            await tx.query_with(["a"], "Task", None, shortcut="T").to_list()
            await tx.query_with(
                None,
                "ignored",
                '"a"=@a',
                {"a": 1},
                from_clause='"Task" T inner join "User" U on T."u"=U."oid"',
                option=EnumRowLockOption.FOR_UPDATE,
            ).to_list()
            await tx.query_with(["a"], "Task", None, option="for share").to_list()

        await self._run(controller, work)

        assert fake_pool.statements[1:-1] == [
            'select "a","b" from "Task" where "x" is not null',
            'select T."a" from "Task" T',
            'select * from "Task" T inner join "User" U on T."u"=U."oid" where "a"=@a for update',
            'select "a" from "Task" for share',
        ]
        assert fake_pool.first.statements[3][1] == {"a": 1}

    @pytest.mark.asyncio
    async def test_query_by(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test condition-map selects."""
        fake_pool.rows['select "oid"'] = [("t1",)]

        async def work(tx: TransactionHandle) -> Any:
            await tx.query_by(["a"], "Task", {"a": 1, "b": in_list(["x"])}).to_list()
            await tx.query_by(["a"], "Task", {}).to_list()
            await tx.query_any_by(None, "Task", {"a": 1}, EnumRowLockOption.FOR_UPDATE)
            await tx.query_any_by(None, "Task", {"": "order by a"})
            return await tx.query_any_by(["oid"], "Task", {"name": "x"})

        assert await self._run(controller, work) == ("t1",)
        assert fake_pool.statements[1:-1] == [
            "select \"a\" from \"Task\" where \"a\"=1 and \"b\" in (E'x')",
            'select "a" from "Task" where true',
            'select * from "Task" where "a"=1 limit 1 for update',
            'select * from "Task" where true order by a limit 1',
            "select \"oid\" from \"Task\" where \"name\"=E'x' limit 1",
        ]

    @pytest.mark.asyncio
    async def test_query_any_with(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test query_any_with returns None when nothing matches."""

        async def work(tx: TransactionHandle) -> Any:
            return await tx.query_any_with(["a"], "Task", '"a"=@a', {"a": 2})

        assert await self._run(controller, work) is None

    @pytest.mark.asyncio
    async def test_insert(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test insert statement building and row count."""
        data = {"a": 1, "b": {"x": 1}}

        async def work(tx: TransactionHandle) -> Any:
            return await tx.insert("Task", data, types={"b": "jsonb"})

        assert await self._run(controller, work) == 1
        assert fake_pool.first.statements[1] == (
            'insert into "Task"("a","b") values(@a,@b:jsonb)',
            data,
        )

    @pytest.mark.asyncio
    async def test_insert_returning(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test that insert ... returning yields the first column."""
        fake_pool.rows["insert"] = [(77, "ignored")]

        async def work(tx: TransactionHandle) -> Any:
            return await tx.insert("Task", {"name": "x"}, append='returning "oid"')

        assert await self._run(controller, work) == 77
        assert fake_pool.statements[1] == (
            'insert into "Task"("name") values(@name) returning "oid"'
        )

    @pytest.mark.asyncio
    async def test_insert_nothing(self, controller: TransactionController) -> None:
        """Test that an empty insert is rejected."""

        async def work(tx: TransactionHandle) -> Any:
            return await tx.insert("Task", {})

        with pytest.raises(ValueError, match="Nothing to insert"):
            await self._run(controller, work)

    @pytest.mark.asyncio
    async def test_delete_by(
        self, controller: TransactionController, fake_pool: FakePool
    ) -> None:
        """Test delete statements built from a condition map."""
        fake_pool.rowcount = 4

        async def work(tx: TransactionHandle) -> int:
            return await tx.delete_by("Task", {"a": 1, "b": None})

        assert await self._run(controller, work) == 4
        assert fake_pool.statements[1] == 'delete from "Task" where "a"=1 and "b" is null'
