# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for the transaction lifecycle and row-lock enums."""

from __future__ import annotations

import pytest

from dbaccess.enums import EnumRowLockOption, EnumTransactionState


class TestEnumTransactionState:
    """Tests for EnumTransactionState."""

    def test_values(self) -> None:
        """Test the string values."""
        assert [state.value for state in EnumTransactionState] == [
            "open",
            "committing",
            "rolling_back",
            "closed",
        ]

    @pytest.mark.parametrize(
        ("state", "terminal"),
        [
            (EnumTransactionState.OPEN, False),
            (EnumTransactionState.COMMITTING, False),
            (EnumTransactionState.ROLLING_BACK, False),
            (EnumTransactionState.CLOSED, True),
        ],
    )
    def test_is_terminal(self, state: EnumTransactionState, terminal: bool) -> None:
        """Test only CLOSED is terminal."""
        assert state.is_terminal is terminal

    def test_str_enum(self) -> None:
        """Test members compare equal to their values."""
        assert EnumTransactionState("closed") is EnumTransactionState.CLOSED
        assert EnumTransactionState.OPEN == "open"


class TestEnumRowLockOption:
    """Tests for EnumRowLockOption."""

    def test_clauses(self) -> None:
        """Test the rendered lock clauses."""
        assert EnumRowLockOption.FOR_UPDATE.value == "for update"
        assert EnumRowLockOption.FOR_SHARE.value == "for share"
