# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for the access-layer error hierarchy."""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from dbaccess.enums import EnumAccessErrorCode
from dbaccess.errors import (
    AccessConfigurationError,
    AccessError,
    DiagnosticError,
    HookInvocationError,
    LiteralEncodingError,
    ModelAccessErrorContext,
    RollbackTimeoutError,
    TransactionStateError,
)


class TestModelAccessErrorContext:
    """Tests for the error context model."""

    def test_defaults(self) -> None:
        """Test all fields are optional."""
        context = ModelAccessErrorContext()
        assert context.operation is None
        assert context.transaction_id is None
        assert context.statement is None
        assert context.correlation_id is None

    def test_frozen_and_strict(self) -> None:
        """Test the context is immutable and rejects unknown fields."""
        context = ModelAccessErrorContext(operation="execute")
        with pytest.raises(ValidationError):
            context.operation = "query"  # type: ignore[misc]
        with pytest.raises(ValidationError):
            ModelAccessErrorContext(table="Task")  # type: ignore[call-arg]


class TestAccessError:
    """Tests for AccessError."""

    def test_structured_context(self) -> None:
        """Test context fields are flattened into error.context."""
        transaction_id = uuid4()
        correlation_id = uuid4()
        context = ModelAccessErrorContext(
            operation="execute",
            transaction_id=transaction_id,
            statement="update t set a=1",
            correlation_id=correlation_id,
        )

        error = AccessError("Operation failed", context=context, retry_count=3)

        assert str(error) == "Operation failed"
        assert error.message == "Operation failed"
        assert error.error_code == EnumAccessErrorCode.INVALID_STATE
        assert error.correlation_id == correlation_id
        assert error.context == {
            "retry_count": 3,
            "operation": "execute",
            "transaction_id": str(transaction_id),
            "statement": "update t set a=1",
        }

    def test_without_context(self) -> None:
        """Test an error with no context."""
        error = AccessError("boom")
        assert error.context == {}
        assert error.correlation_id is None

    def test_repr(self) -> None:
        """Test repr shows the code and message."""
        assert repr(TransactionStateError("Transaction is closed")) == (
            "TransactionStateError(ACCESS_INVALID_STATE: 'Transaction is closed')"
        )


class TestErrorCodes:
    """Tests for subclass codes and propagation classes."""

    @pytest.mark.parametrize(
        ("error_class", "code", "propagated"),
        [
            (AccessConfigurationError, EnumAccessErrorCode.CONFIGURATION_ERROR, True),
            (TransactionStateError, EnumAccessErrorCode.INVALID_STATE, True),
            (LiteralEncodingError, EnumAccessErrorCode.ENCODING_ERROR, True),
            (RollbackTimeoutError, EnumAccessErrorCode.ROLLBACK_TIMEOUT, False),
            (HookInvocationError, EnumAccessErrorCode.HOOK_FAILED, False),
            (DiagnosticError, EnumAccessErrorCode.DIAGNOSTIC_FAILED, False),
        ],
    )
    def test_codes(
        self, error_class: type[AccessError], code: EnumAccessErrorCode, propagated: bool
    ) -> None:
        """Test each subclass carries its code and is an AccessError."""
        error = error_class("message", context=ModelAccessErrorContext(operation="op"))
        assert isinstance(error, AccessError)
        assert error.error_code == code
        assert error.error_code.is_propagated is propagated
        assert error.context["operation"] == "op"
