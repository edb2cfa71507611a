# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Access-Layer Error Classes.

Error Hierarchy:
    AccessError (base access-layer error)
    ├── AccessConfigurationError
    ├── TransactionStateError
    ├── LiteralEncodingError
    ├── RollbackTimeoutError   (logged only)
    ├── HookInvocationError    (logged only)
    └── DiagnosticError        (logged only)

Driver errors (asyncpg.PostgresError and friends) are never wrapped; they
propagate verbatim to the unit of work. Use ``dbaccess.utils.is_violation``
to classify them.

All errors:
    - Carry an EnumAccessErrorCode
    - Support proper error chaining with ``raise ... from e``
    - Expose structured context for logging via ``context``
    - Accept ModelAccessErrorContext for bundled context parameters
"""

from typing import Optional
from uuid import UUID

from dbaccess.enums import EnumAccessErrorCode
from dbaccess.errors.model_access_error_context import ModelAccessErrorContext


class AccessError(Exception):
    """Base error class for the transaction access layer.

    Structured Fields (via ModelAccessErrorContext):
        operation: Operation being performed
        transaction_id: Transaction handle involved
        statement: SQL text involved
        correlation_id: Request correlation ID for tracking

    Example:
        >>> context = ModelAccessErrorContext(operation="execute")
        >>> raise AccessError("Operation failed", context=context, retry_count=3)
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[EnumAccessErrorCode] = None,
        context: Optional[ModelAccessErrorContext] = None,
        **extra_context: object,
    ) -> None:
        """Initialize AccessError with structured fields.

        Args:
            message: Human-readable error message
            error_code: Error code (defaults to INVALID_STATE)
            context: Bundled access context (operation, transaction_id, ...)
            **extra_context: Additional context information
        """
        super().__init__(message)
        structured_context: dict[str, object] = dict(extra_context)

        correlation_id: Optional[UUID] = None
        if context is not None:
            if context.operation is not None:
                structured_context["operation"] = context.operation
            if context.transaction_id is not None:
                structured_context["transaction_id"] = str(context.transaction_id)
            if context.statement is not None:
                structured_context["statement"] = context.statement
            correlation_id = context.correlation_id

        self.message = message
        self.error_code = error_code or EnumAccessErrorCode.INVALID_STATE
        self.correlation_id = correlation_id
        self.context = structured_context

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_code.value}: {self.message!r})"


class AccessConfigurationError(AccessError):
    """Raised when the access layer is used without (or with invalid) configuration.

    Example:
        >>> raise AccessConfigurationError(
        ...     "configure() must be called before access()",
        ...     context=ModelAccessErrorContext(operation="access"),
        ... )
    """

    def __init__(
        self,
        message: str,
        context: Optional[ModelAccessErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumAccessErrorCode.CONFIGURATION_ERROR,
            context=context,
            **extra_context,
        )


class TransactionStateError(AccessError):
    """Raised when an operation is not legal in the handle's current state.

    Used when a statement is issued on a closed (or closing) handle, or when
    ``close()`` is called twice.
    """

    def __init__(
        self,
        message: str,
        context: Optional[ModelAccessErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumAccessErrorCode.INVALID_STATE,
            context=context,
            **extra_context,
        )


class LiteralEncodingError(AccessError):
    """Raised when a value cannot be rendered as a SQL literal.

    Example:
        >>> raise LiteralEncodingError(
        ...     "Unsupported literal type",
        ...     value_type="object",
        ... )
    """

    def __init__(
        self,
        message: str,
        context: Optional[ModelAccessErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumAccessErrorCode.ENCODING_ERROR,
            context=context,
            **extra_context,
        )


class RollbackTimeoutError(AccessError):
    """Emergency rollback did not finish within its bound.

    Never raised to callers; it is logged and the close proceeds.
    """

    def __init__(
        self,
        message: str,
        context: Optional[ModelAccessErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumAccessErrorCode.ROLLBACK_TIMEOUT,
            context=context,
            **extra_context,
        )


class HookInvocationError(AccessError):
    """An after-commit or after-rollback hook raised.

    Never raised to callers; it is logged and the next hook runs.
    """

    def __init__(
        self,
        message: str,
        context: Optional[ModelAccessErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumAccessErrorCode.HOOK_FAILED,
            context=context,
            **extra_context,
        )


class DiagnosticError(AccessError):
    """The pre-slow lock diagnostic failed.

    Never raised to callers; it is logged only.
    """

    def __init__(
        self,
        message: str,
        context: Optional[ModelAccessErrorContext] = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumAccessErrorCode.DIAGNOSTIC_FAILED,
            context=context,
            **extra_context,
        )


__all__ = [
    "AccessError",
    "AccessConfigurationError",
    "TransactionStateError",
    "LiteralEncodingError",
    "RollbackTimeoutError",
    "HookInvocationError",
    "DiagnosticError",
]
