# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Access Layer Errors Module.

Exports:
    ModelAccessErrorContext: Configuration model for bundled error context
    AccessError: Base access-layer error class
    AccessConfigurationError: Missing or invalid configuration
    TransactionStateError: Operation illegal in the handle's state
    LiteralEncodingError: Value cannot be rendered as a SQL literal
    RollbackTimeoutError: Emergency rollback exceeded its bound (logged only)
    HookInvocationError: Lifecycle hook raised (logged only)
    DiagnosticError: Pre-slow diagnostic failed (logged only)

Error Sanitization Guidelines:
    Statement parameters may hold user data or credentials. Messages built
    for logs go through ``dbaccess.utils.sanitize_error_message``; never put
    raw parameter values into an error message.
"""

from dbaccess.errors.access_errors import (
    AccessConfigurationError,
    AccessError,
    DiagnosticError,
    HookInvocationError,
    LiteralEncodingError,
    RollbackTimeoutError,
    TransactionStateError,
)
from dbaccess.errors.model_access_error_context import ModelAccessErrorContext

__all__: list[str] = [
    "AccessConfigurationError",
    "AccessError",
    "DiagnosticError",
    "HookInvocationError",
    "LiteralEncodingError",
    "ModelAccessErrorContext",
    "RollbackTimeoutError",
    "TransactionStateError",
]
