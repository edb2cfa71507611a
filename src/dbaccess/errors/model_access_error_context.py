# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Access Error Context Configuration Model.

Bundles the structured fields shared by access-layer errors so constructors
stay small while keeping strong typing.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ModelAccessErrorContext(BaseModel):
    """Structured context for access-layer errors.

    Attributes:
        operation: Operation being performed (execute, query, close, hook, ...)
        transaction_id: Identifier of the transaction handle involved
        statement: SQL text (or formatted message) involved, if any
        correlation_id: Request correlation ID for distributed tracing

    Example:
        >>> context = ModelAccessErrorContext(
        ...     operation="execute",
        ...     transaction_id=handle.transaction_id,
        ...     statement="update \\"Task\\" set ...",
        ... )
        >>> raise TransactionStateError("Closed", context=context)
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    operation: Optional[str] = Field(
        default=None,
        description="Operation being performed (execute, query, close, hook, ...)",
    )
    transaction_id: Optional[UUID] = Field(
        default=None,
        description="Identifier of the transaction handle involved",
    )
    statement: Optional[str] = Field(
        default=None,
        description="SQL statement or formatted statement message",
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Request correlation ID for distributed tracing",
    )


__all__ = ["ModelAccessErrorContext"]
