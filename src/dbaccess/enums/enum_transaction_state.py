# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Transaction Lifecycle State Enumeration.

Defines the states a transaction handle moves through between acquiring its
connection and releasing it.

State Machine:
    OPEN -> COMMITTING -> CLOSED
    OPEN -> ROLLING_BACK -> CLOSED

No transition leaves CLOSED. Statements issued by callers are only legal
while the handle is OPEN.
"""

from enum import Enum


class EnumTransactionState(str, Enum):
    """Lifecycle state of a transaction handle.

    Attributes:
        OPEN: Transaction has begun and accepts statements.
        COMMITTING: Final commit is in flight.
        ROLLING_BACK: Final (or emergency) rollback is in flight.
        CLOSED: Terminal. Connection released, hooks scheduled.
    """

    OPEN = "open"
    COMMITTING = "committing"
    ROLLING_BACK = "rolling_back"
    CLOSED = "closed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is possible."""
        return self is EnumTransactionState.CLOSED


__all__ = ["EnumTransactionState"]
