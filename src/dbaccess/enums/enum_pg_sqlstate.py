# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""PostgreSQL SQLSTATE Code Enumeration.

The subset of SQLSTATE codes callers commonly branch on, e.g. to turn a
unique violation raised by an insert into a "record already exists" path.

Usage:
    >>> from dbaccess.enums import EnumPgSqlState
    >>> from dbaccess.utils import is_violation
    >>> is_violation(ex, EnumPgSqlState.UNIQUE_VIOLATION)

See Also:
    - https://www.postgresql.org/docs/current/errcodes-appendix.html
"""

from enum import Enum


class EnumPgSqlState(str, Enum):
    """SQLSTATE codes reported by PostgreSQL."""

    SUCCESSFUL_COMPLETION = "00000"
    WARNING = "01000"
    NO_DATA = "02000"
    INVALID_REGULAR_EXPRESSION = "2201B"
    INTEGRITY_CONSTRAINT_VIOLATION = "23000"
    NOT_NULL_VIOLATION = "23502"
    FOREIGN_KEY_VIOLATION = "23503"
    UNIQUE_VIOLATION = "23505"
    CHECK_VIOLATION = "23514"
    IN_FAILED_SQL_TRANSACTION = "25P02"
    UNDEFINED_TABLE = "42P01"
    DUPLICATE_TABLE = "42P07"
    UNDEFINED_OBJECT = "42704"
    OUT_OF_MEMORY = "53200"
    PROGRAM_LIMIT_EXCEEDED = "54000"

    @property
    def is_integrity_violation(self) -> bool:
        """Whether the code belongs to class 23 (integrity constraint violation)."""
        return self.value.startswith("23")


__all__ = ["EnumPgSqlState"]
