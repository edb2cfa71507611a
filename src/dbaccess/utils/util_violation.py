# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Driver error classification helpers.

The access layer propagates driver errors verbatim. These helpers let a unit
of work branch on the SQLSTATE without importing the driver, e.g. treating a
unique violation after a racing insert as "already exists".

asyncpg exposes the code as ``PostgresError.sqlstate``; any exception with a
``sqlstate`` attribute is classified the same way.
"""

from __future__ import annotations

from dbaccess.enums import EnumPgSqlState


def is_violation(ex: BaseException | None, code: EnumPgSqlState | str) -> bool:
    """Whether ``ex`` is a database error carrying the given SQLSTATE code."""
    if ex is None:
        return False
    sqlstate = getattr(ex, "sqlstate", None)
    if sqlstate is None:
        return False
    expected = code.value if isinstance(code, EnumPgSqlState) else code
    return sqlstate == expected


def is_unique_violation(ex: BaseException | None) -> bool:
    """Whether ``ex`` is a unique violation. Useful with select-for-update."""
    return is_violation(ex, EnumPgSqlState.UNIQUE_VIOLATION)


def is_foreign_key_violation(ex: BaseException | None) -> bool:
    return is_violation(ex, EnumPgSqlState.FOREIGN_KEY_VIOLATION)


def is_not_null_violation(ex: BaseException | None) -> bool:
    return is_violation(ex, EnumPgSqlState.NOT_NULL_VIOLATION)


def is_check_violation(ex: BaseException | None) -> bool:
    return is_violation(ex, EnumPgSqlState.CHECK_VIOLATION)


__all__ = [
    "is_check_violation",
    "is_foreign_key_violation",
    "is_not_null_violation",
    "is_unique_violation",
    "is_violation",
]
