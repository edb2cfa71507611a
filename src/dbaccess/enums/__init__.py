# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Access Layer Enumerations Module.

Exports:
    EnumAccessErrorCode: Structured error codes for AccessError subclasses
    EnumPgSqlState: PostgreSQL SQLSTATE codes used by violation helpers
    EnumRowLockOption: Locking clause for generated select statements
    EnumTransactionState: Transaction handle lifecycle states
"""

from dbaccess.enums.enum_access_error_code import EnumAccessErrorCode
from dbaccess.enums.enum_pg_sqlstate import EnumPgSqlState
from dbaccess.enums.enum_row_lock_option import EnumRowLockOption
from dbaccess.enums.enum_transaction_state import EnumTransactionState

__all__: list[str] = [
    "EnumAccessErrorCode",
    "EnumPgSqlState",
    "EnumRowLockOption",
    "EnumTransactionState",
]
