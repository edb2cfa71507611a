# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""dbaccess - Transaction access layer for PostgreSQL.

This package runs units of work inside database transactions and builds SQL
fragments from structured input:

- Transaction lifecycle: begin, commit or roll back, release, deferred hooks
- Slow-statement detection with a pre-slow lock diagnostic
- Column lists and AND-ed predicates from typed condition maps
- An asyncpg adapter with ``@name`` placeholders

Key Components:
    - TransactionController: Runs units of work; owns configuration and hooks
    - TransactionHandle: One open transaction handed to the unit of work
    - ModelAccessConfig: Immutable configuration injected into controllers
    - render_columns / render_where: Fragment builders
    - configure / access: Module-level facade over a default controller
"""

from dbaccess.enums import EnumRowLockOption, EnumTransactionState
from dbaccess.errors import (
    AccessConfigurationError,
    AccessError,
    LiteralEncodingError,
    TransactionStateError,
)
from dbaccess.runtime import (
    ModelAccessConfig,
    RowStream,
    TransactionController,
    TransactionHandle,
    access,
    access_count,
    configure,
)
from dbaccess.sql import (
    IS_NULL,
    NOT_NULL,
    encode_like,
    encode_literal,
    encode_regex,
    first_columns,
    in_list,
    like,
    not_,
    not_in,
    not_like,
    render_columns,
    render_where,
)
from dbaccess.utils import (
    is_check_violation,
    is_foreign_key_violation,
    is_not_null_violation,
    is_unique_violation,
    is_violation,
)

__all__: list[str] = [
    "AccessConfigurationError",
    "AccessError",
    "EnumRowLockOption",
    "EnumTransactionState",
    "IS_NULL",
    "LiteralEncodingError",
    "ModelAccessConfig",
    "NOT_NULL",
    "RowStream",
    "TransactionController",
    "TransactionHandle",
    "TransactionStateError",
    "access",
    "access_count",
    "configure",
    "encode_like",
    "encode_literal",
    "encode_regex",
    "first_columns",
    "in_list",
    "is_check_violation",
    "is_foreign_key_violation",
    "is_not_null_violation",
    "is_unique_violation",
    "is_violation",
    "like",
    "not_",
    "not_in",
    "not_like",
    "render_columns",
    "render_where",
]
