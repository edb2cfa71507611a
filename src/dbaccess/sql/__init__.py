# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""SQL fragment building: column lists, typed conditions and literals.

Exports:
    render_columns, add_columns: Select-list rendering
    render_where: AND-ed predicate rendering from a condition map
    not_, in_list, not_in, like, not_like, NOT_NULL, IS_NULL: Conditions
    encode_literal: Default PostgreSQL literal encoder
    encode_like, encode_regex: Encoders for user text in patterns
    limit_one, first_columns: Small statement/row helpers
"""

from dbaccess.sql.model_condition import (
    IS_NULL,
    NOT_NULL,
    Condition,
    Equals,
    InList,
    IsNull,
    Like,
    Not,
    in_list,
    like,
    normalize_condition,
    not_,
    not_in,
    not_like,
)
from dbaccess.sql.util_sql_fragments import (
    add_columns,
    first_columns,
    has_predicate,
    is_expression,
    limit_one,
    quote_field,
    render_columns,
    render_where,
)
from dbaccess.sql.util_sql_literal import (
    E_STRING_ESCAPES,
    encode_literal,
    escape_e_string,
)
from dbaccess.sql.util_sql_pattern import LIKE_ESCAPE_CHAR, encode_like, encode_regex

__all__: list[str] = [
    "Condition",
    "E_STRING_ESCAPES",
    "Equals",
    "IS_NULL",
    "InList",
    "IsNull",
    "LIKE_ESCAPE_CHAR",
    "Like",
    "NOT_NULL",
    "Not",
    "add_columns",
    "encode_like",
    "encode_literal",
    "encode_regex",
    "escape_e_string",
    "first_columns",
    "has_predicate",
    "in_list",
    "is_expression",
    "like",
    "limit_one",
    "normalize_condition",
    "not_",
    "not_in",
    "not_like",
    "quote_field",
    "render_columns",
    "render_where",
]
