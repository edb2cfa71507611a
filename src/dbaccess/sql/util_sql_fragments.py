# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""SQL fragment builders: column lists and AND-ed predicates.

These are pure functions: no state, no I/O. They assemble well-formed
fragments from already-validated structured input so call sites never build
quoting and negation by hand.

Identifier vs. expression:
    A field is quoted as an identifier (``"field"``, or ``T."field"`` with a
    table alias) unless it looks like an expression, that is, it starts with a
    digit or contains ``(``, ``"``, ``+`` or ``|``. Expressions are emitted
    verbatim, so a computed column can be named inline:

        ("assignee" is not null or "due" is null) alive

Example:
    >>> render_columns(["fA", "fB"])
    '"fA","fB"'
    >>> render_where({"a": None, "b": NOT_NULL, "c": 12})
    '"a" is null and "b" is not null and "c"=12'
    >>> render_where({"f": in_list([]), "": "order by value desc limit 5"})
    'false order by value desc limit 5'
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

from dbaccess.protocols import ProtocolLiteralEncoder
from dbaccess.sql.model_condition import InList, IsNull, Like, normalize_condition
from dbaccess.sql.util_sql_literal import encode_literal

_RE_EXPR = re.compile(r'(?:^[0-9]|[("+|])')
_RE_SELECT = re.compile(r"^\s*select\s", re.IGNORECASE)
_RE_LIMIT = re.compile(r"(?:\slimit\s|;)", re.IGNORECASE)


def is_expression(field: str) -> bool:
    """Whether ``field`` is emitted verbatim rather than quoted."""
    return _RE_EXPR.search(field) is not None


def quote_field(field: str, alias: Optional[str] = None) -> str:
    """Quote ``field`` as an identifier unless it is an expression."""
    if is_expression(field):
        return field
    if alias is not None:
        return f'{alias}."{field}"'
    return f'"{field}"'


def add_columns(
    parts: list[str], fields: Optional[Iterable[str]], alias: Optional[str] = None
) -> None:
    """Append the column list for ``fields`` to ``parts``.

    See ``render_columns`` for the rules. Duplicate detection is the
    caller's job; pass a set or dict keys when duplicates are possible.
    """
    if alias is not None and " " in alias:
        raise ValueError(f"Table alias must not contain spaces: {alias!r}")

    if fields is None:
        parts.append("*")
        return

    first = True
    for field in fields:
        if first:
            first = False
        else:
            parts.append(",")
        parts.append(quote_field(field, alias))

    if first:
        parts.append("1")


def render_columns(
    fields: Optional[Iterable[str]], alias: Optional[str] = None
) -> str:
    """Render ``fields`` as a comma-separated select list.

    Args:
        fields: Column names or expressions, in output order. ``None`` means
            all columns (``*``); an empty sequence renders the constant ``1``
            so a statement can still be formed.
        alias: Table alias to prefix quoted columns with, e.g. ``T`` gives
            ``T."field1",T."field2"``.

    Returns:
        The select list.
    """
    parts: list[str] = []
    add_columns(parts, fields, alias)
    return "".join(parts)


def _render_term(name: str, value: Any, encoder: ProtocolLiteralEncoder) -> str:
    negate, condition = normalize_condition(value)

    if isinstance(condition, InList):
        if not condition.values:
            return "true" if negate else "false"
        items = ",".join(encoder(item) for item in condition.values)
        return f"{quote_field(name)}{' not' if negate else ''} in ({items})"

    field = quote_field(name)

    if isinstance(condition, Like):
        operator = " not like " if negate else " like "
        if condition.escape is not None:
            # Pattern already encoded by the caller (see encode_like).
            return (
                f"{field}{operator}E'{condition.pattern}'"
                f" escape '{condition.escape}'"
            )
        return f"{field}{operator}{encoder(condition.pattern)}"

    if isinstance(condition, IsNull):
        return f"{field} is not null" if negate else f"{field} is null"

    literal = encoder(condition.value)
    return f"{field}!={literal}" if negate else f"{field}={literal}"


def render_where(
    conditions: Mapping[str, Any],
    trailing: Optional[str] = None,
    *,
    encoder: ProtocolLiteralEncoder = encode_literal,
) -> str:
    """Render ``conditions`` as a predicate (without ``where``), AND-joined.

    Rules per value:
        - plain value: ``"field"=<literal>``
        - ``None``: ``"field" is null``
        - ``NOT_NULL``: ``"field" is not null``
        - ``not_(v)``: ``"field"!=<literal>``
        - ``in_list(c)``: ``"field" in (...)``, or ``false`` when ``c`` is empty
        - ``not_in(c)``: ``"field" not in (...)``, or ``true`` when ``c`` is empty
        - ``like(p)`` / ``not_like(p)``: ``"field" [not] like <literal>``;
          with an escape character ``E'<p>' escape '<c>'``

    The empty key is special: its value is a raw fragment, such as
    ``order by value desc limit 5``, appended after the predicate and before
    ``trailing``. A None or empty fragment is ignored; any other non-string
    fragment raises ``TypeError``.

    Args:
        conditions: Field name to condition, rendered in insertion order.
        trailing: Extra clause appended at the end, e.g. ``limit 1``.
        encoder: Literal encoder for values.

    Returns:
        The predicate text. With no predicate terms only the trailing text is
        returned; ``render_where({})`` is ``""``.
    """
    terms: list[str] = []
    for name, value in conditions.items():
        if not name:
            if value is None or value == "":
                continue
            if not isinstance(value, str):
                raise TypeError(
                    f"Raw where fragment must be a string, not {type(value).__name__}"
                )
            trailing = value if trailing is None else f"{value} {trailing}"
            continue
        terms.append(_render_term(name, value, encoder))

    sql = " and ".join(terms)
    if trailing:
        sql = f"{sql} {trailing}" if sql else trailing
    return sql


def has_predicate(conditions: Mapping[str, Any]) -> bool:
    """Whether ``conditions`` renders at least one predicate term."""
    return any(name for name in conditions)


def limit_one(sql: str) -> str:
    """Append ``limit 1`` to a select statement that has no limit yet."""
    if not _RE_SELECT.search(sql) or _RE_LIMIT.search(sql):
        return sql
    return f"{sql} limit 1"


def first_columns(rows: Iterable[Sequence[Any]]) -> list[Any]:
    """Collect the first column of each row."""
    return [row[0] for row in rows]


__all__ = [
    "add_columns",
    "first_columns",
    "has_predicate",
    "is_expression",
    "limit_one",
    "quote_field",
    "render_columns",
    "render_where",
]
