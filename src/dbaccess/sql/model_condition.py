# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Typed conditions for structured where clauses.

A condition map passed to ``render_where`` maps a field name to either a
plain value or one of the variants below:

    {
        "foo": in_list(["a", "b"]),
        "moo": not_in([1, 5]),
        "boo": NOT_NULL,
        "qoo": None,
        "xoo": not_(90),
        "name": like("a%z"),
    }

A plain value means ``Equals(value)`` and ``None`` means ``IsNull()``.
``Not`` wraps any other variant (or a plain value) to negate it, which keeps
"is not null", "!=", "not in" and "not like" unambiguous without inspecting
strings.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Optional


class Condition:
    """Base class of all condition variants."""

    __slots__ = ()


@dataclass(frozen=True)
class Equals(Condition):
    """``"field"=<value>``. ``Equals(None)`` renders as ``is null``."""

    value: Any

    def __repr__(self) -> str:
        return f"eq({self.value!r})"


@dataclass(frozen=True)
class IsNull(Condition):
    """``"field" is null``."""

    def __repr__(self) -> str:
        return "is_null"


@dataclass(frozen=True)
class InList(Condition):
    """``"field" in (...)``. An empty list renders as ``false``."""

    values: tuple[Any, ...] = ()

    def __repr__(self) -> str:
        return f"in({list(self.values)!r})"


@dataclass(frozen=True)
class Like(Condition):
    """``"field" like <pattern>``.

    If ``escape`` is given, ``pattern`` is assumed to be encoded already
    (see ``encode_like``) and is emitted as ``E'<pattern>' escape '<escape>'``
    without encoding it again.
    """

    pattern: str
    escape: Optional[str] = None

    def __repr__(self) -> str:
        return f"like({self.pattern!r}, {self.escape!r})"


@dataclass(frozen=True)
class Not(Condition):
    """Negates ``value``: a plain value, ``None`` or another condition."""

    value: Any = None

    def __repr__(self) -> str:
        return f"not({self.value!r})"


def not_(value: Any) -> Not:
    """Field shall not be ``value``.

    Example:
        >>> render_where({"removedAt": NOT_NULL, "type": not_(1)})
        '"removedAt" is not null and "type"!=1'
    """
    return Not(value)


def in_list(values: Optional[Iterable[Any]]) -> InList:
    """``"field" in (value1, value2, ...)``."""
    return InList(tuple(values) if values is not None else ())


def not_in(values: Optional[Iterable[Any]]) -> Not:
    """``"field" not in (value1, value2, ...)``."""
    return Not(in_list(values))


def like(pattern: str, escape: Optional[str] = None) -> Like:
    """``"field" like <pattern>``.

    Specify ``escape`` as ``"!"`` when part of ``pattern`` was encoded with
    ``encode_like``:

        >>> like(f"{encode_like(text)}%", "!")

    With ``text`` being ``a%b`` this renders ``like E'a!%b%' escape '!'``.
    """
    return Like(pattern, escape)


def not_like(pattern: str, escape: Optional[str] = None) -> Not:
    """``"field" not like <pattern>``."""
    return Not(Like(pattern, escape))


NOT_NULL = Not(None)
IS_NULL = IsNull()


def normalize_condition(value: Any) -> tuple[bool, Condition]:
    """Resolve a condition-map value into ``(negate, variant)``.

    The returned variant is always one of ``Equals``, ``IsNull``, ``InList``
    or ``Like``; nested ``Not`` wrappers toggle ``negate``.
    """
    negate = False
    while isinstance(value, Not):
        negate = not negate
        value = value.value

    if value is None:
        return negate, IS_NULL
    if isinstance(value, Equals):
        return negate, IS_NULL if value.value is None else value
    if isinstance(value, Condition):
        return negate, value
    return negate, Equals(value)


__all__ = [
    "Condition",
    "Equals",
    "IS_NULL",
    "InList",
    "IsNull",
    "Like",
    "NOT_NULL",
    "Not",
    "in_list",
    "like",
    "normalize_condition",
    "not_",
    "not_in",
    "not_like",
]
