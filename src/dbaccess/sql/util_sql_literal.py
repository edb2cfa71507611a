# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""PostgreSQL literal encoding.

``render_where`` inlines values into the generated predicate, so every value
must become literal text the server parses back to the same value. This
module is the default ``ProtocolLiteralEncoder``; pass a different encoder to
``render_where`` to target another dialect.

Strings are emitted as escape-string constants (``E'...'``) so backslashes
and control characters survive regardless of ``standard_conforming_strings``.

Example:
    >>> encode_literal("it's")
    "E'it\\\\'s'"
    >>> encode_literal([1, 2])
    'array[1,2]'
    >>> encode_literal({"a": 1}, "jsonb")
    'E\\'{"a": 1}\\'::jsonb'
"""

from __future__ import annotations

import json
import math
import re
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from dbaccess.errors import LiteralEncodingError

# Escapes understood inside E'...' constants.
E_STRING_ESCAPES: dict[str, str] = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}

_RE_E_STRING = re.compile("[" + re.escape("".join(E_STRING_ESCAPES)) + "]")
_JSON_TYPES = frozenset({"json", "jsonb"})


def escape_e_string(text: str) -> str:
    """Escape ``text`` for use between ``E'`` and ``'``.

    Raises:
        LiteralEncodingError: If ``text`` contains a NUL character, which
            PostgreSQL text values cannot hold.
    """
    if "\x00" in text:
        raise LiteralEncodingError(
            "NUL characters cannot be stored in a text literal",
            value_type="str",
        )
    return _RE_E_STRING.sub(lambda m: E_STRING_ESCAPES[m.group(0)], text)


def _encode_string(text: str) -> str:
    return f"E'{escape_e_string(text)}'"


def _encode_float(value: float) -> str:
    if math.isnan(value):
        return "'NaN'"
    if math.isinf(value):
        return "'Infinity'" if value > 0 else "'-Infinity'"
    return repr(value)


def _encode_decimal(value: Decimal) -> str:
    if value.is_nan():
        return "'NaN'"
    if value.is_infinite():
        return "'Infinity'" if value > 0 else "'-Infinity'"
    return str(value)


def _encode_value(value: Any) -> str:
    if value is None:
        return "null"
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _encode_value(value.value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _encode_float(value)
    if isinstance(value, Decimal):
        return _encode_decimal(value)
    if isinstance(value, str):
        return _encode_string(value)
    # datetime before date: datetime is a date subclass.
    if isinstance(value, (datetime, date, time)):
        return f"'{value.isoformat()}'"
    if isinstance(value, timedelta):
        return f"interval '{value.total_seconds()!r} seconds'"
    if isinstance(value, UUID):
        return f"'{value}'"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"decode('{bytes(value).hex()}','hex')"
    if isinstance(value, dict):
        return _encode_string(json.dumps(value, default=str))
    if isinstance(value, (list, tuple)):
        if not value:
            return "'{}'"
        return "array[" + ",".join(_encode_value(item) for item in value) + "]"

    raise LiteralEncodingError(
        f"Unsupported literal type: {type(value).__name__}",
        value_type=type(value).__name__,
    )


def encode_literal(value: Any, type_hint: Optional[str] = None) -> str:
    """Encode ``value`` as PostgreSQL literal text.

    Args:
        value: The value to encode.
        type_hint: Optional SQL type. ``json``/``jsonb`` serialize ``value``
            as JSON text; any hint is appended as a ``::type`` cast.

    Returns:
        Literal SQL text.

    Raises:
        LiteralEncodingError: If the value's type is not supported.
    """
    if type_hint is None:
        return _encode_value(value)

    hint = type_hint.strip()
    if hint.lower() in _JSON_TYPES:
        if value is None:
            return "null"
        text = _encode_string(json.dumps(value, default=str))
    else:
        text = _encode_value(value)
    return f"{text}::{hint}"


__all__ = ["E_STRING_ESCAPES", "encode_literal", "escape_e_string"]
