# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Encoders for user text embedded in LIKE patterns and regular expressions.

Both encoders produce text meant to sit inside an escape-string constant
(``E'...'``), which is what ``render_where`` emits for ``like(pattern, "!")``.

Example:
    >>> f"\\"name\\" like E'{encode_like(text)}%' escape '!'"
    >>> f"\\"name\\" ~* E'{encode_regex(text)}'"
"""

from __future__ import annotations

import re

from dbaccess.sql.util_sql_literal import E_STRING_ESCAPES, escape_e_string

# '!' is the escape character; a backslash cannot be used because E'' already
# consumes one level of backslashes.
LIKE_ESCAPE_CHAR = "!"

_LIKE_ESCAPES: dict[str, str] = {
    **E_STRING_ESCAPES,
    "%": "!%",
    "_": "!_",
    "!": "!!",
}
_RE_LIKE = re.compile("[" + re.escape("".join(_LIKE_ESCAPES)) + "]")

_RE_REGEX = re.compile(
    "[" + re.escape(".*+?[]()^${}|" + "".join(E_STRING_ESCAPES)) + "]"
)


def encode_like(text: str) -> str:
    """Encode ``text`` so ``%`` and ``_`` in it match literally in a LIKE clause.

    Every special character is encoded, so append your own wildcards after
    calling this. Use the result inside ``E'...'`` with ``escape '!'``.
    """
    escape_e_string(text)  # rejects NUL
    return _RE_LIKE.sub(lambda m: _LIKE_ESCAPES[m.group(0)], text)


def _encode_regex_char(match: re.Match[str]) -> str:
    char = match.group(0)
    escaped = E_STRING_ESCAPES.get(char)
    if escaped is None:
        # Regex metacharacter: E'' turns \\ into \, the regex engine then sees \x.
        return "\\\\" + char
    if char == "\\":
        return "\\\\\\\\"
    if char < " ":
        # Control character: E'' yields \n, which the regex engine reads as newline.
        return "\\" + escaped
    return escaped


def encode_regex(text: str) -> str:
    """Encode ``text`` to match literally in a ``~`` or ``~*`` expression.

    Example:
        ``"name" ~* E'{encode_regex(text)}'``
    """
    escape_e_string(text)  # rejects NUL
    return _RE_REGEX.sub(_encode_regex_char, text)


__all__ = ["LIKE_ESCAPE_CHAR", "encode_like", "encode_regex"]
