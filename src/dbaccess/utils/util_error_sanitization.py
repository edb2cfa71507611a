# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Error message sanitization utilities.

Driver errors and hook failures are logged by the access layer. Their
messages can echo connection strings or statement parameters, so every
message that reaches a log line passes through here first.

Example:
    >>> from dbaccess.utils import sanitize_error_message
    >>> try:
    ...     raise ValueError("connect failed: postgresql://app:s3cr3t@db/app")
    ... except Exception as e:
    ...     safe_msg = sanitize_error_message(e)
    >>> "s3cr3t" not in safe_msg
    True
"""

from __future__ import annotations

# Checked case-insensitively against the message.
SENSITIVE_PATTERNS: tuple[str, ...] = (
    "password",
    "passwd",
    "pgpassword",
    "secret",
    "token",
    "api_key",
    "credential",
    "authorization",
    "user:pass",
    "-----begin",
    "postgres://",
    "postgresql://",
)

REDACTED = "[REDACTED - potentially sensitive data]"


def sanitize_error_string(error_str: str, max_length: int = 500) -> str:
    """Sanitize a raw error string for safe inclusion in logs.

    Args:
        error_str: The error string to sanitize
        max_length: Maximum length of the sanitized message (default 500)

    Returns:
        The redaction marker if a sensitive pattern is found, otherwise the
        string truncated to ``max_length``.
    """
    if not error_str:
        return ""

    error_lower = error_str.lower()
    for pattern in SENSITIVE_PATTERNS:
        if pattern in error_lower:
            return REDACTED

    if len(error_str) > max_length:
        return error_str[:max_length] + "... [truncated]"

    return error_str


def sanitize_error_message(exception: BaseException, max_length: int = 500) -> str:
    """Sanitize an exception message for safe inclusion in logs.

    Args:
        exception: The exception to sanitize
        max_length: Maximum length of the message part (default 500)

    Returns:
        ``"{ExceptionType}: {sanitized_message}"``.

    Example:
        >>> sanitize_error_message(ConnectionError("postgres://u:p@db"))
        'ConnectionError: [REDACTED - potentially sensitive data]'
    """
    exception_type = type(exception).__name__
    return f"{exception_type}: {sanitize_error_string(str(exception), max_length)}"


__all__ = [
    "REDACTED",
    "SENSITIVE_PATTERNS",
    "sanitize_error_message",
    "sanitize_error_string",
]
