# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Utility functions for the access layer.

Exports:
    sanitize_error_message: Redact sensitive data from exception messages
    sanitize_error_string: Redact sensitive data from raw strings
    is_violation: Classify a driver error by SQLSTATE code
    is_unique_violation, is_foreign_key_violation, is_not_null_violation,
    is_check_violation: Shortcuts for common SQLSTATE codes
"""

from dbaccess.utils.util_error_sanitization import (
    REDACTED,
    SENSITIVE_PATTERNS,
    sanitize_error_message,
    sanitize_error_string,
)
from dbaccess.utils.util_violation import (
    is_check_violation,
    is_foreign_key_violation,
    is_not_null_violation,
    is_unique_violation,
    is_violation,
)

__all__: list[str] = [
    "REDACTED",
    "SENSITIVE_PATTERNS",
    "is_check_violation",
    "is_foreign_key_violation",
    "is_not_null_violation",
    "is_unique_violation",
    "is_violation",
    "sanitize_error_message",
    "sanitize_error_string",
]
