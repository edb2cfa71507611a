# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Access Error Code Enumeration.

Structured codes attached to every ``AccessError`` so callers and log
pipelines can classify failures without parsing messages.

Propagated vs. logged-only:
    INVALID_STATE, CONFIGURATION_ERROR and ENCODING_ERROR are raised to the
    caller. ROLLBACK_TIMEOUT, HOOK_FAILED and DIAGNOSTIC_FAILED are only ever
    logged; a misbehaving observer must never change a transaction outcome.
"""

from enum import Enum


class EnumAccessErrorCode(str, Enum):
    """Error codes for the transaction access layer."""

    INVALID_STATE = "ACCESS_INVALID_STATE"
    CONFIGURATION_ERROR = "ACCESS_CONFIGURATION_ERROR"
    ENCODING_ERROR = "ACCESS_ENCODING_ERROR"
    ROLLBACK_TIMEOUT = "ACCESS_ROLLBACK_TIMEOUT"
    HOOK_FAILED = "ACCESS_HOOK_FAILED"
    DIAGNOSTIC_FAILED = "ACCESS_DIAGNOSTIC_FAILED"

    @property
    def is_propagated(self) -> bool:
        """Whether errors with this code are raised to the caller."""
        return self in (
            EnumAccessErrorCode.INVALID_STATE,
            EnumAccessErrorCode.CONFIGURATION_ERROR,
            EnumAccessErrorCode.ENCODING_ERROR,
        )


__all__ = ["EnumAccessErrorCode"]
