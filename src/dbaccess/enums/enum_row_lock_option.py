# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Row-level lock clause appended to generated select statements."""

from enum import Enum


class EnumRowLockOption(str, Enum):
    """Locking clause for select-for-update / select-for-share queries."""

    FOR_UPDATE = "for update"
    FOR_SHARE = "for share"


__all__ = ["EnumRowLockOption"]
