# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Test helpers for dbaccess unit tests.

Available Utilities:
    Fake Database:
        - FakePool: Scriptable in-memory pool recording every statement
        - FakeConnection: Connection handed out by FakePool
        - FakeSqlStateError: Driver-like error with a ``sqlstate`` code

    Log Helpers:
        - filter_records: Filter log records by logger name and level
        - messages: Extract formatted messages from log records
"""

from tests.helpers.log_helpers import filter_records, messages
from tests.helpers.util_fake_database import (
    FakeConnection,
    FakePool,
    FakeSqlStateError,
)

__all__ = [
    "FakeConnection",
    "FakePool",
    "FakeSqlStateError",
    "filter_records",
    "messages",
]
