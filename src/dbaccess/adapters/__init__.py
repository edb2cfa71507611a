# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Driver adapters.

Exports:
    ModelPoolConfig: PostgreSQL pool configuration
    create_asyncpg_pool: Build an asyncpg-backed ProtocolPool
    AsyncpgPoolAdapter, AsyncpgConnectionAdapter: asyncpg implementations
    bind_named_params: ``@name`` placeholder translation
"""

from dbaccess.adapters.adapter_asyncpg import (
    AsyncpgConnectionAdapter,
    AsyncpgPoolAdapter,
    bind_named_params,
    create_asyncpg_pool,
    parse_status_count,
)
from dbaccess.adapters.model_pool_config import ModelPoolConfig

__all__: list[str] = [
    "AsyncpgConnectionAdapter",
    "AsyncpgPoolAdapter",
    "ModelPoolConfig",
    "bind_named_params",
    "create_asyncpg_pool",
    "parse_status_count",
]
