# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""PostgreSQL pool configuration for the asyncpg adapter."""

from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator


class ModelPoolConfig(BaseModel):
    """PostgreSQL connection pool configuration.

    The password is held as ``SecretStr`` so the model can be logged or
    repr'd without leaking it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port")
    database: str = Field(default="postgres", description="Database name")
    user: str = Field(default="postgres", description="Database user")
    password: SecretStr = Field(
        default=SecretStr(""), description="Database password"
    )
    schema_name: Optional[str] = Field(
        default=None,
        description="Schema put first on the search_path of every connection",
    )

    # Pool configuration
    min_connections: int = Field(default=5, ge=0, description="Minimum pool size")
    max_connections: int = Field(default=50, ge=1, description="Maximum pool size")
    max_inactive_connection_lifetime: float = Field(
        default=300.0,
        ge=0,
        description="Seconds an idle connection is kept before being closed",
    )

    # Timeouts
    command_timeout: float = Field(
        default=60.0, gt=0, description="Default statement timeout in seconds"
    )
    acquire_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Bound on acquiring a connection in seconds (None waits)",
    )

    ssl_mode: str = Field(default="prefer", description="asyncpg ssl mode")

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> "ModelPoolConfig":
        if self.min_connections > self.max_connections:
            raise ValueError(
                f"min_connections ({self.min_connections}) exceeds"
                f" max_connections ({self.max_connections})"
            )
        return self

    def to_pool_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``asyncpg.create_pool``."""
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password.get_secret_value(),
            "min_size": self.min_connections,
            "max_size": self.max_connections,
            "max_inactive_connection_lifetime": self.max_inactive_connection_lifetime,
            "command_timeout": self.command_timeout,
        }
        if self.ssl_mode != "disable":
            kwargs["ssl"] = self.ssl_mode
        if self.schema_name:
            kwargs["server_settings"] = {"search_path": f"{self.schema_name},public"}
        return kwargs

    @classmethod
    def from_environment(cls) -> "ModelPoolConfig":
        """Create configuration from ``POSTGRES_*`` environment variables."""
        acquire_timeout = os.getenv("POSTGRES_ACQUIRE_TIMEOUT")
        return cls(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DATABASE", "postgres"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=SecretStr(os.getenv("POSTGRES_PASSWORD", "")),
            schema_name=os.getenv("POSTGRES_SCHEMA") or None,
            min_connections=int(os.getenv("POSTGRES_MIN_CONNECTIONS", "5")),
            max_connections=int(os.getenv("POSTGRES_MAX_CONNECTIONS", "50")),
            command_timeout=float(os.getenv("POSTGRES_COMMAND_TIMEOUT", "60.0")),
            acquire_timeout=float(acquire_timeout) if acquire_timeout else None,
            ssl_mode=os.getenv("POSTGRES_SSL_MODE", "prefer"),
        )


__all__ = ["ModelPoolConfig"]
