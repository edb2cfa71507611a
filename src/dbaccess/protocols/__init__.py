# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Protocols consumed by the access layer."""

from dbaccess.protocols.protocol_connection import (
    ProtocolConnection,
    ProtocolLiteralEncoder,
    ProtocolPool,
)

__all__: list[str] = [
    "ProtocolConnection",
    "ProtocolLiteralEncoder",
    "ProtocolPool",
]
