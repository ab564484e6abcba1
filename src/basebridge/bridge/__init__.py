"""
Bridge relay flows and the message model shared by both directions.
"""

from .bridge_types import (
    MessageType,
    ProvenMessage,
    RelayDirection,
    RelayResult,
    RelayStatus,
)
from .relay import BaseToSolanaRelay, SolanaToBaseRelay

__all__ = [
    "MessageType",
    "ProvenMessage",
    "RelayDirection",
    "RelayResult",
    "RelayStatus",
    "BaseToSolanaRelay",
    "SolanaToBaseRelay",
]
