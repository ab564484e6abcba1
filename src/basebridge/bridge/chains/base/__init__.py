"""
Base side of the bridge.

This module provides:
- The bridge contract client
- Proof acquisition pinned to the Solana checkpoint
- Canonical message construction for Solana -> Base relay
- Approval and execution polling
"""

from .client import BaseBridgeClient
from .message_builder import build_evm_message, encode_payload
from .monitoring import ApprovalWaiter, ExecutionMonitor
from .proofs import ProofAcquisition

__all__ = [
    "BaseBridgeClient",
    "build_evm_message",
    "encode_payload",
    "ApprovalWaiter",
    "ExecutionMonitor",
    "ProofAcquisition",
]
