"""
Solana side of the bridge.

This module provides:
- Borsh decoding of the bridge program accounts
- PDA derivation for the bridge and base relayer programs
- Proving, account resolution and relaying of Base messages
- Payment for automatic relay of outgoing messages
"""

from .accounts import AccountResolver
from .base_relayer import BaseRelayerClient
from .client import SolanaClient
from .key_pair import load_keypair
from .pda import BaseRelayerPDAs, BridgePDAs
from .prover import SolanaProver
from .relayer import SolanaRelayer
from .transaction import TransactionSubmitter

__all__ = [
    "AccountResolver",
    "BaseRelayerClient",
    "SolanaClient",
    "load_keypair",
    "BaseRelayerPDAs",
    "BridgePDAs",
    "SolanaProver",
    "SolanaRelayer",
    "TransactionSubmitter",
]
