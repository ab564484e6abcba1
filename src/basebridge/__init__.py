"""
basebridge: relay engine for the Solana <-> Base bridge.

This package provides:
- Message identity hashing shared by both chains
- Proof acquisition on Base and proving on Solana
- Account resolution for executing messages on Solana
- Canonical message building, approval polling and relay on Base
"""

__version__ = "0.1.0"

from .config import CONFIGS, RelayConfig, load_config
from .errors import BridgeRelayError

__all__ = ["CONFIGS", "RelayConfig", "load_config", "BridgeRelayError", "__version__"]
