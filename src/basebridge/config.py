"""
Deploy-environment configuration for the bridge relayer.

Every relay component receives a ``RelayConfig`` explicitly; nothing reads
a module-level table at call time. ``CONFIGS`` holds the known deploy
environments and ``load_config`` applies environment-variable overrides
on top of one of them.
"""

import os
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from solders.pubkey import Pubkey
from web3 import Web3

from .errors import ConfigurationError

DEPLOY_ENVS = ("testnet-alpha", "testnet-prod", "mainnet")
DEFAULT_DEPLOY_ENV = "testnet-prod"

COMMITMENTS = ("processed", "confirmed", "finalized")

# Base chain ids
BASE_MAINNET_CHAIN_ID = 8453
BASE_SEPOLIA_CHAIN_ID = 84532


@dataclass(frozen=True)
class SolanaConfig:
    """Solana side of a deploy environment."""

    cluster: str
    rpc_url: str
    bridge_program: Pubkey
    base_relayer_program: Pubkey
    commitment: str = "confirmed"


@dataclass(frozen=True)
class BaseConfig:
    """Base (EVM) side of a deploy environment."""

    chain_id: int
    rpc_url: str
    bridge_contract: str
    explorer_url: str

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"


@dataclass(frozen=True)
class RelayConfig:
    """Immutable configuration for one relay flow."""

    deploy_env: str
    solana: SolanaConfig
    base: BaseConfig
    # Gas limit attached to Solana -> Base messages
    evm_gas_limit: int = 100_000
    # Gas limit paid for when requesting automatic relay
    relayer_gas_limit: int = 2_000_000
    approval_timeout: float = 600.0
    approval_interval: float = 5.0
    execution_interval: float = 10.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "deploy_env": self.deploy_env,
            "solana": {
                "cluster": self.solana.cluster,
                "rpc_url": self.solana.rpc_url,
                "bridge_program": str(self.solana.bridge_program),
                "base_relayer_program": str(self.solana.base_relayer_program),
                "commitment": self.solana.commitment,
            },
            "base": {
                "chain_id": self.base.chain_id,
                "rpc_url": self.base.rpc_url,
                "bridge_contract": self.base.bridge_contract,
                "explorer_url": self.base.explorer_url,
            },
            "evm_gas_limit": self.evm_gas_limit,
            "relayer_gas_limit": self.relayer_gas_limit,
            "approval_timeout": self.approval_timeout,
            "approval_interval": self.approval_interval,
            "execution_interval": self.execution_interval,
        }


def _solana(cluster: str, rpc_url: str, bridge: str, relayer: str) -> SolanaConfig:
    return SolanaConfig(
        cluster=cluster,
        rpc_url=rpc_url,
        bridge_program=Pubkey.from_string(bridge),
        base_relayer_program=Pubkey.from_string(relayer),
    )


_BASE_SEPOLIA_RPC = "https://sepolia.base.org"
_BASE_SEPOLIA_EXPLORER = "https://sepolia.basescan.org"

CONFIGS: Mapping[str, RelayConfig] = MappingProxyType(
    {
        "testnet-alpha": RelayConfig(
            deploy_env="testnet-alpha",
            solana=_solana(
                "devnet",
                "https://api.devnet.solana.com",
                "6YpL1h2a9u6LuNVi55vAes36xNszt2UDm3Zk1kj4WSBm",
                "ETsFnoWdJK8N7VJW6XXjiciyB2xeQfCXMQWNa85Zi9cn",
            ),
            base=BaseConfig(
                chain_id=BASE_SEPOLIA_CHAIN_ID,
                rpc_url=_BASE_SEPOLIA_RPC,
                bridge_contract="0x64567a9147fa89B1edc987e36Eb6f4b6db71656b",
                explorer_url=_BASE_SEPOLIA_EXPLORER,
            ),
        ),
        "testnet-prod": RelayConfig(
            deploy_env="testnet-prod",
            solana=_solana(
                "devnet",
                "https://api.devnet.solana.com",
                "7c6mteAcTXaQ1MFBCrnuzoZVTTAEfZwa6wgy4bqX3KXC",
                "56MBBEYAtQAdjT4e1NzHD8XaoyRSTvfgbSVVcEcHj51H",
            ),
            base=BaseConfig(
                chain_id=BASE_SEPOLIA_CHAIN_ID,
                rpc_url=_BASE_SEPOLIA_RPC,
                bridge_contract="0x01824a90d32A69022DdAEcC6C5C14Ed08dB4EB9B",
                explorer_url=_BASE_SEPOLIA_EXPLORER,
            ),
        ),
        "mainnet": RelayConfig(
            deploy_env="mainnet",
            solana=_solana(
                "mainnet",
                "https://api.mainnet-beta.solana.com",
                "HNCne2FkVaNghhjKXapxJzPaBvAKDG1Ge3gqhZyfVWLM",
                "g1et5VenhfJHJwsdJsDbxWZuotD5H4iELNG61kS4fb9",
            ),
            base=BaseConfig(
                chain_id=BASE_MAINNET_CHAIN_ID,
                rpc_url="https://mainnet.base.org",
                bridge_contract="0x3eff766C76a1be2Ce1aCF2B69c78bCae257D5188",
                explorer_url="https://basescan.org",
            ),
        ),
    }
)


def _validate_rpc_url(key: str, url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(
            f"Invalid RPC URL for {key}: {url!r}", config_key=key, config_value=url
        )
    return url


def load_config(
    deploy_env: str = DEFAULT_DEPLOY_ENV,
    environ: Optional[Mapping[str, str]] = None,
) -> RelayConfig:
    """Resolve the configuration for ``deploy_env``.

    ``SOLANA_RPC_URL``, ``BASE_RPC_URL`` and ``SOLANA_COMMITMENT`` in
    ``environ`` (default ``os.environ``) override the table values.
    """
    if deploy_env not in CONFIGS:
        raise ConfigurationError(
            f"Deploy environment must be one of {', '.join(DEPLOY_ENVS)}",
            config_key="deploy_env",
            config_value=deploy_env,
        )
    environ = os.environ if environ is None else environ
    config = CONFIGS[deploy_env]

    solana = config.solana
    solana_rpc = environ.get("SOLANA_RPC_URL")
    if solana_rpc:
        solana = replace(solana, rpc_url=_validate_rpc_url("SOLANA_RPC_URL", solana_rpc))
    commitment = environ.get("SOLANA_COMMITMENT")
    if commitment:
        if commitment not in COMMITMENTS:
            raise ConfigurationError(
                f"SOLANA_COMMITMENT must be one of {', '.join(COMMITMENTS)}",
                config_key="SOLANA_COMMITMENT",
                config_value=commitment,
            )
        solana = replace(solana, commitment=commitment)

    base = config.base
    base_rpc = environ.get("BASE_RPC_URL")
    if base_rpc:
        base = replace(base, rpc_url=_validate_rpc_url("BASE_RPC_URL", base_rpc))

    if not Web3.is_address(base.bridge_contract.lower()):
        raise ConfigurationError(
            "Bridge contract is not a valid EVM address",
            config_key="base.bridge_contract",
            config_value=base.bridge_contract,
        )

    return replace(config, solana=solana, base=base)
