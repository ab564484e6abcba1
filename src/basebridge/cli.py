"""
Command line interface for the bridge relayer.

    basebridge-relay [--deploy-env ENV] prove --tx-hash 0x...
    basebridge-relay relay --message-hash 0x...
    basebridge-relay prove-and-relay --tx-hash 0x...
    basebridge-relay relay-to-base --outgoing-message <pubkey>
    basebridge-relay wait-approval --outgoing-message <pubkey>
    basebridge-relay monitor --outgoing-message <pubkey>
    basebridge-relay pay-for-relay --outgoing-message <pubkey>

Solana commands sign with ``--payer-kp`` (default: the Solana CLI keypair).
Base writes sign with the private key in ``EVM_PRIVATE_KEY``.
"""

import argparse
import asyncio
import json
import os
import re
import sys
from typing import List, Optional

from solders.pubkey import Pubkey

from .bridge.bridge_types import RelayResult, RelayStatus
from .bridge.chains.base.client import BaseBridgeClient
from .bridge.chains.solana.client import SolanaClient
from .bridge.chains.solana.key_pair import load_keypair
from .bridge.chains.solana.transaction import TransactionSubmitter
from .bridge.relay import BaseToSolanaRelay, SolanaToBaseRelay
from .config import DEFAULT_DEPLOY_ENV, DEPLOY_ENVS, RelayConfig, load_config
from .errors import BridgeRelayError, ConfigurationError, finalization_policy
from .logging import LogConfig, LogContext, LogLevel, get_log_manager, get_logger, setup_logging

logger = get_logger(__name__)

_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")


def _hash32(value: str) -> str:
    if not _HASH_RE.match(value):
        raise argparse.ArgumentTypeError(
            "invalid hash format (must be 0x followed by 64 hex characters)"
        )
    return value


def _pubkey(value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid Solana address: {value}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="basebridge-relay", description="Relay messages between Solana and Base"
    )
    parser.add_argument(
        "--deploy-env",
        choices=DEPLOY_ENVS,
        default=DEFAULT_DEPLOY_ENV,
        help="Deploy environment",
    )
    parser.add_argument(
        "--log-format", choices=("text", "json"), default="text", help="Log output format"
    )
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        default=LogLevel.INFO.value,
        help="Minimum log level",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    def solana_signer(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--payer-kp",
            default="config",
            help="Payer keypair path, or 'config' for the Solana CLI keypair",
        )

    def finalization(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--wait-finalized",
            type=int,
            default=0,
            metavar="N",
            help="Retry up to N times while the transaction is above the Solana checkpoint",
        )
        sub.add_argument(
            "--finalized-interval",
            type=float,
            default=30.0,
            help="Seconds between finalization retries",
        )

    prove = commands.add_parser("prove", help="Prove a Base message on Solana")
    prove.add_argument("--tx-hash", type=_hash32, required=True)
    solana_signer(prove)
    finalization(prove)

    relay = commands.add_parser("relay", help="Execute a proven Base message on Solana")
    relay.add_argument("--message-hash", type=_hash32, required=True)
    solana_signer(relay)

    both = commands.add_parser("prove-and-relay", help="Prove then execute a Base message")
    both.add_argument("--tx-hash", type=_hash32, required=True)
    solana_signer(both)
    finalization(both)

    to_base = commands.add_parser("relay-to-base", help="Relay a Solana message to Base")
    to_base.add_argument("--outgoing-message", type=_pubkey, required=True)

    approval = commands.add_parser(
        "wait-approval", help="Wait for validator approval of a Solana message"
    )
    approval.add_argument("--outgoing-message", type=_pubkey, required=True)

    monitor = commands.add_parser("monitor", help="Wait for a Solana message to execute on Base")
    monitor.add_argument("--outgoing-message", type=_pubkey, required=True)
    monitor.add_argument("--timeout", type=float, default=None)

    pay = commands.add_parser("pay-for-relay", help="Pay the base relayer to relay a message")
    pay.add_argument("--outgoing-message", type=_pubkey, required=True)
    pay.add_argument("--gas-limit", type=int, default=None)
    solana_signer(pay)

    return parser


def _base_client(config: RelayConfig, writes: bool) -> BaseBridgeClient:
    if not writes:
        return BaseBridgeClient(config.base)
    private_key = os.environ.get("EVM_PRIVATE_KEY")
    if not private_key:
        raise ConfigurationError(
            "EVM_PRIVATE_KEY must be set to relay messages on Base",
            config_key="EVM_PRIVATE_KEY",
        )
    return BaseBridgeClient.from_private_key(config.base, private_key)


async def run(args: argparse.Namespace, config: RelayConfig) -> RelayResult:
    command = args.command
    async with SolanaClient(config.solana) as solana:
        if command in ("prove", "relay", "prove-and-relay"):
            payer = load_keypair(args.payer_kp)
            logger.info(f"Payer: {payer.pubkey()}")
            flow = BaseToSolanaRelay(
                config, solana, _base_client(config, False), TransactionSubmitter(solana, payer)
            )
            if command == "relay":
                return await flow.relay(bytes.fromhex(args.message_hash[2:]))

            policy = None
            if args.wait_finalized > 0:
                policy = finalization_policy(args.wait_finalized, args.finalized_interval)
            if command == "prove":
                return await flow.prove(args.tx_hash, policy)
            return await flow.prove_and_relay(args.tx_hash, policy)

        flow = SolanaToBaseRelay(config, solana, _base_client(config, command == "relay-to-base"))
        if command == "relay-to-base":
            return await flow.relay(args.outgoing_message)
        if command == "wait-approval":
            return await flow.await_approval(args.outgoing_message)
        if command == "monitor":
            return await flow.monitor(args.outgoing_message, timeout=args.timeout)
        payer = load_keypair(args.payer_kp)
        return await flow.pay_for_relay(
            args.outgoing_message, TransactionSubmitter(solana, payer), gas_limit=args.gas_limit
        )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(LogConfig(level=LogLevel(args.log_level), format_type=args.log_format))
    get_log_manager().set_context(LogContext(deploy_env=args.deploy_env))

    try:
        config = load_config(args.deploy_env)
        logger.info(f"Solana RPC URL: {config.solana.rpc_url}")
        logger.info(f"Base RPC URL: {config.base.rpc_url}")
        result = asyncio.run(run(args, config))
    except BridgeRelayError as e:
        logger.error(f"{args.command} failed: {e}", exception=e)
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.status is RelayStatus.FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
