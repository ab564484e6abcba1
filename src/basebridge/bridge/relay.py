"""
Relay flows for both bridge directions.

Base -> Solana:
    ProofAcquisition -> SolanaProver -> AccountResolver -> relay_message

Solana -> Base:
    build canonical message -> getMessageHash cross-check -> validator
    approval -> relayMessages -> (optional) execution monitoring

Each flow is one sequential task. Nothing is submitted before the local
hash has been checked, and an already executed message is reported as
``ALREADY_EXECUTED`` without sending anything.
"""

import asyncio
from typing import Optional

from solders.pubkey import Pubkey

from ..config import RelayConfig
from ..errors import AccountNotFoundError, RetryPolicy, retry_async
from ..logging import get_logger, log_context
from .bridge_types import (
    EvmMessage,
    OutgoingMessage,
    ProvenMessage,
    RelayDirection,
    RelayResult,
    RelayStatus,
)
from .chains.base.client import BaseBridgeClient
from .chains.base.message_builder import build_evm_message
from .chains.base.monitoring import ApprovalWaiter, ExecutionMonitor
from .chains.base.proofs import ProofAcquisition
from .chains.solana.base_relayer import BaseRelayerClient
from .chains.solana.client import SolanaClient
from .chains.solana.codec import decode_outgoing_message
from .chains.solana.pda import BaseRelayerPDAs, BridgePDAs
from .chains.solana.prover import SolanaProver
from .chains.solana.relayer import SolanaRelayer
from .chains.solana.transaction import TransactionSubmitter
from .message_hashing import to_bytes, to_hex, verify_hash_parity

logger = get_logger(__name__)


class BaseToSolanaRelay:
    """Proves Base messages on Solana and executes them."""

    def __init__(
        self,
        config: RelayConfig,
        solana: SolanaClient,
        base: BaseBridgeClient,
        submitter: TransactionSubmitter,
    ):
        self.config = config
        self.pdas = BridgePDAs(config.solana.bridge_program)
        self.proofs = ProofAcquisition(base, solana, self.pdas)
        self.prover = SolanaProver(solana, submitter, self.pdas)
        self.relayer = SolanaRelayer(solana, submitter, self.pdas)

    async def acquire(
        self, tx_hash: str, retry_policy: Optional[RetryPolicy] = None
    ) -> ProvenMessage:
        """Proof material for ``tx_hash``; retried per ``retry_policy`` if given."""
        if retry_policy is None:
            return await self.proofs.acquire(tx_hash)
        return await retry_async(
            lambda: self.proofs.acquire(tx_hash), retry_policy, name="acquire_proof"
        )

    async def prove(
        self, tx_hash: str, retry_policy: Optional[RetryPolicy] = None
    ) -> RelayResult:
        with log_context(component="base_to_solana", operation="prove"):
            logger.info("--- Prove message ---")
            proven = await self.acquire(tx_hash, retry_policy)
            with log_context(message_hash=to_hex(proven.message_hash)):
                result = await self.prover.prove(proven)
        result.metadata.update(
            {
                "message_pda": str(proven.message_pda),
                "checkpoint": proven.checkpoint,
                "nonce": proven.nonce,
            }
        )
        return result

    async def relay(self, message_hash: bytes) -> RelayResult:
        message_hash = to_bytes(message_hash)
        with log_context(
            component="base_to_solana", operation="relay", message_hash=to_hex(message_hash)
        ):
            logger.info("--- Relay message ---")
            return await self.relayer.relay(message_hash)

    async def prove_and_relay(
        self, tx_hash: str, retry_policy: Optional[RetryPolicy] = None
    ) -> RelayResult:
        proved = await self.prove(tx_hash, retry_policy)
        return await self.relay(proved.message_hash)


class SolanaToBaseRelay:
    """Relays Solana outgoing messages to Base."""

    def __init__(
        self,
        config: RelayConfig,
        solana: SolanaClient,
        base: BaseBridgeClient,
        approvals: Optional[ApprovalWaiter] = None,
        monitor: Optional[ExecutionMonitor] = None,
    ):
        self.config = config
        self.solana = solana
        self.base = base
        self.approvals = approvals or ApprovalWaiter(
            base, timeout=config.approval_timeout, interval=config.approval_interval
        )
        self.executions = monitor or ExecutionMonitor(base, interval=config.execution_interval)

    async def fetch_outgoing(self, outgoing_pubkey: Pubkey) -> OutgoingMessage:
        data = await self.solana.get_account_data(outgoing_pubkey)
        if data is None:
            raise AccountNotFoundError(
                f"Outgoing message {outgoing_pubkey} not found",
                field="outgoing_message",
                value=str(outgoing_pubkey),
                step="fetch_outgoing_message",
            )
        return decode_outgoing_message(data)

    async def build(self, outgoing_pubkey: Pubkey) -> EvmMessage:
        outgoing = await self.fetch_outgoing(outgoing_pubkey)
        return build_evm_message(outgoing, outgoing_pubkey, gas_limit=self.config.evm_gas_limit)

    def _result(self, message: EvmMessage, status: RelayStatus, signature: Optional[str] = None) -> RelayResult:
        return RelayResult(
            direction=RelayDirection.SOLANA_TO_BASE,
            message_hash=message.outer_hash,
            status=status,
            signature=signature,
            metadata={"nonce": message.nonce, "type": message.ty.name},
        )

    async def relay(
        self, outgoing_pubkey: Pubkey, cancel_event: Optional[asyncio.Event] = None
    ) -> RelayResult:
        """Relay the message at ``outgoing_pubkey`` once the validator approves it."""
        with log_context(component="solana_to_base", operation="relay"):
            logger.info("--- Relay message to Base ---")
            message = await self.build(outgoing_pubkey)
            with log_context(message_hash=to_hex(message.outer_hash)):
                return await self._relay(message, cancel_event)

    async def _relay(self, message: EvmMessage, cancel_event: Optional[asyncio.Event]) -> RelayResult:
        hash_hex = to_hex(message.outer_hash)
        remote = await self.base.get_message_hash(message.as_abi_tuple())
        verify_hash_parity(message.outer_hash, remote, step="get_message_hash", message_hash=hash_hex)
        logger.info("Bridge.getMessageHash matches the local hash")

        if await self.base.is_successful(message.outer_hash):
            logger.success(f"Message {hash_hex} has already been executed")
            return self._result(message, RelayStatus.ALREADY_EXECUTED)

        await self.approvals.wait_for_approval(message.outer_hash, cancel_event=cancel_event)

        logger.info("Executing Bridge.relayMessages([...]) on Base...")
        tx_hash = await self.base.relay_messages([message.as_abi_tuple()])
        logger.info(f"relayMessages mined: {self.config.base.tx_url(tx_hash)}")

        if await self.base.is_successful(message.outer_hash):
            logger.success(f"Message {hash_hex} executed on Base")
            return self._result(message, RelayStatus.EXECUTED, tx_hash)
        if await self.base.is_failed(message.outer_hash):
            logger.error(f"Message {hash_hex} execution failed on Base; relay it again to retry")
            return self._result(message, RelayStatus.FAILED, tx_hash)
        logger.warning(f"relayMessages mined but message {hash_hex} is not marked successful")
        return self._result(message, RelayStatus.SUBMITTED, tx_hash)

    async def await_approval(
        self, outgoing_pubkey: Pubkey, cancel_event: Optional[asyncio.Event] = None
    ) -> RelayResult:
        """Wait for validator approval without relaying."""
        message = await self.build(outgoing_pubkey)
        polls = await self.approvals.wait_for_approval(
            message.outer_hash, cancel_event=cancel_event
        )
        result = self._result(message, RelayStatus.APPROVED)
        result.metadata["polls"] = polls
        return result

    async def monitor(
        self,
        outgoing_pubkey: Pubkey,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RelayResult:
        """Wait for another actor to execute the message on Base."""
        with log_context(component="solana_to_base", operation="monitor"):
            logger.info("--- Monitor message execution ---")
            message = await self.build(outgoing_pubkey)
            with log_context(message_hash=to_hex(message.outer_hash)):
                await self.executions.monitor_execution(
                    message.outer_hash, timeout=timeout, cancel_event=cancel_event
                )
        return self._result(message, RelayStatus.EXECUTED)

    async def pay_for_relay(
        self,
        outgoing_pubkey: Pubkey,
        submitter: TransactionSubmitter,
        gas_limit: Optional[int] = None,
    ) -> RelayResult:
        """Pay the base relayer program to relay the message automatically."""
        message = await self.build(outgoing_pubkey)
        relayer = BaseRelayerClient(
            self.solana, BaseRelayerPDAs(self.config.solana.base_relayer_program)
        )
        ix, message_to_relay = await relayer.build_pay_for_relay(
            submitter.payer.pubkey(),
            outgoing_pubkey,
            gas_limit=gas_limit or self.config.relayer_gas_limit,
        )
        signature = await submitter.submit([ix])
        result = self._result(message, RelayStatus.SUBMITTED, signature)
        result.metadata["message_to_relay"] = str(message_to_relay)
        return result
