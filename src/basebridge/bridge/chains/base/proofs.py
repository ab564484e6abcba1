"""
Proof acquisition for Base -> Solana messages.

A message can only be proven on Solana against an output root the bridge
program has already registered. The proof is therefore requested at the
Base block number mirrored in the Solana ``Bridge`` account (the
checkpoint), never at the Base chain head.
"""

from collections.abc import Mapping
from typing import Any, Tuple

from ....errors import AccountNotFoundError, AmbiguousEventError, NotFinalizedError
from ....logging import get_logger
from ...bridge_types import ProvenMessage
from ...message_hashing import incoming_message_hash, to_bytes, to_hex, verify_hash_parity
from ..solana.client import SolanaClient
from ..solana.codec import decode_bridge_checkpoint
from ..solana.pda import BridgePDAs
from .client import BaseBridgeClient

logger = get_logger(__name__)


def _message_fields(message: Any) -> Tuple[int, bytes, bytes]:
    """``(nonce, sender, data)`` from a decoded ``Message`` struct."""
    if isinstance(message, Mapping):
        nonce, sender, data = message["nonce"], message["sender"], message["data"]
    else:
        nonce, sender, data = message
    return int(nonce), to_bytes(sender), to_bytes(data)


class ProofAcquisition:
    """Extracts a Base message and fetches its proof at the Solana checkpoint."""

    def __init__(self, base: BaseBridgeClient, solana: SolanaClient, pdas: BridgePDAs):
        self.base = base
        self.solana = solana
        self.pdas = pdas

    async def read_checkpoint(self) -> int:
        """Base block number of the latest output root registered on Solana."""
        bridge = self.pdas.bridge()
        data = await self.solana.get_account_data(bridge)
        if data is None:
            raise AccountNotFoundError(
                f"Bridge account {bridge} not found",
                field="bridge",
                value=str(bridge),
                step="read_checkpoint",
            )
        return decode_bridge_checkpoint(data)

    async def acquire(self, tx_hash: str) -> ProvenMessage:
        checkpoint = await self.read_checkpoint()
        logger.info(f"Base block number checkpointed on Solana: {checkpoint}")

        receipt = await self.base.get_receipt(tx_hash)
        block_number = int(receipt["blockNumber"])
        if block_number > checkpoint:
            raise NotFinalizedError(
                f"Transaction not finalized yet: checkpoint {checkpoint} < block {block_number}",
                block_number=block_number,
                checkpoint=checkpoint,
                step="acquire_proof",
            )

        events = self.base.decode_message_initiated(receipt)
        logger.info(f"Found {len(events)} MessageInitiated event(s)")
        if len(events) != 1:
            raise AmbiguousEventError(
                f"Expected exactly one MessageInitiated event in {tx_hash}, found {len(events)}",
                event_count=len(events),
                step="acquire_proof",
            )

        args = events[0]["args"]
        message_hash = to_bytes(args["messageHash"])
        nonce, sender, data = _message_fields(args["message"])
        hash_hex = to_hex(message_hash)
        logger.info(f"Message hash: {hash_hex}")
        logger.info(f"MMR root: {to_hex(args['mmrRoot'])}")
        logger.info(f"Nonce: {nonce}, sender: {to_hex(sender)}")

        verify_hash_parity(
            incoming_message_hash(nonce, sender, data),
            message_hash,
            step="acquire_proof",
            message_hash=hash_hex,
        )

        proof = await self.base.generate_proof(nonce, block_identifier=checkpoint)
        logger.info(f"Proof of {len(proof)} node(s) generated at block {checkpoint}")

        message_pda = self.pdas.incoming_message(message_hash)
        output_root_pda = self.pdas.output_root(checkpoint)
        logger.info(f"Message PDA: {message_pda}")
        logger.info(f"Output root PDA: {output_root_pda}")

        return ProvenMessage(
            nonce=nonce,
            sender=sender,
            data=data,
            proof=tuple(proof),
            message_hash=message_hash,
            block_number=block_number,
            checkpoint=checkpoint,
            message_pda=message_pda,
            output_root_pda=output_root_pda,
        )
