"""
Execute proven Base messages on Solana through ``relay_message``.
"""

from typing import Optional, Sequence

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from ....errors import AccountNotFoundError
from ....logging import get_logger
from ...bridge_types import (
    IncomingMessage,
    RelayDirection,
    RelayResult,
    RelayStatus,
    ResolvedAccount,
)
from .accounts import AccountResolver
from .client import SolanaClient
from .codec import decode_incoming_message, instruction_discriminator
from .pda import BridgePDAs
from .transaction import TransactionSubmitter

logger = get_logger(__name__)

RELAY_MESSAGE = instruction_discriminator("relay_message")


def build_relay_message_instruction(
    program_id: Pubkey,
    message_pda: Pubkey,
    bridge: Pubkey,
    remaining_accounts: Sequence[ResolvedAccount],
) -> Instruction:
    """Anchor ``relay_message`` instruction with its remaining accounts."""
    accounts = [
        AccountMeta(message_pda, is_signer=False, is_writable=True),
        AccountMeta(bridge, is_signer=False, is_writable=False),
    ]
    accounts.extend(acc.to_account_meta() for acc in remaining_accounts)
    return Instruction(program_id, RELAY_MESSAGE, accounts)


class SolanaRelayer:
    """Relays proven incoming messages."""

    def __init__(
        self,
        client: SolanaClient,
        submitter: TransactionSubmitter,
        pdas: BridgePDAs,
        resolver: Optional[AccountResolver] = None,
    ):
        self.client = client
        self.submitter = submitter
        self.pdas = pdas
        self.resolver = resolver or AccountResolver(client, pdas)

    async def fetch_incoming_message(self, message_pda: Pubkey) -> IncomingMessage:
        data = await self.client.get_account_data(message_pda)
        if data is None:
            raise AccountNotFoundError(
                f"Incoming message {message_pda} not found; prove the message first",
                field="message",
                value=str(message_pda),
                step="relay_message",
            )
        return decode_incoming_message(data)

    async def relay(self, message_hash: bytes) -> RelayResult:
        hash_hex = "0x" + message_hash.hex()
        message_pda = self.pdas.incoming_message(message_hash)
        logger.info(f"Message PDA: {message_pda}")

        incoming = await self.fetch_incoming_message(message_pda)
        logger.info(f"Message sender: 0x{incoming.sender.hex()}")

        if incoming.executed:
            logger.success(f"Message {hash_hex} has already been executed")
            return RelayResult(
                direction=RelayDirection.BASE_TO_SOLANA,
                message_hash=message_hash,
                status=RelayStatus.ALREADY_EXECUTED,
            )

        remaining = await self.resolver.resolve(incoming)
        logger.debug(f"Resolved {len(remaining)} remaining account(s)")

        ix = build_relay_message_instruction(
            self.pdas.program_id, message_pda, self.pdas.bridge(), remaining
        )
        signature = await self.submitter.submit([ix])
        logger.success(f"Message {hash_hex} relayed")
        return RelayResult(
            direction=RelayDirection.BASE_TO_SOLANA,
            message_hash=message_hash,
            status=RelayStatus.EXECUTED,
            signature=signature,
        )
