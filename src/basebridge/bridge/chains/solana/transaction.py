"""
Build, sign, send and confirm Solana transactions.
"""

from typing import Protocol, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from ....errors import TransactionError
from ....logging import get_logger
from .client import SolanaClient

logger = get_logger(__name__)


class Signer(Protocol):
    """Signing capability injected into the submitter.

    ``solders.keypair.Keypair`` satisfies it.
    """

    def pubkey(self) -> Pubkey:
        ...

    def sign_message(self, message: bytes) -> Signature:
        ...


class TransactionSubmitter:
    """Sign-and-send for instructions paid for by a single signer."""

    def __init__(self, client: SolanaClient, payer: Signer):
        self.client = client
        self.payer = payer

    def sign(self, instructions: Sequence[Instruction], blockhash: Hash) -> VersionedTransaction:
        """Compile a v0 message paid for by the payer and sign it."""
        if not instructions:
            raise TransactionError("Cannot build a transaction without instructions")
        message = MessageV0.try_compile(
            payer=self.payer.pubkey(),
            instructions=list(instructions),
            address_lookup_table_accounts=[],
            recent_blockhash=blockhash,
        )
        signature = self.payer.sign_message(to_bytes_versioned(message))
        return VersionedTransaction.populate(message, [signature])

    async def submit(self, instructions: Sequence[Instruction]) -> str:
        """Send the instructions in one transaction and return its signature."""
        blockhash, last_valid_block_height = await self.client.get_latest_blockhash()
        transaction = self.sign(instructions, blockhash)

        logger.info(
            f"Sending transaction with {len(instructions)} instruction(s), "
            f"fee payer {self.payer.pubkey()}"
        )
        result = await self.client.send_and_confirm(
            bytes(transaction), last_valid_block_height=last_valid_block_height
        )
        logger.success(f"Signature: {result}")
        return result
