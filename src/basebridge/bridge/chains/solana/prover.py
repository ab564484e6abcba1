"""
Submit Base message proofs to the Solana bridge program.

``prove_message`` creates the pending ``IncomingMessage`` account. The
program verifies the proof against the output root registered for the
checkpoint; nothing is verified client-side.
"""

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from ....logging import get_logger
from ...bridge_types import ProvenMessage, RelayDirection, RelayResult, RelayStatus
from .client import SolanaClient
from .codec import BorshWriter, instruction_discriminator
from .pda import BridgePDAs
from .transaction import TransactionSubmitter

logger = get_logger(__name__)

PROVE_MESSAGE = instruction_discriminator("prove_message")


def build_prove_message_instruction(
    program_id: Pubkey, payer: Pubkey, bridge: Pubkey, proven: ProvenMessage
) -> Instruction:
    """Anchor ``prove_message`` instruction for ``proven``."""
    data = (
        BorshWriter()
        .u64(proven.nonce)
        .fixed(proven.sender, 20)
        .vec_u8(proven.data)
        .vec_fixed(proven.proof, 32)
        .fixed(proven.message_hash, 32)
        .to_bytes()
    )
    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(proven.output_root_pda, is_signer=False, is_writable=False),
        AccountMeta(proven.message_pda, is_signer=False, is_writable=True),
        AccountMeta(bridge, is_signer=False, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, PROVE_MESSAGE + data, accounts)


class SolanaProver:
    """Creates incoming message records from proven Base messages."""

    def __init__(
        self,
        client: SolanaClient,
        submitter: TransactionSubmitter,
        pdas: BridgePDAs,
    ):
        self.client = client
        self.submitter = submitter
        self.pdas = pdas

    async def prove(self, proven: ProvenMessage) -> RelayResult:
        message_hash = "0x" + proven.message_hash.hex()

        if await self.client.get_account(proven.message_pda) is not None:
            logger.success(f"Message {message_hash} is already proven")
            return RelayResult(
                direction=RelayDirection.BASE_TO_SOLANA,
                message_hash=proven.message_hash,
                status=RelayStatus.ALREADY_PROVEN,
            )

        ix = build_prove_message_instruction(
            self.pdas.program_id,
            self.submitter.payer.pubkey(),
            self.pdas.bridge(),
            proven,
        )
        logger.info(
            f"Proving message {message_hash} (nonce {proven.nonce}, "
            f"{len(proven.proof)} proof node(s)) at checkpoint {proven.checkpoint}"
        )
        signature = await self.submitter.submit([ix])
        logger.success("Message proof completed")
        return RelayResult(
            direction=RelayDirection.BASE_TO_SOLANA,
            message_hash=proven.message_hash,
            status=RelayStatus.PROVEN,
            signature=signature,
        )
