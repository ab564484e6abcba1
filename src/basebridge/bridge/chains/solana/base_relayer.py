"""
Pay the base relayer program to relay an outgoing message automatically.
"""

import secrets
from typing import Optional, Tuple

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from ....errors import AccountNotFoundError
from ....logging import get_logger
from .client import SolanaClient
from .codec import BorshWriter, decode_gas_fee_receiver, instruction_discriminator
from .pda import BaseRelayerPDAs

logger = get_logger(__name__)

PAY_FOR_RELAY = instruction_discriminator("pay_for_relay")

DEFAULT_RELAY_GAS_LIMIT = 2_000_000


def build_pay_for_relay_instruction(
    program_id: Pubkey,
    payer: Pubkey,
    cfg: Pubkey,
    gas_fee_receiver: Pubkey,
    message_to_relay: Pubkey,
    mtr_salt: bytes,
    outgoing_message: Pubkey,
    gas_limit: int = DEFAULT_RELAY_GAS_LIMIT,
) -> Instruction:
    data = (
        BorshWriter()
        .fixed(mtr_salt, 32)
        .pubkey(outgoing_message)
        .u64(gas_limit)
        .to_bytes()
    )
    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(cfg, is_signer=False, is_writable=True),
        AccountMeta(gas_fee_receiver, is_signer=False, is_writable=True),
        AccountMeta(message_to_relay, is_signer=False, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, PAY_FOR_RELAY + data, accounts)


class BaseRelayerClient:
    """Builds ``pay_for_relay`` instructions for the base relayer program."""

    def __init__(self, client: SolanaClient, pdas: BaseRelayerPDAs):
        self.client = client
        self.pdas = pdas

    async def gas_fee_receiver(self) -> Pubkey:
        cfg = self.pdas.cfg()
        data = await self.client.get_account_data(cfg)
        if data is None:
            raise AccountNotFoundError(
                f"Base relayer config {cfg} not found",
                field="cfg",
                value=str(cfg),
                step="pay_for_relay",
            )
        return decode_gas_fee_receiver(data)

    async def build_pay_for_relay(
        self,
        payer: Pubkey,
        outgoing_message: Pubkey,
        gas_limit: int = DEFAULT_RELAY_GAS_LIMIT,
        salt: Optional[bytes] = None,
    ) -> Tuple[Instruction, Pubkey]:
        """Instruction paying for the relay and the message-to-relay address."""
        salt = salt if salt is not None else secrets.token_bytes(32)
        message_to_relay = self.pdas.message_to_relay(salt)
        logger.info(f"Message To Relay: {message_to_relay}")

        ix = build_pay_for_relay_instruction(
            self.pdas.program_id,
            payer,
            self.pdas.cfg(),
            await self.gas_fee_receiver(),
            message_to_relay,
            salt,
            outgoing_message,
            gas_limit,
        )
        return ix, message_to_relay
