"""
Program-derived addresses used by the bridge and base relayer programs.
"""

import struct
from typing import List, Tuple

from solders.pubkey import Pubkey

from ....logging import get_logger

logger = get_logger(__name__)

BRIDGE_SEED = b"bridge"
SOL_VAULT_SEED = b"sol_vault"
TOKEN_VAULT_SEED = b"token_vault"
INCOMING_MESSAGE_SEED = b"incoming_message"
OUTPUT_ROOT_SEED = b"output_root"
BRIDGE_CPI_AUTHORITY_SEED = b"bridge_cpi_authority"

CFG_SEED = b"config"
MTR_SEED = b"mtr"


class PDAManager:
    """Manages Program-Derived Addresses (PDAs) for one program."""

    def __init__(self, program_id: Pubkey):
        self.program_id = program_id

    def find_pda(self, seeds: List[bytes]) -> Tuple[Pubkey, int]:
        """Find a Program-Derived Address."""
        address, bump = Pubkey.find_program_address(seeds, self.program_id)
        logger.trace(f"Derived PDA {address} (bump {bump})")
        return address, bump


class BridgePDAs(PDAManager):
    """Addresses owned by the Solana bridge program."""

    def bridge(self) -> Pubkey:
        return self.find_pda([BRIDGE_SEED])[0]

    def sol_vault(self) -> Pubkey:
        return self.find_pda([SOL_VAULT_SEED])[0]

    def token_vault(self, mint: Pubkey, remote_token: bytes) -> Pubkey:
        return self.find_pda([TOKEN_VAULT_SEED, bytes(mint), bytes(remote_token)])[0]

    def incoming_message(self, message_hash: bytes) -> Pubkey:
        return self.find_pda([INCOMING_MESSAGE_SEED, bytes(message_hash)])[0]

    def output_root(self, base_block_number: int) -> Pubkey:
        return self.find_pda([OUTPUT_ROOT_SEED, struct.pack("<Q", base_block_number)])[0]

    def cpi_authority(self, sender: bytes) -> Pubkey:
        """Per-sender authority the bridge signs CPIs with."""
        return self.find_pda([BRIDGE_CPI_AUTHORITY_SEED, bytes(sender)])[0]


class BaseRelayerPDAs(PDAManager):
    """Addresses owned by the base relayer program."""

    def cfg(self) -> Pubkey:
        return self.find_pda([CFG_SEED])[0]

    def message_to_relay(self, salt: bytes) -> Pubkey:
        return self.find_pda([MTR_SEED, bytes(salt)])[0]
