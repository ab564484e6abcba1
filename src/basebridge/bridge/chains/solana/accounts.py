"""
Remaining-accounts resolution for ``relay_message``.

The bridge program executes an incoming message through CPIs and expects
every account those CPIs touch to be passed as remaining accounts, in the
order the program consumes them:

- Call: each instruction's accounts with their own roles, then one
  read-only entry per instruction program id
- Sol transfer: ``[sol vault (W), recipient (W), system program (R)]``
- SPL transfer: ``[mint (R), token vault (W), recipient (W), token program (R)]``
- Wrapped token transfer: ``[mint (W), recipient (W), Token-2022 (R)]``

Follow-up instructions of a transfer are appended as for a call. The
sender's CPI authority is always forced to read-only.
"""

from typing import Iterable, List, Sequence

from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from ....errors import (
    AccountNotFoundError,
    EmptyCallPayloadError,
    UnsupportedMessageKindError,
)
from ....logging import get_logger
from ...bridge_types import (
    AccountRole,
    IncomingCall,
    IncomingMessage,
    IncomingTransfer,
    Ix,
    ResolvedAccount,
    SolTransfer,
    SplTransfer,
    WrappedTokenTransfer,
)
from .client import SolanaClient
from .pda import BridgePDAs

logger = get_logger(__name__)

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")
TOKEN_PROGRAMS = (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID)


def instruction_accounts(ixs: Sequence[Ix]) -> List[ResolvedAccount]:
    """Accounts of ``ixs`` followed by their program ids."""
    accounts = [
        ResolvedAccount(acc.pubkey, AccountRole.from_flags(acc.is_writable, acc.is_signer))
        for ix in ixs
        for acc in ix.accounts
    ]
    accounts.extend(ResolvedAccount(ix.program_id, AccountRole.READ_ONLY) for ix in ixs)
    return accounts


def demote_authority(
    accounts: Iterable[ResolvedAccount], authority: Pubkey
) -> List[ResolvedAccount]:
    """Force every entry for ``authority`` to read-only."""
    return [
        ResolvedAccount(acc.address, AccountRole.READ_ONLY)
        if acc.address == authority
        else acc
        for acc in accounts
    ]


class AccountResolver:
    """Builds the ordered remaining accounts for an incoming message."""

    def __init__(self, client: SolanaClient, pdas: BridgePDAs):
        self.client = client
        self.pdas = pdas

    async def resolve(self, message: IncomingMessage) -> List[ResolvedAccount]:
        payload = message.message
        if isinstance(payload, IncomingCall):
            accounts = self._call_accounts(payload)
        elif isinstance(payload, IncomingTransfer):
            accounts = await self._transfer_accounts(payload)
        else:
            raise UnsupportedMessageKindError(
                f"Unsupported incoming message payload {type(payload).__name__}",
                field="message",
                value=type(payload).__name__,
                step="resolve_accounts",
            )

        authority = self.pdas.cpi_authority(message.sender)
        logger.info(f"Bridge CPI authority: {authority}")
        return demote_authority(accounts, authority)

    def _call_accounts(self, payload: IncomingCall) -> List[ResolvedAccount]:
        logger.info(f"Call message with {len(payload.ixs)} instruction(s)")
        if not payload.ixs:
            raise EmptyCallPayloadError(
                "Zero instructions in call message",
                field="ixs",
                value=0,
                expected=">= 1",
                step="resolve_accounts",
            )
        return instruction_accounts(payload.ixs)

    async def _transfer_accounts(self, payload: IncomingTransfer) -> List[ResolvedAccount]:
        transfer = payload.transfer
        logger.info(f"Transfer message with {len(payload.ixs)} instruction(s)")
        if isinstance(transfer, SolTransfer):
            accounts = self._sol_accounts(transfer)
        elif isinstance(transfer, SplTransfer):
            accounts = await self._spl_accounts(transfer)
        elif isinstance(transfer, WrappedTokenTransfer):
            accounts = self._wrapped_token_accounts(transfer)
        else:
            raise UnsupportedMessageKindError(
                f"Unsupported transfer variant {type(transfer).__name__}",
                field="transfer",
                value=type(transfer).__name__,
                step="resolve_accounts",
            )
        return accounts + instruction_accounts(payload.ixs)

    def _sol_accounts(self, transfer: SolTransfer) -> List[ResolvedAccount]:
        logger.info(f"SOL transfer of {transfer.amount} lamports to {transfer.to}")
        sol_vault = self.pdas.sol_vault()
        logger.info(f"SOL vault PDA: {sol_vault}")
        return [
            ResolvedAccount(sol_vault, AccountRole.WRITABLE),
            ResolvedAccount(transfer.to, AccountRole.WRITABLE),
            ResolvedAccount(SYSTEM_PROGRAM_ID, AccountRole.READ_ONLY),
        ]

    async def _spl_accounts(self, transfer: SplTransfer) -> List[ResolvedAccount]:
        logger.info(
            f"SPL transfer of {transfer.amount} {transfer.local_token} "
            f"(remote 0x{transfer.remote_token.hex()}) to {transfer.to}"
        )
        token_vault = self.pdas.token_vault(transfer.local_token, transfer.remote_token)
        token_program = await self.token_program_for(transfer.local_token)
        return [
            ResolvedAccount(transfer.local_token, AccountRole.READ_ONLY),
            ResolvedAccount(token_vault, AccountRole.WRITABLE),
            ResolvedAccount(transfer.to, AccountRole.WRITABLE),
            ResolvedAccount(token_program, AccountRole.READ_ONLY),
        ]

    def _wrapped_token_accounts(
        self, transfer: WrappedTokenTransfer
    ) -> List[ResolvedAccount]:
        logger.info(
            f"WrappedToken transfer of {transfer.amount} {transfer.local_token} "
            f"to {transfer.to}"
        )
        return [
            ResolvedAccount(transfer.local_token, AccountRole.WRITABLE),
            ResolvedAccount(transfer.to, AccountRole.WRITABLE),
            ResolvedAccount(TOKEN_2022_PROGRAM_ID, AccountRole.READ_ONLY),
        ]

    async def token_program_for(self, mint: Pubkey) -> Pubkey:
        """Token program owning ``mint`` (Token or Token-2022)."""
        owner = await self.client.get_account_owner(mint)
        if owner is None:
            raise AccountNotFoundError(
                f"Mint {mint} not found", field="mint", value=str(mint), step="resolve_accounts"
            )
        if owner not in TOKEN_PROGRAMS:
            raise UnsupportedMessageKindError(
                f"Mint {mint} is owned by {owner}, not a token program",
                field="mint_owner",
                value=str(owner),
                expected=", ".join(str(p) for p in TOKEN_PROGRAMS),
                step="resolve_accounts",
            )
        logger.info(f"Mint {mint} is owned by token program {owner}")
        return owner
