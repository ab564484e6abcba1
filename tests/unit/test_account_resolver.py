"""Tests for remaining-accounts resolution."""

import pytest
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from basebridge.bridge.bridge_types import (
    AccountRole,
    IncomingCall,
    IncomingMessage,
    IncomingTransfer,
    IxAccount,
    ResolvedAccount,
    SolTransfer,
    SplTransfer,
    WrappedTokenTransfer,
)
from basebridge.bridge.chains.solana.accounts import (
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    AccountResolver,
    demote_authority,
    instruction_accounts,
)
from basebridge.errors import (
    AccountNotFoundError,
    EmptyCallPayloadError,
    UnsupportedMessageKindError,
)

SENDER = b"\x42" * 20


@pytest.fixture
def resolver(solana_client, bridge_pdas):
    return AccountResolver(solana_client, bridge_pdas)


def message(payload) -> IncomingMessage:
    return IncomingMessage(sender=SENDER, message=payload)


class TestInstructionAccounts:
    """Test flattening of bridged instructions."""

    def test_accounts_then_programs(self, simple_ix):
        a = IxAccount(Pubkey.new_unique(), is_writable=True, is_signer=True)
        b = IxAccount(Pubkey.new_unique(), is_writable=False, is_signer=False)
        first, second = simple_ix(a), simple_ix(b)

        assert instruction_accounts([first, second]) == [
            ResolvedAccount(a.pubkey, AccountRole.WRITABLE_SIGNER),
            ResolvedAccount(b.pubkey, AccountRole.READ_ONLY),
            ResolvedAccount(first.program_id, AccountRole.READ_ONLY),
            ResolvedAccount(second.program_id, AccountRole.READ_ONLY),
        ]

    def test_demote_authority(self):
        authority, other = Pubkey.new_unique(), Pubkey.new_unique()
        accounts = [
            ResolvedAccount(authority, AccountRole.WRITABLE_SIGNER),
            ResolvedAccount(other, AccountRole.WRITABLE),
        ]
        assert demote_authority(accounts, authority) == [
            ResolvedAccount(authority, AccountRole.READ_ONLY),
            ResolvedAccount(other, AccountRole.WRITABLE),
        ]


class TestAccountResolver:
    """Test AccountResolver per payload variant."""

    @pytest.mark.asyncio
    async def test_sol_transfer(self, resolver, bridge_pdas):
        to = Pubkey.new_unique()
        accounts = await resolver.resolve(message(IncomingTransfer(SolTransfer(to, 10))))

        assert accounts == [
            ResolvedAccount(bridge_pdas.sol_vault(), AccountRole.WRITABLE),
            ResolvedAccount(to, AccountRole.WRITABLE),
            ResolvedAccount(SYSTEM_PROGRAM_ID, AccountRole.READ_ONLY),
        ]

    @pytest.mark.asyncio
    async def test_spl_transfer_uses_mint_owner_program(
        self, resolver, solana_client, bridge_pdas
    ):
        mint, to = Pubkey.new_unique(), Pubkey.new_unique()
        remote = b"\x99" * 20
        solana_client.get_account_owner.return_value = TOKEN_2022_PROGRAM_ID

        accounts = await resolver.resolve(
            message(IncomingTransfer(SplTransfer(remote, mint, to, 5)))
        )

        solana_client.get_account_owner.assert_awaited_once_with(mint)
        assert accounts == [
            ResolvedAccount(mint, AccountRole.READ_ONLY),
            ResolvedAccount(bridge_pdas.token_vault(mint, remote), AccountRole.WRITABLE),
            ResolvedAccount(to, AccountRole.WRITABLE),
            ResolvedAccount(TOKEN_2022_PROGRAM_ID, AccountRole.READ_ONLY),
        ]

    @pytest.mark.asyncio
    async def test_spl_transfer_classic_token_program(self, resolver, solana_client):
        solana_client.get_account_owner.return_value = TOKEN_PROGRAM_ID
        accounts = await resolver.resolve(
            message(
                IncomingTransfer(
                    SplTransfer(b"\x01" * 20, Pubkey.new_unique(), Pubkey.new_unique(), 1)
                )
            )
        )
        assert accounts[-1] == ResolvedAccount(TOKEN_PROGRAM_ID, AccountRole.READ_ONLY)

    @pytest.mark.asyncio
    async def test_spl_transfer_missing_mint(self, resolver):
        mint = Pubkey.new_unique()
        with pytest.raises(AccountNotFoundError) as exc_info:
            await resolver.resolve(
                message(IncomingTransfer(SplTransfer(b"\x01" * 20, mint, Pubkey.new_unique(), 1)))
            )
        assert exc_info.value.value == str(mint)

    @pytest.mark.asyncio
    async def test_spl_transfer_mint_not_owned_by_token_program(self, resolver, solana_client):
        solana_client.get_account_owner.return_value = SYSTEM_PROGRAM_ID
        with pytest.raises(UnsupportedMessageKindError):
            await resolver.resolve(
                message(
                    IncomingTransfer(
                        SplTransfer(b"\x01" * 20, Pubkey.new_unique(), Pubkey.new_unique(), 1)
                    )
                )
            )

    @pytest.mark.asyncio
    async def test_wrapped_token_transfer(self, resolver, solana_client):
        mint, to = Pubkey.new_unique(), Pubkey.new_unique()
        accounts = await resolver.resolve(
            message(IncomingTransfer(WrappedTokenTransfer(mint, to, 3)))
        )

        assert accounts == [
            ResolvedAccount(mint, AccountRole.WRITABLE),
            ResolvedAccount(to, AccountRole.WRITABLE),
            ResolvedAccount(TOKEN_2022_PROGRAM_ID, AccountRole.READ_ONLY),
        ]
        solana_client.get_account_owner.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_call_with_two_instructions(self, resolver, simple_ix):
        a = IxAccount(Pubkey.new_unique(), is_writable=True, is_signer=False)
        b = IxAccount(Pubkey.new_unique(), is_writable=False, is_signer=False)
        first, second = simple_ix(a), simple_ix(b)

        accounts = await resolver.resolve(message(IncomingCall((first, second))))

        assert [acc.address for acc in accounts] == [
            a.pubkey,
            b.pubkey,
            first.program_id,
            second.program_id,
        ]
        assert accounts[0].role is AccountRole.WRITABLE

    @pytest.mark.asyncio
    async def test_cpi_authority_is_read_only(self, resolver, bridge_pdas, simple_ix):
        authority = bridge_pdas.cpi_authority(SENDER)
        ix = simple_ix(IxAccount(authority, is_writable=True, is_signer=True))

        accounts = await resolver.resolve(message(IncomingCall((ix,))))

        assert accounts[0] == ResolvedAccount(authority, AccountRole.READ_ONLY)

    @pytest.mark.asyncio
    async def test_empty_call(self, resolver):
        with pytest.raises(EmptyCallPayloadError):
            await resolver.resolve(message(IncomingCall(())))

    @pytest.mark.asyncio
    async def test_transfer_follow_up_instructions_are_appended(
        self, resolver, simple_ix
    ):
        extra = IxAccount(Pubkey.new_unique(), is_writable=False, is_signer=False)
        ix = simple_ix(extra)
        to = Pubkey.new_unique()

        accounts = await resolver.resolve(
            message(IncomingTransfer(SolTransfer(to, 10), ixs=(ix,)))
        )

        assert len(accounts) == 5
        assert accounts[3] == ResolvedAccount(extra.pubkey, AccountRole.READ_ONLY)
        assert accounts[4] == ResolvedAccount(ix.program_id, AccountRole.READ_ONLY)

    @pytest.mark.asyncio
    async def test_unknown_payload(self, resolver):
        with pytest.raises(UnsupportedMessageKindError):
            await resolver.resolve(message(object()))

    @pytest.mark.asyncio
    async def test_resolution_is_deterministic(self, resolver, simple_ix):
        ix = simple_ix(IxAccount(Pubkey.new_unique(), is_writable=True, is_signer=False))
        payload = message(IncomingCall((ix,)))
        assert await resolver.resolve(payload) == await resolver.resolve(payload)
