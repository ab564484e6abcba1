"""Tests for the relay flows of both directions."""

from unittest.mock import AsyncMock, Mock

import pytest
from solders.pubkey import Pubkey

from basebridge.bridge.bridge_types import (
    CallType,
    EvmCall,
    RelayDirection,
    RelayStatus,
)
from basebridge.bridge.chains.base.message_builder import build_evm_message
from basebridge.bridge.chains.solana.codec import decode_outgoing_message
from basebridge.bridge.chains.solana.relayer import RELAY_MESSAGE
from basebridge.bridge.message_hashing import incoming_message_hash
from basebridge.bridge.relay import BaseToSolanaRelay, SolanaToBaseRelay
from basebridge.errors import (
    AccountNotFoundError,
    HashMismatchError,
    NotFinalizedError,
    finalization_policy,
)

SENDER = b"\x42" * 20
NONCE = 7
DATA = b"\xde\xad"
TX_HASH = "0x" + "aa" * 32
CHECKPOINT = 500


@pytest.fixture
def base_to_solana(config, solana_client, base_client, submitter, accounts):
    solana_client.get_account_data.return_value = accounts.bridge(CHECKPOINT)
    base_client.get_receipt.return_value = {"blockNumber": CHECKPOINT, "logs": []}
    base_client.decode_message_initiated.return_value = [
        {
            "args": {
                "messageHash": incoming_message_hash(NONCE, SENDER, DATA),
                "mmrRoot": b"\x00" * 32,
                "message": {"nonce": NONCE, "sender": SENDER, "data": DATA},
            }
        }
    ]
    return BaseToSolanaRelay(config, solana_client, base_client, submitter)


class TestBaseToSolanaRelay:
    """Test proving and relaying Base messages on Solana."""

    @pytest.mark.asyncio
    async def test_prove(self, base_to_solana, submitter):
        result = await base_to_solana.prove(TX_HASH)

        assert result.status is RelayStatus.PROVEN
        assert result.direction is RelayDirection.BASE_TO_SOLANA
        assert result.signature == "5igna7ure"
        assert result.message_hash == incoming_message_hash(NONCE, SENDER, DATA)
        assert result.metadata["checkpoint"] == CHECKPOINT
        assert result.metadata["nonce"] == NONCE
        submitter.submit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_prove_already_proven(self, base_to_solana, solana_client, submitter):
        solana_client.get_account.return_value = Mock()

        result = await base_to_solana.prove(TX_HASH)

        assert result.status is RelayStatus.ALREADY_PROVEN
        assert result.signature is None
        submitter.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_finalized_without_policy(self, base_to_solana, base_client):
        base_client.get_receipt.return_value = {"blockNumber": CHECKPOINT + 1, "logs": []}
        with pytest.raises(NotFinalizedError):
            await base_to_solana.prove(TX_HASH)

    @pytest.mark.asyncio
    async def test_finalization_retry(self, base_to_solana, solana_client, accounts):
        solana_client.get_account_data.side_effect = [
            accounts.bridge(CHECKPOINT - 1),
            accounts.bridge(CHECKPOINT),
        ]

        proven = await base_to_solana.acquire(TX_HASH, finalization_policy(3, interval=0))

        assert proven.checkpoint == CHECKPOINT
        assert solana_client.get_account_data.await_count == 2

    @pytest.mark.asyncio
    async def test_finalization_retry_exhausted(self, base_to_solana, base_client):
        base_client.get_receipt.return_value = {"blockNumber": CHECKPOINT + 1, "logs": []}
        with pytest.raises(NotFinalizedError):
            await base_to_solana.acquire(TX_HASH, finalization_policy(2, interval=0))
        assert base_client.get_receipt.await_count == 3

    @pytest.mark.asyncio
    async def test_relay_sol_transfer(
        self, base_to_solana, solana_client, submitter, accounts, bridge_pdas
    ):
        message_hash = b"\x01" * 32
        to = Pubkey.new_unique()
        solana_client.get_account_data.return_value = accounts.incoming_sol_transfer(
            SENDER, to, 10
        )

        result = await base_to_solana.relay(message_hash)

        assert result.status is RelayStatus.EXECUTED
        (instructions,), _ = submitter.submit.call_args
        (ix,) = instructions
        assert bytes(ix.data) == RELAY_MESSAGE
        assert [meta.pubkey for meta in ix.accounts] == [
            bridge_pdas.incoming_message(message_hash),
            bridge_pdas.bridge(),
            bridge_pdas.sol_vault(),
            to,
            Pubkey.from_string("11111111111111111111111111111111"),
        ]
        assert ix.accounts[0].is_writable and not ix.accounts[1].is_writable

    @pytest.mark.asyncio
    async def test_relay_already_executed(
        self, base_to_solana, solana_client, submitter, accounts
    ):
        solana_client.get_account_data.return_value = accounts.incoming_sol_transfer(
            SENDER, Pubkey.new_unique(), 10, executed=True
        )

        result = await base_to_solana.relay(b"\x01" * 32)

        assert result.status is RelayStatus.ALREADY_EXECUTED
        submitter.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_relay_unproven_message(self, base_to_solana, solana_client):
        solana_client.get_account_data.return_value = None
        with pytest.raises(AccountNotFoundError):
            await base_to_solana.relay(b"\x01" * 32)

    @pytest.mark.asyncio
    async def test_prove_and_relay(self, base_to_solana, solana_client, submitter, accounts):
        solana_client.get_account_data.side_effect = [
            accounts.bridge(CHECKPOINT),
            accounts.incoming_sol_transfer(SENDER, Pubkey.new_unique(), 10),
        ]

        result = await base_to_solana.prove_and_relay(TX_HASH)

        assert result.status is RelayStatus.EXECUTED
        assert submitter.submit.await_count == 2


OUTGOING = Pubkey.new_unique()
CALL = EvmCall(ty=CallType.CALL, to=b"\x01" * 20, value=0, data=b"\xca\xfe")


@pytest.fixture
def outgoing_data(accounts):
    return accounts.outgoing(3, Pubkey.new_unique(), CALL)


@pytest.fixture
def expected(outgoing_data):
    return build_evm_message(decode_outgoing_message(outgoing_data), OUTGOING)


@pytest.fixture
def approvals():
    waiter = Mock()
    waiter.wait_for_approval = AsyncMock(return_value=2)
    return waiter


@pytest.fixture
def solana_to_base(config, solana_client, base_client, approvals, outgoing_data, expected):
    solana_client.get_account_data.return_value = outgoing_data
    base_client.get_message_hash.return_value = expected.outer_hash
    return SolanaToBaseRelay(config, solana_client, base_client, approvals=approvals)


class TestSolanaToBaseRelay:
    """Test relaying Solana messages to Base."""

    @pytest.mark.asyncio
    async def test_relay(self, solana_to_base, base_client, approvals, expected):
        base_client.is_successful.side_effect = [False, True]

        result = await solana_to_base.relay(OUTGOING)

        assert result.status is RelayStatus.EXECUTED
        assert result.direction is RelayDirection.SOLANA_TO_BASE
        assert result.message_hash == expected.outer_hash
        assert result.signature == "0x" + "cd" * 32
        base_client.get_message_hash.assert_awaited_once_with(expected.as_abi_tuple())
        approvals.wait_for_approval.assert_awaited_once()
        base_client.relay_messages.assert_awaited_once_with([expected.as_abi_tuple()])

    @pytest.mark.asyncio
    async def test_already_executed(self, solana_to_base, base_client, approvals):
        base_client.is_successful.return_value = True

        result = await solana_to_base.relay(OUTGOING)

        assert result.status is RelayStatus.ALREADY_EXECUTED
        approvals.wait_for_approval.assert_not_awaited()
        base_client.relay_messages.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_hash_mismatch_blocks_relay(self, solana_to_base, base_client, approvals):
        base_client.get_message_hash.return_value = b"\x00" * 32

        with pytest.raises(HashMismatchError) as exc_info:
            await solana_to_base.relay(OUTGOING)

        assert exc_info.value.step == "get_message_hash"
        approvals.wait_for_approval.assert_not_awaited()
        base_client.relay_messages.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mined_but_not_successful(self, solana_to_base, base_client):
        base_client.is_successful.side_effect = [False, False]

        result = await solana_to_base.relay(OUTGOING)

        assert result.status is RelayStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_recorded_failure(self, solana_to_base, base_client, expected):
        base_client.is_successful.side_effect = [False, False]
        base_client.is_failed.return_value = True

        result = await solana_to_base.relay(OUTGOING)

        assert result.status is RelayStatus.FAILED
        assert result.signature == "0x" + "cd" * 32
        base_client.is_failed.assert_awaited_once_with(expected.outer_hash)

    @pytest.mark.asyncio
    async def test_logs_are_tagged_with_message_hash(
        self, solana_to_base, base_client, expected, memory_logs
    ):
        base_client.is_successful.side_effect = [False, True]

        await solana_to_base.relay(OUTGOING)

        tagged = [
            log for log in memory_logs.get_logs()
            if log["context"]["message_hash"] == "0x" + expected.outer_hash.hex()
        ]
        assert any(log["level"] == "success" for log in tagged)
        assert all(log["context"]["component"] == "solana_to_base" for log in tagged)

    @pytest.mark.asyncio
    async def test_missing_outgoing_message(self, solana_to_base, solana_client):
        solana_client.get_account_data.return_value = None
        with pytest.raises(AccountNotFoundError):
            await solana_to_base.relay(OUTGOING)

    @pytest.mark.asyncio
    async def test_await_approval(self, solana_to_base):
        result = await solana_to_base.await_approval(OUTGOING)
        assert result.status is RelayStatus.APPROVED
        assert result.metadata["polls"] == 2

    @pytest.mark.asyncio
    async def test_monitor(self, solana_to_base, base_client):
        base_client.is_successful.side_effect = [False, True]
        solana_to_base.executions.interval = 0

        result = await solana_to_base.monitor(OUTGOING)

        assert result.status is RelayStatus.EXECUTED

    @pytest.mark.asyncio
    async def test_pay_for_relay(
        self, solana_to_base, solana_client, submitter, accounts, outgoing_data, relayer_pdas
    ):
        receiver = Pubkey.new_unique()
        solana_client.get_account_data.side_effect = [outgoing_data, accounts.cfg(receiver)]

        result = await solana_to_base.pay_for_relay(OUTGOING, submitter, gas_limit=123)

        assert result.status is RelayStatus.SUBMITTED
        assert result.signature == "5igna7ure"
        (instructions,), _ = submitter.submit.call_args
        (ix,) = instructions
        assert ix.program_id == relayer_pdas.program_id
        assert ix.accounts[2].pubkey == receiver
        assert str(ix.accounts[3].pubkey) == result.metadata["message_to_relay"]
        assert int.from_bytes(bytes(ix.data)[-8:], "little") == 123
