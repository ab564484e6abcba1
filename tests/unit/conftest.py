"""Shared fixtures for the relayer unit tests."""

from unittest.mock import AsyncMock, Mock

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from basebridge.bridge.bridge_types import EvmCall, Ix, OutgoingTransfer
from basebridge.bridge.chains.solana.codec import (
    CFG_GAS_FEE_RECEIVER_OFFSET,
    BorshWriter,
    account_discriminator,
)
from basebridge.bridge.chains.solana.pda import BaseRelayerPDAs, BridgePDAs
from basebridge.config import CONFIGS
from basebridge.logging import LogConfig, LogLevel, MemoryHandler, setup_logging, shutdown_logging


def _discriminated(name: str) -> BorshWriter:
    return BorshWriter().fixed(account_discriminator(name), 8)


def _write_ixs(writer: BorshWriter, ixs) -> BorshWriter:
    writer.u32(len(ixs))
    for ix in ixs:
        writer.pubkey(ix.program_id).u32(len(ix.accounts))
        for acc in ix.accounts:
            writer.pubkey(acc.pubkey).bool(acc.is_writable).bool(acc.is_signer)
        writer.vec_u8(ix.data)
    return writer


def _write_call(writer: BorshWriter, call: EvmCall) -> BorshWriter:
    return writer.u8(int(call.ty)).fixed(call.to, 20).u128(call.value).vec_u8(call.data)


class AccountEncoder:
    """Borsh encodings of the bridge program accounts."""

    @staticmethod
    def bridge(checkpoint: int) -> bytes:
        return _discriminated("Bridge").u64(checkpoint).fixed(b"\x00" * 64, 64).to_bytes()

    @staticmethod
    def cfg(gas_fee_receiver: Pubkey) -> bytes:
        padding = CFG_GAS_FEE_RECEIVER_OFFSET - 8
        return (
            _discriminated("Cfg")
            .fixed(b"\x07" * padding, padding)
            .pubkey(gas_fee_receiver)
            .to_bytes()
        )

    @staticmethod
    def incoming_call(sender: bytes, ixs, executed: bool = False) -> bytes:
        writer = _discriminated("IncomingMessage").fixed(sender, 20).u8(0)
        return _write_ixs(writer, ixs).bool(executed).to_bytes()

    @staticmethod
    def incoming_sol_transfer(
        sender: bytes, to: Pubkey, amount: int, ixs=(), executed: bool = False
    ) -> bytes:
        writer = (
            _discriminated("IncomingMessage")
            .fixed(sender, 20)
            .u8(1)
            .u8(0)
            .pubkey(to)
            .u64(amount)
        )
        return _write_ixs(writer, ixs).bool(executed).to_bytes()

    @staticmethod
    def incoming_spl_transfer(
        sender: bytes, remote_token: bytes, mint: Pubkey, to: Pubkey, amount: int
    ) -> bytes:
        writer = (
            _discriminated("IncomingMessage")
            .fixed(sender, 20)
            .u8(1)
            .u8(1)
            .fixed(remote_token, 20)
            .pubkey(mint)
            .pubkey(to)
            .u64(amount)
        )
        return _write_ixs(writer, ()).bool(False).to_bytes()

    @staticmethod
    def outgoing(nonce: int, sender: Pubkey, message) -> bytes:
        writer = _discriminated("OutgoingMessage").u64(nonce).pubkey(sender)
        if isinstance(message, EvmCall):
            return _write_call(writer.u8(0), message).to_bytes()
        assert isinstance(message, OutgoingTransfer)
        writer.u8(1).fixed(message.to, 20).pubkey(message.local_token)
        writer.fixed(message.remote_token, 20).u64(message.amount)
        if message.call is None:
            return writer.bool(False).to_bytes()
        return _write_call(writer.bool(True), message.call).to_bytes()


@pytest.fixture
def accounts():
    """Account data encoder."""
    return AccountEncoder


@pytest.fixture
def config():
    return CONFIGS["testnet-prod"]


@pytest.fixture
def bridge_pdas(config):
    return BridgePDAs(config.solana.bridge_program)


@pytest.fixture
def relayer_pdas(config):
    return BaseRelayerPDAs(config.solana.base_relayer_program)


@pytest.fixture
def solana_client():
    """Solana client double with no accounts."""
    client = Mock()
    client.get_account = AsyncMock(return_value=None)
    client.get_account_data = AsyncMock(return_value=None)
    client.get_account_owner = AsyncMock(return_value=None)
    return client


@pytest.fixture
def base_client():
    """Base client double."""
    client = Mock()
    client.get_receipt = AsyncMock()
    client.decode_message_initiated = Mock(return_value=[])
    client.generate_proof = AsyncMock(return_value=[b"\x11" * 32, b"\x22" * 32])
    client.get_message_hash = AsyncMock()
    client.bridge_validator = AsyncMock(return_value="0x" + "ab" * 20)
    client.is_approved = AsyncMock(return_value=True)
    client.is_successful = AsyncMock(return_value=False)
    client.is_failed = AsyncMock(return_value=False)
    client.relay_messages = AsyncMock(return_value="0x" + "cd" * 32)
    return client


@pytest.fixture
def payer():
    return Keypair()


@pytest.fixture
def submitter(payer):
    """Transaction submitter double signing with ``payer``."""
    mock = Mock()
    mock.payer = payer
    mock.submit = AsyncMock(return_value="5igna7ure")
    return mock


@pytest.fixture
def memory_logs():
    """Capture relayer log output."""
    manager = setup_logging(LogConfig(level=LogLevel.TRACE))
    handler = MemoryHandler()
    manager.add_handler("memory", handler)
    yield handler
    shutdown_logging()


@pytest.fixture
def simple_ix():
    def make(*accounts) -> Ix:
        return Ix(program_id=Pubkey.new_unique(), accounts=tuple(accounts), data=b"\x01\x02")

    return make
