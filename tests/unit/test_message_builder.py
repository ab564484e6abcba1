"""Tests for canonical Base message construction."""

from dataclasses import replace

import pytest
from eth_abi import decode
from solders.pubkey import Pubkey

from basebridge.bridge.bridge_types import (
    CallType,
    EvmCall,
    MessageType,
    OutgoingMessage,
    OutgoingTransfer,
)
from basebridge.bridge.chains.base.message_builder import (
    CALL_TUPLE,
    DEFAULT_EVM_GAS_LIMIT,
    TRANSFER_TUPLE,
    build_evm_message,
    encode_payload,
)
from basebridge.bridge.chains.solana.codec import decode_outgoing_message
from basebridge.bridge.message_hashing import inner_hash, outer_hash
from basebridge.errors import UnsupportedMessageKindError

TO = b"\x12" * 20
REMOTE_TOKEN = b"\x34" * 20
CALL = EvmCall(ty=CallType.CALL, to=b"\x56" * 20, value=10**18, data=b"\x01\x02")


@pytest.fixture
def transfer():
    return OutgoingTransfer(
        to=TO, local_token=Pubkey.new_unique(), remote_token=REMOTE_TOKEN, amount=1_000
    )


class TestEncodePayload:
    """Test payload ABI encoding."""

    def test_call(self):
        ty, data = encode_payload(CALL)

        assert ty is MessageType.CALL
        ((call_ty, to, value, call_data),) = decode([CALL_TUPLE], data)
        assert call_ty == 0
        assert to.lower() == "0x" + CALL.to.hex()
        assert value == 10**18
        assert call_data == b"\x01\x02"

    def test_transfer(self, transfer):
        ty, data = encode_payload(transfer)

        assert ty is MessageType.TRANSFER
        ((local_token, remote_token, to, amount),) = decode([TRANSFER_TUPLE], data)
        # Base names tokens from its own side
        assert local_token.lower() == "0x" + REMOTE_TOKEN.hex()
        assert remote_token == bytes(transfer.local_token)
        assert to == TO + b"\x00" * 12
        assert amount == 1_000

    def test_transfer_and_call(self, transfer):
        with_call = OutgoingTransfer(
            to=transfer.to,
            local_token=transfer.local_token,
            remote_token=transfer.remote_token,
            amount=transfer.amount,
            call=CALL,
        )

        ty, data = encode_payload(with_call)

        assert ty is MessageType.TRANSFER_AND_CALL
        decoded_transfer, decoded_call = decode([TRANSFER_TUPLE, CALL_TUPLE], data)
        assert decoded_transfer[3] == 1_000
        assert decoded_call[3] == CALL.data

    def test_unknown_payload(self):
        with pytest.raises(UnsupportedMessageKindError):
            encode_payload(object())


class TestBuildEvmMessage:
    """Test build_evm_message."""

    def test_fields_and_hashes(self):
        sender = Pubkey.new_unique()
        outgoing_pubkey = Pubkey.new_unique()

        message = build_evm_message(OutgoingMessage(9, sender, CALL), outgoing_pubkey)

        assert message.outgoing_message_pubkey == bytes(outgoing_pubkey)
        assert message.sender == bytes(sender)
        assert message.nonce == 9
        assert message.gas_limit == DEFAULT_EVM_GAS_LIMIT
        assert message.ty is MessageType.CALL
        assert message.inner_hash == inner_hash(bytes(sender), MessageType.CALL, message.data)
        assert message.outer_hash == outer_hash(9, bytes(outgoing_pubkey), message.inner_hash)

    def test_abi_tuple_order(self):
        outgoing_pubkey = Pubkey.new_unique()
        message = build_evm_message(
            OutgoingMessage(1, Pubkey.new_unique(), CALL), outgoing_pubkey, gas_limit=5
        )

        assert message.as_abi_tuple() == (
            bytes(outgoing_pubkey),
            1,
            message.sender,
            5,
            0,
            message.data,
        )

    def test_rebuild_is_byte_identical(self, transfer):
        outgoing = OutgoingMessage(4, Pubkey.new_unique(), transfer)
        outgoing_pubkey = Pubkey.new_unique()
        assert build_evm_message(outgoing, outgoing_pubkey) == build_evm_message(
            outgoing, outgoing_pubkey
        )

    def test_to_dict(self):
        message = build_evm_message(OutgoingMessage(1, Pubkey.new_unique(), CALL), Pubkey.new_unique())
        data = message.to_dict()
        assert data["ty"] == "CALL"
        assert data["outer_hash"] == "0x" + message.outer_hash.hex()


GOLDEN_SENDER = Pubkey.from_bytes(b"\x11" * 32)
GOLDEN_OUTGOING = Pubkey.from_bytes(b"\x22" * 32)
GOLDEN_TRANSFER = OutgoingTransfer(
    to=TO,
    local_token=Pubkey.from_bytes(b"\x33" * 32),
    remote_token=REMOTE_TOKEN,
    amount=1_000,
)


class TestGoldenVectors:
    """Hashes of fixed OutgoingMessage accounts, computed independently of this package."""

    def rebuild(self, accounts, payload):
        data = accounts.outgoing(5, GOLDEN_SENDER, payload)
        return build_evm_message(decode_outgoing_message(data), GOLDEN_OUTGOING)

    def test_call(self, accounts):
        message = self.rebuild(accounts, CALL)

        assert message.ty is MessageType.CALL
        assert message.data.hex() == (
            "0000000000000000000000000000000000000000000000000000000000000020"
            "0000000000000000000000000000000000000000000000000000000000000000"
            "0000000000000000000000005656565656565656565656565656565656565656"
            "0000000000000000000000000000000000000000000000000de0b6b3a7640000"
            "0000000000000000000000000000000000000000000000000000000000000080"
            "0000000000000000000000000000000000000000000000000000000000000002"
            "0102000000000000000000000000000000000000000000000000000000000000"
        )
        assert message.inner_hash.hex() == (
            "520095b0d2d44178cd0741c972275586b6e48cdbd9e41811e9b1782f029e1ff0"
        )
        assert message.outer_hash.hex() == (
            "357807c3f25aa3403948c7b7ebcc6e514202c091a4d40cada9dd97cc84288234"
        )

    def test_transfer(self, accounts):
        message = self.rebuild(accounts, GOLDEN_TRANSFER)

        assert message.ty is MessageType.TRANSFER
        assert message.data.hex() == (
            "0000000000000000000000003434343434343434343434343434343434343434"
            "3333333333333333333333333333333333333333333333333333333333333333"
            "1212121212121212121212121212121212121212000000000000000000000000"
            "00000000000000000000000000000000000000000000000000000000000003e8"
        )
        assert message.inner_hash.hex() == (
            "01c4342a95d2066245b9a3c41e90781e0c52bd0f19e60a4ba5333c08e3d12d41"
        )
        assert message.outer_hash.hex() == (
            "a27e3265ac743811ddebd5d3ccfa83e7db7e1bc42548e747cd4e467b52967549"
        )

    def test_transfer_and_call(self, accounts):
        message = self.rebuild(accounts, replace(GOLDEN_TRANSFER, call=CALL))

        assert message.ty is MessageType.TRANSFER_AND_CALL
        assert len(message.data) == 352
        assert message.inner_hash.hex() == (
            "363f4a365728e20a2943eb8c4b2af4f0f409dae273c2f2c7563e58647a60ea60"
        )
        assert message.outer_hash.hex() == (
            "1d07fc8e653dfa8c12098d6cfc06bae06c3035f446ae5e1c5059ccde0951f1a0"
        )
