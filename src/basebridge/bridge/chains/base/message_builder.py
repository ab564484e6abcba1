"""
Canonical Base message construction for Solana -> Base relay.

Rebuilds the ``IncomingMessage`` struct the Base bridge expects from an
``OutgoingMessage`` account, byte for byte:

- Call: ``abi.encode((uint8 ty, address to, uint128 value, bytes data))``
- Transfer: ``abi.encode((address localToken, bytes32 remoteToken, bytes32 to, uint64 remoteAmount))``
- TransferAndCall: ``abi.encode(transferTuple, callTuple)``

Token fields are named from the Base side: the transfer's ``localToken`` is
the Solana record's ``remote_token`` and vice versa.
"""

from dataclasses import replace
from typing import Tuple, Union

from eth_abi import encode
from solders.pubkey import Pubkey
from web3 import Web3

from ....errors import UnsupportedMessageKindError
from ....logging import get_logger
from ...bridge_types import (
    EvmCall,
    EvmMessage,
    MessageType,
    OutgoingMessage,
    OutgoingTransfer,
)
from ...message_hashing import message_hashes, pubkey_to_bytes32

logger = get_logger(__name__)

DEFAULT_EVM_GAS_LIMIT = 100_000

CALL_TUPLE = "(uint8,address,uint128,bytes)"
TRANSFER_TUPLE = "(address,bytes32,bytes32,uint64)"


def call_tuple(call: EvmCall) -> Tuple[int, str, int, bytes]:
    return (int(call.ty), Web3.to_checksum_address(call.to), call.value, call.data)


def transfer_tuple(transfer: OutgoingTransfer) -> Tuple[str, bytes, bytes, int]:
    return (
        Web3.to_checksum_address(transfer.remote_token),
        pubkey_to_bytes32(transfer.local_token),
        # bytes20(to) on Base must yield the recipient, so pad on the right
        bytes(transfer.to).ljust(32, b"\x00"),
        transfer.amount,
    )


def encode_payload(payload: Union[EvmCall, OutgoingTransfer]) -> Tuple[MessageType, bytes]:
    """Message type tag and ABI-encoded data for ``payload``."""
    if isinstance(payload, EvmCall):
        return MessageType.CALL, encode([CALL_TUPLE], [call_tuple(payload)])
    if isinstance(payload, OutgoingTransfer):
        if payload.call is None:
            return MessageType.TRANSFER, encode([TRANSFER_TUPLE], [transfer_tuple(payload)])
        return MessageType.TRANSFER_AND_CALL, encode(
            [TRANSFER_TUPLE, CALL_TUPLE],
            [transfer_tuple(payload), call_tuple(payload.call)],
        )
    raise UnsupportedMessageKindError(
        f"Unsupported outgoing message payload {type(payload).__name__}",
        field="message",
        value=type(payload).__name__,
        step="build_evm_message",
    )


def build_evm_message(
    outgoing: OutgoingMessage,
    outgoing_pubkey: Pubkey,
    gas_limit: int = DEFAULT_EVM_GAS_LIMIT,
) -> EvmMessage:
    """Canonical Base message for the outgoing message at ``outgoing_pubkey``."""
    ty, data = encode_payload(outgoing.message)
    message = EvmMessage(
        outgoing_message_pubkey=pubkey_to_bytes32(outgoing_pubkey),
        nonce=outgoing.nonce,
        sender=pubkey_to_bytes32(outgoing.sender),
        gas_limit=gas_limit,
        ty=ty,
        data=data,
    )
    inner, outer = message_hashes(message)
    logger.info(f"Computed inner hash: 0x{inner.hex()}")
    logger.info(f"Computed outer hash: 0x{outer.hex()}")
    return replace(message, inner_hash=inner, outer_hash=outer)
