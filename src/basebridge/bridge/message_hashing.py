"""
Message identity hashing for both bridge directions.

Solana -> Base messages are identified by a two-stage hash computed exactly
as the Base bridge contract does:

    inner = keccak256(abi.encode(bytes32 sender, uint8 ty, bytes data))
    outer = keccak256(abi.encode(uint64 nonce, bytes32 outgoingMessagePubkey, bytes32 inner))

Base -> Solana messages are identified by the packed hash emitted in the
``MessageInitiated`` event:

    keccak256(uint64_be(nonce) || sender[20] || data)

All functions here are pure.
"""

import struct
from typing import Optional, Tuple, Union

from eth_abi import encode
from solders.pubkey import Pubkey
from web3 import Web3

from ..errors import HashMismatchError, ValidationError
from .bridge_types import EvmMessage, MessageType

BytesLike = Union[bytes, bytearray, str]


def to_bytes(value: BytesLike) -> bytes:
    """Normalize ``bytes`` or a ``0x`` hex string to ``bytes``."""
    if isinstance(value, str):
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    return bytes(value)


def to_hex(value: BytesLike) -> str:
    return "0x" + to_bytes(value).hex()


def pubkey_to_bytes32(pubkey: Union[Pubkey, bytes]) -> bytes:
    """Solana address as a left-zero-padded ``bytes32``."""
    raw = bytes(pubkey)
    if len(raw) > 32:
        raise ValidationError(
            "Pubkey longer than 32 bytes", field="pubkey", value=raw.hex()
        )
    return raw.rjust(32, b"\x00")


def _require_len(name: str, value: bytes, size: int) -> bytes:
    if len(value) != size:
        raise ValidationError(
            f"{name} must be {size} bytes, got {len(value)}",
            field=name,
            value=value.hex(),
            expected=size,
        )
    return value


def inner_hash(sender: BytesLike, ty: Union[MessageType, int], data: BytesLike) -> bytes:
    """Hash committing to the payload of a Solana -> Base message."""
    sender = _require_len("sender", to_bytes(sender), 32)
    encoded = encode(["bytes32", "uint8", "bytes"], [sender, int(ty), to_bytes(data)])
    return bytes(Web3.keccak(encoded))


def outer_hash(nonce: int, origin_id: BytesLike, inner: BytesLike) -> bytes:
    """Hash committing to the sequencing and origin of a Solana -> Base message."""
    origin_id = _require_len("origin_id", to_bytes(origin_id), 32)
    inner = _require_len("inner_hash", to_bytes(inner), 32)
    encoded = encode(["uint64", "bytes32", "bytes32"], [nonce, origin_id, inner])
    return bytes(Web3.keccak(encoded))


def message_hashes(message: EvmMessage) -> Tuple[bytes, bytes]:
    """Compute ``(inner, outer)`` for a canonical Base message."""
    inner = inner_hash(message.sender, message.ty, message.data)
    return inner, outer_hash(message.nonce, message.outgoing_message_pubkey, inner)


def incoming_message_hash(nonce: int, sender: BytesLike, data: BytesLike) -> bytes:
    """Hash of a Base -> Solana message as emitted by ``MessageInitiated``."""
    sender = _require_len("sender", to_bytes(sender), 20)
    return bytes(Web3.keccak(struct.pack(">Q", nonce) + sender + to_bytes(data)))


def verify_hash_parity(
    local: BytesLike,
    remote: BytesLike,
    step: str = "hash_parity",
    message_hash: Optional[str] = None,
) -> None:
    """Raise ``HashMismatchError`` unless both hashes are byte-identical."""
    local_bytes, remote_bytes = to_bytes(local), to_bytes(remote)
    if local_bytes != remote_bytes:
        raise HashMismatchError(
            f"Local hash {to_hex(local_bytes)} does not match destination hash "
            f"{to_hex(remote_bytes)}",
            expected=to_hex(local_bytes),
            actual=to_hex(remote_bytes),
            step=step,
            message_hash=message_hash or to_hex(local_bytes),
        )
