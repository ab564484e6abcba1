"""
Borsh encoding and decoding for the bridge program accounts.

This module provides:
- Anchor instruction and account discriminators
- A minimal Borsh reader and writer (little-endian integers, u32-prefixed vectors)
- Decoders for the ``IncomingMessage``, ``OutgoingMessage``, ``Bridge`` and
  base relayer ``Cfg`` accounts
"""

import hashlib
import struct
from typing import Callable, List, Sequence, TypeVar

from solders.pubkey import Pubkey

from ....errors import UnsupportedMessageKindError, ValidationError
from ...bridge_types import (
    CallType,
    EvmCall,
    IncomingCall,
    IncomingMessage,
    IncomingTransfer,
    Ix,
    IxAccount,
    OutgoingMessage,
    OutgoingTransfer,
    SolTransfer,
    SplTransfer,
    WrappedTokenTransfer,
)

T = TypeVar("T")

DISCRIMINATOR_LEN = 8

# Byte offset of gas_config.gas_fee_receiver in the base relayer Cfg account:
# discriminator, nonce, guardian, eip1559 (4 x u64 config + 2 x u64 + i64),
# then the four u64 gas config fields.
CFG_GAS_FEE_RECEIVER_OFFSET = 8 + 8 + 32 + 56 + 32


def instruction_discriminator(name: str) -> bytes:
    """Anchor discriminator for the instruction ``name``."""
    return hashlib.sha256(f"global:{name}".encode()).digest()[:DISCRIMINATOR_LEN]


def account_discriminator(name: str) -> bytes:
    """Anchor discriminator for the account type ``name``."""
    return hashlib.sha256(f"account:{name}".encode()).digest()[:DISCRIMINATOR_LEN]


class BorshReader:
    """Sequential reader over a Borsh-encoded buffer."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = bytes(data)
        self.offset = offset

    def _take(self, size: int) -> bytes:
        end = self.offset + size
        if end > len(self.data):
            raise ValidationError(
                f"Unexpected end of account data at offset {self.offset} "
                f"(need {size} bytes, have {len(self.data) - self.offset})",
                field="account_data",
            )
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def u8(self) -> int:
        return self._take(1)[0]

    def bool(self) -> bool:
        value = self.u8()
        if value > 1:
            raise ValidationError(f"Invalid bool byte {value}", field="bool", value=value)
        return value == 1

    def u32(self) -> int:
        return struct.unpack("<I", self._take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self._take(8))[0]

    def u128(self) -> int:
        return int.from_bytes(self._take(16), "little")

    def fixed(self, size: int) -> bytes:
        return self._take(size)

    def pubkey(self) -> Pubkey:
        return Pubkey.from_bytes(self._take(32))

    def vec_u8(self) -> bytes:
        return self._take(self.u32())

    def vec(self, read_item: Callable[["BorshReader"], T]) -> List[T]:
        return [read_item(self) for _ in range(self.u32())]

    def option(self, read_item: Callable[["BorshReader"], T]):
        return read_item(self) if self.bool() else None

    def expect_discriminator(self, name: str) -> None:
        found = self._take(DISCRIMINATOR_LEN)
        if found != account_discriminator(name):
            raise ValidationError(
                f"Account is not a {name} account",
                field="discriminator",
                value=found.hex(),
                expected=account_discriminator(name).hex(),
            )


class BorshWriter:
    """Append-only Borsh encoder."""

    def __init__(self):
        self.buffer = bytearray()

    def u8(self, value: int) -> "BorshWriter":
        self.buffer += struct.pack("<B", value)
        return self

    def bool(self, value: bool) -> "BorshWriter":
        return self.u8(1 if value else 0)

    def u32(self, value: int) -> "BorshWriter":
        self.buffer += struct.pack("<I", value)
        return self

    def u64(self, value: int) -> "BorshWriter":
        self.buffer += struct.pack("<Q", value)
        return self

    def u128(self, value: int) -> "BorshWriter":
        self.buffer += value.to_bytes(16, "little")
        return self

    def fixed(self, value: bytes, size: int) -> "BorshWriter":
        if len(value) != size:
            raise ValidationError(
                f"Expected {size} bytes, got {len(value)}",
                field="fixed",
                value=bytes(value).hex(),
                expected=size,
            )
        self.buffer += value
        return self

    def pubkey(self, value: Pubkey) -> "BorshWriter":
        self.buffer += bytes(value)
        return self

    def vec_u8(self, value: bytes) -> "BorshWriter":
        self.u32(len(value))
        self.buffer += value
        return self

    def vec_fixed(self, items: Sequence[bytes], size: int) -> "BorshWriter":
        self.u32(len(items))
        for item in items:
            self.fixed(item, size)
        return self

    def to_bytes(self) -> bytes:
        return bytes(self.buffer)


# Incoming message


def _read_ix_account(reader: BorshReader) -> IxAccount:
    return IxAccount(
        pubkey=reader.pubkey(), is_writable=reader.bool(), is_signer=reader.bool()
    )


def _read_ix(reader: BorshReader) -> Ix:
    return Ix(
        program_id=reader.pubkey(),
        accounts=tuple(reader.vec(_read_ix_account)),
        data=reader.vec_u8(),
    )


def _read_transfer(reader: BorshReader):
    kind = reader.u8()
    if kind == 0:
        return SolTransfer(to=reader.pubkey(), amount=reader.u64())
    if kind == 1:
        return SplTransfer(
            remote_token=reader.fixed(20),
            local_token=reader.pubkey(),
            to=reader.pubkey(),
            amount=reader.u64(),
        )
    if kind == 2:
        return WrappedTokenTransfer(
            local_token=reader.pubkey(), to=reader.pubkey(), amount=reader.u64()
        )
    raise UnsupportedMessageKindError(
        f"Unknown incoming transfer variant {kind}", field="transfer", value=kind
    )


def decode_incoming_message(data: bytes) -> IncomingMessage:
    """Decode an ``IncomingMessage`` account."""
    reader = BorshReader(data)
    reader.expect_discriminator("IncomingMessage")
    sender = reader.fixed(20)

    kind = reader.u8()
    if kind == 0:
        message = IncomingCall(ixs=tuple(reader.vec(_read_ix)))
    elif kind == 1:
        transfer = _read_transfer(reader)
        message = IncomingTransfer(transfer=transfer, ixs=tuple(reader.vec(_read_ix)))
    else:
        raise UnsupportedMessageKindError(
            f"Unknown incoming message variant {kind}", field="message", value=kind
        )

    return IncomingMessage(sender=sender, message=message, executed=reader.bool())


# Outgoing message


def _read_call(reader: BorshReader) -> EvmCall:
    ty = reader.u8()
    try:
        call_type = CallType(ty)
    except ValueError as e:
        raise UnsupportedMessageKindError(
            f"Unknown call type {ty}", field="call.ty", value=ty, cause=e
        ) from e
    return EvmCall(ty=call_type, to=reader.fixed(20), value=reader.u128(), data=reader.vec_u8())


def decode_outgoing_message(data: bytes) -> OutgoingMessage:
    """Decode an ``OutgoingMessage`` account."""
    reader = BorshReader(data)
    reader.expect_discriminator("OutgoingMessage")
    nonce = reader.u64()
    sender = reader.pubkey()

    kind = reader.u8()
    if kind == 0:
        message = _read_call(reader)
    elif kind == 1:
        message = OutgoingTransfer(
            to=reader.fixed(20),
            local_token=reader.pubkey(),
            remote_token=reader.fixed(20),
            amount=reader.u64(),
            call=reader.option(_read_call),
        )
    else:
        raise UnsupportedMessageKindError(
            f"Unknown outgoing message variant {kind}", field="message", value=kind
        )

    return OutgoingMessage(nonce=nonce, sender=sender, message=message)


def decode_bridge_checkpoint(data: bytes) -> int:
    """Read ``base_block_number`` from the ``Bridge`` account."""
    reader = BorshReader(data)
    reader.expect_discriminator("Bridge")
    return reader.u64()


def decode_gas_fee_receiver(data: bytes) -> Pubkey:
    """Read ``gas_config.gas_fee_receiver`` from the base relayer ``Cfg`` account."""
    reader = BorshReader(data)
    reader.expect_discriminator("Cfg")
    reader.offset = CFG_GAS_FEE_RECEIVER_OFFSET
    return reader.pubkey()
