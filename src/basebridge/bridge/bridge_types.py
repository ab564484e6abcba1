"""
Message model shared by both relay directions.

This module defines:
- Incoming messages as stored by the Solana bridge program (Base -> Solana)
- Outgoing messages as stored by the Solana bridge program (Solana -> Base)
- The canonical Base message tuple and its hashes
- Resolved account metas and relay outcomes

Payload variants are closed sets of frozen dataclasses. Code that switches
on them uses explicit ``isinstance`` chains ending in
``UnsupportedMessageKindError``.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Tuple, Union

from solders.instruction import AccountMeta
from solders.pubkey import Pubkey


class MessageType(IntEnum):
    """Type tag of the canonical Base message."""

    CALL = 0
    TRANSFER = 1
    TRANSFER_AND_CALL = 2


class CallType(IntEnum):
    """EVM call kinds carried by a Solana -> Base call."""

    CALL = 0
    DELEGATE_CALL = 1
    CREATE = 2
    CREATE2 = 3


class AccountRole(Enum):
    """Role of an account in a Solana instruction."""

    READ_ONLY = "read_only"
    WRITABLE = "writable"
    READ_ONLY_SIGNER = "read_only_signer"
    WRITABLE_SIGNER = "writable_signer"

    @classmethod
    def from_flags(cls, is_writable: bool, is_signer: bool) -> "AccountRole":
        if is_writable:
            return cls.WRITABLE_SIGNER if is_signer else cls.WRITABLE
        return cls.READ_ONLY_SIGNER if is_signer else cls.READ_ONLY

    @property
    def is_writable(self) -> bool:
        return self in (AccountRole.WRITABLE, AccountRole.WRITABLE_SIGNER)

    @property
    def is_signer(self) -> bool:
        return self in (AccountRole.READ_ONLY_SIGNER, AccountRole.WRITABLE_SIGNER)


@dataclass(frozen=True)
class ResolvedAccount:
    """One ``(address, role)`` entry of a remaining-accounts list."""

    address: Pubkey
    role: AccountRole

    def to_account_meta(self) -> AccountMeta:
        return AccountMeta(
            pubkey=self.address,
            is_signer=self.role.is_signer,
            is_writable=self.role.is_writable,
        )


# Incoming (Base -> Solana)


@dataclass(frozen=True)
class IxAccount:
    """Account reference inside a bridged Solana instruction."""

    pubkey: Pubkey
    is_writable: bool
    is_signer: bool


@dataclass(frozen=True)
class Ix:
    """Solana instruction carried by an incoming message."""

    program_id: Pubkey
    accounts: Tuple[IxAccount, ...] = ()
    data: bytes = b""


@dataclass(frozen=True)
class SolTransfer:
    """Native SOL released from the bridge vault."""

    to: Pubkey
    amount: int


@dataclass(frozen=True)
class SplTransfer:
    """SPL token released from a token vault."""

    remote_token: bytes
    local_token: Pubkey
    to: Pubkey
    amount: int


@dataclass(frozen=True)
class WrappedTokenTransfer:
    """Wrapped Base token minted on Solana."""

    local_token: Pubkey
    to: Pubkey
    amount: int


TransferKind = Union[SolTransfer, SplTransfer, WrappedTokenTransfer]


@dataclass(frozen=True)
class IncomingCall:
    """Arbitrary instructions executed through the sender's CPI authority."""

    ixs: Tuple[Ix, ...]


@dataclass(frozen=True)
class IncomingTransfer:
    """Token transfer with optional follow-up instructions."""

    transfer: TransferKind
    ixs: Tuple[Ix, ...] = ()


IncomingPayload = Union[IncomingCall, IncomingTransfer]


@dataclass(frozen=True)
class IncomingMessage:
    """Incoming message account created by ``prove_message``."""

    sender: bytes
    message: IncomingPayload
    executed: bool = False


# Outgoing (Solana -> Base)


@dataclass(frozen=True)
class EvmCall:
    """EVM call attached to an outgoing message."""

    ty: CallType
    to: bytes
    value: int
    data: bytes = b""


@dataclass(frozen=True)
class OutgoingTransfer:
    """Token bridged from Solana to Base, optionally followed by a call."""

    to: bytes
    local_token: Pubkey
    remote_token: bytes
    amount: int
    call: Optional[EvmCall] = None


OutgoingPayload = Union[EvmCall, OutgoingTransfer]


@dataclass(frozen=True)
class OutgoingMessage:
    """Outgoing message account written by the Solana bridge program."""

    nonce: int
    sender: Pubkey
    message: OutgoingPayload


@dataclass(frozen=True)
class EvmMessage:
    """Canonical Base ``IncomingMessage`` tuple with its hashes."""

    outgoing_message_pubkey: bytes
    nonce: int
    sender: bytes
    gas_limit: int
    ty: MessageType
    data: bytes
    inner_hash: bytes = b""
    outer_hash: bytes = b""

    def as_abi_tuple(self) -> Tuple[bytes, int, bytes, int, int, bytes]:
        """Tuple in the field order of the Base contract struct."""
        return (
            self.outgoing_message_pubkey,
            self.nonce,
            self.sender,
            self.gas_limit,
            int(self.ty),
            self.data,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outgoing_message_pubkey": "0x" + self.outgoing_message_pubkey.hex(),
            "nonce": self.nonce,
            "sender": "0x" + self.sender.hex(),
            "gas_limit": self.gas_limit,
            "ty": self.ty.name,
            "data": "0x" + self.data.hex(),
            "inner_hash": "0x" + self.inner_hash.hex(),
            "outer_hash": "0x" + self.outer_hash.hex(),
        }


# Relay outcomes


@dataclass(frozen=True)
class ProvenMessage:
    """Proof material for one Base -> Solana message."""

    nonce: int
    sender: bytes
    data: bytes
    proof: Tuple[bytes, ...]
    message_hash: bytes
    block_number: int
    checkpoint: int
    message_pda: Pubkey
    output_root_pda: Pubkey


class RelayDirection(Enum):
    BASE_TO_SOLANA = "base_to_solana"
    SOLANA_TO_BASE = "solana_to_base"


class RelayStatus(Enum):
    """Outcome of one relay step."""

    PROVEN = "proven"
    ALREADY_PROVEN = "already_proven"
    EXECUTED = "executed"
    ALREADY_EXECUTED = "already_executed"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    FAILED = "failed"


@dataclass(frozen=True)
class RelayResult:
    """Result of a relay flow."""

    direction: RelayDirection
    message_hash: bytes
    status: RelayStatus
    signature: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def message_hash_hex(self) -> str:
        return "0x" + self.message_hash.hex()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "message_hash": self.message_hash_hex,
            "status": self.status.value,
            "signature": self.signature,
            "metadata": self.metadata,
        }
