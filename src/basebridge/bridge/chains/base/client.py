"""
Base RPC client for the bridge contracts.

Wraps ``web3.AsyncWeb3`` and exposes the bridge and validator reads, the
``MessageInitiated`` event decoding and the ``relayMessages`` write used by
the relay flows. RPC failures are raised as ``NetworkError``.
"""

from typing import Any, Awaitable, Dict, List, Optional, Sequence, Tuple

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import (
    ContractLogicError,
    LogTopicError,
    MismatchedABI,
    TimeExhausted,
    TransactionNotFound,
    Web3Exception,
)

from ....config import BaseConfig
from ....errors import NetworkError, TransactionError, ValidationError
from ....logging import get_logger
from .abi import BRIDGE_ABI, BRIDGE_VALIDATOR_ABI

logger = get_logger(__name__)

BlockIdentifier = Any


class BaseBridgeClient:
    """Base bridge contract client."""

    def __init__(
        self,
        config: BaseConfig,
        w3: Optional[AsyncWeb3] = None,
        account: Optional[LocalAccount] = None,
        receipt_timeout: float = 120.0,
    ):
        self.config = config
        self.w3 = w3 or AsyncWeb3(AsyncHTTPProvider(config.rpc_url))
        self.account = account
        self.receipt_timeout = receipt_timeout
        self.bridge = self.w3.eth.contract(
            address=Web3.to_checksum_address(config.bridge_contract), abi=BRIDGE_ABI
        )

    @classmethod
    def from_private_key(cls, config: BaseConfig, private_key: str, **kwargs) -> "BaseBridgeClient":
        return cls(config, account=Account.from_key(private_key), **kwargs)

    async def _rpc(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except ContractLogicError as e:
            raise TransactionError(
                f"{operation} reverted: {e}",
                transaction_type=operation,
                step=operation,
                cause=e,
            ) from e
        except Web3Exception as e:
            raise NetworkError(
                f"{operation} failed: {e}",
                endpoint=self.config.rpc_url,
                step=operation,
                cause=e,
            ) from e

    # Reads

    async def get_receipt(self, tx_hash: str) -> Any:
        try:
            return await self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound as e:
            raise ValidationError(
                f"Transaction {tx_hash} not found on Base",
                field="transaction_hash",
                value=tx_hash,
                step="get_receipt",
                cause=e,
            ) from e
        except Web3Exception as e:
            raise NetworkError(
                f"Failed to fetch receipt {tx_hash}: {e}",
                endpoint=self.config.rpc_url,
                step="get_receipt",
                cause=e,
            ) from e

    def decode_message_initiated(self, receipt: Any) -> List[Dict[str, Any]]:
        """Decode every ``MessageInitiated`` log emitted by the bridge in ``receipt``."""
        event = self.bridge.events.MessageInitiated()
        bridge_address = self.bridge.address.lower()
        decoded = []
        for log in receipt["logs"]:
            if str(log["address"]).lower() != bridge_address:
                continue
            try:
                decoded.append(event.process_log(log))
            except (MismatchedABI, LogTopicError):
                continue
        return decoded

    async def generate_proof(self, nonce: int, block_identifier: BlockIdentifier) -> List[bytes]:
        proof = await self._rpc(
            "generateProof",
            self.bridge.functions.generateProof(nonce).call(block_identifier=block_identifier),
        )
        return [bytes(node) for node in proof]

    async def get_message_hash(self, message: Tuple) -> bytes:
        result = await self._rpc(
            "getMessageHash", self.bridge.functions.getMessageHash(message).call()
        )
        return bytes(result)

    async def bridge_validator(self) -> str:
        return await self._rpc(
            "BRIDGE_VALIDATOR", self.bridge.functions.BRIDGE_VALIDATOR().call()
        )

    async def is_approved(self, validator: str, message_hash: bytes) -> bool:
        contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(validator), abi=BRIDGE_VALIDATOR_ABI
        )
        return await self._rpc(
            "validMessages", contract.functions.validMessages(message_hash).call()
        )

    async def is_successful(self, message_hash: bytes) -> bool:
        return await self._rpc(
            "successes", self.bridge.functions.successes(message_hash).call()
        )

    async def is_failed(self, message_hash: bytes) -> bool:
        return await self._rpc(
            "failures", self.bridge.functions.failures(message_hash).call()
        )

    # Writes

    async def relay_messages(self, messages: Sequence[Tuple]) -> str:
        """Send ``relayMessages(messages)`` and wait for the receipt."""
        if self.account is None:
            raise ValidationError(
                "An EVM account is required to relay messages on Base",
                field="account",
                step="relay_messages",
            )
        sender = self.account.address
        nonce = await self._rpc("eth_getTransactionCount", self.w3.eth.get_transaction_count(sender))
        tx = await self._rpc(
            "relayMessages",
            self.bridge.functions.relayMessages(list(messages)).build_transaction(
                {"from": sender, "nonce": nonce, "chainId": self.config.chain_id}
            ),
        )
        signed = self.account.sign_transaction(tx)
        tx_hash = await self._rpc(
            "eth_sendRawTransaction", self.w3.eth.send_raw_transaction(signed.raw_transaction)
        )
        tx_hex = Web3.to_hex(tx_hash)
        logger.info(f"Sent relayMessages transaction {tx_hex}")

        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except TimeExhausted as e:
            raise TransactionError(
                f"relayMessages transaction {tx_hex} not mined after {self.receipt_timeout}s",
                transaction_id=tx_hex,
                transaction_type="relayMessages",
                retryable=True,
                cause=e,
            ) from e
        if receipt["status"] != 1:
            raise TransactionError(
                f"relayMessages transaction {tx_hex} reverted",
                transaction_id=tx_hex,
                transaction_type="relayMessages",
            )
        return tx_hex
