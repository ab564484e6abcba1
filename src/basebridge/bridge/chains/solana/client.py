"""
Solana RPC client used by the relayer.

Thin async wrapper over ``solana.rpc.async_api.AsyncClient`` exposing only
the reads and writes the relay flows need. RPC failures are raised as
``NetworkError`` and transaction failures as ``TransactionError``.
"""

from typing import Optional, Tuple

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TxOpts
from solders.account import Account
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from ....config import SolanaConfig
from ....errors import NetworkError, TransactionError
from ....logging import get_logger

logger = get_logger(__name__)


class SolanaClient:
    """Solana RPC client."""

    def __init__(self, config: SolanaConfig, rpc: Optional[AsyncClient] = None):
        """Initialize Solana RPC client."""
        self.config = config
        self.commitment = Commitment(config.commitment)
        self.rpc = rpc or AsyncClient(config.rpc_url, commitment=self.commitment)

    async def __aenter__(self) -> "SolanaClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self.rpc.close()

    async def get_account(self, address: Pubkey) -> Optional[Account]:
        """Get account information, ``None`` if the account does not exist."""
        try:
            response = await self.rpc.get_account_info(address, commitment=self.commitment)
        except SolanaRpcException as e:
            raise NetworkError(
                f"Failed to fetch account {address}: {e}",
                endpoint=self.config.rpc_url,
                cause=e,
            ) from e
        return response.value

    async def get_account_data(self, address: Pubkey) -> Optional[bytes]:
        account = await self.get_account(address)
        return None if account is None else bytes(account.data)

    async def get_account_owner(self, address: Pubkey) -> Optional[Pubkey]:
        account = await self.get_account(address)
        return None if account is None else account.owner

    async def get_latest_blockhash(self) -> Tuple[Hash, int]:
        """Latest blockhash and the last block height it is valid for."""
        try:
            response = await self.rpc.get_latest_blockhash(commitment=self.commitment)
        except SolanaRpcException as e:
            raise NetworkError(
                f"Failed to fetch latest blockhash: {e}",
                endpoint=self.config.rpc_url,
                cause=e,
            ) from e
        return response.value.blockhash, response.value.last_valid_block_height

    async def send_and_confirm(
        self, raw_transaction: bytes, last_valid_block_height: Optional[int] = None
    ) -> str:
        """Send a signed transaction and wait for the configured commitment."""
        try:
            response = await self.rpc.send_raw_transaction(
                raw_transaction,
                opts=TxOpts(skip_confirmation=True, preflight_commitment=self.commitment),
            )
        except (SolanaRpcException, RPCException) as e:
            raise TransactionError(
                f"Transaction submission failed: {e}",
                transaction_type="send",
                cause=e,
            ) from e

        signature: Signature = response.value
        logger.debug(f"Sent transaction {signature}, awaiting {self.commitment}")

        try:
            confirmation = await self.rpc.confirm_transaction(
                signature,
                commitment=self.commitment,
                last_valid_block_height=last_valid_block_height,
            )
        except (
            SolanaRpcException,
            UnconfirmedTxError,
            TransactionExpiredBlockheightExceededError,
        ) as e:
            raise TransactionError(
                f"Transaction {signature} was not confirmed: {e}",
                transaction_id=str(signature),
                transaction_type="confirm",
                cause=e,
            ) from e

        status = confirmation.value[0] if confirmation.value else None
        if status is not None and status.err is not None:
            raise TransactionError(
                f"Transaction {signature} failed: {status.err}",
                transaction_id=str(signature),
                transaction_type="confirm",
            )
        return str(signature)
