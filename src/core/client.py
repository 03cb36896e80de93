"""
Solana RPC adapter for the token service.

Every ledger round-trip the service makes goes through LedgerClient. RPC
failures are translated into the service error taxonomy here so callers
never see solana-py exception types.
"""

import asyncio
from typing import Any

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
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
from solders.transaction import VersionedTransaction

from core.errors import ConfirmationTimeout, InvalidMint, LedgerSubmissionError
from core.mint import MintState
from core.pubkeys import TOKEN_PROGRAM
from utils.logger import get_logger

logger = get_logger(__name__)


def _rpc_reason(error: RPCException) -> str:
    """Extract the node's rejection message from an RPCException."""
    if not error.args:
        return str(error)
    payload: Any = error.args[0]
    message = getattr(payload, "message", None)
    if message:
        return str(message)
    if isinstance(payload, dict) and "message" in payload:
        return str(payload["message"])
    return str(payload)


class LedgerClient:
    """Thin async wrapper around the Solana JSON-RPC client."""

    def __init__(
        self,
        rpc_endpoint: str,
        commitment: Commitment = Confirmed,
        confirm_timeout: float = 60.0,
        client: AsyncClient | None = None,
    ):
        """Initialize the ledger client.

        Args:
            rpc_endpoint: URL of the Solana RPC endpoint
            commitment: Commitment used for reads and confirmation
            confirm_timeout: Seconds to wait for confirmation before giving up
            client: Pre-built AsyncClient, mostly for tests
        """
        self.rpc_endpoint = rpc_endpoint
        self.commitment = commitment
        self.confirm_timeout = confirm_timeout
        self._client = client

    async def get_client(self) -> AsyncClient:
        """Get or create the AsyncClient instance."""
        if self._client is None:
            self._client = AsyncClient(self.rpc_endpoint, commitment=self.commitment)
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP connection."""
        if self._client:
            await self._client.close()
            self._client = None

    async def get_balance(self, pubkey: Pubkey) -> int:
        """Get the lamport balance of an account."""
        client = await self.get_client()
        try:
            response = await client.get_balance(pubkey, commitment=self.commitment)
        except Exception as e:
            raise LedgerSubmissionError(
                f"Balance query failed: {e!s}", operation="getBalance", account=pubkey
            ) from e
        return response.value

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        """Get the rent-exempt reserve in lamports for an account of `size` bytes."""
        client = await self.get_client()
        try:
            response = await client.get_minimum_balance_for_rent_exemption(
                size, commitment=self.commitment
            )
        except Exception as e:
            raise LedgerSubmissionError(
                f"Rent exemption query failed: {e!s}",
                operation="getMinimumBalanceForRentExemption",
            ) from e
        return response.value

    async def get_latest_blockhash(self) -> tuple[Hash, int]:
        """Get the latest blockhash.

        Returns:
            Blockhash and the last block height at which it is still valid
        """
        client = await self.get_client()
        try:
            response = await client.get_latest_blockhash(commitment=self.commitment)
        except Exception as e:
            raise LedgerSubmissionError(
                f"Blockhash fetch failed: {e!s}", operation="getLatestBlockhash"
            ) from e
        return response.value.blockhash, response.value.last_valid_block_height

    async def get_account_info(self, pubkey: Pubkey) -> Account | None:
        """Get account info, or None when no account exists at the address."""
        client = await self.get_client()
        try:
            response = await client.get_account_info(
                pubkey, commitment=self.commitment, encoding="base64"
            )
        except Exception as e:
            raise LedgerSubmissionError(
                f"Account query failed: {e!s}", operation="getAccountInfo", account=pubkey
            ) from e
        return response.value

    async def get_mint_decimals(self, mint: Pubkey) -> int:
        """Read the decimal precision of a mint from the ledger.

        Raises:
            InvalidMint: If no token-program mint exists at the address
        """
        account = await self.get_account_info(mint)
        if account is None:
            raise InvalidMint(f"Mint {mint} not found", mint=mint)
        if account.owner != TOKEN_PROGRAM:
            raise InvalidMint(
                f"Account {mint} is not owned by the token program", mint=mint
            )
        try:
            state = MintState.from_bytes(bytes(account.data))
        except ValueError as e:
            raise InvalidMint(f"Account {mint} is not a mint: {e!s}", mint=mint) from e
        if not state.is_initialized:
            raise InvalidMint(f"Mint {mint} is not initialized", mint=mint)
        return state.decimals

    async def send_transaction(
        self, transaction: VersionedTransaction, skip_preflight: bool = False
    ) -> Signature:
        """Submit a signed transaction.

        Raises:
            LedgerSubmissionError: If the node rejects the transaction
        """
        client = await self.get_client()
        opts = TxOpts(skip_preflight=skip_preflight, preflight_commitment=self.commitment)
        try:
            response = await client.send_transaction(transaction, opts)
        except RPCException as e:
            reason = _rpc_reason(e)
            logger.error(f"Transaction rejected: {reason}")
            raise LedgerSubmissionError(
                f"Transaction rejected: {reason}", operation="sendTransaction"
            ) from e
        except Exception as e:
            raise LedgerSubmissionError(
                f"Transaction submission failed: {e!s}", operation="sendTransaction"
            ) from e
        return response.value

    async def confirm_transaction(
        self, signature: Signature, last_valid_block_height: int | None = None
    ) -> None:
        """Wait for a transaction to reach the configured commitment.

        Args:
            signature: Transaction signature
            last_valid_block_height: Block height after which the blockhash expires

        Raises:
            ConfirmationTimeout: If the transaction is not confirmed in time
            LedgerSubmissionError: If the transaction landed but failed
        """
        client = await self.get_client()
        try:
            response = await asyncio.wait_for(
                client.confirm_transaction(
                    signature,
                    commitment=self.commitment,
                    sleep_seconds=1,
                    last_valid_block_height=last_valid_block_height,
                ),
                timeout=self.confirm_timeout,
            )
        except (
            asyncio.TimeoutError,
            UnconfirmedTxError,
            TransactionExpiredBlockheightExceededError,
        ) as e:
            raise ConfirmationTimeout(
                f"Transaction {signature} was not confirmed: {e!s}",
                signature=signature,
            ) from e
        except RPCException as e:
            raise LedgerSubmissionError(
                f"Confirmation query failed: {_rpc_reason(e)}",
                operation="getSignatureStatuses",
                signature=signature,
            ) from e

        statuses = response.value
        status = statuses[0] if statuses else None
        if status is not None and status.err is not None:
            raise LedgerSubmissionError(
                f"Transaction {signature} failed on chain: {status.err}",
                operation="confirmTransaction",
                signature=signature,
            )
        logger.info(f"Transaction confirmed: {signature}")
