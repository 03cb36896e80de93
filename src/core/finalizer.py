"""
Submit/sign/confirm protocol shared by issuance and transfer flows.
"""

from collections.abc import Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from core.client import LedgerClient
from utils.logger import get_logger

logger = get_logger(__name__)


class TransactionFinalizer:
    """Assembles, signs, submits and confirms transactions.

    No retries happen here. A failed or unconfirmed submission is reported
    to the caller, and every call fetches a fresh blockhash so a retry by
    the caller is always a new transaction.
    """

    def __init__(self, client: LedgerClient, skip_preflight: bool = False):
        """
        Args:
            client: Ledger client for RPC calls
            skip_preflight: Whether to skip simulation before submission
        """
        self.client = client
        self.skip_preflight = skip_preflight

    async def finalize(
        self,
        instructions: Sequence[Instruction],
        fee_payer: Pubkey,
        signers: Sequence[Keypair],
    ) -> Signature:
        """Build, sign, send and confirm a transaction.

        Args:
            instructions: Instructions in execution order
            fee_payer: Account paying the transaction fee
            signers: Keypairs; must cover every required signer

        Returns:
            Confirmed transaction signature

        Raises:
            ValueError: If a required signer is missing
            LedgerSubmissionError: If the network rejects the transaction
            ConfirmationTimeout: If confirmation does not arrive in time
        """
        blockhash, last_valid_block_height = await self.client.get_latest_blockhash()

        message = Message.new_with_blockhash(list(instructions), fee_payer, blockhash)
        transaction = self.to_versioned(message)
        transaction = self.sign(transaction, signers)

        signature = await self.client.send_transaction(
            transaction, skip_preflight=self.skip_preflight
        )
        logger.info(f"Transaction sent: {signature}")

        await self.client.confirm_transaction(signature, last_valid_block_height)
        return signature

    @staticmethod
    def to_versioned(message: Message) -> VersionedTransaction:
        """Wrap a legacy message in an unsigned versioned transaction."""
        placeholder = [Signature.default()] * message.header.num_required_signatures
        return VersionedTransaction.populate(message, placeholder)

    @staticmethod
    def sign(
        transaction: VersionedTransaction, signers: Sequence[Keypair]
    ) -> VersionedTransaction:
        """Sign for every required signer of the message.

        Signers that the message does not require are ignored.
        """
        message = transaction.message
        required = message.account_keys[: message.header.num_required_signatures]
        by_pubkey = {signer.pubkey(): signer for signer in signers}

        missing = [str(pubkey) for pubkey in required if pubkey not in by_pubkey]
        if missing:
            raise ValueError(f"Missing required signers: {', '.join(missing)}")

        payload = to_bytes_versioned(message)
        signatures = [by_pubkey[pubkey].sign_message(payload) for pubkey in required]
        return VersionedTransaction.populate(message, signatures)
