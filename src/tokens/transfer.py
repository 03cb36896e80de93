"""
Transfer of existing tokens between wallets.
"""

from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.instructions import TransferParams, transfer

from core.amounts import check_quantity, to_positive_base_units
from core.client import LedgerClient
from core.errors import InvalidMint, InvalidRecipient
from core.finalizer import TransactionFinalizer
from core.pubkeys import SystemAddresses
from core.wallet import Wallet
from tokens.provisioner import AccountProvisioner
from utils.logger import get_logger

logger = get_logger(__name__)


def parse_address(value: str, error_cls: type[InvalidRecipient] | type[InvalidMint]) -> Pubkey:
    """Parse a base58 ledger address, raising `error_cls` when it is malformed."""
    if not isinstance(value, str) or not value:
        raise error_cls("Address must be a non-empty string", address=value)
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise error_cls(f"Invalid address {value!r}: {e!s}", address=value) from e


class TokenTransferer:
    """Moves tokens from the signer's associated account to a recipient."""

    def __init__(
        self,
        client: LedgerClient,
        finalizer: TransactionFinalizer,
        provisioner: AccountProvisioner,
    ):
        self.client = client
        self.finalizer = finalizer
        self.provisioner = provisioner

    async def transfer(
        self,
        signer: Wallet,
        recipient_address: str,
        mint_address: str,
        quantity: float,
    ) -> Signature:
        """Transfer `quantity` tokens of `mint_address` to `recipient_address`.

        Input is fully validated before the first RPC call. The sender's
        balance is not pre-checked; the network rejects overdrafts.

        Args:
            signer: Owner of the source account, pays all fees
            recipient_address: Recipient wallet address
            mint_address: Token mint address
            quantity: Human-readable amount

        Returns:
            Confirmed transaction signature

        Raises:
            InvalidQuantity: If quantity is not positive
            InvalidRecipient: If the recipient address is malformed
            InvalidMint: If the mint address is malformed or not a mint
            LedgerSubmissionError: If the transfer is rejected
        """
        check_quantity(quantity)
        recipient = parse_address(recipient_address, InvalidRecipient)
        mint = parse_address(mint_address, InvalidMint)

        decimals = await self.client.get_mint_decimals(mint)
        amount = to_positive_base_units(quantity, decimals)

        source = signer.get_associated_token_address(mint)
        destination = await self.provisioner.ensure_associated_account(
            mint, recipient, signer
        )

        instruction = transfer(
            TransferParams(
                program_id=SystemAddresses.TOKEN_PROGRAM,
                source=source,
                dest=destination,
                owner=signer.pubkey,
                amount=amount,
            )
        )
        logger.info(
            f"Transferring {amount} base units of {mint} from {source} to {destination}"
        )
        signature = await self.finalizer.finalize(
            [instruction], signer.pubkey, [signer.keypair]
        )
        logger.info(f"Transfer confirmed: {signature}")
        return signature
