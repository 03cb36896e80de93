"""
Mint and associated token account provisioning.
"""

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account
from spl.token.instructions import (
    InitializeMintParams,
    MintToParams,
    create_associated_token_account,
    get_associated_token_address,
    initialize_mint,
    mint_to,
)

from core.amounts import to_positive_base_units
from core.client import LedgerClient
from core.errors import InsufficientFunds
from core.finalizer import TransactionFinalizer
from core.pubkeys import (
    LAMPORTS_PER_SOL,
    MINT_ACCOUNT_SIZE,
    TOKEN_DECIMALS,
    SystemAddresses,
)
from core.wallet import Wallet
from utils.logger import get_logger

logger = get_logger(__name__)


class AccountProvisioner:
    """Creates mints, associated token accounts and initial supply."""

    def __init__(
        self,
        client: LedgerClient,
        finalizer: TransactionFinalizer,
        decimals: int = TOKEN_DECIMALS,
    ):
        """Initialize the provisioner.

        Args:
            client: Ledger client for RPC calls
            finalizer: Submits and confirms transactions
            decimals: Decimal precision of newly created mints
        """
        self.client = client
        self.finalizer = finalizer
        self.decimals = decimals

    async def check_rent_balance(self, payer: Pubkey) -> int:
        """Ensure the payer can fund a rent-exempt mint account.

        Returns:
            Rent-exempt reserve in lamports for a mint account

        Raises:
            InsufficientFunds: If the payer's balance is below the reserve
        """
        rent = await self.client.get_minimum_balance_for_rent_exemption(MINT_ACCOUNT_SIZE)
        balance = await self.client.get_balance(payer)
        if balance < rent:
            raise InsufficientFunds(
                f"Insufficient SOL balance: need ~{rent / LAMPORTS_PER_SOL:.9f} SOL, "
                f"available {balance / LAMPORTS_PER_SOL:.9f} SOL",
                account=payer,
                required_lamports=rent,
                balance_lamports=balance,
            )
        return rent

    async def ensure_mint(self, authority: Wallet) -> Pubkey:
        """Create a new mint with the authority as mint authority and no freeze authority.

        Args:
            authority: Pays for the account and controls supply

        Returns:
            Address of the new mint
        """
        rent = await self.check_rent_balance(authority.pubkey)

        mint_keypair = Keypair()
        mint = mint_keypair.pubkey()
        logger.info(f"Creating mint {mint} with {self.decimals} decimals")

        instructions = [
            create_account(
                CreateAccountParams(
                    from_pubkey=authority.pubkey,
                    to_pubkey=mint,
                    lamports=rent,
                    space=MINT_ACCOUNT_SIZE,
                    owner=SystemAddresses.TOKEN_PROGRAM,
                )
            ),
            initialize_mint(
                InitializeMintParams(
                    decimals=self.decimals,
                    program_id=SystemAddresses.TOKEN_PROGRAM,
                    mint=mint,
                    mint_authority=authority.pubkey,
                    freeze_authority=None,
                )
            ),
        ]
        await self.finalizer.finalize(
            instructions, authority.pubkey, [authority.keypair, mint_keypair]
        )
        logger.info(f"Mint created: {mint}")
        return mint

    async def ensure_associated_account(
        self, mint: Pubkey, owner: Pubkey, payer: Wallet
    ) -> Pubkey:
        """Return the owner's associated token account, creating it if absent.

        Idempotent: an existing account is returned without submitting anything.

        Args:
            mint: Token mint address
            owner: Wallet that will own the account
            payer: Pays rent and fees if the account must be created

        Returns:
            Associated token account address
        """
        address = get_associated_token_address(owner, mint)
        if await self.client.get_account_info(address) is not None:
            logger.info(f"Associated token account {address} already exists")
            return address

        logger.info(f"Creating associated token account {address} for owner {owner}")
        instruction = create_associated_token_account(payer.pubkey, owner, mint)
        await self.finalizer.finalize([instruction], payer.pubkey, [payer.keypair])
        return address

    async def mint_supply(
        self,
        mint: Pubkey,
        account: Pubkey,
        authority: Wallet,
        quantity: float,
        decimals: int | None = None,
    ) -> int:
        """Mint `quantity` tokens into `account`.

        Args:
            mint: Token mint address
            account: Destination token account
            authority: Mint authority
            quantity: Human-readable amount
            decimals: Mint precision, defaults to the provisioner's

        Returns:
            Amount minted in base units

        Raises:
            InvalidQuantity: If quantity is not positive
        """
        decimals = self.decimals if decimals is None else decimals
        amount = to_positive_base_units(quantity, decimals)

        instruction = mint_to(
            MintToParams(
                program_id=SystemAddresses.TOKEN_PROGRAM,
                mint=mint,
                dest=account,
                mint_authority=authority.pubkey,
                amount=amount,
            )
        )
        await self.finalizer.finalize([instruction], authority.pubkey, [authority.keypair])
        logger.info(f"Minted {amount} base units of {mint} into {account}")
        return amount
