"""
Token issuance: mint creation, initial supply, metadata and registry hand-off.
"""

from dataclasses import dataclass, field

import aiohttp

from core.amounts import to_positive_base_units
from core.errors import TokenServiceError
from core.finalizer import TransactionFinalizer
from core.pubkeys import TOKEN_DECIMALS
from core.wallet import resolve_signing_identity
from interfaces.core import IssuanceResult, MetadataFields, TokenIssued, TokenRecord
from registry.dispatcher import RegistryDispatcher
from tokens.metadata import build_metadata_instruction, derive_metadata_address
from tokens.metadata_validator import validate_metadata_uri
from tokens.provisioner import AccountProvisioner
from tokens.validation import (
    check_name,
    check_seller_fee_basis_points,
    check_symbol,
    check_uri,
)
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenSettings:
    """Per-deployment settings applied to every issued token."""

    metadata_uri: str
    logo_uri: str = ""
    website: str = ""
    decimals: int = TOKEN_DECIMALS
    seller_fee_basis_points: int = 0
    is_mutable: bool = True
    tags: tuple[str, ...] = field(default_factory=tuple)
    validate_metadata_uri: bool = True


class TokenIssuer:
    """Orchestrates the issuance of a new fungible token."""

    def __init__(
        self,
        finalizer: TransactionFinalizer,
        provisioner: AccountProvisioner,
        settings: TokenSettings,
        dispatcher: RegistryDispatcher | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ):
        """Initialize the issuer.

        Args:
            finalizer: Submits and confirms the metadata transaction
            provisioner: Creates the mint, token account and supply
            settings: Metadata URI, decimals and registry fields
            dispatcher: Receives TokenIssued events, optional
            http_session: Session for the metadata document check
        """
        self.finalizer = finalizer
        self.provisioner = provisioner
        self.settings = settings
        self.dispatcher = dispatcher
        self.http_session = http_session

    async def issue(
        self, secret: bytes, name: str, symbol: str, quantity: float
    ) -> IssuanceResult:
        """Create a mint, mint `quantity` tokens to the signer and attach metadata.

        Args:
            secret: 64-byte signer secret
            name: Token name, at most 32 characters
            symbol: Token symbol, at most 10 characters
            quantity: Initial supply in whole tokens

        Returns:
            Addresses and signature of the confirmed issuance

        Raises:
            InvalidInput: If a field or the secret is malformed
            InsufficientFunds: If the signer cannot fund the mint account
            LedgerSubmissionError: If a transaction is rejected
            ConfirmationTimeout: If a transaction is not confirmed in time
        """
        check_name(name)
        check_symbol(symbol)
        amount = to_positive_base_units(quantity, self.settings.decimals)
        check_uri(self.settings.metadata_uri)
        check_seller_fee_basis_points(self.settings.seller_fee_basis_points)
        wallet = resolve_signing_identity(secret)

        if self.settings.validate_metadata_uri and self.http_session is not None:
            await validate_metadata_uri(
                self.http_session, self.settings.metadata_uri, name, symbol
            )

        logger.info(
            f"Issuing {quantity} {symbol} ({name}) as {amount} base units for {wallet.pubkey}"
        )
        mint = await self.provisioner.ensure_mint(wallet)

        try:
            token_account = await self.provisioner.ensure_associated_account(
                mint, wallet.pubkey, wallet
            )
            minted = await self.provisioner.mint_supply(
                mint, token_account, wallet, quantity, self.settings.decimals
            )

            fields = MetadataFields(
                name=name,
                symbol=symbol,
                uri=self.settings.metadata_uri,
                seller_fee_basis_points=self.settings.seller_fee_basis_points,
                is_mutable=self.settings.is_mutable,
            )
            metadata_address = derive_metadata_address(mint)
            instruction = build_metadata_instruction(
                mint, metadata_address, wallet.pubkey, fields
            )
            signature = await self.finalizer.finalize(
                [instruction], wallet.pubkey, [wallet.keypair]
            )
        except TokenServiceError as e:
            # the mint already exists on chain; keep its address for operators
            e.detail.setdefault("mint", mint)
            logger.error(f"Issuance of {mint} failed after mint creation: {e.message}")
            raise

        logger.info(f"Metadata {metadata_address} attached to {mint}: {signature}")

        result = IssuanceResult(
            mint_address=mint,
            token_account_address=token_account,
            metadata_address=metadata_address,
            metadata_uri=self.settings.metadata_uri,
            base_units_minted=minted,
            signature=signature,
        )
        if self.dispatcher is not None:
            result.registry_scheduled = self.dispatcher.publish(
                TokenIssued(self._token_record(result, name, symbol))
            )
        return result

    def _token_record(self, result: IssuanceResult, name: str, symbol: str) -> TokenRecord:
        return TokenRecord(
            mint=str(result.mint_address),
            name=name,
            symbol=symbol,
            uri=result.metadata_uri,
            decimals=self.settings.decimals,
            logo_uri=self.settings.logo_uri,
            website=self.settings.website,
            seller_fee_basis_points=self.settings.seller_fee_basis_points,
            tags=list(self.settings.tags),
        )
