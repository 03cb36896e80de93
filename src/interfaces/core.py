"""
Core types shared by the issuance, transfer and registry components.

This module defines the value objects passed between components and the
abstract registry interface the issuance flow reports to.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from solders.pubkey import Pubkey
from solders.signature import Signature

MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200
MAX_SELLER_FEE_BASIS_POINTS = 10_000


@dataclass(frozen=True)
class MetadataFields:
    """Fields written into the on-chain metadata record."""

    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int = 0
    is_mutable: bool = True


@dataclass
class TokenRecord:
    """Token entry proposed to the community token list."""

    mint: str
    name: str
    symbol: str
    uri: str
    decimals: int
    logo_uri: str
    website: str
    seller_fee_basis_points: int = 0
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON document committed to the registry."""
        return {
            "mint": self.mint,
            "name": self.name,
            "symbol": self.symbol,
            "uri": self.uri,
            "sellerFeeBasisPoints": self.seller_fee_basis_points,
            "creators": None,
            "collection": None,
            "uses": None,
            "decimals": self.decimals,
            "logoURI": self.logo_uri,
            "extensions": {"website": self.website},
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class TokenIssued:
    """Event published once a token is confirmed on chain."""

    record: TokenRecord


@dataclass
class ProposalHandle:
    """Reference to a pull request opened against the registry."""

    branch: str
    path: str
    number: int
    url: str


@dataclass
class IssuanceResult:
    """Outcome of a confirmed token issuance."""

    mint_address: Pubkey
    token_account_address: Pubkey
    metadata_address: Pubkey
    metadata_uri: str
    base_units_minted: int
    signature: Signature
    registry_scheduled: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses.

        Returns:
            Dictionary representation of the issuance result
        """
        return {
            "mintAddress": str(self.mint_address),
            "tokenAccountAddress": str(self.token_account_address),
            "metadataAddress": str(self.metadata_address),
            "metadataUri": self.metadata_uri,
            "baseUnitsMinted": self.base_units_minted,
            "signature": str(self.signature),
            "registryScheduled": self.registry_scheduled,
        }


class RegistryClient(ABC):
    """Abstract interface for proposing tokens to an external registry."""

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether a credential is configured."""
        pass

    @abstractmethod
    async def propose_addition(self, record: TokenRecord) -> ProposalHandle | None:
        """Propose a token to the registry.

        Best-effort: implementations log failures and return None instead
        of raising.

        Args:
            record: Finalized token data

        Returns:
            Handle of the opened pull request, or None
        """
        pass
