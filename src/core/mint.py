"""
SPL mint account layout and decoding.
"""

from dataclasses import dataclass

from construct import Bytes, Flag, Int8ul, Int32ul, Int64ul, Struct
from solders.pubkey import Pubkey

from core.pubkeys import MINT_ACCOUNT_SIZE

MINT_LAYOUT = Struct(
    "mint_authority_option" / Int32ul,
    "mint_authority" / Bytes(32),
    "supply" / Int64ul,
    "decimals" / Int8ul,
    "is_initialized" / Flag,
    "freeze_authority_option" / Int32ul,
    "freeze_authority" / Bytes(32),
)


@dataclass
class MintState:
    """Decoded state of an SPL mint account."""

    supply: int
    decimals: int
    is_initialized: bool
    mint_authority: Pubkey | None
    freeze_authority: Pubkey | None

    @classmethod
    def from_bytes(cls, data: bytes) -> "MintState":
        """Decode raw mint account data.

        Args:
            data: Account data, at least 82 bytes

        Returns:
            Decoded mint state

        Raises:
            ValueError: If the data is too short to be a mint
        """
        if len(data) < MINT_ACCOUNT_SIZE:
            raise ValueError(
                f"Mint account data must be at least {MINT_ACCOUNT_SIZE} bytes, got {len(data)}"
            )
        parsed = MINT_LAYOUT.parse(data[:MINT_ACCOUNT_SIZE])
        return cls(
            supply=parsed.supply,
            decimals=parsed.decimals,
            is_initialized=parsed.is_initialized,
            mint_authority=(
                Pubkey.from_bytes(parsed.mint_authority)
                if parsed.mint_authority_option
                else None
            ),
            freeze_authority=(
                Pubkey.from_bytes(parsed.freeze_authority)
                if parsed.freeze_authority_option
                else None
            ),
        )
