"""
Signing identity derived from raw secret key material.
"""

import json

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.instructions import get_associated_token_address

from core.errors import InvalidInput, InvalidKeyLength

SECRET_KEY_LENGTH = 64


class Wallet:
    """Signing identity used as fee payer and token authority."""

    def __init__(self, secret: bytes):
        """Initialize wallet from a 64-byte secret (32-byte seed + 32-byte pubkey).

        Args:
            secret: Raw secret key bytes

        Raises:
            InvalidKeyLength: If secret is not exactly 64 bytes
        """
        self._keypair = self._load_keypair(secret)

    @property
    def pubkey(self) -> Pubkey:
        """Get the public key of the wallet."""
        return self._keypair.pubkey()

    @property
    def keypair(self) -> Keypair:
        """Get the keypair for signing transactions."""
        return self._keypair

    def sign(self, payload: bytes) -> Signature:
        """Sign an arbitrary byte payload."""
        return self._keypair.sign_message(payload)

    def get_associated_token_address(self, mint: Pubkey) -> Pubkey:
        """Get the associated token account address for a mint.

        Args:
            mint: Token mint address

        Returns:
            Associated token account address
        """
        return get_associated_token_address(self.pubkey, mint)

    @staticmethod
    def _load_keypair(secret: bytes) -> Keypair:
        if len(secret) != SECRET_KEY_LENGTH:
            raise InvalidKeyLength(
                f"Secret key must be {SECRET_KEY_LENGTH} bytes, got {len(secret)}",
                length=len(secret),
            )
        try:
            return Keypair.from_bytes(bytes(secret))
        except ValueError as e:
            # seed and embedded public key do not match
            raise InvalidKeyLength(f"Secret key is not a valid keypair: {e!s}") from e


def resolve_signing_identity(secret: bytes | bytearray | list[int]) -> Wallet:
    """Convert raw secret bytes into a signing identity. No network access."""
    if isinstance(secret, list):
        try:
            secret = bytes(secret)
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"Secret key must be a list of byte values: {e!s}") from e
    return Wallet(bytes(secret))


def parse_secret(text: str) -> bytes:
    """Decode a configured secret key.

    Accepts a JSON array of integers (as exported by solana-keygen) or a
    base58 string.

    Args:
        text: Encoded secret key

    Returns:
        Raw secret bytes (length is not checked here)
    """
    text = text.strip()
    if text.startswith("["):
        try:
            values = json.loads(text)
            return bytes(values)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            raise InvalidInput(f"Secret key JSON array is malformed: {e!s}") from e
    try:
        return base58.b58decode(text)
    except ValueError as e:
        raise InvalidInput(f"Secret key is not valid base58: {e!s}") from e
