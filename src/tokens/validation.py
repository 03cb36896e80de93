"""
Field checks shared by the HTTP schemas and the issuance flow.

The metadata program bounds name, symbol and URI by their UTF-8 encoded
size, so a limit holds for both the character count and the byte count.
"""

from core.errors import InvalidInput, InvalidName, InvalidSymbol
from interfaces.core import (
    MAX_NAME_LENGTH,
    MAX_SELLER_FEE_BASIS_POINTS,
    MAX_SYMBOL_LENGTH,
    MAX_URI_LENGTH,
)


def _encoded_length(value: str) -> int:
    return len(value.encode("utf-8"))


def check_name(name: str) -> None:
    if not isinstance(name, str) or not name:
        raise InvalidName("Name must be a non-empty string", name=name)
    if len(name) > MAX_NAME_LENGTH or _encoded_length(name) > MAX_NAME_LENGTH:
        raise InvalidName(
            f"Name must be at most {MAX_NAME_LENGTH} characters ({MAX_NAME_LENGTH} bytes as UTF-8)",
            name=name,
        )


def check_symbol(symbol: str) -> None:
    if not isinstance(symbol, str) or not symbol:
        raise InvalidSymbol("Symbol must be a non-empty string", symbol=symbol)
    if len(symbol) > MAX_SYMBOL_LENGTH or _encoded_length(symbol) > MAX_SYMBOL_LENGTH:
        raise InvalidSymbol(
            f"Symbol must be at most {MAX_SYMBOL_LENGTH} characters "
            f"({MAX_SYMBOL_LENGTH} bytes as UTF-8)",
            symbol=symbol,
        )


def check_uri(uri: str) -> None:
    if not isinstance(uri, str) or not uri:
        raise InvalidInput("Metadata URI must be a non-empty string", uri=uri)
    if _encoded_length(uri) > MAX_URI_LENGTH:
        raise InvalidInput(
            f"Metadata URI must be at most {MAX_URI_LENGTH} bytes as UTF-8", uri=uri
        )


def check_seller_fee_basis_points(value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput("Seller fee basis points must be an integer", value=value)
    if not 0 <= value <= MAX_SELLER_FEE_BASIS_POINTS:
        raise InvalidInput(
            f"Seller fee basis points must be between 0 and {MAX_SELLER_FEE_BASIS_POINTS}",
            value=value,
        )
