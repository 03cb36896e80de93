"""
Request schemas for the HTTP endpoints.

Each schema validates a raw JSON body and produces a typed request object;
the core only ever receives already-validated requests.
"""

from dataclasses import dataclass
from typing import Any

from core.amounts import check_quantity
from core.errors import InvalidInput, InvalidMint, InvalidRecipient
from tokens.transfer import parse_address
from tokens.validation import check_name, check_symbol


def _require(data: Any, fields: tuple[str, ...]) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    missing = [name for name in fields if name not in data]
    if missing:
        raise InvalidInput(f"Missing required fields: {', '.join(missing)}", missing=",".join(missing))
    return data


@dataclass(frozen=True)
class CreateTokenRequest:
    """Body of POST /create-token."""

    name: str
    symbol: str
    quantity: float

    @classmethod
    def from_dict(cls, data: Any) -> "CreateTokenRequest":
        """Create a request from a JSON body.

        Raises:
            InvalidInput: If a field is missing or malformed
        """
        data = _require(data, ("name", "symbol", "quantity"))
        check_name(data["name"])
        check_symbol(data["symbol"])
        check_quantity(data["quantity"])
        return cls(name=data["name"], symbol=data["symbol"], quantity=data["quantity"])


@dataclass(frozen=True)
class TransferRequest:
    """Body of POST /transfer."""

    to_wallet: str
    token_mint: str
    quantity: float

    @classmethod
    def from_dict(cls, data: Any) -> "TransferRequest":
        """Create a request from a JSON body.

        Raises:
            InvalidInput: If a field is missing or malformed
        """
        data = _require(data, ("toWallet", "tokenMint", "quantity"))
        check_quantity(data["quantity"])
        parse_address(data["toWallet"], InvalidRecipient)
        parse_address(data["tokenMint"], InvalidMint)
        return cls(
            to_wallet=data["toWallet"],
            token_mint=data["tokenMint"],
            quantity=data["quantity"],
        )
