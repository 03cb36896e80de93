"""
Error taxonomy for token issuance and transfer operations.

Every failure the core raises is a TokenServiceError with a closed ErrorKind
and a structured detail payload, so callers branch on kind instead of
parsing messages.
"""

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Closed set of failure kinds."""

    INVALID_INPUT = "invalid_input"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    LEDGER_SUBMISSION = "ledger_submission"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"
    REGISTRY_SUBMISSION = "registry_submission"


class TokenServiceError(Exception):
    """Base class for all service errors."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, **detail: Any):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses and logs."""
        return {
            "kind": self.kind.value,
            "error_type": type(self).__name__,
            "message": self.message,
            "detail": {k: str(v) for k, v in self.detail.items()},
        }


class InvalidInput(TokenServiceError):
    """Malformed request field, raised before any network call."""

    kind = ErrorKind.INVALID_INPUT


class InvalidKeyLength(InvalidInput):
    pass


class InvalidQuantity(InvalidInput):
    pass


class InvalidRecipient(InvalidInput):
    pass


class InvalidMint(InvalidInput):
    pass


class InvalidName(InvalidInput):
    pass


class InvalidSymbol(InvalidInput):
    pass


class InvalidMetadataDocument(InvalidInput):
    """The document behind the metadata URI is unreachable or incomplete."""


class InsufficientFunds(TokenServiceError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class LedgerSubmissionError(TokenServiceError):
    """The network rejected a transaction or an RPC request failed."""

    kind = ErrorKind.LEDGER_SUBMISSION


class ConfirmationTimeout(TokenServiceError):
    kind = ErrorKind.CONFIRMATION_TIMEOUT


class RegistrySubmissionFailure(TokenServiceError):
    """Non-fatal: logged by the registry client and never propagated."""

    kind = ErrorKind.REGISTRY_SUBMISSION
