"""Error kinds raised by the swap pipeline.

Every failure the pipeline can meet is an expected outcome of talking to a
remote service and a blockchain, so each one has its own class and a stable
``kind`` the caller can branch on.
"""

from enum import Enum
from typing import Any, Optional


class SwapErrorKind(str, Enum):
    """Classification of pipeline failures."""

    INVALID_ADDRESS = "InvalidAddress"
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_TRANSACTION = "InvalidTransaction"
    QUOTE_UNAVAILABLE = "QuoteUnavailable"
    BUILD_FAILED = "BuildFailed"
    SIMULATION_FAILED = "SimulationFailed"
    NO_SIGNER_AVAILABLE = "NoSignerAvailable"
    WALLET_NOT_INITIALIZED = "WalletNotInitialized"
    SIGNING_FAILED = "SigningFailed"
    TRANSPORT_ERROR = "TransportError"
    TRANSACTION_FAILED = "TransactionFailed"
    CONFIRMATION_TIMEOUT = "ConfirmationTimeout"


class SwapError(Exception):
    """Base exception for swap pipeline failures."""

    kind: SwapErrorKind = SwapErrorKind.TRANSPORT_ERROR

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class InvalidAddress(SwapError):
    """A token mint or public key is not a valid Solana address."""

    kind = SwapErrorKind.INVALID_ADDRESS


class InvalidAmount(SwapError):
    """Amount is not a non-negative integer in smallest units."""

    kind = SwapErrorKind.INVALID_AMOUNT


class InvalidTransaction(SwapError):
    """A caller-supplied serialized transaction cannot be decoded."""

    kind = SwapErrorKind.INVALID_TRANSACTION


class QuoteUnavailable(SwapError):
    kind = SwapErrorKind.QUOTE_UNAVAILABLE


class BuildFailed(SwapError):
    kind = SwapErrorKind.BUILD_FAILED


class SimulationFailed(SwapError):
    """Jupiter simulated the swap transaction and it would fail on-chain."""

    kind = SwapErrorKind.SIMULATION_FAILED


class NoSignerAvailable(SwapError):
    """Neither a custodian key nor a caller public key is available."""

    kind = SwapErrorKind.NO_SIGNER_AVAILABLE


class WalletNotInitialized(SwapError):
    kind = SwapErrorKind.WALLET_NOT_INITIALIZED


class SigningFailed(SwapError):
    kind = SwapErrorKind.SIGNING_FAILED


class TransportError(SwapError):
    """Broadcasting the signed transaction failed at the transport layer."""

    kind = SwapErrorKind.TRANSPORT_ERROR


class TransactionFailed(SwapError):
    """The network executed the transaction and reported an error.

    ``details`` holds the raw error payload returned by the RPC node.
    """

    kind = SwapErrorKind.TRANSACTION_FAILED


class ConfirmationTimeout(SwapError):
    """Confirmation did not arrive within the time budget.

    The transaction may still land; callers must re-check by signature
    before resubmitting.
    """

    kind = SwapErrorKind.CONFIRMATION_TIMEOUT

    def __init__(self, message: str, signature: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, details)
        self.signature = signature
