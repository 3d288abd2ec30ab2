"""Swap orchestration: quote -> build -> sign -> submit -> confirm.

One call drives one strictly forward traversal of the pipeline:

    VALIDATING -> QUOTING -> BUILDING -> SIGNING -> SUBMITTING -> CONFIRMING
                                                           -> SUCCEEDED | FAILED

There is no automatic re-quote or resubmission. Every failure is classified
into a ``SwapErrorKind`` and returned as a failed ``SwapResult``.
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Union

from solders.transaction import VersionedTransaction

from jupswap.config import COMMITMENT_LEVELS, Settings, get_settings
from jupswap.errors import (
    InvalidTransaction,
    NoSignerAvailable,
    QuoteUnavailable,
    SimulationFailed,
    SwapError,
    SwapErrorKind,
    TransactionFailed,
    WalletNotInitialized,
)
from jupswap.ledger.base import LedgerClient
from jupswap.routing.base import (
    PriorityFeePolicy,
    Quote,
    QuoteProvider,
    TransactionBuilder,
    UnsignedTransaction,
)
from jupswap.signing.base import KeyCustodian, SignedTransaction
from jupswap.swap.validation import parse_amount, validate_address, validate_slippage

logger = logging.getLogger(__name__)


class SwapStage(str, Enum):
    """Pipeline states."""

    VALIDATING = "validating"
    QUOTING = "quoting"
    BUILDING = "building"
    SIGNING = "signing"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ConfirmationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class SwapRequest:
    """Validated parameters of one swap invocation."""

    input_mint: str
    output_mint: str
    amount: int
    slippage_bps: int
    only_direct_routes: bool = False
    restrict_intermediate_tokens: bool = True
    dynamic_compute_unit_limit: bool = True
    dynamic_slippage: bool = True


@dataclass
class SwapResult:
    """Terminal artifact of a swap invocation."""

    success: bool
    status: ConfirmationStatus
    stage: SwapStage
    input_mint: Optional[str] = None
    output_mint: Optional[str] = None
    in_amount: Optional[int] = None
    out_amount: Optional[int] = None
    price_impact_pct: Optional[Decimal] = None
    signature: Optional[str] = None
    error_kind: Optional[SwapErrorKind] = None
    error: Optional[str] = None
    error_details: Optional[Any] = field(default=None, repr=False)

    @property
    def possibly_landed(self) -> bool:
        """True when the transaction was broadcast but its outcome is unknown."""
        return self.error_kind == SwapErrorKind.CONFIRMATION_TIMEOUT

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "success": self.success,
            "status": self.status.value,
            "stage": self.stage.value,
            "input_mint": self.input_mint,
            "output_mint": self.output_mint,
            "in_amount": str(self.in_amount) if self.in_amount is not None else None,
            "out_amount": str(self.out_amount) if self.out_amount is not None else None,
            "price_impact_pct": str(self.price_impact_pct) if self.price_impact_pct is not None else None,
            "signature": self.signature,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error": self.error,
            "error_details": self.error_details,
        }


class SwapOrchestrator:
    """Drives the swap pipeline over injected collaborators.

    The orchestrator keeps no per-call state, so one instance can run
    concurrent swaps against the same custodian and ledger client.
    """

    def __init__(
        self,
        quote_provider: QuoteProvider,
        transaction_builder: TransactionBuilder,
        custodian: KeyCustodian,
        ledger: LedgerClient,
        settings: Optional[Settings] = None,
    ):
        self.quote_provider = quote_provider
        self.transaction_builder = transaction_builder
        self.custodian = custodian
        self.ledger = ledger
        self.settings = settings or get_settings()

    def build_request(
        self,
        input_mint: str,
        output_mint: str,
        amount: Union[str, int],
        slippage_bps: Optional[int] = None,
        only_direct_routes: Optional[bool] = None,
        dynamic_compute_unit_limit: Optional[bool] = None,
        dynamic_slippage: Optional[bool] = None,
        restrict_intermediate_tokens: Optional[bool] = None,
    ) -> SwapRequest:
        """Validate raw inputs into a SwapRequest.

        Raises:
            InvalidAddress: If either mint is malformed
            InvalidAmount: If amount or slippage is not a valid integer
        """
        input_mint = validate_address(input_mint, "inputMint")
        output_mint = validate_address(output_mint, "outputMint")
        parsed_amount = parse_amount(amount)
        slippage_bps = validate_slippage(slippage_bps)

        return SwapRequest(
            input_mint=input_mint,
            output_mint=output_mint,
            amount=parsed_amount,
            slippage_bps=(
                slippage_bps if slippage_bps is not None else self.settings.default_slippage_bps
            ),
            only_direct_routes=bool(only_direct_routes),
            restrict_intermediate_tokens=(
                restrict_intermediate_tokens
                if restrict_intermediate_tokens is not None
                else self.settings.restrict_intermediate_tokens
            ),
            dynamic_compute_unit_limit=(
                dynamic_compute_unit_limit
                if dynamic_compute_unit_limit is not None
                else self.settings.dynamic_compute_unit_limit
            ),
            dynamic_slippage=(
                dynamic_slippage if dynamic_slippage is not None else self.settings.dynamic_slippage
            ),
        )

    async def _fetch_quote(self, request: SwapRequest) -> Quote:
        return await self.quote_provider.get_quote(
            request.input_mint,
            request.output_mint,
            request.amount,
            slippage_bps=request.slippage_bps,
            only_direct_routes=request.only_direct_routes,
            restrict_intermediate_tokens=request.restrict_intermediate_tokens,
        )

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: Union[str, int],
        slippage_bps: Optional[int] = None,
        only_direct_routes: Optional[bool] = None,
        restrict_intermediate_tokens: Optional[bool] = None,
    ) -> Quote:
        """Get a quote. Works without a wallet.

        Raises:
            SwapError: InvalidAddress, InvalidAmount or QuoteUnavailable
        """
        request = self.build_request(
            input_mint,
            output_mint,
            amount,
            slippage_bps,
            only_direct_routes,
            restrict_intermediate_tokens=restrict_intermediate_tokens,
        )
        return await self._fetch_quote(request)

    async def execute_swap(
        self,
        input_mint: str,
        output_mint: str,
        amount: Union[str, int],
        slippage_bps: Optional[int] = None,
        only_direct_routes: Optional[bool] = None,
        dynamic_compute_unit_limit: Optional[bool] = None,
        dynamic_slippage: Optional[bool] = None,
        restrict_intermediate_tokens: Optional[bool] = None,
    ) -> SwapResult:
        """Quote, build, sign, submit and confirm a swap.

        Returns:
            SwapResult; failures are reported in it, not raised
        """
        stage = SwapStage.VALIDATING
        request: Optional[SwapRequest] = None
        quote: Optional[Quote] = None

        try:
            request = self.build_request(
                input_mint,
                output_mint,
                amount,
                slippage_bps,
                only_direct_routes,
                dynamic_compute_unit_limit,
                dynamic_slippage,
                restrict_intermediate_tokens=restrict_intermediate_tokens,
            )

            # Fail fast before spending a quote request
            if not self.custodian.is_ready():
                raise WalletNotInitialized(
                    "Wallet not initialized. Cannot execute swap. "
                    "Please check your environment variables for SOLANA_PRIVATE_KEY."
                )

            logger.info(
                f"Executing swap from {request.input_mint} to {request.output_mint} "
                f"for amount {request.amount}"
            )

            stage = SwapStage.QUOTING
            quote = await self._fetch_quote(request)
            logger.debug(f"Quote received, expected output: {quote.out_amount}")
            if quote.price_impact_pct:
                logger.debug(f"Price impact: {quote.price_impact_pct}%")

            stage = SwapStage.BUILDING
            unsigned = await self.transaction_builder.build_transaction(
                quote,
                self.custodian.public_identity(),
                priority_fee=self.settings.priority_fee_policy(),
                dynamic_compute_unit_limit=request.dynamic_compute_unit_limit,
                dynamic_slippage=request.dynamic_slippage,
            )
            self._check_executable(unsigned)

            stage = SwapStage.SIGNING
            if not self.custodian.is_ready():
                raise WalletNotInitialized("Wallet not initialized. Cannot sign transaction.")
            signed = self.custodian.sign(unsigned)

            return await self._submit_and_confirm(
                signed,
                request,
                quote,
                last_valid_block_height=unsigned.last_valid_block_height,
            )

        except SwapError as e:
            return self._failure(stage, e, request, quote)

    async def build_swap_transaction(
        self,
        quote: Union[Quote, Mapping[str, Any], str],
        user_public_key: Optional[str] = None,
        priority_fee: Optional[Union[PriorityFeePolicy, int]] = None,
        dynamic_compute_unit_limit: Optional[bool] = None,
        dynamic_slippage: Optional[bool] = None,
    ) -> UnsignedTransaction:
        """Build an unsigned swap transaction for an existing quote.

        The signer is ``user_public_key`` when given, otherwise the
        custodian's own key.

        Raises:
            SwapError: NoSignerAvailable, InvalidAddress, QuoteUnavailable,
                SimulationFailed or BuildFailed
        """
        if not isinstance(quote, Quote):
            try:
                quote = Quote.from_api(quote)
            except ValueError as e:
                raise QuoteUnavailable(f"Invalid quote response: {e}") from e

        if user_public_key:
            signer = validate_address(user_public_key, "userPublicKey")
        elif self.custodian.is_ready():
            signer = self.custodian.public_identity()
        else:
            raise NoSignerAvailable(
                "No wallet configured and no userPublicKey provided. Cannot build swap transaction."
            )

        unsigned = await self.transaction_builder.build_transaction(
            quote,
            signer,
            priority_fee=priority_fee if priority_fee is not None else self.settings.priority_fee_policy(),
            dynamic_compute_unit_limit=(
                dynamic_compute_unit_limit
                if dynamic_compute_unit_limit is not None
                else self.settings.dynamic_compute_unit_limit
            ),
            dynamic_slippage=(
                dynamic_slippage if dynamic_slippage is not None else self.settings.dynamic_slippage
            ),
        )
        self._check_executable(unsigned)
        return unsigned

    async def send_swap_transaction(
        self,
        serialized_transaction: str,
        sign: bool = True,
        commitment: Optional[str] = None,
    ) -> SwapResult:
        """Submit a base64 serialized transaction and wait for it.

        Args:
            serialized_transaction: Base64 transaction, e.g. from build_swap_transaction
            sign: Sign with the custodian before sending; False sends it as-is
            commitment: Commitment to wait for (default from settings)
        """
        stage = SwapStage.VALIDATING
        try:
            if commitment is not None and commitment not in COMMITMENT_LEVELS:
                raise InvalidTransaction(
                    f"Unknown commitment level: {commitment}. "
                    f"Expected one of {', '.join(COMMITMENT_LEVELS)}"
                )
            if not serialized_transaction or not serialized_transaction.strip():
                raise InvalidTransaction(
                    "Either swapTransaction or serializedTransaction must be provided"
                )
            try:
                payload = base64.b64decode(serialized_transaction.strip(), validate=True)
            except (binascii.Error, ValueError) as e:
                raise InvalidTransaction(f"Transaction is not valid base64: {e}") from e

            if sign:
                stage = SwapStage.SIGNING
                if not self.custodian.is_ready():
                    raise WalletNotInitialized("Wallet not initialized. Cannot sign transaction.")
                signed = self.custodian.sign_bytes(payload)
            else:
                signed = self._presigned(payload)

            return await self._submit_and_confirm(signed, None, None, commitment=commitment)

        except SwapError as e:
            return self._failure(stage, e, None, None)

    def _check_executable(self, unsigned: UnsignedTransaction) -> None:
        if unsigned.simulation_error is not None:
            raise SimulationFailed(
                f"Simulation error: {unsigned.simulation_error}",
                details=unsigned.simulation_error,
            )

    @staticmethod
    def _presigned(payload: bytes) -> SignedTransaction:
        try:
            tx = VersionedTransaction.from_bytes(payload)
        except Exception as e:
            raise InvalidTransaction(f"Failed to decode transaction: {e}") from e
        if not tx.signatures:
            raise InvalidTransaction("Transaction carries no signatures")
        return SignedTransaction(payload=payload, signature=str(tx.signatures[0]))

    async def _submit_and_confirm(
        self,
        signed: SignedTransaction,
        request: Optional[SwapRequest],
        quote: Optional[Quote],
        commitment: Optional[str] = None,
        last_valid_block_height: Optional[int] = None,
    ) -> SwapResult:
        """Submitting and confirming stages shared by execute and send."""
        stage = SwapStage.SUBMITTING
        signature: Optional[str] = None
        try:
            logger.debug("Sending signed transaction to Solana network...")
            signature = await self.ledger.submit(signed, self.settings.retry_policy())

            stage = SwapStage.CONFIRMING
            confirmation = await self.ledger.confirm(
                signature,
                commitment=commitment or self.settings.confirm_commitment,
                timeout=self.settings.confirm_timeout_seconds,
                last_valid_block_height=last_valid_block_height,
            )
            if not confirmation.confirmed:
                raise TransactionFailed(
                    f"Transaction failed: {confirmation.err}",
                    details=confirmation.err,
                )

        except SwapError as e:
            return self._failure(stage, e, request, quote, signature=signature)

        logger.info(f"Transaction successful: {signature}")
        return SwapResult(
            success=True,
            status=ConfirmationStatus.CONFIRMED,
            stage=SwapStage.SUCCEEDED,
            input_mint=request.input_mint if request else None,
            output_mint=request.output_mint if request else None,
            in_amount=quote.in_amount if quote else None,
            out_amount=quote.out_amount if quote else None,
            price_impact_pct=quote.price_impact_pct if quote else None,
            signature=signature,
        )

    def _failure(
        self,
        stage: SwapStage,
        error: SwapError,
        request: Optional[SwapRequest],
        quote: Optional[Quote],
        signature: Optional[str] = None,
    ) -> SwapResult:
        """Turn a classified error into a failed result."""
        timed_out = error.kind == SwapErrorKind.CONFIRMATION_TIMEOUT
        logger.error(f"Swap failed at {stage.value}: {error.kind.value}: {error.message}")
        return SwapResult(
            success=False,
            status=ConfirmationStatus.PENDING if timed_out else ConfirmationStatus.FAILED,
            stage=stage,
            input_mint=request.input_mint if request else None,
            output_mint=request.output_mint if request else None,
            in_amount=request.amount if request else None,
            out_amount=quote.out_amount if quote else None,
            price_impact_pct=quote.price_impact_pct if quote else None,
            signature=signature or getattr(error, "signature", None),
            error_kind=error.kind,
            error=error.message,
            error_details=error.details,
        )


def create_orchestrator(
    settings: Optional[Settings] = None,
    custodian: Optional[KeyCustodian] = None,
    transport: Optional[Any] = None,
) -> SwapOrchestrator:
    """Wire the Jupiter, custodian and Solana RPC components together.

    Args:
        settings: Settings (defaults to the cached environment settings)
        custodian: Custodian to use; a new one is initialized from settings
            when omitted (it may end up in quote-only mode)
        transport: Optional httpx transport for the Jupiter API
    """
    from jupswap.ledger.client import create_ledger_client
    from jupswap.routing.jupiter import create_jupiter_builder, create_jupiter_provider
    from jupswap.signing.local import create_custodian

    settings = settings or get_settings()
    if custodian is None:
        custodian = create_custodian(settings)

    # Share the custodian's RPC handle when it has one
    connection = getattr(custodian, "connection", None) if custodian.is_ready() else None
    ledger = create_ledger_client(settings, connection=connection)

    return SwapOrchestrator(
        quote_provider=create_jupiter_provider(settings, transport=transport),
        transaction_builder=create_jupiter_builder(settings, transport=transport),
        custodian=custodian,
        ledger=ledger,
        settings=settings,
    )
