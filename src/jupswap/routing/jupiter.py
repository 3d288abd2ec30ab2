"""Jupiter DEX aggregator integration for Solana.

Uses the Jupiter Swap API for quotes and swap transactions.
API docs: https://dev.jup.ag/docs/swap-api
"""

import base64
import binascii
import logging
from typing import Optional, Union

import httpx

from jupswap.config import Settings, get_settings
from jupswap.errors import (
    BuildFailed,
    InvalidAmount,
    NoSignerAvailable,
    QuoteUnavailable,
    SimulationFailed,
)
from jupswap.routing.base import (
    PriorityFeePolicy,
    Quote,
    QuoteProvider,
    TransactionBuilder,
    UnsignedTransaction,
)

logger = logging.getLogger(__name__)

# Well-known token mints on Solana mainnet
SOL_MINT = "So11111111111111111111111111111111111111112"  # Wrapped SOL
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"


class JupiterClient:
    """Shared HTTP plumbing for the Jupiter endpoints."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            settings: Settings to read the base URL, key and timeout from
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.settings = settings or get_settings()
        self.base_url = self.settings.jupiter_api_base_url.rstrip("/")
        self.api_key = self.settings.jupiter_api_key
        self.timeout = self.settings.http_timeout_seconds
        self._transport = transport

    def _get_headers(self) -> dict:
        """Get API headers."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)


class JupiterQuoteProvider(JupiterClient, QuoteProvider):
    """Fetches priced routes from Jupiter.

    Jupiter aggregates liquidity from Raydium, Orca, Meteora and other
    Solana venues. Errors are raised, never retried here.
    """

    @property
    def name(self) -> str:
        return "Jupiter"

    def _build_params(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: Optional[int],
        only_direct_routes: Optional[bool],
        restrict_intermediate_tokens: Optional[bool],
    ) -> dict:
        if slippage_bps is None:
            slippage_bps = self.settings.default_slippage_bps

        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
        }

        # Direct routes and intermediate-token restriction are alternatives
        if only_direct_routes:
            params["onlyDirectRoutes"] = "true"
        else:
            if restrict_intermediate_tokens is None:
                restrict_intermediate_tokens = self.settings.restrict_intermediate_tokens
            params["restrictIntermediateTokens"] = "true" if restrict_intermediate_tokens else "false"

        return params

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: Optional[int] = None,
        only_direct_routes: Optional[bool] = None,
        restrict_intermediate_tokens: Optional[bool] = None,
    ) -> Quote:
        """Get swap quote from Jupiter.

        Args:
            input_mint: Input token mint address
            output_mint: Output token mint address
            amount: Amount in smallest units
            slippage_bps: Max slippage in basis points (default from settings)
            only_direct_routes: Request single-venue routes only
            restrict_intermediate_tokens: Override the route restriction policy

        Returns:
            Parsed Quote
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidAmount(f"Amount must be a non-negative integer, got {amount!r}")

        params = self._build_params(
            input_mint,
            output_mint,
            amount,
            slippage_bps,
            only_direct_routes,
            restrict_intermediate_tokens,
        )
        logger.debug(f"Getting Jupiter quote: {params}")

        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/quote",
                    headers=self._get_headers(),
                    params=params,
                )
        except httpx.HTTPError as e:
            logger.error(f"Jupiter quote request failed: {type(e).__name__}: {e}")
            raise QuoteUnavailable(f"Quote request failed: {e}") from e

        if response.status_code != 200:
            logger.warning(f"Jupiter API error: {response.status_code} - {response.text}")
            raise QuoteUnavailable(
                f"Jupiter quote error: HTTP {response.status_code} - {response.text}",
                details={"status_code": response.status_code},
            )

        try:
            quote = Quote.from_api(response.json())
        except ValueError as e:
            logger.error(f"Malformed Jupiter quote: {e}")
            raise QuoteUnavailable(f"Malformed quote response: {e}") from e

        logger.info(
            f"Quote from Jupiter: {quote.in_amount or amount} {input_mint} -> "
            f"{quote.out_amount} {output_mint} "
            f"(impact: {quote.price_impact_pct}%, hops: {quote.hop_count})"
        )
        return quote


class JupiterTransactionBuilder(JupiterClient, TransactionBuilder):
    """Exchanges a quote for an unsigned, fee-annotated swap transaction."""

    async def build_transaction(
        self,
        quote: Quote,
        user_public_key: str,
        priority_fee: Optional[Union[PriorityFeePolicy, int]] = None,
        dynamic_compute_unit_limit: bool = True,
        dynamic_slippage: bool = True,
    ) -> UnsignedTransaction:
        """Build a swap transaction via Jupiter.

        Args:
            quote: Quote to execute
            user_public_key: Wallet that will sign and pay for the transaction
            priority_fee: Fee policy, or a fixed lamport amount
            dynamic_compute_unit_limit: Let Jupiter estimate compute units
            dynamic_slippage: Let Jupiter estimate slippage

        Returns:
            UnsignedTransaction ready for signing
        """
        if not user_public_key:
            raise NoSignerAvailable("A user public key is required to build a swap transaction")

        if priority_fee is None:
            priority_fee = self.settings.priority_fee_policy()

        body = {
            "quoteResponse": quote.raw,
            "userPublicKey": user_public_key,
            "dynamicComputeUnitLimit": dynamic_compute_unit_limit,
            "dynamicSlippage": dynamic_slippage,
            "prioritizationFeeLamports": (
                priority_fee.to_api() if isinstance(priority_fee, PriorityFeePolicy) else int(priority_fee)
            ),
        }

        logger.debug("Building Jupiter swap transaction")
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/swap",
                    headers=self._get_headers(),
                    json=body,
                )
        except httpx.HTTPError as e:
            logger.error(f"Jupiter swap request failed: {type(e).__name__}: {e}")
            raise BuildFailed(f"Swap build request failed: {e}") from e

        if response.status_code != 200:
            logger.warning(f"Jupiter API error: {response.status_code} - {response.text}")
            raise BuildFailed(
                f"Jupiter swap error: HTTP {response.status_code} - {response.text}",
                details={"status_code": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise BuildFailed(f"Swap response is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise BuildFailed("Swap response must be a JSON object")

        simulation_error = data.get("simulationError")
        if simulation_error:
            logger.warning(f"Jupiter simulation failed: {simulation_error}")
            raise SimulationFailed(
                f"Simulation error: {simulation_error}",
                details=simulation_error,
            )

        swap_transaction = data.get("swapTransaction")
        if not swap_transaction:
            raise BuildFailed("No swap transaction returned")

        try:
            payload = base64.b64decode(swap_transaction, validate=True)
        except (binascii.Error, ValueError) as e:
            raise BuildFailed(f"Swap transaction is not valid base64: {e}") from e

        unsigned = UnsignedTransaction(
            payload=payload,
            last_valid_block_height=data.get("lastValidBlockHeight"),
            prioritization_fee_lamports=data.get("prioritizationFeeLamports"),
            compute_unit_limit=data.get("computeUnitLimit"),
            simulation_error=None,
            dynamic_slippage_report=data.get("dynamicSlippageReport"),
        )
        logger.debug(
            f"Swap transaction built (fee: {unsigned.prioritization_fee_lamports} lamports, "
            f"CU limit: {unsigned.compute_unit_limit})"
        )
        return unsigned


def create_jupiter_provider(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> JupiterQuoteProvider:
    """Create a Jupiter quote provider instance."""
    return JupiterQuoteProvider(settings=settings, transport=transport)


def create_jupiter_builder(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> JupiterTransactionBuilder:
    """Create a Jupiter transaction builder instance."""
    return JupiterTransactionBuilder(settings=settings, transport=transport)
