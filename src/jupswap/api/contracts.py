"""Request and response contracts for the swap API.

Requests accept Jupiter's camelCase field names as well as snake_case.
Amounts are strings of smallest units so large values survive JSON.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Contract(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class QuoteRequest(_Contract):
    """Request for a swap quote."""

    input_mint: str = Field(..., alias="inputMint", description="Input token mint address")
    output_mint: str = Field(..., alias="outputMint", description="Output token mint address")
    amount: Union[str, int] = Field(..., description="Amount in the input token's smallest units")
    slippage_bps: Optional[int] = Field(
        None,
        alias="slippageBps",
        description="Slippage tolerance in basis points (default from settings)",
    )
    only_direct_routes: Optional[bool] = Field(
        None,
        alias="onlyDirectRoutes",
        description="Only consider single-hop routes",
    )
    restrict_intermediate_tokens: Optional[bool] = Field(
        None,
        alias="restrictIntermediateTokens",
        description="Keep intermediate hops on well-known tokens (default from settings)",
    )


class ExecuteSwapRequest(QuoteRequest):
    """Request to quote, sign and submit a swap with the server's wallet."""

    dynamic_compute_unit_limit: Optional[bool] = Field(
        None,
        alias="dynamicComputeUnitLimit",
        description="Let Jupiter size the compute unit limit",
    )
    dynamic_slippage: Optional[bool] = Field(
        None,
        alias="dynamicSlippage",
        description="Let Jupiter adjust slippage at build time",
    )


class BuildSwapRequest(_Contract):
    """Request to build an unsigned swap transaction for an existing quote."""

    quote_response: Union[dict[str, Any], str] = Field(
        ...,
        alias="quoteResponse",
        description="Quote as returned by /api/v1/quote (object or JSON string)",
    )
    user_public_key: Optional[str] = Field(
        None,
        alias="userPublicKey",
        description="Signer public key (defaults to the server wallet)",
    )
    prioritization_fee_lamports: Optional[int] = Field(
        None,
        alias="prioritizationFeeLamports",
        ge=0,
        description="Fixed priority fee; the configured priority policy is used when omitted",
    )
    dynamic_compute_unit_limit: Optional[bool] = Field(None, alias="dynamicComputeUnitLimit")
    dynamic_slippage: Optional[bool] = Field(None, alias="dynamicSlippage")


class SendSwapRequest(_Contract):
    """Request to submit a serialized transaction."""

    swap_transaction: Optional[str] = Field(
        None,
        alias="swapTransaction",
        description="Base64 transaction from /api/v1/swap/build",
    )
    serialized_transaction: Optional[str] = Field(
        None,
        alias="serializedTransaction",
        description="Any base64 serialized transaction",
    )
    sign: bool = Field(True, description="Sign with the server wallet before sending")
    commitment: Optional[str] = Field(
        None,
        pattern="^(processed|confirmed|finalized)$",
        description="Commitment to wait for (default from settings)",
    )

    @property
    def transaction(self) -> str:
        return self.swap_transaction or self.serialized_transaction or ""


class _Outcome(BaseModel):
    success: bool = Field(..., description="Whether the operation succeeded")
    error_kind: Optional[str] = Field(None, description="Failure classification")
    error: Optional[str] = Field(None, description="Failure message")
    message: str = Field("", description="Human-readable summary")


class RouteHopInfo(BaseModel):
    label: str
    amm_key: str
    input_mint: str
    output_mint: str
    in_amount: str
    out_amount: str
    percent: int


class QuoteResponse(_Outcome):
    """Quote summary plus the raw quote to pass back to /swap/build."""

    input_mint: Optional[str] = None
    output_mint: Optional[str] = None
    in_amount: Optional[str] = None
    out_amount: Optional[str] = None
    other_amount_threshold: Optional[str] = None
    slippage_bps: Optional[int] = None
    price_impact_pct: Optional[str] = None
    route: list[RouteHopInfo] = Field(default_factory=list)
    quote_response: Optional[dict[str, Any]] = Field(None, description="Raw Jupiter quote")


class BuildSwapResponse(_Outcome):
    """Unsigned transaction ready for signing."""

    swap_transaction: Optional[str] = Field(None, description="Base64 unsigned transaction")
    last_valid_block_height: Optional[int] = None
    prioritization_fee_lamports: Optional[int] = None
    compute_unit_limit: Optional[int] = None
    dynamic_slippage_report: Optional[dict[str, Any]] = None


class SwapResponse(_Outcome):
    """Outcome of a submitted swap."""

    status: Optional[str] = Field(None, description="pending, confirmed or failed")
    stage: Optional[str] = Field(None, description="Pipeline stage reached")
    signature: Optional[str] = None
    input_mint: Optional[str] = None
    output_mint: Optional[str] = None
    in_amount: Optional[str] = None
    out_amount: Optional[str] = None
    price_impact_pct: Optional[str] = None
    error_details: Optional[Any] = None
