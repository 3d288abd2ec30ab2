"""Swap endpoints: quote, build, send and execute."""

import base64

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from jupswap.api.contracts import (
    BuildSwapRequest,
    BuildSwapResponse,
    ExecuteSwapRequest,
    QuoteRequest,
    QuoteResponse,
    RouteHopInfo,
    SendSwapRequest,
    SwapResponse,
)
from jupswap.errors import SwapError, SwapErrorKind
from jupswap.formatting import (
    format_exception,
    format_quote_result,
    format_swap_result,
    format_unsigned_transaction,
)
from jupswap.swap import SwapOrchestrator, SwapResult

router = APIRouter(tags=["Swaps"])

# Caller mistakes; every other kind is an expected runtime outcome
VALIDATION_KINDS = {
    SwapErrorKind.INVALID_ADDRESS,
    SwapErrorKind.INVALID_AMOUNT,
    SwapErrorKind.INVALID_TRANSACTION,
}


def get_orchestrator(request: Request) -> SwapOrchestrator:
    """Dependency returning the orchestrator created at startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Swap service not initialized")
    return orchestrator


def _status_code(kind) -> int:
    return 400 if kind in VALIDATION_KINDS else 200


def _error_response(error: SwapError) -> JSONResponse:
    return JSONResponse(
        status_code=_status_code(error.kind),
        content={
            "success": False,
            "error_kind": error.kind.value,
            "error": error.message,
            "message": format_exception(error),
        },
    )


def _swap_response(result: SwapResult):
    body = SwapResponse(**result.to_dict(), message=format_swap_result(result))
    if result.success:
        return body
    return JSONResponse(status_code=_status_code(result.error_kind), content=body.model_dump(mode="json"))


@router.post("/quote", response_model=QuoteResponse)
async def get_quote(
    request: QuoteRequest,
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
):
    """Get the best-route quote for a token pair. No wallet needed."""
    try:
        quote = await orchestrator.get_quote(
            request.input_mint,
            request.output_mint,
            request.amount,
            slippage_bps=request.slippage_bps,
            only_direct_routes=request.only_direct_routes,
            restrict_intermediate_tokens=request.restrict_intermediate_tokens,
        )
    except SwapError as e:
        return _error_response(e)

    return QuoteResponse(
        success=True,
        input_mint=quote.input_mint,
        output_mint=quote.output_mint,
        in_amount=str(quote.in_amount),
        out_amount=str(quote.out_amount),
        other_amount_threshold=str(quote.other_amount_threshold),
        slippage_bps=quote.slippage_bps,
        price_impact_pct=str(quote.price_impact_pct),
        route=[
            RouteHopInfo(
                label=hop.label,
                amm_key=hop.amm_key,
                input_mint=hop.input_mint,
                output_mint=hop.output_mint,
                in_amount=str(hop.in_amount),
                out_amount=str(hop.out_amount),
                percent=hop.percent,
            )
            for hop in quote.route
        ],
        quote_response=quote.raw,
        message=format_quote_result(quote),
    )


@router.post("/swap/build", response_model=BuildSwapResponse)
async def build_swap(
    request: BuildSwapRequest,
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
):
    """Build an unsigned swap transaction for a quote.

    The transaction is signed by ``userPublicKey`` when given, otherwise
    by the server wallet via /swap/send.
    """
    try:
        unsigned = await orchestrator.build_swap_transaction(
            request.quote_response,
            user_public_key=request.user_public_key,
            priority_fee=request.prioritization_fee_lamports,
            dynamic_compute_unit_limit=request.dynamic_compute_unit_limit,
            dynamic_slippage=request.dynamic_slippage,
        )
    except SwapError as e:
        return _error_response(e)

    return BuildSwapResponse(
        success=True,
        swap_transaction=base64.b64encode(unsigned.payload).decode("ascii"),
        last_valid_block_height=unsigned.last_valid_block_height,
        prioritization_fee_lamports=unsigned.prioritization_fee_lamports,
        compute_unit_limit=unsigned.compute_unit_limit,
        dynamic_slippage_report=unsigned.dynamic_slippage_report,
        message=format_unsigned_transaction(unsigned),
    )


@router.post("/swap/send", response_model=SwapResponse)
async def send_swap(
    request: SendSwapRequest,
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
):
    """Sign (optionally), submit and confirm a serialized transaction."""
    result = await orchestrator.send_swap_transaction(
        request.transaction,
        sign=request.sign,
        commitment=request.commitment,
    )
    return _swap_response(result)


@router.post("/swap/execute", response_model=SwapResponse)
async def execute_swap(
    request: ExecuteSwapRequest,
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
):
    """Quote, build, sign, submit and confirm a swap with the server wallet."""
    result = await orchestrator.execute_swap(
        request.input_mint,
        request.output_mint,
        request.amount,
        slippage_bps=request.slippage_bps,
        only_direct_routes=request.only_direct_routes,
        restrict_intermediate_tokens=request.restrict_intermediate_tokens,
        dynamic_compute_unit_limit=request.dynamic_compute_unit_limit,
        dynamic_slippage=request.dynamic_slippage,
    )
    return _swap_response(result)
