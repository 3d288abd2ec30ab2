"""Human-readable renderings of quotes and swap results."""

from typing import Optional

from jupswap.errors import SwapError, SwapErrorKind
from jupswap.routing.base import Quote, UnsignedTransaction
from jupswap.swap.executor import SwapResult

# What the caller should do next, per error kind
_ERROR_HINTS = {
    SwapErrorKind.WALLET_NOT_INITIALIZED: "Set SOLANA_PRIVATE_KEY to enable swap execution.",
    SwapErrorKind.SIMULATION_FAILED: "The swap would fail on-chain; nothing was signed or sent.",
    SwapErrorKind.CONFIRMATION_TIMEOUT: (
        "The transaction may still land. Check the signature before retrying."
    ),
    SwapErrorKind.TRANSACTION_FAILED: "The transaction failed on-chain. A fresh swap can be submitted.",
    SwapErrorKind.NO_SIGNER_AVAILABLE: "Provide userPublicKey or configure SOLANA_PRIVATE_KEY.",
}


def format_quote_result(quote: Quote, slippage_bps: Optional[int] = None) -> str:
    """Format a quote summary."""
    if slippage_bps is None:
        slippage_bps = quote.slippage_bps
    route = " -> ".join(quote.dex_labels) if quote.route else "n/a"
    return (
        "Quote Summary:\n"
        f"Input Token: {quote.input_mint}\n"
        f"Output Token: {quote.output_mint}\n"
        f"Input Amount: {quote.in_amount}\n"
        f"Output Amount: {quote.out_amount}\n"
        f"Minimum Received: {quote.other_amount_threshold}\n"
        f"Price Impact: {quote.price_impact_pct or 0}%\n"
        f"Slippage Tolerance: {slippage_bps / 100}%\n"
        f"Route Hops: {quote.hop_count} ({route})"
    )


def format_unsigned_transaction(unsigned: UnsignedTransaction) -> str:
    return (
        "Swap transaction built.\n"
        f"Size: {len(unsigned.payload)} bytes\n"
        f"Last valid block height: {unsigned.last_valid_block_height or 'Unknown'}\n"
        f"Priority fee: {unsigned.prioritization_fee_lamports or 'Unknown'} lamports\n"
        f"Compute unit limit: {unsigned.compute_unit_limit or 'Unknown'}"
    )


def format_swap_result(result: SwapResult) -> str:
    """Format a swap result, successful or not."""
    if not result.success:
        return format_error(result.error_kind, result.error, signature=result.signature)

    return (
        "Swap executed successfully!\n"
        f"Transaction signature: {result.signature}\n"
        f"Status: {result.status.value}\n"
        f"Output amount: {result.out_amount if result.out_amount is not None else 'Unknown'}\n"
        f"Price impact: {result.price_impact_pct if result.price_impact_pct is not None else 'Unknown'}%"
    )


def format_error(
    kind: Optional[SwapErrorKind],
    message: Optional[str],
    signature: Optional[str] = None,
) -> str:
    """Format a classified failure."""
    label = kind.value if kind else "Error"
    lines = [f"{label}: {message or 'Unknown error'}"]
    if signature:
        lines.append(f"Transaction signature: {signature}")
    hint = _ERROR_HINTS.get(kind) if kind else None
    if hint:
        lines.append(hint)
    return "\n".join(lines)


def format_exception(error: SwapError) -> str:
    return format_error(error.kind, error.message, signature=getattr(error, "signature", None))
