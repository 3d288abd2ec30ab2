"""Routing module: Jupiter quotes and swap transaction building.

- JupiterQuoteProvider: priced routes for a mint pair
- JupiterTransactionBuilder: unsigned, fee-annotated swap transactions
"""

from jupswap.routing.base import (
    PriorityFeePolicy,
    Quote,
    QuoteProvider,
    RouteHop,
    TransactionBuilder,
    UnsignedTransaction,
)
from jupswap.routing.jupiter import (
    SOL_MINT,
    USDC_MINT,
    USDT_MINT,
    JupiterQuoteProvider,
    JupiterTransactionBuilder,
    create_jupiter_builder,
    create_jupiter_provider,
)

__all__ = [
    # Base classes
    "Quote",
    "RouteHop",
    "PriorityFeePolicy",
    "UnsignedTransaction",
    "QuoteProvider",
    "TransactionBuilder",
    # Jupiter
    "JupiterQuoteProvider",
    "JupiterTransactionBuilder",
    "create_jupiter_provider",
    "create_jupiter_builder",
    "SOL_MINT",
    "USDC_MINT",
    "USDT_MINT",
]
