"""Swap execution module.

Provides:
- SwapOrchestrator: drives quote -> build -> sign -> submit -> confirm
- SwapRequest / SwapResult: per-call input and terminal result
"""

from jupswap.swap.executor import (
    ConfirmationStatus,
    SwapOrchestrator,
    SwapRequest,
    SwapResult,
    SwapStage,
    create_orchestrator,
)
from jupswap.swap.validation import parse_amount, validate_address

__all__ = [
    "SwapOrchestrator",
    "create_orchestrator",
    "SwapRequest",
    "SwapResult",
    "SwapStage",
    "ConfirmationStatus",
    "parse_amount",
    "validate_address",
]
