"""Ledger access: transaction broadcast and confirmation on Solana."""

from jupswap.ledger.base import Confirmation, LedgerClient, RetryPolicy
from jupswap.ledger.client import SolanaLedgerClient, create_ledger_client

__all__ = [
    "Confirmation",
    "LedgerClient",
    "RetryPolicy",
    "SolanaLedgerClient",
    "create_ledger_client",
]
