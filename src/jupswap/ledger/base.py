"""Ledger client interface: broadcast signed transactions and await finality."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from jupswap.signing.base import SignedTransaction


@dataclass(frozen=True)
class RetryPolicy:
    """Transport-level retry for the broadcast call.

    This is the only retry in the pipeline. A failed quote, build or
    confirmation is never retried automatically.
    """

    max_retries: int = 2
    backoff_seconds: float = 0.5
    skip_preflight: bool = True

    @property
    def attempts(self) -> int:
        return self.max_retries + 1


@dataclass(frozen=True)
class Confirmation:
    """Outcome of waiting for a transaction.

    Attributes:
        confirmed: Requested commitment reached without an execution error
        err: Raw error payload reported by the network, if any
        status: Last commitment level observed (processed/confirmed/finalized)
        slot: Slot the transaction landed in, if known
    """

    confirmed: bool
    err: Optional[Any] = None
    status: Optional[str] = None
    slot: Optional[int] = None


class LedgerClient(ABC):
    """Submits transactions to the network and watches them land."""

    @abstractmethod
    async def submit(
        self,
        transaction: SignedTransaction,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> str:
        """Broadcast raw signed bytes.

        Returns:
            Transaction signature (base-58)

        Raises:
            TransportError: If the broadcast could not be delivered
        """
        pass

    @abstractmethod
    async def confirm(
        self,
        signature: str,
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
        last_valid_block_height: Optional[int] = None,
    ) -> Confirmation:
        """Wait until ``commitment`` is reached or the network reports an error.

        Raises:
            ConfirmationTimeout: If the time budget runs out first
        """
        pass

    async def close(self) -> None:
        return None
