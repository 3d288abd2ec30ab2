"""Solana RPC ledger client.

Broadcasts signed transactions and polls signature statuses until the
requested commitment is reached. Confirmation is the slowest step of a swap
and the only one bounded by its own time budget.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException
from solana.rpc.models import TxOpts
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from jupswap.config import Settings, get_settings
from jupswap.errors import ConfirmationTimeout, TransportError
from jupswap.ledger.base import Confirmation, LedgerClient, RetryPolicy
from jupswap.signing.base import SignedTransaction

logger = logging.getLogger(__name__)

# Ordered from weakest to strongest
COMMITMENT_ORDER = ["processed", "confirmed", "finalized"]

_STATUS_NAMES = [
    (TransactionConfirmationStatus.Processed, "processed"),
    (TransactionConfirmationStatus.Confirmed, "confirmed"),
    (TransactionConfirmationStatus.Finalized, "finalized"),
]

# Errors raised by the RPC transport (connection refused, timeouts, 5xx)
TRANSPORT_ERRORS = (SolanaRpcException, httpx.HTTPError, OSError, asyncio.TimeoutError)


def status_name(status: Any) -> Optional[str]:
    """Map a solders confirmation status to its commitment name."""
    if status is None:
        return None
    for member, name in _STATUS_NAMES:
        if status == member:
            return name
    return str(status).rsplit(".", 1)[-1].lower()


def error_payload(err: Any) -> Any:
    """Render a network error into a JSON-friendly payload for diagnostics."""
    if err is None or isinstance(err, (str, int, float, bool, dict, list)):
        return err
    to_json = getattr(err, "to_json", None)
    if callable(to_json):
        try:
            return json.loads(to_json())
        except (TypeError, ValueError):
            pass
    return str(err)


def commitment_reached(observed: Optional[str], required: str) -> bool:
    if observed not in COMMITMENT_ORDER:
        return False
    return COMMITMENT_ORDER.index(observed) >= COMMITMENT_ORDER.index(required)


class SolanaLedgerClient(LedgerClient):
    """Ledger client over a shared ``solana-py`` AsyncClient.

    The client holds no per-call state, so one instance (and its RPC handle)
    can serve concurrent swaps.
    """

    def __init__(
        self,
        connection: Optional[AsyncClient] = None,
        settings: Optional[Settings] = None,
        retry_policy: Optional[RetryPolicy] = None,
        poll_interval: Optional[float] = None,
    ):
        """Initialize the ledger client.

        Args:
            connection: RPC handle to use (e.g. the custodian's); a new one
                is opened on the configured endpoint when omitted
            settings: Settings for defaults
            retry_policy: Broadcast retry policy (default from settings)
            poll_interval: Seconds between status polls (default from settings)
        """
        self.settings = settings or get_settings()
        self._owns_connection = connection is None
        self.connection = connection or AsyncClient(self.settings.rpc_endpoint)
        self.retry_policy = retry_policy or self.settings.retry_policy()
        self.poll_interval = (
            poll_interval if poll_interval is not None else self.settings.confirm_poll_interval_seconds
        )

    async def submit(
        self,
        transaction: SignedTransaction,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> str:
        """Broadcast a signed transaction.

        Re-sending identical signed bytes is idempotent on Solana (same
        signature), so transport failures are retried with linear backoff.
        A node rejecting the transaction (RPC error) is not retried.
        """
        policy = retry_policy or self.retry_policy
        opts = TxOpts(
            skip_preflight=policy.skip_preflight,
            max_retries=policy.max_retries,
        )

        last_error: Optional[Exception] = None
        for attempt in range(1, policy.attempts + 1):
            try:
                resp = await self.connection.send_raw_transaction(transaction.payload, opts=opts)
                signature = str(resp.value)
                logger.info(f"Transaction sent with signature: {signature}")
                return signature
            except RPCException as e:
                logger.error(f"RPC rejected transaction {transaction.signature}: {e}")
                raise TransportError(
                    f"Failed to send transaction: {e}",
                    details=error_payload(e.args[0] if e.args else str(e)),
                ) from e
            except TRANSPORT_ERRORS as e:
                last_error = e
                logger.warning(
                    f"Send attempt {attempt}/{policy.attempts} failed: {type(e).__name__}: {e}"
                )
                if attempt < policy.attempts:
                    await asyncio.sleep(policy.backoff_seconds * attempt)

        raise TransportError(
            f"Failed to send transaction after {policy.attempts} attempt(s): {last_error}"
        ) from last_error

    async def confirm(
        self,
        signature: str,
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
        last_valid_block_height: Optional[int] = None,
    ) -> Confirmation:
        """Poll until ``commitment`` is reached or the network reports an error.

        Args:
            signature: Base-58 transaction signature
            commitment: processed, confirmed or finalized (default from settings)
            timeout: Time budget in seconds (default from settings)
            last_valid_block_height: When given, a transaction still unseen
                after this height is reported as expired

        Returns:
            Confirmation with ``confirmed`` True on success, or the network
            error payload in ``err``

        Raises:
            ConfirmationTimeout: Outcome unknown after the time budget
        """
        commitment = (commitment or self.settings.confirm_commitment).lower()
        if commitment not in COMMITMENT_ORDER:
            raise ValueError(f"Unknown commitment level: {commitment}")
        if timeout is None:
            timeout = self.settings.confirm_timeout_seconds

        try:
            return await asyncio.wait_for(
                self._poll(signature, commitment, last_valid_block_height),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"Transaction {signature} not confirmed after {timeout}s")
            raise ConfirmationTimeout(
                f"Transaction {signature} not confirmed after {timeout}s. "
                f"It may still land; check the signature before retrying.",
                signature=signature,
            ) from e

    async def _poll(
        self,
        signature: str,
        commitment: str,
        last_valid_block_height: Optional[int],
    ) -> Confirmation:
        sig = Signature.from_string(signature)
        observed: Optional[str] = None

        while True:
            try:
                resp = await self.connection.get_signature_statuses([sig])
                status = resp.value[0] if resp.value else None

                if status is not None:
                    observed = status_name(status.confirmation_status)
                    if status.err is not None:
                        err = error_payload(status.err)
                        logger.error(f"Transaction failed: {json.dumps(err, default=str)}")
                        return Confirmation(confirmed=False, err=err, status=observed, slot=status.slot)
                    if commitment_reached(observed, commitment):
                        logger.info(f"Transaction {signature} reached {observed}")
                        return Confirmation(confirmed=True, status=observed, slot=status.slot)

                elif last_valid_block_height is not None:
                    height = (await self.connection.get_block_height()).value
                    if height > last_valid_block_height:
                        logger.warning(
                            f"Transaction {signature} expired: block height {height} "
                            f"> last valid {last_valid_block_height}"
                        )
                        return Confirmation(
                            confirmed=False,
                            err={"BlockHeightExceeded": last_valid_block_height},
                        )

            except (RPCException,) + TRANSPORT_ERRORS as e:
                # Keep polling; the time budget bounds the loop
                logger.debug(f"Status poll for {signature} failed: {type(e).__name__}: {e}")

            await asyncio.sleep(self.poll_interval)

    async def close(self) -> None:
        """Close the RPC handle if this client opened it."""
        if self._owns_connection:
            await self.connection.close()


def create_ledger_client(
    settings: Optional[Settings] = None,
    connection: Optional[AsyncClient] = None,
) -> SolanaLedgerClient:
    """Create a ledger client, sharing ``connection`` when given."""
    return SolanaLedgerClient(connection=connection, settings=settings)
