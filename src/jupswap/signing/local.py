"""Local signing backend.

Holds one Solana keypair in memory, decoded from a base-58 secret at
startup. Suitable for an agent hot wallet with small amounts.

WARNING: The private key lives in process memory. The custodian never logs
it; only the derived public key is exposed.
"""

import logging
from typing import Optional

import base58
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.transaction import VersionedTransaction

from jupswap.config import Settings, get_settings
from jupswap.errors import SigningFailed, WalletNotInitialized
from jupswap.routing.base import UnsignedTransaction
from jupswap.signing.base import KeyCustodian, SignedTransaction

logger = logging.getLogger(__name__)


class LocalKeyCustodian(KeyCustodian):
    """Key custodian backed by an in-memory ``solders`` keypair.

    The keypair and RPC handle are assigned together only after both have
    been created, so callers never observe a half-initialized custodian.
    After initialization nothing mutates them, which makes ``sign`` safe
    to call from concurrent swaps.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._keypair: Optional[Keypair] = None
        self._connection: Optional[AsyncClient] = None

    def initialize(self, secret: Optional[str] = None) -> bool:
        """Decode the secret and open the RPC handle.

        Args:
            secret: Base-58 secret key (64-byte keypair). Falls back to
                SOLANA_PRIVATE_KEY from settings when omitted.

        Returns:
            True if the wallet is ready, False in quote-only mode
        """
        if secret is None:
            secret = self.settings.solana_private_key

        if not secret or not secret.strip():
            logger.warning(
                "No private key provided in environment variables. Wallet features will be disabled."
            )
            return False

        try:
            keypair = Keypair.from_bytes(base58.b58decode(secret.strip()))
        except (TypeError, ValueError) as e:
            # Never echo the secret
            logger.error(f"Failed to initialize wallet: invalid secret key ({type(e).__name__})")
            return False

        connection = AsyncClient(self.settings.rpc_endpoint, commitment=Confirmed)

        self._keypair = keypair
        self._connection = connection
        logger.info(f"Wallet initialized with public key: {keypair.pubkey()}")
        return True

    def is_ready(self) -> bool:
        return self._keypair is not None and self._connection is not None

    @property
    def connection(self) -> AsyncClient:
        """RPC handle opened at initialization."""
        if self._connection is None:
            raise WalletNotInitialized("Connection not initialized")
        return self._connection

    def public_identity(self) -> str:
        if self._keypair is None:
            raise WalletNotInitialized("Wallet not initialized")
        return str(self._keypair.pubkey())

    def sign(self, transaction: UnsignedTransaction) -> SignedTransaction:
        """Sign a serialized versioned transaction.

        Only the slot belonging to this keypair is filled in; other
        signatures already present are kept, so partially signed
        transactions work too. Ed25519 signing is deterministic: the same
        bytes and key always produce the same output.
        """
        if self._keypair is None:
            raise WalletNotInitialized("Wallet not initialized. Cannot sign transaction.")

        try:
            tx = VersionedTransaction.from_bytes(transaction.payload)
        except Exception as e:
            logger.error(f"Error decoding transaction for signing: {type(e).__name__}")
            raise SigningFailed(f"Failed to decode transaction: {e}") from e

        message = tx.message
        pubkey = self._keypair.pubkey()
        num_signers = message.header.num_required_signatures
        signer_keys = list(message.account_keys[:num_signers])

        if pubkey not in signer_keys:
            raise SigningFailed(f"Wallet {pubkey} is not a required signer of this transaction")

        signatures = list(tx.signatures)
        signatures[signer_keys.index(pubkey)] = self._keypair.sign_message(to_bytes_versioned(message))

        try:
            signed = VersionedTransaction.populate(message, signatures)
        except Exception as e:
            logger.error(f"Error signing transaction: {e}")
            raise SigningFailed(f"Failed to sign transaction: {e}") from e

        return SignedTransaction(payload=bytes(signed), signature=str(signed.signatures[0]))

    async def close(self) -> None:
        """Close the RPC handle and forget the keypair."""
        connection = self._connection
        self._keypair = None
        self._connection = None
        if connection is not None:
            await connection.close()
            logger.info("Wallet connection closed")

    def __repr__(self) -> str:
        identity = str(self._keypair.pubkey()) if self._keypair else "uninitialized"
        return f"LocalKeyCustodian(pubkey={identity})"


def create_custodian(settings: Optional[Settings] = None) -> LocalKeyCustodian:
    """Create a custodian and initialize it from settings.

    The returned custodian may be uninitialized (quote-only mode).
    """
    custodian = LocalKeyCustodian(settings=settings)
    custodian.initialize()
    return custodian
