"""Base interfaces for transaction signing.

Signing flow:
1. Builder returns an unsigned transaction
2. Custodian signs it locally with the keypair it holds
3. Signed bytes go to the ledger client for broadcast

Implementations should NEVER expose raw private keys. Only the derived
public identity is observable.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from jupswap.routing.base import UnsignedTransaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedTransaction:
    """Serialized transaction with signatures attached.

    Attributes:
        payload: Wire bytes ready for broadcast
        signature: Base-58 fee payer signature (the transaction id)
    """

    payload: bytes = field(repr=False)
    signature: str


class KeyCustodian(ABC):
    """Holds one signing keypair for the lifetime of the process.

    Either fully initialized (keypair and RPC handle present) or fully
    uninitialized.
    """

    @abstractmethod
    def initialize(self, secret: "str | None") -> bool:
        """Load the keypair from secret material.

        Returns:
            True if ready to sign, False if no usable secret was configured
        """
        pass

    @abstractmethod
    def is_ready(self) -> bool:
        pass

    @abstractmethod
    def public_identity(self) -> str:
        """Base-58 public key of the held keypair.

        Raises:
            WalletNotInitialized: If no keypair is loaded
        """
        pass

    @abstractmethod
    def sign(self, transaction: UnsignedTransaction) -> SignedTransaction:
        """Sign a transaction locally.

        Raises:
            WalletNotInitialized: If no keypair is loaded
            SigningFailed: If the payload cannot be signed with this key
        """
        pass

    def sign_bytes(self, payload: bytes) -> SignedTransaction:
        """Sign a raw serialized transaction."""
        return self.sign(UnsignedTransaction(payload=payload))

    async def close(self) -> None:
        """Release resources held by the custodian."""
        return None

    def __repr__(self) -> str:
        identity = self.public_identity() if self.is_ready() else "uninitialized"
        return f"{self.__class__.__name__}(pubkey={identity})"
