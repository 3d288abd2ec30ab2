"""Transaction signing.

Provides:
- KeyCustodian: interface for the process-wide signing key holder
- LocalKeyCustodian: in-memory keypair decoded from a base-58 secret
"""

from jupswap.signing.base import KeyCustodian, SignedTransaction
from jupswap.signing.local import LocalKeyCustodian, create_custodian

__all__ = [
    "KeyCustodian",
    "SignedTransaction",
    "LocalKeyCustodian",
    "create_custodian",
]
