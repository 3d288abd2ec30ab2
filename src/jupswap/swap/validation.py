"""Input validation for swap requests.

Runs before any network call so malformed input never costs a request.
"""

import re
from typing import Optional, Union

from solders.pubkey import Pubkey

from jupswap.errors import InvalidAddress, InvalidAmount

# Base-58 alphabet, 32-44 chars for a 32-byte key
SOLANA_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
AMOUNT_RE = re.compile(r"^[0-9]+$")

MAX_SLIPPAGE_BPS = 10_000


def validate_address(address: str, field: str = "address") -> str:
    """Check that ``address`` is a well-formed Solana public key.

    Returns:
        The stripped address

    Raises:
        InvalidAddress: If the value is not a 32-byte base-58 key
    """
    if not address or not isinstance(address, str):
        raise InvalidAddress(f"Invalid public key for {field}: value is required")

    address = address.strip()
    if not SOLANA_ADDRESS_RE.match(address):
        raise InvalidAddress(f"Invalid public key for {field}: {address}")

    try:
        Pubkey.from_string(address)
    except ValueError as e:
        raise InvalidAddress(f"Invalid public key for {field}: {address}") from e

    return address


def parse_amount(amount: Union[str, int]) -> int:
    """Parse an amount in smallest units.

    Accepts an int or a string of decimal digits. Decimals, signs,
    exponents and whitespace-only strings are rejected.
    """
    if isinstance(amount, bool):
        raise InvalidAmount("Invalid amount. Please provide a valid number.")

    if isinstance(amount, int):
        if amount < 0:
            raise InvalidAmount(f"Invalid amount: {amount} is negative")
        return amount

    if not isinstance(amount, str) or not AMOUNT_RE.match(amount.strip()):
        raise InvalidAmount(f"Invalid amount: {amount!r}. Please provide a valid number.")

    return int(amount.strip())


def validate_slippage(slippage_bps: Optional[int]) -> Optional[int]:
    if slippage_bps is None:
        return None
    if isinstance(slippage_bps, bool) or not isinstance(slippage_bps, int):
        raise InvalidAmount(f"Invalid slippage: {slippage_bps!r}")
    if not 0 <= slippage_bps <= MAX_SLIPPAGE_BPS:
        raise InvalidAmount(f"Slippage must be between 0 and {MAX_SLIPPAGE_BPS} bps, got {slippage_bps}")
    return slippage_bps
