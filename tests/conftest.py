"""Pytest configuration and fixtures."""

import os

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["SOLANA_PRIVATE_KEY"] = ""
os.environ["JUPITER_API_KEY"] = ""
os.environ["DEBUG"] = "true"

from jupswap.config import Settings, get_settings
from jupswap.routing.jupiter import SOL_MINT, USDC_MINT

# Recorded shape of a Jupiter SOL -> USDC quote
SOL_USDC_QUOTE = {
    "inputMint": SOL_MINT,
    "inAmount": "1000000000",
    "outputMint": USDC_MINT,
    "outAmount": "150250000",
    "otherAmountThreshold": "149498750",
    "swapMode": "ExactIn",
    "slippageBps": 50,
    "platformFee": None,
    "priceImpactPct": "0.0012",
    "routePlan": [
        {
            "swapInfo": {
                "ammKey": "58oQChx4yWmvKdwLLZzBi4ChoCc2fqCUWBkwMihLYQo2",
                "label": "Raydium",
                "inputMint": SOL_MINT,
                "outputMint": USDC_MINT,
                "inAmount": "1000000000",
                "outAmount": "150250000",
                "feeAmount": "2500000",
                "feeMint": SOL_MINT,
            },
            "percent": 100,
        }
    ],
    "contextSlot": 299283763,
    "timeTaken": 0.0123,
}


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Each test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings with fast retry and polling, no wallet."""
    return Settings(
        _env_file=None,
        solana_private_key=None,
        send_retry_backoff_seconds=0,
        confirm_timeout_seconds=1.0,
        confirm_poll_interval_seconds=0.01,
    )


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def wallet_settings(settings: Settings, keypair: Keypair) -> Settings:
    """Settings with a signing key configured."""
    return settings.model_copy(update={"solana_private_key": str(keypair)})


def build_unsigned_payload(payer: Pubkey) -> bytes:
    """Serialize a one-instruction v0 transaction with an empty signature slot."""
    instruction = transfer(
        TransferParams(from_pubkey=payer, to_pubkey=Pubkey.new_unique(), lamports=1_000)
    )
    message = MessageV0.try_compile(payer, [instruction], [], Hash.default())
    return bytes(VersionedTransaction.populate(message, [Signature.default()]))


@pytest.fixture
def unsigned_payload(keypair: Keypair) -> bytes:
    return build_unsigned_payload(keypair.pubkey())


@pytest.fixture
def quote_data() -> dict:
    return dict(SOL_USDC_QUOTE)


@pytest.fixture
def payload_factory():
    """Build unsigned payloads for an arbitrary fee payer."""
    return build_unsigned_payload
