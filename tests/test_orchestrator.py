"""Tests for the swap orchestrator pipeline."""

import base64
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.transaction import VersionedTransaction
from solders.transaction_status import TransactionConfirmationStatus

from jupswap.errors import (
    BuildFailed,
    ConfirmationTimeout,
    QuoteUnavailable,
    SimulationFailed,
    SwapError,
    SwapErrorKind,
    TransportError,
)
from jupswap.ledger import Confirmation
from jupswap.routing import Quote, UnsignedTransaction
from jupswap.routing.jupiter import SOL_MINT, USDC_MINT, JupiterTransactionBuilder
from jupswap.signing import SignedTransaction
from jupswap.swap import ConfirmationStatus, SwapOrchestrator, SwapStage, create_orchestrator

WALLET = str(Keypair().pubkey())


@pytest.fixture
def quote(quote_data):
    return Quote.from_api(quote_data)


@pytest.fixture
def components(quote):
    """Spy collaborators for a swap that succeeds end to end."""
    provider = MagicMock()
    provider.get_quote = AsyncMock(return_value=quote)

    builder = MagicMock()
    builder.build_transaction = AsyncMock(
        return_value=UnsignedTransaction(payload=b"unsigned", compute_unit_limit=200_000)
    )

    custodian = MagicMock()
    custodian.is_ready.return_value = True
    custodian.public_identity.return_value = WALLET
    custodian.sign.return_value = SignedTransaction(payload=b"signed", signature="5igSig")
    custodian.sign_bytes.return_value = SignedTransaction(payload=b"signed", signature="5igSig")

    ledger = MagicMock()
    ledger.submit = AsyncMock(return_value="5igSig")
    ledger.confirm = AsyncMock(return_value=Confirmation(confirmed=True, status="confirmed"))

    return provider, builder, custodian, ledger


@pytest.fixture
def orchestrator(components, settings):
    provider, builder, custodian, ledger = components
    return SwapOrchestrator(provider, builder, custodian, ledger, settings=settings)


class TestExecuteSwap:
    """Tests for the full pipeline."""

    @pytest.mark.asyncio
    async def test_success(self, orchestrator, components):
        """Test a swap that confirms reports the quote's amounts."""
        provider, builder, custodian, ledger = components

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, "1000000000")

        assert result.success is True
        assert result.status == ConfirmationStatus.CONFIRMED
        assert result.stage == SwapStage.SUCCEEDED
        assert result.signature == "5igSig"
        assert result.out_amount == 150_250_000
        assert result.error_kind is None

        provider.get_quote.assert_awaited_once()
        builder.build_transaction.assert_awaited_once()
        assert builder.build_transaction.call_args.args[1] == WALLET
        custodian.sign.assert_called_once()
        ledger.submit.assert_awaited_once()
        assert ledger.confirm.call_args.kwargs["commitment"] == "confirmed"

    @pytest.mark.asyncio
    async def test_default_policy_applied(self, orchestrator, components):
        """Test default slippage and route restriction reach the provider."""
        provider, builder, _, _ = components

        await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        kwargs = provider.get_quote.call_args.kwargs
        assert kwargs["slippage_bps"] == 50
        assert kwargs["restrict_intermediate_tokens"] is True
        assert kwargs["only_direct_routes"] is False

        fee = builder.build_transaction.call_args.kwargs["priority_fee"]
        assert fee.max_lamports == 1_000_000
        assert fee.priority_level == "veryHigh"

    @pytest.mark.asyncio
    async def test_invalid_address_makes_no_calls(self, orchestrator, components):
        provider, _, _, ledger = components

        result = await orchestrator.execute_swap("not-a-mint", USDC_MINT, 1000)

        assert result.success is False
        assert result.error_kind == SwapErrorKind.INVALID_ADDRESS
        assert result.stage == SwapStage.VALIDATING
        provider.get_quote.assert_not_awaited()
        ledger.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_amount(self, orchestrator, components):
        provider, _, _, _ = components

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, "1.5")

        assert result.error_kind == SwapErrorKind.INVALID_AMOUNT
        provider.get_quote.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wallet_not_initialized(self, orchestrator, components):
        """Test a missing wallet fails before any network call."""
        provider, builder, custodian, _ = components
        custodian.is_ready.return_value = False

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        assert result.error_kind == SwapErrorKind.WALLET_NOT_INITIALIZED
        assert result.status == ConfirmationStatus.FAILED
        provider.get_quote.assert_not_awaited()
        builder.build_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_quote_unavailable(self, orchestrator, components):
        provider, builder, _, _ = components
        provider.get_quote.side_effect = QuoteUnavailable("No routes found")

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        assert result.error_kind == SwapErrorKind.QUOTE_UNAVAILABLE
        assert result.stage == SwapStage.QUOTING
        builder.build_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_simulation_failure_never_signs(self, orchestrator, components):
        """Test a simulation error stops the pipeline before signing."""
        _, builder, custodian, ledger = components
        builder.build_transaction.side_effect = SimulationFailed(
            "Simulation error: slippage", details={"errorCode": "SLIPPAGE"}
        )

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        assert result.error_kind == SwapErrorKind.SIMULATION_FAILED
        assert result.stage == SwapStage.BUILDING
        assert result.error_details == {"errorCode": "SLIPPAGE"}
        custodian.sign.assert_not_called()
        ledger.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexecutable_transaction_never_signs(self, orchestrator, components):
        _, builder, custodian, ledger = components
        builder.build_transaction.return_value = UnsignedTransaction(
            payload=b"unsigned", simulation_error="InsufficientFunds"
        )

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        assert result.error_kind == SwapErrorKind.SIMULATION_FAILED
        custodian.sign.assert_not_called()
        ledger.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_build_failed(self, orchestrator, components):
        _, builder, _, _ = components
        builder.build_transaction.side_effect = BuildFailed("HTTP 500")

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        assert result.error_kind == SwapErrorKind.BUILD_FAILED

    @pytest.mark.asyncio
    async def test_transport_error(self, orchestrator, components):
        """Test a failed broadcast never waits for confirmation."""
        _, _, _, ledger = components
        ledger.submit.side_effect = TransportError("connection refused")

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        assert result.error_kind == SwapErrorKind.TRANSPORT_ERROR
        assert result.stage == SwapStage.SUBMITTING
        assert result.signature is None
        ledger.confirm.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transaction_failed(self, orchestrator, components):
        """Test an on-chain error yields a failed result with the signature."""
        _, _, _, ledger = components
        ledger.confirm.return_value = Confirmation(
            confirmed=False, err={"InstructionError": [3, {"Custom": 6001}]}
        )

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        assert result.success is False
        assert result.error_kind == SwapErrorKind.TRANSACTION_FAILED
        assert result.status == ConfirmationStatus.FAILED
        assert result.signature == "5igSig"
        assert result.error_details == {"InstructionError": [3, {"Custom": 6001}]}
        assert result.possibly_landed is False

    @pytest.mark.asyncio
    async def test_confirmation_timeout_is_pending(self, orchestrator, components):
        """Test a timeout is reported as pending, distinct from a failure."""
        _, _, _, ledger = components
        ledger.confirm.side_effect = ConfirmationTimeout("not confirmed", signature="5igSig")

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        assert result.success is False
        assert result.error_kind == SwapErrorKind.CONFIRMATION_TIMEOUT
        assert result.status == ConfirmationStatus.PENDING
        assert result.stage == SwapStage.CONFIRMING
        assert result.signature == "5igSig"
        assert result.possibly_landed is True

    @pytest.mark.asyncio
    async def test_result_to_dict(self, orchestrator):
        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        data = result.to_dict()
        assert data["status"] == "confirmed"
        assert data["out_amount"] == "150250000"
        assert data["price_impact_pct"] == "0.0012"


class TestGetQuote:
    @pytest.mark.asyncio
    async def test_works_without_wallet(self, orchestrator, components, quote):
        provider, _, custodian, _ = components
        custodian.is_ready.return_value = False

        result = await orchestrator.get_quote(SOL_MINT, USDC_MINT, "1000000000", slippage_bps=100)

        assert result == quote
        assert provider.get_quote.call_args.kwargs["slippage_bps"] == 100

    @pytest.mark.asyncio
    async def test_slippage_out_of_range(self, orchestrator):
        with pytest.raises(SwapError) as exc_info:
            await orchestrator.get_quote(SOL_MINT, USDC_MINT, 1000, slippage_bps=20_000)

        assert exc_info.value.kind == SwapErrorKind.INVALID_AMOUNT


class TestBuildSwapTransaction:
    """Tests for building without executing."""

    @pytest.mark.asyncio
    async def test_uses_custodian_key(self, orchestrator, components, quote_data):
        _, builder, _, _ = components

        unsigned = await orchestrator.build_swap_transaction(quote_data)

        assert unsigned.payload == b"unsigned"
        assert builder.build_transaction.call_args.args[1] == WALLET
        assert builder.build_transaction.call_args.args[0].raw == quote_data

    @pytest.mark.asyncio
    async def test_user_key_without_wallet(self, orchestrator, components, quote):
        _, builder, custodian, _ = components
        custodian.is_ready.return_value = False
        user_key = str(Keypair().pubkey())

        await orchestrator.build_swap_transaction(quote, user_public_key=user_key)

        assert builder.build_transaction.call_args.args[1] == user_key

    @pytest.mark.asyncio
    async def test_no_signer(self, orchestrator, components, quote):
        _, builder, custodian, _ = components
        custodian.is_ready.return_value = False

        with pytest.raises(SwapError) as exc_info:
            await orchestrator.build_swap_transaction(quote)

        assert exc_info.value.kind == SwapErrorKind.NO_SIGNER_AVAILABLE
        builder.build_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_quote(self, orchestrator):
        with pytest.raises(QuoteUnavailable):
            await orchestrator.build_swap_transaction('{"inputMint": "x"}')


class TestSendSwapTransaction:
    """Tests for submitting a serialized transaction."""

    @pytest.mark.asyncio
    async def test_signs_and_sends(self, orchestrator, components):
        _, _, custodian, ledger = components
        encoded = base64.b64encode(b"unsigned").decode()

        result = await orchestrator.send_swap_transaction(encoded, commitment="finalized")

        assert result.success is True
        assert result.signature == "5igSig"
        custodian.sign_bytes.assert_called_once_with(b"unsigned")
        assert ledger.confirm.call_args.kwargs["commitment"] == "finalized"

    @pytest.mark.asyncio
    async def test_missing_transaction(self, orchestrator, components):
        _, _, _, ledger = components

        result = await orchestrator.send_swap_transaction("")

        assert result.error_kind == SwapErrorKind.INVALID_TRANSACTION
        ledger.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_base64(self, orchestrator):
        result = await orchestrator.send_swap_transaction("%%%")

        assert result.error_kind == SwapErrorKind.INVALID_TRANSACTION

    @pytest.mark.asyncio
    async def test_wallet_required_to_sign(self, orchestrator, components):
        _, _, custodian, ledger = components
        custodian.is_ready.return_value = False

        result = await orchestrator.send_swap_transaction(base64.b64encode(b"tx").decode())

        assert result.error_kind == SwapErrorKind.WALLET_NOT_INITIALIZED
        ledger.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_presigned(self, orchestrator, components, unsigned_payload):
        """Test a transaction sent as-is uses its own first signature."""
        _, _, custodian, ledger = components

        result = await orchestrator.send_swap_transaction(
            base64.b64encode(unsigned_payload).decode(), sign=False
        )

        assert result.success is True
        custodian.sign_bytes.assert_not_called()
        assert ledger.submit.call_args.args[0].payload == unsigned_payload


class TestWiring:
    """Tests for create_orchestrator with real components."""

    @pytest.mark.asyncio
    async def test_quote_only_mode(self, settings):
        orchestrator = create_orchestrator(settings)

        assert orchestrator.custodian.is_ready() is False
        assert orchestrator.ledger.settings is settings

        await orchestrator.ledger.close()

    @pytest.mark.asyncio
    async def test_end_to_end(self, wallet_settings, keypair, quote_data, unsigned_payload):
        """Test a swap through Jupiter, the local custodian and the ledger client."""
        requests = []

        def jupiter(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path.endswith("/quote"):
                return httpx.Response(200, json=quote_data)
            return httpx.Response(
                200,
                json={"swapTransaction": base64.b64encode(unsigned_payload).decode()},
            )

        orchestrator = create_orchestrator(wallet_settings, transport=httpx.MockTransport(jupiter))

        connection = MagicMock()
        connection.send_raw_transaction = AsyncMock(
            side_effect=lambda payload, opts: MagicMock(
                value=VersionedTransaction.from_bytes(payload).signatures[0]
            )
        )
        connection.get_signature_statuses = AsyncMock(
            return_value=MagicMock(
                value=[
                    MagicMock(
                        err=None,
                        confirmation_status=TransactionConfirmationStatus.Confirmed,
                        slot=1,
                    )
                ]
            )
        )
        orchestrator.ledger.connection = connection

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, "1000000000")

        assert result.success is True
        assert result.out_amount == 150_250_000
        assert [r.url.path.rsplit("/", 1)[-1] for r in requests] == ["quote", "swap"]

        sent = VersionedTransaction.from_bytes(connection.send_raw_transaction.call_args.args[0])
        assert str(sent.signatures[0]) == result.signature
        assert sent.signatures[0].verify(keypair.pubkey(), to_bytes_versioned(sent.message))

        await orchestrator.custodian.close()


class TestCallerOverrides:
    """Tests for per-call policy overrides."""

    @pytest.mark.asyncio
    async def test_unrestricted_routes_on_execute(self, orchestrator, components):
        provider, _, _, _ = components

        await orchestrator.execute_swap(
            SOL_MINT, USDC_MINT, 1000, restrict_intermediate_tokens=False
        )

        assert provider.get_quote.call_args.kwargs["restrict_intermediate_tokens"] is False

    @pytest.mark.asyncio
    async def test_unrestricted_routes_on_quote(self, orchestrator, components):
        provider, _, custodian, _ = components
        custodian.is_ready.return_value = False

        await orchestrator.get_quote(SOL_MINT, USDC_MINT, 1000, restrict_intermediate_tokens=False)

        assert provider.get_quote.call_args.kwargs["restrict_intermediate_tokens"] is False

    @pytest.mark.asyncio
    async def test_settings_default_when_omitted(self, orchestrator, components):
        provider, _, _, _ = components

        await orchestrator.get_quote(SOL_MINT, USDC_MINT, 1000)

        assert provider.get_quote.call_args.kwargs["restrict_intermediate_tokens"] is True


class TestFailureResults:
    """Tests for what a failed result still reports."""

    @pytest.mark.asyncio
    async def test_amounts_kept_after_broadcast_failure(self, orchestrator, components):
        _, _, _, ledger = components
        ledger.submit.side_effect = TransportError("connection refused")

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, "1000000000")

        assert result.in_amount == 1_000_000_000
        assert result.out_amount == 150_250_000
        assert result.input_mint == SOL_MINT
        assert result.output_mint == USDC_MINT

    @pytest.mark.asyncio
    async def test_amounts_kept_after_timeout(self, orchestrator, components):
        _, _, _, ledger = components
        ledger.confirm.side_effect = ConfirmationTimeout("not confirmed", signature="5igSig")

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        assert result.in_amount == 1000
        assert result.signature == "5igSig"

    @pytest.mark.asyncio
    async def test_unknown_commitment_never_submits(self, orchestrator, components):
        """Test a bad commitment level is rejected before anything is sent."""
        _, _, custodian, ledger = components

        result = await orchestrator.send_swap_transaction(
            base64.b64encode(b"unsigned").decode(), commitment="max"
        )

        assert result.success is False
        assert result.error_kind == SwapErrorKind.INVALID_TRANSACTION
        assert result.stage == SwapStage.VALIDATING
        custodian.sign_bytes.assert_not_called()
        ledger.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_object_swap_body_is_classified(self, components, settings):
        """Test a malformed build response becomes a failed result."""
        provider, _, custodian, ledger = components
        builder = JupiterTransactionBuilder(
            settings=settings,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=["unexpected"])),
        )
        orchestrator = SwapOrchestrator(provider, builder, custodian, ledger, settings=settings)

        result = await orchestrator.execute_swap(SOL_MINT, USDC_MINT, 1000)

        assert result.success is False
        assert result.error_kind == SwapErrorKind.BUILD_FAILED
        assert result.stage == SwapStage.BUILDING
        custodian.sign.assert_not_called()
        ledger.submit.assert_not_awaited()
