"""Abstract routing interface and the typed values that flow through it."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

logger = logging.getLogger(__name__)


def _to_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(value)


@dataclass(frozen=True)
class RouteHop:
    """One leg of a route through a liquidity venue."""

    amm_key: str
    label: str
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    fee_amount: int = 0
    fee_mint: str = ""
    percent: int = 100

    @classmethod
    def from_api(cls, step: Mapping[str, Any]) -> "RouteHop":
        swap_info = step.get("swapInfo") or {}
        return cls(
            amm_key=swap_info.get("ammKey", ""),
            label=swap_info.get("label", "Unknown"),
            input_mint=swap_info.get("inputMint", ""),
            output_mint=swap_info.get("outputMint", ""),
            in_amount=_to_int(swap_info.get("inAmount")),
            out_amount=_to_int(swap_info.get("outAmount")),
            fee_amount=_to_int(swap_info.get("feeAmount")),
            fee_mint=swap_info.get("feeMint", ""),
            percent=_to_int(step.get("percent"), 100),
        )


@dataclass(frozen=True)
class Quote:
    """A priced route from Jupiter.

    ``raw`` keeps the response exactly as received; the swap endpoint needs
    it echoed back unchanged, so it is never rebuilt from the parsed fields.
    """

    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    other_amount_threshold: int
    slippage_bps: int
    price_impact_pct: Decimal
    route: tuple[RouteHop, ...] = ()
    swap_mode: str = "ExactIn"
    context_slot: Optional[int] = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: Union[Mapping[str, Any], str]) -> "Quote":
        """Parse a Jupiter quote response.

        Accepts the decoded JSON object or its string form.

        Raises:
            ValueError: If the payload is not a usable quote
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise ValueError(f"Quote is not valid JSON: {e}") from e

        if not isinstance(data, Mapping):
            raise ValueError("Quote must be a JSON object")

        missing = [k for k in ("inputMint", "outputMint", "outAmount") if not data.get(k)]
        if missing:
            raise ValueError(f"Quote is missing fields: {', '.join(missing)}")

        try:
            out_amount = int(data["outAmount"])
            in_amount = _to_int(data.get("inAmount"))
            price_impact = Decimal(str(data.get("priceImpactPct") or "0"))
            route = tuple(RouteHop.from_api(step) for step in data.get("routePlan") or [])
            context_slot = data.get("contextSlot")
            return cls(
                input_mint=data["inputMint"],
                output_mint=data["outputMint"],
                in_amount=in_amount,
                out_amount=out_amount,
                other_amount_threshold=_to_int(data.get("otherAmountThreshold"), out_amount),
                slippage_bps=_to_int(data.get("slippageBps")),
                price_impact_pct=price_impact,
                route=route,
                swap_mode=data.get("swapMode") or "ExactIn",
                context_slot=int(context_slot) if context_slot is not None else None,
                raw=dict(data),
            )
        except (TypeError, ValueError, InvalidOperation) as e:
            raise ValueError(f"Malformed quote: {e}") from e

    @property
    def hop_count(self) -> int:
        return len(self.route)

    @property
    def dex_labels(self) -> list[str]:
        """Venue labels in route order."""
        return [hop.label for hop in self.route]

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "input_mint": self.input_mint,
            "output_mint": self.output_mint,
            "in_amount": str(self.in_amount),
            "out_amount": str(self.out_amount),
            "other_amount_threshold": str(self.other_amount_threshold),
            "slippage_bps": self.slippage_bps,
            "price_impact_pct": str(self.price_impact_pct),
            "swap_mode": self.swap_mode,
            "context_slot": self.context_slot,
            "route": self.dex_labels,
        }


@dataclass(frozen=True)
class PriorityFeePolicy:
    """Priority fee for expedited inclusion, capped at ``max_lamports``."""

    max_lamports: int = 1_000_000
    priority_level: str = "veryHigh"
    global_fee_market: bool = False

    def to_api(self) -> dict:
        return {
            "priorityLevelWithMaxLamports": {
                "maxLamports": self.max_lamports,
                "global": self.global_fee_market,
                "priorityLevel": self.priority_level,
            }
        }


@dataclass(frozen=True)
class UnsignedTransaction:
    """Serialized swap transaction returned by the builder.

    Must not be signed or submitted while ``simulation_error`` is set.
    """

    payload: bytes = field(repr=False)
    last_valid_block_height: Optional[int] = None
    prioritization_fee_lamports: Optional[int] = None
    compute_unit_limit: Optional[int] = None
    simulation_error: Optional[Any] = None
    dynamic_slippage_report: Optional[dict] = None

    @property
    def is_executable(self) -> bool:
        return self.simulation_error is None


class QuoteProvider(ABC):
    """Source of priced routes."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        pass

    @abstractmethod
    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: Optional[int] = None,
        only_direct_routes: Optional[bool] = None,
        restrict_intermediate_tokens: Optional[bool] = None,
    ) -> Quote:
        """
        Get a swap quote.

        Args:
            input_mint: Input token mint address
            output_mint: Output token mint address
            amount: Amount in smallest units of the input token
            slippage_bps: Slippage tolerance in basis points (50 = 0.5%)
            only_direct_routes: Only route through a single venue
            restrict_intermediate_tokens: Keep intermediate hops on well-known tokens

        Returns:
            Quote for the pair

        Raises:
            QuoteUnavailable: If no usable quote could be fetched
        """
        pass


class TransactionBuilder(ABC):
    """Turns a quote into an unsigned transaction for a given signer."""

    @abstractmethod
    async def build_transaction(
        self,
        quote: Quote,
        user_public_key: str,
        priority_fee: Optional[Union[PriorityFeePolicy, int]] = None,
        dynamic_compute_unit_limit: bool = True,
        dynamic_slippage: bool = True,
    ) -> UnsignedTransaction:
        """
        Build an unsigned swap transaction.

        Raises:
            SimulationFailed: If the remote simulation reported an error
            BuildFailed: If the remote service could not build the transaction
        """
        pass
