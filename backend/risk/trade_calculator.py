from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, List, Mapping, Optional, Sequence

from backend.core.logging import get_logger


logger = get_logger(__name__)

# Taker fee per side, in percent of notional.
FEE_RATE_PCT = 0.04
RESULT_DECIMALS = 2

MARGIN_ADJUSTED_WARNING = "Position size adjusted due to margin limit"
INVALID_NUMBERS_MESSAGE = "All inputs must be valid numbers"

INPUT_FIELDS = ("max_risk", "profit_percent", "stop_loss_percent", "leverage", "margin_limit")

# Front-end form names -> core field names.
INPUT_ALIASES = {
    "maxRisk": "max_risk",
    "margin": "max_risk",
    "profitPercent": "profit_percent",
    "profit": "profit_percent",
    "stopLossPercent": "stop_loss_percent",
    "loss": "stop_loss_percent",
    "marginLimit": "margin_limit",
}


class InvalidInputError(ValueError):
    """Raised when trade inputs cannot be used for a calculation."""

    def __init__(self, message: str, fields: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.fields = list(fields)


@dataclass(frozen=True)
class TradeInputs:
    max_risk: float
    profit_percent: float
    stop_loss_percent: float
    leverage: float
    margin_limit: float

    @classmethod
    def from_raw(
        cls,
        *,
        max_risk: Any,
        profit_percent: Any,
        stop_loss_percent: Any,
        leverage: Any,
        margin_limit: Any,
    ) -> "TradeInputs":
        """Parse strings or numbers into inputs, reporting every bad field at once."""
        raw = {
            "max_risk": max_risk,
            "profit_percent": profit_percent,
            "stop_loss_percent": stop_loss_percent,
            "leverage": leverage,
            "margin_limit": margin_limit,
        }
        parsed: Dict[str, float] = {}
        invalid: List[str] = []
        for name in INPUT_FIELDS:
            value = _to_finite_float(raw[name])
            if value is None:
                invalid.append(name)
            else:
                parsed[name] = value
        if invalid:
            raise InvalidInputError(INVALID_NUMBERS_MESSAGE, invalid)
        return cls(**parsed)


@dataclass(frozen=True)
class TradeResult:
    position_size: float
    margin_required: float
    total_fees: float
    actual_risk: float
    expected_profit: float
    margin_adjusted: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_number(name: str, value: Any) -> float:
    """Return ``value`` as a finite float or raise InvalidInputError naming the field."""
    number = _to_finite_float(value)
    if number is None:
        raise InvalidInputError(INVALID_NUMBERS_MESSAGE, [name])
    return number


def parse_inputs(payload: Mapping[str, Any]) -> TradeInputs:
    """
    Build TradeInputs from a mapping keyed by core names or front-end form names.

    Missing keys are reported the same way as unparseable values.
    """
    normalized: Dict[str, Any] = {}
    for key, value in payload.items():
        name = INPUT_ALIASES.get(key, key)
        if name in INPUT_FIELDS:
            normalized[name] = value
    for name in INPUT_FIELDS:
        normalized.setdefault(name, None)
    return TradeInputs.from_raw(**normalized)


def round_half_up(value: float, places: int = RESULT_DECIMALS) -> float:
    """Round half away from zero on the exact decimal value of the float."""
    return _quantize(value, places, ROUND_HALF_UP)


def round_floor(value: float, places: int = RESULT_DECIMALS) -> float:
    """Round toward negative infinity, so the result never exceeds ``value``."""
    return _quantize(value, places, ROUND_FLOOR)


def _quantize(value: float, places: int, rounding: str) -> float:
    if not math.isfinite(value):
        return value
    exact = Decimal(value)
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the kept decimals
        ctx.prec = max(ctx.prec, exact.adjusted() + places + 2)
        return float(exact.quantize(Decimal(1).scaleb(-places), rounding=rounding))


def validate_domain(inputs: TradeInputs, enforce: bool = True) -> None:
    """
    Reject inputs that make the sizing formulas meaningless.

    With ``enforce`` off only a zero leverage is rejected, since it cannot be divided by.
    """
    if inputs.leverage == 0:
        raise InvalidInputError("Leverage must be greater than zero", ["leverage"])
    if not enforce:
        return
    if inputs.max_risk <= 0:
        raise InvalidInputError("Maximum risk must be greater than zero", ["max_risk"])
    if inputs.stop_loss_percent < 0:
        raise InvalidInputError("Stop loss percent cannot be negative", ["stop_loss_percent"])
    if inputs.leverage < 0:
        raise InvalidInputError("Leverage must be greater than zero", ["leverage"])
    if inputs.margin_limit <= 0:
        raise InvalidInputError("Margin limit must be greater than zero", ["margin_limit"])


def calculate(
    inputs: TradeInputs,
    fee_rate_pct: float = FEE_RATE_PCT,
    enforce_domain: bool = True,
) -> TradeResult:
    """
    Size a leveraged trade so that the loss at stop plus round-trip fees equals ``max_risk``.

    Margin above ``margin_limit`` is clamped to the limit and the position shrunk to match;
    the result then carries ``margin_adjusted`` and an advisory in ``warnings``.
    All monetary outputs are rounded to two decimals from unrounded intermediates.
    """
    validate_domain(inputs, enforce_domain)
    fee_pct = _to_finite_float(fee_rate_pct)
    if fee_pct is None or fee_pct < 0:
        raise InvalidInputError("Fee rate must be a non-negative number", ["fee_rate_pct"])

    round_trip_fee_pct = 2 * fee_pct
    loss_pct = inputs.stop_loss_percent + round_trip_fee_pct
    if loss_pct == 0:
        raise InvalidInputError("Stop loss and fees cannot both be zero", ["stop_loss_percent"])

    position_size = (inputs.max_risk * 100) / loss_pct
    margin_required = position_size / inputs.leverage

    warnings: List[str] = []
    margin_adjusted = False
    if margin_required > inputs.margin_limit:
        logger.warning(
            "trade_margin_clamped",
            extra={
                "event": "trade_margin_clamped",
                "margin_required": margin_required,
                "margin_limit": inputs.margin_limit,
                "leverage": inputs.leverage,
            },
        )
        # Limit floored to the reported precision so the rounded margin stays within it.
        margin_required = round_floor(inputs.margin_limit)
        position_size = margin_required * inputs.leverage
        margin_adjusted = True
        warnings.append(MARGIN_ADJUSTED_WARNING)

    total_fees = round_trip_fee_pct * position_size / 100
    position_loss = position_size * inputs.stop_loss_percent / 100
    actual_risk = total_fees + position_loss
    expected_profit = position_size * inputs.profit_percent / 100 - total_fees

    outputs = (position_size, margin_required, total_fees, actual_risk, expected_profit)
    if not all(math.isfinite(value) for value in outputs):
        raise InvalidInputError(
            "Inputs are too large to produce a finite result",
            ["max_risk", "leverage", "margin_limit"],
        )

    margin_out = round_half_up(margin_required)
    if margin_out > inputs.margin_limit:
        margin_out = round_floor(margin_required)

    result = TradeResult(
        position_size=round_half_up(position_size),
        margin_required=margin_out,
        total_fees=round_half_up(total_fees),
        actual_risk=round_half_up(actual_risk),
        expected_profit=round_half_up(expected_profit),
        margin_adjusted=margin_adjusted,
        warnings=warnings,
    )
    logger.debug("trade_calculated", extra={"event": "trade_calculated", **result.to_dict()})
    return result


def calculate_trade(
    payload: Mapping[str, Any],
    fee_rate_pct: float = FEE_RATE_PCT,
    enforce_domain: bool = True,
) -> TradeResult:
    """Parse raw form fields and run the calculation in one step."""
    return calculate(parse_inputs(payload), fee_rate_pct=fee_rate_pct, enforce_domain=enforce_domain)


def _to_finite_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return None
    return numeric if math.isfinite(numeric) else None
