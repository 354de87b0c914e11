import math
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.risk.trade_calculator import (  # noqa: E402
    MARGIN_ADJUSTED_WARNING,
    InvalidInputError,
    TradeInputs,
    TradeResult,
    calculate,
    calculate_trade,
    parse_inputs,
    parse_number,
    round_floor,
    round_half_up,
)


def make_inputs(**overrides):
    values = {
        "max_risk": 100,
        "profit_percent": 5,
        "stop_loss_percent": 2,
        "leverage": 10,
        "margin_limit": 1000,
    }
    values.update(overrides)
    return TradeInputs.from_raw(**values)


def test_sizing_without_margin_clamp():
    result = calculate(make_inputs())
    assert isinstance(result, TradeResult)
    # 100 * 100 / (2 + 0.08) = 4807.6923...
    assert result.position_size == 4807.69
    assert result.margin_required == 480.77
    assert result.total_fees == 3.85
    assert result.actual_risk == 100.0
    # 240.3846 - 3.8462 from unrounded intermediates
    assert result.expected_profit == 236.54
    assert result.margin_adjusted is False
    assert result.warnings == []


def test_margin_limit_clamps_position():
    result = calculate(make_inputs(margin_limit=400))
    assert result.margin_required == 400.0
    assert result.position_size == 4000.0
    assert result.total_fees == 3.2
    assert result.actual_risk == 83.2
    assert result.expected_profit == 196.8
    assert result.margin_adjusted is True
    assert result.warnings == [MARGIN_ADJUSTED_WARNING]


def test_margin_equal_to_limit_is_not_clamped():
    # fee-free: 100 * 100 / 5 = 2000 -> margin 200
    result = calculate(make_inputs(stop_loss_percent=5, margin_limit=200), fee_rate_pct=0)
    assert result.margin_adjusted is False
    assert math.isclose(result.margin_required, 200.0)


@pytest.mark.parametrize("max_risk", [1, 50, 250.5, 10_000])
@pytest.mark.parametrize("stop_loss", [0, 0.5, 2, 15])
@pytest.mark.parametrize("leverage", [1, 3, 25, 125])
@pytest.mark.parametrize("margin_limit", [0.125, 7.777, 10, 500, 1_000_000])
def test_margin_and_leverage_invariants(max_risk, stop_loss, leverage, margin_limit):
    result = calculate(
        make_inputs(
            max_risk=max_risk,
            stop_loss_percent=stop_loss,
            leverage=leverage,
            margin_limit=margin_limit,
        )
    )
    assert result.margin_required <= margin_limit
    assert math.isclose(
        result.position_size,
        result.margin_required * leverage,
        abs_tol=0.01 * leverage + 0.01,
    )
    assert math.isclose(result.total_fees, 2 * 0.04 * result.position_size / 100, abs_tol=0.006)


def test_fees_follow_post_clamp_size():
    result = calculate(make_inputs(margin_limit=50, leverage=20))
    assert result.position_size == 1000.0
    assert result.total_fees == 0.8


def test_calculate_is_idempotent():
    inputs = make_inputs(max_risk="37.13", profit_percent="3.3", stop_loss_percent="1.7", leverage="7")
    assert calculate(inputs) == calculate(inputs)


def test_custom_fee_rate():
    result = calculate(make_inputs(), fee_rate_pct=0)
    assert result.position_size == 5000.0
    assert result.total_fees == 0.0
    assert result.actual_risk == 100.0


def test_negative_fee_rate_rejected():
    with pytest.raises(InvalidInputError) as excinfo:
        calculate(make_inputs(), fee_rate_pct=-0.01)
    assert excinfo.value.fields == ["fee_rate_pct"]


def test_zero_stop_loss_uses_fee_only_distance():
    result = calculate(make_inputs(stop_loss_percent=0, margin_limit=1_000_000))
    assert result.position_size == 125000.0
    assert result.actual_risk == 100.0


@pytest.mark.parametrize("bad_value", ["abc", "", "   ", None, "nan", "inf", float("nan"), float("-inf"), True])
def test_non_numeric_input_rejected(bad_value):
    with pytest.raises(InvalidInputError) as excinfo:
        make_inputs(leverage=bad_value)
    assert str(excinfo.value) == "All inputs must be valid numbers"
    assert excinfo.value.fields == ["leverage"]


def test_every_invalid_field_reported():
    with pytest.raises(InvalidInputError) as excinfo:
        make_inputs(max_risk="x", margin_limit="")
    assert excinfo.value.fields == ["max_risk", "margin_limit"]


def test_numeric_strings_are_parsed():
    inputs = make_inputs(max_risk=" 100 ", profit_percent="5", leverage="10.0")
    assert inputs.max_risk == 100.0
    assert inputs.leverage == 10.0


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"leverage": 0}, "leverage"),
        ({"leverage": -2}, "leverage"),
        ({"stop_loss_percent": -1}, "stop_loss_percent"),
        ({"margin_limit": 0}, "margin_limit"),
        ({"max_risk": -10}, "max_risk"),
    ],
)
def test_domain_validation(overrides, field):
    with pytest.raises(InvalidInputError) as excinfo:
        calculate(make_inputs(**overrides))
    assert excinfo.value.fields == [field]


def test_domain_check_can_be_relaxed():
    result = calculate(make_inputs(margin_limit=0), enforce_domain=False)
    assert result.margin_adjusted is True
    assert result.margin_required == 0.0
    assert result.position_size == 0.0


def test_zero_leverage_rejected_even_when_relaxed():
    with pytest.raises(InvalidInputError):
        calculate(make_inputs(leverage=0), enforce_domain=False)


def test_parse_inputs_accepts_form_names():
    inputs = parse_inputs(
        {"margin": "100", "profit": "5", "loss": "2", "leverage": "10", "marginLimit": "1000"}
    )
    assert inputs == make_inputs()


def test_parse_inputs_missing_field():
    with pytest.raises(InvalidInputError) as excinfo:
        parse_inputs({"maxRisk": 100, "profitPercent": 5, "stopLossPercent": 2, "leverage": 10})
    assert excinfo.value.fields == ["margin_limit"]


def test_calculate_trade_from_payload():
    result = calculate_trade(
        {"maxRisk": 100, "profitPercent": 5, "stopLossPercent": 2, "leverage": 10, "marginLimit": 400}
    )
    assert result.margin_adjusted is True
    assert result.to_dict()["position_size"] == 4000.0


def test_parse_number():
    assert parse_number("fee", "0.05") == 0.05
    with pytest.raises(InvalidInputError) as excinfo:
        parse_number("fee", "five")
    assert excinfo.value.fields == ["fee"]


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.125, 0.13),
        (-0.125, -0.13),
        (2.675, 2.67),  # stored as 2.67499999...
        (99.99999999999999, 100.0),
        (3.2000000000000006, 3.2),
    ],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.125, 0.12),
        (0.129, 0.12),
        (-0.121, -0.13),
        (400.0, 400.0),
    ],
)
def test_round_floor(value, expected):
    assert round_floor(value) == expected


def test_rounding_handles_values_beyond_default_precision():
    assert round_half_up(4.8e27) == 4.8e27
    assert round_floor(1e300) == 1e300


def test_clamp_to_limit_with_sub_cent_precision():
    result = calculate(make_inputs(margin_limit=0.125))
    assert result.margin_adjusted is True
    assert result.margin_required == 0.12
    assert result.margin_required <= 0.125
    assert result.position_size == 1.2


def test_unclamped_margin_never_rounds_above_limit():
    # fee-free: 0.5 * 100 / 50 = 1 -> margin 0.125, just under the limit
    result = calculate(
        make_inputs(max_risk=0.5, stop_loss_percent=50, leverage=8, margin_limit=0.1251),
        fee_rate_pct=0,
    )
    assert result.margin_adjusted is False
    assert result.margin_required == 0.12
    assert result.margin_required <= 0.1251


def test_very_large_risk_is_sized():
    result = calculate(make_inputs(max_risk=1e26, margin_limit=1e30))
    assert result.margin_adjusted is False
    assert math.isfinite(result.position_size)
    assert math.isclose(result.position_size, 1e28 / 2.08, rel_tol=1e-12)
    assert result.margin_required <= 1e30


def test_overflowing_position_rejected():
    # max_risk * 100 overflows, then the clamped limit * leverage overflows too
    with pytest.raises(InvalidInputError) as excinfo:
        calculate(make_inputs(max_risk=1e307, leverage=1e10, margin_limit=1e300))
    assert "too large" in str(excinfo.value)
    assert excinfo.value.fields == ["max_risk", "leverage", "margin_limit"]
