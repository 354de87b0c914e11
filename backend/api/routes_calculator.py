from dataclasses import asdict

from fastapi import APIRouter, Depends

from backend.api.errors import error_response, invalid_input_response
from backend.core.config import Settings, get_settings
from backend.core.logging import get_logger
from backend.risk.trade_calculator import RESULT_DECIMALS, InvalidInputError, TradeInputs, calculate
from backend.trading.schemas import (
    CalculatorConfigResponse,
    ErrorResponse,
    TradeCalculationRequest,
    TradeCalculationResponse,
)

router = APIRouter(prefix="/api", tags=["calculator"])
logger = get_logger(__name__)


@router.get("/calculator/config", response_model=CalculatorConfigResponse)
def calculator_config(settings: Settings = Depends(get_settings)):
    """Fee and rounding parameters the calculator applies."""
    return CalculatorConfigResponse(
        fee_rate_pct=settings.calc_fee_rate_pct,
        round_trip_fee_pct=2 * settings.calc_fee_rate_pct,
        result_decimals=RESULT_DECIMALS,
        enforce_input_domain=settings.calc_enforce_input_domain,
    )


@router.post(
    "/calculate",
    response_model=TradeCalculationResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def calculate_trade(request: TradeCalculationRequest, settings: Settings = Depends(get_settings)):
    """Size a trade from the five form fields."""
    try:
        inputs = TradeInputs.from_raw(
            max_risk=request.max_risk,
            profit_percent=request.profit_percent,
            stop_loss_percent=request.stop_loss_percent,
            leverage=request.leverage,
            margin_limit=request.margin_limit,
        )
        result = calculate(
            inputs,
            fee_rate_pct=settings.calc_fee_rate_pct,
            enforce_domain=settings.calc_enforce_input_domain,
        )
    except InvalidInputError as exc:
        logger.warning(
            "trade_validation_failed",
            extra={"event": "trade_validation_failed", "fields": exc.fields, "error": str(exc)},
        )
        return invalid_input_response(exc)
    except Exception:
        logger.exception("trade_calculation_failed", extra={"event": "trade_calculation_failed"})
        return error_response(status_code=500, code="unexpected_error", detail="Unexpected error. Check server logs.")

    return TradeCalculationResponse(**result.to_dict(), inputs=asdict(inputs))
