from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TradeCalculationRequest(BaseModel):
    """Raw form fields; values may be strings or numbers and are parsed by the calculator."""

    model_config = ConfigDict(populate_by_name=True)

    max_risk: Any = Field(None, alias="maxRisk")
    profit_percent: Any = Field(None, alias="profitPercent")
    stop_loss_percent: Any = Field(None, alias="stopLossPercent")
    leverage: Any = None
    margin_limit: Any = Field(None, alias="marginLimit")


class TradeInputsEcho(BaseModel):
    max_risk: float
    profit_percent: float
    stop_loss_percent: float
    leverage: float
    margin_limit: float


class TradeCalculationResponse(BaseModel):
    position_size: float
    margin_required: float
    total_fees: float
    actual_risk: float
    expected_profit: float
    margin_adjusted: bool = False
    warnings: list[str] = []
    inputs: TradeInputsEcho


class CalculatorConfigResponse(BaseModel):
    fee_rate_pct: float
    round_trip_fee_pct: float
    result_decimals: int
    enforce_input_domain: bool


class ErrorResponse(BaseModel):
    error: str
    detail: str
    context: Optional[dict] = None
