from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from backend.risk.trade_calculator import InvalidInputError


def error_response(
    *,
    status_code: int,
    code: str,
    detail: str,
    context: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Return a consistent error payload for API responses."""
    payload: Dict[str, Any] = {"error": code, "detail": detail}
    if context:
        payload["context"] = context
    return JSONResponse(status_code=status_code, content=payload)


def invalid_input_response(exc: InvalidInputError) -> JSONResponse:
    """400 validation_error payload naming the rejected fields."""
    context = {"fields": exc.fields} if exc.fields else None
    return error_response(status_code=400, code="validation_error", detail=str(exc), context=context)
