from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.api.routes_calculator import router as calculator_router
from backend.core.config import get_settings
from backend.core.logging import get_logger, init_logging


def create_app() -> FastAPI:
    settings = get_settings()
    init_logging(settings.log_level)
    logger = get_logger(__name__)

    app = FastAPI(
        title="Leveraged Trade Calculator",
        version="0.1.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(calculator_router)
    logger.info(
        "app_created",
        extra={
            "event": "app_created",
            "app_env": settings.app_env,
            "fee_rate_pct": settings.calc_fee_rate_pct,
            "enforce_input_domain": settings.calc_enforce_input_domain,
        },
    )
    return app


app = create_app()
