"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from av_dashboard import __version__
from av_dashboard.api.routes import api_router
from av_dashboard.config import AppSettings, get_settings
from av_dashboard.core.logging import setup_logging
from av_dashboard.core.telemetry import setup_telemetry

logger = logging.getLogger(__name__)


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Build the proxy application and attach routes."""

    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, version=__version__)
    app.state.settings = settings
    setup_telemetry(app, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(api_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str | bool]:
        """Return service readiness metadata."""

        return {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "api_key_configured": bool(settings.alpha_vantage_api_key),
        }

    if not settings.alpha_vantage_api_key:
        logger.warning("ALPHA_VANTAGE_API_KEY is not set; proxy calls will answer 500")
    logger.debug("Settings: %s", settings.dict_for_logging())
    return app


app = create_app()

__all__ = ["app", "create_app"]
