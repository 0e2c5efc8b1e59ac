"""
FastAPI application entrypoint for the portfolio pulse service.
"""

from __future__ import annotations

from fastapi import FastAPI

from portfolio_pulse.api.routes import router as api_router
from portfolio_pulse.core.config import get_settings
from portfolio_pulse.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Portfolio Pulse",
        version="0.1.0",
        description="Deterministic engagement analytics for portfolio companies.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
