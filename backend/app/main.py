"""
Entry point for the FastAPI survey simulation backend.

This module constructs the FastAPI application, loads ``backend/.env``,
configures logging and CORS and registers the simulation and health
routes. Simulation requests are served concurrently on one event loop:
every provider call and poll sleep is an await point.
"""

from __future__ import annotations

import re
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import get_settings
from .core.logging import setup_logging
from .api import health as health_routes
from .api import simulations as simulation_routes


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    CORS allows the configured front-end origins plus any origin ending
    with the configured preview-domain suffix.

    Returns:
        FastAPI: Configured application instance.
    """
    env_path = Path(__file__).resolve().parents[1] / ".env"
    load_dotenv(env_path)
    get_settings.cache_clear()
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)

    app = FastAPI(title="Survey Simulation Backend")
    origin_regex = None
    if settings.allowed_origin_suffix:
        origin_regex = r"https?://.*" + re.escape(settings.allowed_origin_suffix)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_origin_regex=origin_regex,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(health_routes.router)
    app.include_router(simulation_routes.router)
    return app


# Create a default application instance for uvicorn to discover.
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
