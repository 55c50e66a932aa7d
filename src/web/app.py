"""
FastAPI application factory for SafeScan.

Routes:
- /api/health -> service status
- /api/detectors/* -> detector lifecycle, image detection, video scans
- /api/scans/* -> cancellation of running scans
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from models.config import Config
from .errors import register_error_handlers
from .routes import api
from .state import state


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Create the FastAPI app and wire routes and error handlers."""
    if config is not None:
        state.set_config(config)

    app = FastAPI(
        title="SafeScan",
        version="0.1.0",
        description="Sensitive content detection for images and videos",
    )

    # CORS for local development clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(api.router, prefix="/api")
    return app
