"""FastAPI application for the Gratitude Wall.

Provides REST API endpoints wrapping the gratitude package for:
- Message submission (validation, moderation, storage, broadcast)
- Message listing and deletion
- The shared display schedule and server clock
- Live events over WebSocket and Server-Sent Events
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gratitude import __version__
from gratitude.logging_setup import setup_logging
from gratitude.settings import Settings
from web.backend.app.models.api import HealthResponse
from web.backend.app.routers import events, messages, schedule
from web.backend.app.state import AppState, build_state, get_state, run_sweeper

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.  Settings default to the environment."""
    settings = settings or Settings.from_env()

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        state = build_state(settings)
        app.state.gratitude = state
        sweeper = None
        if settings.sweep_interval > 0:
            sweeper = asyncio.create_task(run_sweeper(state))
        logger.info("Gratitude Wall %s ready", __version__)
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper
            state.close()

    app = FastAPI(
        title="Gratitude Wall API",
        description=(
            "REST API for the Gratitude Wall. "
            "Provides endpoints for submitting, listing and deleting messages, "
            "the shared display schedule, the server clock and live events."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # -----------------------------------------------------------------------
    # CORS middleware
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Include routers
    # -----------------------------------------------------------------------
    app.include_router(messages.router)
    app.include_router(schedule.router)
    app.include_router(events.router)

    # -----------------------------------------------------------------------
    # Root and health-check endpoints
    # -----------------------------------------------------------------------

    @app.get("/", tags=["meta"])
    async def root():
        """Return basic API information."""
        return {
            "name": "Gratitude Wall API",
            "version": __version__,
            "docs": "/docs",
            "openapi": "/openapi.json",
        }

    @app.get("/health", response_model=HealthResponse, tags=["meta"])
    async def health_check(state: AppState = Depends(get_state)):
        """Health check endpoint."""
        return HealthResponse(
            timestamp=datetime.now(timezone.utc).isoformat(),
            database=state.store.ping(),
            subscribers=state.channel.subscriber_count,
        )

    return app


app = create_app()
