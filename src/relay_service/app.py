from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from relay_service.api.middleware.correlation_id import CorrelationIdMiddleware
from relay_service.api.v1.routers import health, presence, ws
from relay_service.application.exceptions import NotFoundError
from relay_service.config import settings
from relay_service.infrastructure.tasks.offer_reaper import OfferTimeoutReaper
from relay_service.infrastructure.ws.hub import RelayHub

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    reaper = OfferTimeoutReaper(app.state.hub, settings.CALL_REAPER_INTERVAL_SECONDS)
    await reaper.start()
    app.state.offer_reaper = reaper
    logger.info("Relay hub ready")

    yield

    await reaper.stop()
    logger.info(
        "Relay hub shutting down (connections=%d, sessions=%d)",
        len(app.state.hub.manager),
        len(app.state.hub.registry),
    )
    await app.state.hub.manager.close()


def create_app(hub: RelayHub | None = None) -> FastAPI:
    app = FastAPI(
        title="Presence Relay",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.hub = hub or RelayHub.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(presence.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})
