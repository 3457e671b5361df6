"""
Lock relay — FastAPI application entry point.

Run with:
    uvicorn lockrelay.main:app --host 0.0.0.0 --port 3000
or:
    python -m lockrelay
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lockrelay.api.routes import status as status_router
from lockrelay.api.routes import websocket as websocket_router
from lockrelay.config import Settings, settings as default_settings
from lockrelay.relay import (
    ConnectionRegistry,
    CredentialValidator,
    LockStateStore,
    RelayEngine,
)
from lockrelay.relay.credentials import KEY_MAX_LENGTH

logging.basicConfig(
    level=default_settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


def build_engine(config: Settings) -> RelayEngine:
    if not config.device_key:
        logger.warning("DEVICE_KEY is not set - every join will be rejected")
    elif len(config.device_key) > KEY_MAX_LENGTH:
        logger.warning(
            "DEVICE_KEY is longer than %d characters - every join will be rejected",
            KEY_MAX_LENGTH,
        )
    return RelayEngine(
        validator=CredentialValidator(config.device_key),
        registry=ConnectionRegistry(),
        state=LockStateStore(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Relay started")
    try:
        yield
    finally:
        counts = app.state.engine.registry.counts()
        logger.info("Relay stopped (%d connection(s) open)", counts["total"])


def create_app(config: Settings | None = None) -> FastAPI:
    config = config or default_settings

    app = FastAPI(
        title="Lock Relay",
        description="Relays open commands and lock state between a lock controller and mobile clients.",
        version="0.1.0",
        debug=config.debug,
        lifespan=lifespan,
    )
    app.state.engine = build_engine(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ──────────────────────────────────────────────────────────────
    app.include_router(status_router.router, tags=["health"])
    app.include_router(websocket_router.router, tags=["websocket"])
    return app


app = create_app()
