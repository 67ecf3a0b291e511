"""
FastAPI application entrypoint for the Ring exporter.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx
from fastapi import FastAPI

from ring_exporter.api.routes import build_router
from ring_exporter.clients import open_authorized_session
from ring_exporter.core.config import (
    AppSettings,
    ExporterConfig,
    get_settings,
    load_config,
    state_path_for,
)
from ring_exporter.core.logging import configure_logging
from ring_exporter.services import (
    CredentialCipher,
    Monitor,
    PrometheusMetricsSink,
    RingLedger,
)

logger = logging.getLogger(__name__)


def build_ledger(config_file: str | Path, settings: AppSettings) -> RingLedger:
    """Open the ledger stored beside ``config_file``."""
    cipher = None
    if settings.token_encryption_secret:
        cipher = CredentialCipher(secret=settings.token_encryption_secret)
    return RingLedger(state_path_for(config_file), cipher=cipher)


def create_app(
    config_file: str | Path | None = None,
    *,
    settings: Optional[AppSettings] = None,
    config: Optional[ExporterConfig] = None,
    ledger: Optional[RingLedger] = None,
    api_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Factory for the metrics application.

    Authentication happens in the lifespan without an authenticator, so the
    server refuses to start unless ``ring-exporter init`` stored a token.
    """
    settings = settings or get_settings()
    config_file = config_file or settings.config_file
    config = config or load_config(config_file)
    ledger = ledger or build_ledger(config_file, settings)
    sink = PrometheusMetricsSink()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        session = await open_authorized_session(
            config.api_config,
            ledger,
            api_transport=api_transport,
            timeout=settings.http_timeout_seconds,
        )
        monitor = Monitor(
            session,
            ledger,
            sink,
            poll_interval_seconds=config.poll_interval_seconds,
            save_interval_seconds=config.save_interval_seconds,
        )
        app.state.monitor = monitor
        await monitor.start()
        try:
            yield
        finally:
            await monitor.stop()
            await session.aclose()
            logger.info("Monitor stopped")

    app = FastAPI(
        title="Ring Exporter",
        version="0.1.0",
        description="Prometheus metrics for Ring doorbells, cameras and chimes.",
        lifespan=lifespan,
    )
    app.state.metrics_sink = sink
    app.state.ledger = ledger
    app.include_router(build_router(config.web_config.metrics_route))
    return app


def run(config_file: str | Path | None = None) -> None:
    """Serve the metrics application with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    config_file = config_file or settings.config_file
    config = load_config(config_file)
    app = create_app(config_file, settings=settings, config=config)
    uvicorn.run(
        app,
        host=config.web_config.host,
        port=config.web_config.port,
        log_level=settings.log_level.lower(),
    )


__all__ = ["build_ledger", "create_app", "run"]
