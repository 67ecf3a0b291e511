"""HTTP routes exposing the exporter's metrics."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest


def metrics(request: Request) -> Response:
    """Prometheus text exposition of the exporter registry."""
    registry = request.app.state.metrics_sink.registry
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)


def build_router(metrics_route: str = "/metrics") -> APIRouter:
    """Router with the metrics endpoint mounted at the configured route."""
    router = APIRouter()
    router.add_api_route(metrics_route, metrics, methods=["GET"], include_in_schema=False)

    @router.get("/healthz")
    def healthz(request: Request) -> Dict[str, Any]:
        monitor = getattr(request.app.state, "monitor", None)
        return {
            "status": "ok",
            "devices": monitor.device_count if monitor is not None else 0,
        }

    return router


__all__ = ["build_router", "metrics"]
