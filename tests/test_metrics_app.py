try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path

import httpx
import pytest

from ring_exporter.clients import NoCredentialNoAuthenticator
from ring_exporter.core.config import AppSettings, ExporterConfig, WebConfig
from ring_exporter.main import create_app
from ring_exporter.models import Credential
from ring_exporter.services import RingLedger, sanitize_label_value


def _ring_api(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/clients_api/ring_devices":
        return httpx.Response(
            200,
            json={"doorbots": [{"id": 1, "description": 'Front "Door"'}], "chimes": []},
        )
    if path == "/clients_api/doorbots/1/health":
        return httpx.Response(
            200,
            json={"device_health": {"battery_percentage": "77", "latest_signal_strength": -48}},
        )
    if path == "/clients_api/doorbots/1/history":
        return httpx.Response(
            200,
            json=[
                {"id": 1, "created_at": "2024-03-01T12:00:01Z", "kind": "ding"},
                {"id": 2, "created_at": "2024-03-01T12:00:02Z", "kind": "motion"},
            ],
        )
    return httpx.Response(404)


def _build(tmp_path: Path, *, with_token: bool = True, route: str = "/metrics"):
    ledger = RingLedger(tmp_path / "ring-state.json")
    if with_token:
        ledger.store_credential(Credential(access_token="stored"))
    config = ExporterConfig(web_config=WebConfig(metrics_route=route))
    config.api_config.hardware_id = "hw"
    return create_app(
        tmp_path / "ring-config.json",
        settings=AppSettings(),
        config=config,
        ledger=ledger,
        api_transport=httpx.MockTransport(_ring_api),
    )


def test_sanitize_label_value() -> None:
    assert sanitize_label_value('a\nb\rc"d\\e') == "a_b_c_d_e"
    assert sanitize_label_value("Front Door") == "Front Door"


@pytest.mark.anyio
async def test_lifespan_polls_and_exposes_metrics(tmp_path: Path) -> None:
    app = _build(tmp_path)

    async with app.router.lifespan_context(app):
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://testserver"
        ) as client:
            metrics = await client.get("/metrics")
            health = await client.get("/healthz")

    assert metrics.status_code == 200
    assert metrics.headers["content-type"].startswith("text/plain")
    body = metrics.text
    assert 'ring_device_battery_pct{description="Front _Door_",type="doorbot"} 77.0' in body
    assert (
        'ring_device_wifi_strength_dbm{description="Front _Door_",type="doorbot"} -48.0'
        in body
    )
    assert 'ring_device_dings_total{description="Front _Door_",type="doorbot"} 2.0' in body
    assert health.json() == {"status": "ok", "devices": 1}

    # Shutdown flushes the ledger.
    restored = RingLedger(tmp_path / "ring-state.json")
    assert restored.get_entry(1).counter == 2
    assert restored.fetch_credential().access_token == "stored"


@pytest.mark.anyio
async def test_custom_metrics_route(tmp_path: Path) -> None:
    app = _build(tmp_path, route="/prom")

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        assert (await client.get("/prom")).status_code == 200
        assert (await client.get("/metrics")).status_code == 404


@pytest.mark.anyio
async def test_startup_fails_without_stored_token(tmp_path: Path) -> None:
    app = _build(tmp_path, with_token=False)

    with pytest.raises(NoCredentialNoAuthenticator):
        async with app.router.lifespan_context(app):
            pass  # pragma: no cover
