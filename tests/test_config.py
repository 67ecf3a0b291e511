try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import json
import stat
from pathlib import Path

import pytest

from ring_exporter.core.config import (
    AppSettings,
    ConfigError,
    ensure_config,
    load_config,
    state_path_for,
)


def test_load_config_fills_defaults_and_rewrites(tmp_path: Path) -> None:
    path = tmp_path / "ring-config.json"
    path.write_text(json.dumps({"web_config": {"port": 9200}}))

    config = load_config(path)

    assert config.web_config.port == 9200
    assert config.web_config.metrics_route == "/metrics"
    assert config.poll_interval_seconds == 300
    assert config.save_interval_seconds == 300
    assert config.api_config.hardware_id

    written = json.loads(path.read_text())
    assert written["api_config"]["hardware_id"] == config.api_config.hardware_id
    assert written["web_config"]["port"] == 9200
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_hardware_id_is_stable_across_loads(tmp_path: Path) -> None:
    path = tmp_path / "ring-config.json"
    path.write_text("{}")
    first = load_config(path)
    second = load_config(path)
    assert first.api_config.hardware_id == second.api_config.hardware_id


def test_zero_intervals_are_defaulted(tmp_path: Path) -> None:
    path = tmp_path / "ring-config.json"
    path.write_text(json.dumps({"poll_interval_seconds": 0, "save_interval_seconds": 60}))
    config = load_config(path)
    assert config.poll_interval_seconds == 300
    assert config.save_interval_seconds == 60


def test_complete_config_is_not_rewritten(tmp_path: Path) -> None:
    path = tmp_path / "ring-config.json"
    ensure_config(path)
    before = path.read_text()
    path.touch()
    mtime = path.stat().st_mtime_ns
    load_config(path)
    assert path.read_text() == before
    assert path.stat().st_mtime_ns == mtime


def test_missing_config_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.json")


@pytest.mark.parametrize("body", ["{broken", "[1, 2]", '{"web_config": {"port": -1}}'])
def test_bad_config_is_an_error(tmp_path: Path, body: str) -> None:
    path = tmp_path / "ring-config.json"
    path.write_text(body)
    with pytest.raises(ConfigError):
        load_config(path)


def test_ensure_config_creates_file(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "ring-config.json"
    config = ensure_config(path)
    assert path.exists()
    assert json.loads(path.read_text())["web_config"]["port"] == config.web_config.port


def test_metrics_route_gets_leading_slash(tmp_path: Path) -> None:
    path = tmp_path / "ring-config.json"
    path.write_text(json.dumps({"web_config": {"metrics_route": "prom"}}))
    assert load_config(path).web_config.metrics_route == "/prom"


def test_state_file_lives_beside_config(tmp_path: Path) -> None:
    assert state_path_for(tmp_path / "ring-config.json") == tmp_path.resolve() / "ring-state.json"


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RING_EXPORTER_TOKEN_ENCRYPTION_SECRET", "s3cret")
    monkeypatch.setenv("RING_EXPORTER_CONFIG_FILE", "/etc/ring/config.json")
    settings = AppSettings()
    assert settings.token_encryption_secret == "s3cret"
    assert settings.config_file == "/etc/ring/config.json"
