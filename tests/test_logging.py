try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import logging

import pytest

from ring_exporter.core.logging import configure_logging


def test_http_loggers_held_at_warning() -> None:
    configure_logging("debug", quiet=("ring-test.http",))
    assert logging.getLogger("ring-test.http").level == logging.WARNING


def test_stricter_level_wins_for_quiet_loggers() -> None:
    configure_logging("ERROR", quiet=("ring-test.strict",))
    assert logging.getLogger("ring-test.strict").level == logging.ERROR


def test_unknown_level_rejected() -> None:
    with pytest.raises(ValueError):
        configure_logging("chatty", quiet=())
