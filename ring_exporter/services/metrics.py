"""
Prometheus gauges fed by the monitor.

The ding count is a counter we sample from our own ledger rather than one we
increment, so it is exposed as a gauge.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Gauge

DESCRIPTION_LABEL = "description"
TYPE_LABEL = "type"

_LABELS = (DESCRIPTION_LABEL, TYPE_LABEL)


def sanitize_label_value(value: str) -> str:
    """Replace characters that break the exposition format with ``_``."""
    for char in ("\n", "\r", '"', "\\"):
        value = value.replace(char, "_")
    return value


class PrometheusMetricsSink:
    """Owns the exporter's gauges on a dedicated registry."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._battery = Gauge(
            "ring_device_battery_pct",
            "Device battery level (percent)",
            _LABELS,
            registry=self.registry,
        )
        self._wifi = Gauge(
            "ring_device_wifi_strength_dbm",
            "Latest wifi strength reading (-dBm)",
            _LABELS,
            registry=self.registry,
        )
        self._dings = Gauge(
            "ring_device_dings_total",
            "Best-effort count of total dings",
            _LABELS,
            registry=self.registry,
        )

    def set_battery_pct(self, description: str, device_type: str, value: float) -> None:
        self._battery.labels(sanitize_label_value(description), device_type).set(value)

    def set_wifi_strength(self, description: str, device_type: str, value: float) -> None:
        self._wifi.labels(sanitize_label_value(description), device_type).set(value)

    def set_ding_count(self, description: str, device_type: str, value: int) -> None:
        self._dings.labels(sanitize_label_value(description), device_type).set(value)


__all__ = [
    "DESCRIPTION_LABEL",
    "PrometheusMetricsSink",
    "TYPE_LABEL",
    "sanitize_label_value",
]
