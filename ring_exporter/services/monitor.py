"""
Polling loop that turns Ring API reads into gauge updates.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Awaitable, List, Optional, Protocol, Sequence

from ring_exporter.clients.ring_api import RingApiError
from ring_exporter.models import (
    Chime,
    DeviceHealth,
    DevicesResponse,
    Ding,
    HealthResponse,
)
from ring_exporter.services.ledger import LedgerPersistenceError, RingLedger

logger = logging.getLogger(__name__)

DOORBOT_TYPE = "doorbot"
CHIME_TYPE = "chime"
STICKUP_CAM_TYPE = "stickup_cam"


class DeviceSession(Protocol):
    async def get_devices(self) -> DevicesResponse:
        ...

    async def get_doorbot_health(self, device_id: int) -> HealthResponse:
        ...

    async def get_chime_health(self, chime) -> HealthResponse:
        ...

    async def get_doorbot_history(self, device_id: int) -> List[Ding]:
        ...


class MetricsSink(Protocol):
    def set_battery_pct(self, description: str, device_type: str, value: float) -> None:
        ...

    def set_wifi_strength(self, description: str, device_type: str, value: float) -> None:
        ...

    def set_ding_count(self, description: str, device_type: str, value: int) -> None:
        ...


class Monitor:
    """Run poll and save loops against one authorized session."""

    def __init__(
        self,
        session: DeviceSession,
        ledger: RingLedger,
        sink: MetricsSink,
        *,
        poll_interval_seconds: float = 300,
        save_interval_seconds: float = 300,
    ) -> None:
        self._session = session
        self._ledger = ledger
        self._sink = sink
        self._poll_interval = poll_interval_seconds
        self._save_interval = save_interval_seconds
        self._stop = asyncio.Event()
        self._tasks: List[asyncio.Task] = []
        self.device_count = 0

    def _update_device_metrics(
        self, description: str, health: DeviceHealth, device_type: str
    ) -> None:
        if health.battery_percentage is not None:
            try:
                battery = float(health.battery_percentage)
            except ValueError:
                logger.warning(
                    "Skipping %s due to failure parsing battery pct %r",
                    description,
                    health.battery_percentage,
                )
                battery = math.nan
            else:
                logger.info("Device %s has battery pct %f", description, battery)
            self._sink.set_battery_pct(description, device_type, battery)

        if health.latest_signal_strength is not None:
            logger.info(
                "Device %s has wifi strength %f",
                description,
                health.latest_signal_strength,
            )
            self._sink.set_wifi_strength(
                description, device_type, health.latest_signal_strength
            )

    def _update_ding_metrics(
        self, device_id: int, description: str, dings: Sequence[Ding], device_type: str
    ) -> None:
        count = self._ledger.absorb_events(device_id, dings)
        self._sink.set_ding_count(description, device_type, count)
        logger.info("Device %s has current ding count %d", description, count)

    async def _poll_camera(self, device_id: int, description: str, device_type: str) -> None:
        try:
            health = await self._session.get_doorbot_health(device_id)
        except RingApiError as exc:
            logger.warning(
                "Skipping %s because of failed health fetch: %s", description, exc
            )
            return
        self._update_device_metrics(description, health.device_health, device_type)

        try:
            dings = await self._session.get_doorbot_history(device_id)
        except RingApiError as exc:
            logger.warning(
                "Skipping dings for %s because of failed history fetch: %s",
                description,
                exc,
            )
            return
        self._update_ding_metrics(device_id, description, dings, device_type)

    async def _poll_chime(self, chime: Chime) -> None:
        try:
            health = await self._session.get_chime_health(chime)
        except RingApiError as exc:
            logger.warning(
                "Skipping %s because of failed health fetch: %s",
                chime.description,
                exc,
            )
            return
        self._update_device_metrics(
            chime.description, health.device_health, CHIME_TYPE
        )

    async def _guarded(self, description: str, poll: Awaitable[None]) -> None:
        try:
            await poll
        except Exception:
            logger.exception(
                "Unexpected failure polling %s; skipping it this cycle", description
            )

    async def poll_once(self) -> None:
        """Fetch the device roster and update every device's gauges.

        Raises ``RingApiError`` when the roster itself cannot be fetched.
        Per-device failures, expected or not, are logged and that device is
        skipped.
        """
        devices = await self._session.get_devices()
        self.device_count = (
            len(devices.doorbots) + len(devices.stickup_cams) + len(devices.chimes)
        )

        for doorbot in devices.doorbots:
            await self._guarded(
                doorbot.description,
                self._poll_camera(doorbot.id, doorbot.description, DOORBOT_TYPE),
            )

        for cam in devices.stickup_cams:
            await self._guarded(
                cam.description,
                self._poll_camera(cam.id, cam.description, STICKUP_CAM_TYPE),
            )

        for chime in devices.chimes:
            await self._guarded(chime.description, self._poll_chime(chime))

    async def save(self) -> bool:
        try:
            await asyncio.to_thread(self._ledger.save)
        except LedgerPersistenceError:
            logger.exception("Failed to save ledger")
            return False
        return True

    async def _wait_for_stop(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _poll_loop(self) -> None:
        while not await self._wait_for_stop(self._poll_interval):
            try:
                await self.poll_once()
            except RingApiError as exc:
                logger.error("Failed to retrieve device info: %s", exc)
            except Exception:
                logger.exception("Poll cycle failed")

    async def _save_loop(self) -> None:
        while not await self._wait_for_stop(self._save_interval):
            try:
                await self.save()
            except Exception:
                logger.exception("Save cycle failed")

    async def start(self) -> None:
        """Poll once, then run the poll and save loops in the background."""
        if self._tasks:
            raise RuntimeError("Monitor already started.")
        self._stop.clear()
        try:
            await self.poll_once()
        except RingApiError as exc:
            logger.error("Initial poll failed: %s", exc)
        except Exception:
            logger.exception("Initial poll failed")
        self._tasks = [
            asyncio.create_task(self._poll_loop(), name="ring-poll"),
            asyncio.create_task(self._save_loop(), name="ring-save"),
        ]

    async def stop(self, *, timeout: Optional[float] = None) -> None:
        """Signal the loops, wait for the in-flight tick and flush the ledger."""
        self._stop.set()
        if self._tasks:
            await asyncio.wait(self._tasks, timeout=timeout)
            for task in self._tasks:
                if not task.done():
                    task.cancel()
            self._tasks = []
        await self.save()


__all__ = [
    "CHIME_TYPE",
    "DOORBOT_TYPE",
    "Monitor",
    "STICKUP_CAM_TYPE",
]
