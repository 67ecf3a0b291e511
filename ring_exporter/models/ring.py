"""
Subset of the Ring client API payloads consumed by the exporter.

Only the fields the exporter reads are modelled; unknown fields are ignored so
additions on the vendor side do not break decoding.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class Profile(BaseModel):
    id: int
    email: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    hardware_id: Optional[str] = None
    app_brand: Optional[str] = None


class SessionResponse(BaseModel):
    profile: Profile


class Doorbot(BaseModel):
    """A doorbell device."""

    id: int
    description: str = ""
    device_id: Optional[str] = None
    battery_life: Optional[str] = None


class StickupCam(BaseModel):
    """A standalone camera. Shares the doorbot health and history endpoints."""

    id: int
    description: str = ""
    device_id: Optional[str] = None
    battery_life: Optional[str] = None


class Chime(BaseModel):
    id: int
    description: str = ""


class DevicesResponse(BaseModel):
    doorbots: List[Doorbot] = Field(default_factory=list)
    chimes: List[Chime] = Field(default_factory=list)
    stickup_cams: List[StickupCam] = Field(default_factory=list)


class DeviceHealth(BaseModel):
    id: Optional[int] = None
    wifi_name: Optional[str] = None
    # Reported as a string (or null), not a number.
    battery_percentage: Optional[str] = None
    battery_percentage_category: Optional[str] = None
    latest_signal_strength: Optional[float] = None
    latest_signal_category: Optional[str] = None
    average_signal_strength: Optional[float] = None
    average_signal_category: Optional[str] = None
    firmware: Optional[str] = None
    updated_at: Optional[str] = None
    wifi_is_ring_network: bool = False


class HealthResponse(BaseModel):
    device_health: DeviceHealth


class Ding(BaseModel):
    """A single history event. ``created_at`` is kept raw; the ledger parses it.

    Decoding is lenient: a null or non-string ``created_at`` becomes ``""`` so
    the ledger skips that one ding rather than the whole history failing.
    """

    id: Optional[int] = None
    created_at: str = ""
    kind: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _integral_id(cls, value: Any) -> Optional[int]:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return None

    @field_validator("created_at", "kind", mode="before")
    @classmethod
    def _text_or_blank(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


__all__ = [
    "Chime",
    "DeviceHealth",
    "DevicesResponse",
    "Ding",
    "Doorbot",
    "HealthResponse",
    "Profile",
    "SessionResponse",
    "StickupCam",
]
