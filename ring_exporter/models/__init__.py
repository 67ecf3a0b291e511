"""Domain and API payload models."""

from .credential import Credential
from .ledger import ZERO_TIMESTAMP, LedgerEntry, LedgerSnapshot
from .ring import (
    Chime,
    DeviceHealth,
    DevicesResponse,
    Ding,
    Doorbot,
    HealthResponse,
    Profile,
    SessionResponse,
    StickupCam,
)

__all__ = [
    "Chime",
    "Credential",
    "DeviceHealth",
    "DevicesResponse",
    "Ding",
    "Doorbot",
    "HealthResponse",
    "LedgerEntry",
    "LedgerSnapshot",
    "Profile",
    "SessionResponse",
    "StickupCam",
    "ZERO_TIMESTAMP",
]
