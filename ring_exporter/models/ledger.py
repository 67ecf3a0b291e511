"""
Snapshot models for the per-device ding ledger.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Zero value used as the bookmark of a device that has never been seen.
ZERO_TIMESTAMP = datetime(1, 1, 1, tzinfo=timezone.utc)


class LedgerEntry(BaseModel):
    """Bookmark and counter for one device. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    device_id: int
    counter: int = Field(
        0,
        ge=0,
        validation_alias=AliasChoices("counter", "my_counter"),
    )
    bookmark: datetime = Field(
        ZERO_TIMESTAMP,
        validation_alias=AliasChoices("bookmark", "last_timestamp"),
    )

    @field_validator("bookmark")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class LedgerSnapshot(BaseModel):
    """On-disk representation of the ledger and the stored credential.

    The credential is kept as a raw mapping because its shape depends on
    whether encryption at rest is enabled.
    """

    model_config = ConfigDict(populate_by_name=True)

    credential: Optional[Dict[str, Any]] = Field(
        None,
        validation_alias=AliasChoices("credential", "token"),
    )
    entries: List[LedgerEntry] = Field(
        default_factory=list,
        validation_alias=AliasChoices("entries", "ding_counts"),
    )


__all__ = ["LedgerEntry", "LedgerSnapshot", "ZERO_TIMESTAMP"]
