"""
Domain model for the persisted Ring bearer credential.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Credential(BaseModel):
    """OAuth bearer token returned by the Ring password grant."""

    access_token: str
    token_type: str = Field("Bearer", description="Scheme used in the Authorization header.")
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = Field(
        None,
        description="Absolute expiry derived from ``expires_in`` at grant time.",
    )

    @classmethod
    def from_token_payload(
        cls, payload: Dict[str, Any], *, issued_at: datetime | None = None
    ) -> "Credential":
        """Build a credential from a token endpoint JSON body."""
        issued_at = issued_at or datetime.now(timezone.utc)
        expires_in = payload.get("expires_in")
        expiry = None
        if expires_in:
            expiry = issued_at + timedelta(seconds=int(expires_in))
        return cls(
            access_token=payload["access_token"],
            token_type=payload.get("token_type") or "Bearer",
            refresh_token=payload.get("refresh_token"),
            expiry=expiry,
        )

    @property
    def authorization_header(self) -> str:
        # Ring returns a lowercase "bearer"; normalize like other OAuth clients do.
        scheme = "Bearer" if self.token_type.lower() == "bearer" else self.token_type
        return f"{scheme} {self.access_token}"


__all__ = ["Credential"]
