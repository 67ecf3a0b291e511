"""
Durable per-device ding ledger.

The Ring history endpoint returns the most recent dings for a device with no
cursor, so consecutive polls overlap. Each device keeps a bookmark (the newest
ding timestamp already counted) and a counter that only grows for dings newer
than that bookmark. The ledger also holds the bearer credential so that both
survive restarts in one snapshot file.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from ring_exporter.models import Credential, LedgerEntry, LedgerSnapshot
from ring_exporter.models.ledger import ZERO_TIMESTAMP
from ring_exporter.services.credential_store import (
    CredentialCipher,
    decode_credential,
    encode_credential,
)

logger = logging.getLogger(__name__)


class LedgerPersistenceError(Exception):
    """Raised when the ledger snapshot cannot be written."""


_RFC3339 = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})[Tt](?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})"
)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp into UTC. Returns ``None`` when it is not one.

    Any number of fractional-second digits is accepted (truncated to
    microseconds). An offset is mandatory. Values that cannot be represented
    as a UTC ``datetime`` also yield ``None``.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return None
        try:
            return value.astimezone(timezone.utc)
        except OverflowError:
            return None
    if not isinstance(value, str):
        return None
    match = _RFC3339.fullmatch(value.strip())
    if match is None:
        return None

    offset = match["offset"]
    if offset in ("Z", "z"):
        offset = "+00:00"
    fraction = (match["fraction"] or "").ljust(6, "0")[:6]
    try:
        parsed = datetime.fromisoformat(
            f"{match['date']}T{match['time']}.{fraction}{offset}"
        )
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def _event_timestamp(event: Any) -> Any:
    if isinstance(event, dict):
        return event.get("created_at")
    return getattr(event, "created_at", None)


class RingLedger:
    """Thread-safe ledger of ding counts plus the stored credential."""

    def __init__(
        self, path: str | Path, *, cipher: CredentialCipher | None = None
    ) -> None:
        self._path = Path(path)
        self._cipher = cipher
        self._lock = threading.Lock()
        # Orders snapshot writes; file I/O never holds _lock.
        self._write_lock = threading.Lock()
        self._entries: Dict[int, LedgerEntry] = {}
        self._credential: Optional[Credential] = None
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # Credential store

    def fetch_credential(self) -> Optional[Credential]:
        with self._lock:
            return self._credential

    def store_credential(self, credential: Credential) -> None:
        """Replace the credential and persist the snapshot immediately."""
        with self._write_lock:
            with self._lock:
                self._credential = credential
                data = self._serialize_locked()
            self._write_snapshot(data)

    # Ding accounting

    def absorb_events(self, device_id: int, events: Iterable[Any]) -> int:
        """Fold a history batch into the device's counter and return the count.

        Every ding newer than the bookmark held before this batch is counted;
        the bookmark then moves to the newest timestamp seen. Dings whose
        ``created_at`` does not parse are skipped.
        """
        device_id = int(device_id)
        with self._lock:
            entry = self._entries.get(device_id)
            if entry is None:
                entry = LedgerEntry(device_id=device_id)
            bookmark = entry.bookmark
            latest = bookmark
            counter = entry.counter
            skipped = 0

            for event in events:
                timestamp = parse_timestamp(_event_timestamp(event))
                if timestamp is None:
                    skipped += 1
                    continue
                if timestamp > bookmark:
                    counter += 1
                if timestamp > latest:
                    latest = timestamp

            self._entries[device_id] = LedgerEntry(
                device_id=device_id, counter=counter, bookmark=latest
            )

        if skipped:
            logger.debug(
                "Skipped %d ding(s) with unparseable timestamps for device %s",
                skipped,
                device_id,
            )
        return counter

    def get_entry(self, device_id: int) -> Optional[LedgerEntry]:
        with self._lock:
            return self._entries.get(int(device_id))

    def entries(self) -> List[LedgerEntry]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.device_id)

    # Persistence

    def load(self) -> None:
        """Replace in-memory state with the snapshot on disk.

        A missing, unreadable or malformed snapshot leaves the ledger empty.
        """
        with self._lock:
            self._entries = {}
            self._credential = None
            try:
                raw = json.loads(self._path.read_text(encoding="utf-8"))
                snapshot = LedgerSnapshot.model_validate(raw)
            except FileNotFoundError:
                logger.info("No ledger snapshot at %s; starting empty", self._path)
                return
            except (OSError, ValueError, ValidationError) as exc:
                logger.warning(
                    "Ignoring unreadable ledger snapshot %s: %s", self._path, exc
                )
                return

            for entry in snapshot.entries:
                current = self._entries.get(entry.device_id)
                if current is None or entry.counter >= current.counter:
                    self._entries[entry.device_id] = entry
            self._credential = decode_credential(snapshot.credential, self._cipher)
            logger.info(
                "Loaded ledger with %d device(s) from %s",
                len(self._entries),
                self._path,
            )

    def save(self) -> None:
        """Write the whole snapshot atomically."""
        with self._write_lock:
            with self._lock:
                data = self._serialize_locked()
            self._write_snapshot(data)

    def _serialize_locked(self) -> str:
        credential = None
        if self._credential is not None:
            credential = encode_credential(self._credential, self._cipher)
        entries = sorted(self._entries.values(), key=lambda e: e.device_id)
        snapshot = {
            "credential": credential,
            "entries": [entry.model_dump(mode="json") for entry in entries],
        }
        return json.dumps(snapshot, indent=1)

    def _write_snapshot(self, data: str) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(data)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise LedgerPersistenceError(
                f"Failed to persist ledger to {self._path}: {exc}"
            ) from exc


__all__ = [
    "LedgerPersistenceError",
    "RingLedger",
    "ZERO_TIMESTAMP",
    "parse_timestamp",
]
