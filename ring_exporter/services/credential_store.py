"""
Credential store capability and at-rest encoding of the Ring token.

The ledger is the production credential store; anything offering
``fetch_credential``/``store_credential`` can stand in for it.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from typing import Any, Dict, Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError

from ring_exporter.models import Credential

logger = logging.getLogger(__name__)

_SEALED_FIELDS = ("access_token", "refresh_token")


class CredentialStore(Protocol):
    """Durable home for a single bearer credential."""

    def fetch_credential(self) -> Optional[Credential]:
        ...

    def store_credential(self, credential: Credential) -> None:
        ...


class CredentialCipher:
    """Seal and open the token fields of a credential record.

    The Fernet key is the SHA-256 digest of ``secret``. Sealed fields are
    stored under ``<field>_encrypted``; every other field stays readable.
    """

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
        self._fernet = Fernet(key)

    def seal(self, record: Dict[str, Any]) -> Dict[str, Any]:
        sealed = dict(record)
        for name in _SEALED_FIELDS:
            value = sealed.pop(name, None)
            if value:
                token = self._fernet.encrypt(str(value).encode("utf-8"))
                sealed[f"{name}_encrypted"] = token.decode("ascii")
        return sealed

    def open(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Reverse ``seal``. Plaintext fields pass through untouched.

        Raises ``ValueError`` when a sealed field was not produced by this key.
        """
        opened = dict(record)
        for name in _SEALED_FIELDS:
            token = opened.pop(f"{name}_encrypted", None)
            if token is None:
                continue
            try:
                opened[name] = self._fernet.decrypt(str(token).encode("ascii")).decode(
                    "utf-8"
                )
            except (InvalidToken, UnicodeError) as exc:
                raise ValueError(f"Cannot open sealed {name}") from exc
        return opened


def is_sealed(record: Dict[str, Any]) -> bool:
    return any(f"{name}_encrypted" in record for name in _SEALED_FIELDS)


def encode_credential(
    credential: Credential, cipher: CredentialCipher | None = None
) -> Dict[str, Any]:
    """Produce the snapshot form of a credential, sealing tokens when a cipher is set."""
    record = credential.model_dump(mode="json")
    return record if cipher is None else cipher.seal(record)


def decode_credential(
    record: Dict[str, Any] | None, cipher: CredentialCipher | None = None
) -> Optional[Credential]:
    """Rebuild a credential from its snapshot form.

    Plaintext records are accepted even when a cipher is configured; they get
    sealed on the next save. Returns ``None`` for records that cannot be opened.
    """
    if not record:
        return None

    data = record
    if is_sealed(record):
        if cipher is None:
            logger.warning(
                "Stored token is encrypted but no encryption secret is configured"
            )
            return None
        try:
            data = cipher.open(record)
        except ValueError:
            logger.warning("Stored token could not be decrypted; ignoring it")
            return None

    try:
        return Credential.model_validate(data)
    except ValidationError:
        logger.warning("Stored token is malformed; ignoring it")
        return None


__all__ = [
    "CredentialCipher",
    "CredentialStore",
    "decode_credential",
    "encode_credential",
    "is_sealed",
]
