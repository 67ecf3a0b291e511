"""Service layer exports."""

from .authenticator import CliAuthenticator
from .credential_store import (
    CredentialCipher,
    CredentialStore,
    decode_credential,
    encode_credential,
)
from .ledger import LedgerPersistenceError, RingLedger, parse_timestamp
from .metrics import PrometheusMetricsSink, sanitize_label_value
from .monitor import Monitor

__all__ = [
    "CliAuthenticator",
    "CredentialCipher",
    "CredentialStore",
    "LedgerPersistenceError",
    "Monitor",
    "PrometheusMetricsSink",
    "RingLedger",
    "decode_credential",
    "encode_credential",
    "parse_timestamp",
    "sanitize_label_value",
]
