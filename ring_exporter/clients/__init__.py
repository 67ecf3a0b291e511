"""Expose Ring API client wrappers."""

from .ring_api import BearerAuth, RingApiError, RingSession
from .ring_auth import (
    AuthError,
    Authenticator,
    GrantRejected,
    NoCredentialNoAuthenticator,
    TransportError,
    TwoFactorGrantRejected,
    TwoFactorTransport,
    open_authorized_session,
)

__all__ = [
    "AuthError",
    "Authenticator",
    "BearerAuth",
    "GrantRejected",
    "NoCredentialNoAuthenticator",
    "RingApiError",
    "RingSession",
    "TransportError",
    "TwoFactorGrantRejected",
    "TwoFactorTransport",
    "open_authorized_session",
]
