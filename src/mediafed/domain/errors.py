"""Errors raised by the federation core."""

from __future__ import annotations


class FederationError(RuntimeError):
    """Base class for federation failures."""


class AddressError(FederationError):
    """Raised when a peer address fails validation."""


class InvalidAddress(AddressError):
    """Raised when a peer address cannot be parsed as an absolute URL."""


class HttpsRequired(AddressError):
    """Raised when the active policy requires HTTPS and the address is not HTTPS."""


class PeerUnreachable(FederationError):
    """Raised when a peer call fails at the network level or returns a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(FederationError):
    """Raised when a peer body cannot be parsed into the expected shape."""


class DuplicatePeer(FederationError):
    """Raised when adding a peer whose address is already configured."""


class PeerNotFound(FederationError):
    """Raised when removing a peer that is not configured."""


class MutationForbidden(FederationError):
    """Raised when the caller may not change federation settings."""
