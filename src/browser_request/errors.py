"""Normalized errors for credential forwarding.

Every error carries an ErrorKind so callers can branch on one attribute
instead of catching a growing list of classes.
"""
from enum import Enum


class ErrorKind(Enum):
    """Normalized error kinds raised by browser_request."""
    INVALID_ARGUMENT = "invalid_argument"             # caller must fix the request
    CREDENTIAL_UNAVAILABLE = "credential_unavailable" # decoration had no credentials
    REFRESH_FAILED = "refresh_failed"                 # one collaborator fetch failed
    BROWSER_UNAVAILABLE = "browser_unavailable"       # CDP connect/protocol failure


class BrowserRequestError(Exception):
    """Exception carrying a normalized ErrorKind."""

    kind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, message: str = "", kind: ErrorKind | None = None):
        if kind is not None:
            self.kind = kind
        super().__init__(message or self.kind.value)


class InvalidArgument(BrowserRequestError):
    """No request, or no hostname could be derived from it."""
    kind = ErrorKind.INVALID_ARGUMENT


class CredentialUnavailable(BrowserRequestError):
    """Raised by decoration when the session could not provide credentials.

    ``__cause__`` is the :class:`RefreshFailed` that triggered it.
    """
    kind = ErrorKind.CREDENTIAL_UNAVAILABLE


class RefreshFailed(BrowserRequestError):
    """A cookie or user-agent fetch from the browser failed."""
    kind = ErrorKind.REFRESH_FAILED

    @property
    def timed_out(self) -> bool:
        """True if the refresh ran past its deadline."""
        return isinstance(self.__cause__, TimeoutError)


class BrowserUnavailable(BrowserRequestError):
    """The remote browser could not be reached or answered with an error."""
    kind = ErrorKind.BROWSER_UNAVAILABLE
