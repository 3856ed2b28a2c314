"""Apply cached browser credentials to one outgoing request.

Decoration only touches the ``Cookie`` and ``User-Agent`` headers. The request
is reached through :class:`HeaderCarrier`, so anything exposing a host and
header get/set can be decorated; ``httpx.Request`` is wrapped automatically.
"""
import logging
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlsplit

import httpx

from .cookies import build_cookie_string
from .errors import CredentialUnavailable, InvalidArgument, RefreshFailed

log = logging.getLogger(__name__)


@runtime_checkable
class HeaderCarrier(Protocol):
    """The part of a request that decoration reads and writes."""

    @property
    def host(self) -> str:
        """Host from the request URL, ``""`` if the URL has none."""
        ...

    def get_header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), or None."""
        ...

    def set_header(self, name: str, value: str) -> None:
        """Replace every value of header *name* with a single *value*."""
        ...


class HttpxRequest:
    """HeaderCarrier over an ``httpx.Request``; edits it in place."""

    def __init__(self, request: httpx.Request):
        self.request = request

    @property
    def host(self) -> str:
        # ASCII wire form; url.host is IDNA-decoded but browsers report punycode
        return self.request.url.raw_host.decode("ascii")

    def get_header(self, name: str) -> str | None:
        values = self.request.headers.get_list(name)
        return values[0] if values else None

    def set_header(self, name: str, value: str) -> None:
        self.request.headers[name] = value


def as_carrier(request: Any) -> HeaderCarrier:
    if isinstance(request, httpx.Request):
        return HttpxRequest(request)
    if isinstance(request, HeaderCarrier):
        return request
    raise InvalidArgument(f"cannot decorate {type(request).__name__}: not a request")


def _hostname(hostport: str) -> str:
    """Strip the port (and IPv6 brackets) from a ``Host`` header value."""
    return urlsplit(f"//{hostport.strip()}").hostname or ""


def resolve_host(request: HeaderCarrier) -> str:
    """Host the request goes to: URL host, else the ``Host`` header override."""
    host = request.host
    if host:
        return host
    override = request.get_header("Host")
    if override:
        return _hostname(override)
    return ""


def decorate(session, request: Any, timeout: float | None = None) -> None:
    """Set ``Cookie`` and ``User-Agent`` on *request* from *session*.

    Matching cookies are appended to an existing ``Cookie`` header, leaving
    exactly one. ``User-Agent`` is always overwritten with the browser's, even
    when that is empty.

    Raises :class:`InvalidArgument` for a missing request or host and
    :class:`CredentialUnavailable` if the session cannot refresh.
    """
    if request is None:
        raise InvalidArgument("request is None")
    carrier = as_carrier(request)

    try:
        snapshot = session.ensure_fresh(timeout)
    except RefreshFailed as e:
        raise CredentialUnavailable(f"failed to get cookies: {e}") from e

    domain = resolve_host(carrier)
    if not domain:
        raise InvalidArgument("cannot determine domain from request")

    cookie_string = build_cookie_string(snapshot.cookies, domain)
    if cookie_string:
        existing = carrier.get_header("Cookie")
        if existing:
            cookie_string = f"{existing}; {cookie_string}"
        carrier.set_header("Cookie", cookie_string)

    carrier.set_header("User-Agent", snapshot.user_agent)
    log.debug("Decorated request to %s (%d cookie bytes)", domain, len(cookie_string))
