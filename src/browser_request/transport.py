"""httpx transports that send every request with the browser's credentials.

Wrap any httpx transport; requests are decorated and forwarded, responses
come back untouched. If credentials cannot be obtained the request is never
sent.
"""
import asyncio
import logging
from typing import Any

import httpx

from .request import decorate
from .session import Session

log = logging.getLogger(__name__)


def _caller_timeout(request: httpx.Request) -> float | None:
    """The request's connect timeout, used as the caller's refresh budget."""
    timeout = request.extensions.get("timeout") or {}
    return timeout.get("connect")


class CookieTransport(httpx.BaseTransport):
    """Decorates requests from *session*, then hands them to *transport*."""

    def __init__(self, session: Session, transport: httpx.BaseTransport | None = None):
        self.session = session
        self._transport = transport if transport is not None else httpx.HTTPTransport()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        decorate(self.session, request, _caller_timeout(request))
        return self._transport.handle_request(request)

    def close(self) -> None:
        self._transport.close()


class AsyncCookieTransport(httpx.AsyncBaseTransport):
    """Async variant; the blocking browser round trip runs in a worker thread."""

    def __init__(self, session: Session, transport: httpx.AsyncBaseTransport | None = None):
        self.session = session
        self._transport = transport if transport is not None else httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await asyncio.to_thread(decorate, self.session, request, _caller_timeout(request))
        return await self._transport.handle_async_request(request)

    async def aclose(self) -> None:
        await self._transport.aclose()


def new_http_client(
    debug_url: str = "",
    transport: httpx.BaseTransport | None = None,
    session: Session | None = None,
    **client_kwargs: Any,
) -> httpx.Client:
    """Build an ``httpx.Client`` that sends the browser's cookies.

    Pass *session* to share one credential cache between clients; otherwise a
    new Session on *debug_url* is created. Extra keyword arguments go to
    ``httpx.Client``.
    """
    if session is None:
        session = Session(debug_url)
    log.debug("New HTTP client with credentials from %s", session.debug_url)
    return httpx.Client(transport=CookieTransport(session, transport), **client_kwargs)


def new_async_client(
    debug_url: str = "",
    transport: httpx.AsyncBaseTransport | None = None,
    session: Session | None = None,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    """Async counterpart of :func:`new_http_client`."""
    if session is None:
        session = Session(debug_url)
    log.debug("New async HTTP client with credentials from %s", session.debug_url)
    return httpx.AsyncClient(transport=AsyncCookieTransport(session, transport), **client_kwargs)
