"""Browser collaborator: where cookies and the user-agent come from.

The session only needs :class:`BrowserSource`. :class:`CDPBrowser` is the
stock implementation; it attaches to an already-running Chrome over the
remote-debugging protocol and never launches or closes the browser itself.
"""
import logging
import threading
import time
from concurrent.futures import Future
from typing import Protocol, runtime_checkable
from urllib.parse import urlsplit, urlunsplit

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from .cookies import Cookie, cookie_from_cdp
from .errors import BrowserUnavailable

log = logging.getLogger(__name__)

DEFAULT_DEBUG_URL = "ws://localhost:9222"


@runtime_checkable
class BrowserSource(Protocol):
    """Capability the session needs from a browser.

    Both calls must give up after *timeout* seconds, raising
    :class:`TimeoutError`. Any other failure may raise any exception; the
    session wraps it.

    A source may also provide ``fetch_credentials(timeout) -> (cookies,
    user_agent)`` to get both in one round trip; the session prefers it.
    """

    def fetch_cookies(self, timeout: float) -> list[Cookie]:
        """Return every cookie the browser holds, in browser order."""
        ...

    def fetch_user_agent(self, timeout: float) -> str:
        """Return the browser's User-Agent string."""
        ...


def cdp_endpoint(debug_url: str) -> str:
    """Turn a debug URL into something ``connect_over_cdp`` accepts.

    A bare ``ws://host:port`` has no browser id, so it is rewritten to
    ``http://host:port`` and Playwright looks the websocket up via
    ``/json/version``. Full ``ws://.../devtools/browser/<id>`` URLs and
    http(s) URLs are returned unchanged.
    """
    if not debug_url:
        debug_url = DEFAULT_DEBUG_URL
    parts = urlsplit(debug_url)
    if parts.scheme in ("ws", "wss") and parts.path in ("", "/"):
        scheme = "https" if parts.scheme == "wss" else "http"
        return urlunsplit((scheme, parts.netloc, "", "", ""))
    return debug_url


class CDPBrowser:
    """BrowserSource backed by a remote Chrome via Playwright's CDP client.

    Every fetch opens its own short-lived connection on a worker thread with
    its own Playwright driver, so one instance can be shared by sessions on
    different threads and a stalled browser cannot outlast the timeout.
    """

    def __init__(self, debug_url: str = DEFAULT_DEBUG_URL):
        self.debug_url = debug_url or DEFAULT_DEBUG_URL
        self.endpoint = cdp_endpoint(self.debug_url)

    def __repr__(self) -> str:
        return f"CDPBrowser({self.debug_url!r})"

    def fetch_cookies(self, timeout: float) -> list[Cookie]:
        (result,) = self._call(["Storage.getCookies"], timeout)
        return [cookie_from_cdp(raw) for raw in result.get("cookies", [])]

    def fetch_user_agent(self, timeout: float) -> str:
        # Browser.getVersion needs no tab, so the window never takes focus
        (result,) = self._call(["Browser.getVersion"], timeout)
        return result.get("userAgent", "")

    def fetch_credentials(self, timeout: float) -> tuple[list[Cookie], str]:
        """Cookies and User-Agent over a single connection."""
        cookies, version = self._call(["Storage.getCookies", "Browser.getVersion"], timeout)
        return (
            [cookie_from_cdp(raw) for raw in cookies.get("cookies", [])],
            version.get("userAgent", ""),
        )

    def _call(self, methods: list[str], timeout: float) -> list[dict]:
        """Run :meth:`_send` on a daemon thread and wait at most *timeout*.

        Driver startup and ``CDPSession.send`` take no timeout of their own.
        A call still stuck at the deadline is abandoned; its thread
        disconnects whenever the browser finally answers.
        """
        if timeout <= 0:
            raise TimeoutError(f"no time left to call {', '.join(methods)}")
        future: Future = Future()

        def worker():
            try:
                future.set_result(self._send(methods, timeout))
            except BaseException as e:
                future.set_exception(e)

        threading.Thread(target=worker, name="cdp-fetch", daemon=True).start()
        try:
            return future.result(timeout=timeout)
        except TimeoutError:
            if future.done():
                raise
            raise TimeoutError(
                f"{', '.join(methods)} on {self.endpoint} did not answer within {timeout:.1f}s"
            ) from None

    def _send(self, methods: list[str], timeout: float) -> list[dict]:
        """Connect, issue browser-level CDP commands in order, disconnect."""
        started = time.monotonic()
        label = ", ".join(methods)
        results = []
        try:
            with sync_playwright() as pw:
                browser = pw.chromium.connect_over_cdp(self.endpoint, timeout=timeout * 1000)
                try:
                    cdp = browser.new_browser_cdp_session()
                    for method in methods:
                        results.append(cdp.send(method) or {})
                finally:
                    browser.close()
        except PlaywrightTimeoutError as e:
            raise TimeoutError(f"{label} on {self.endpoint} timed out after {timeout:.1f}s") from e
        except PlaywrightError as e:
            raise BrowserUnavailable(f"{label} on {self.endpoint} failed: {e}") from e

        log.debug("%s on %s took %.2fs", label, self.endpoint, time.monotonic() - started)
        return results
