"""Credential cache: cookies and User-Agent borrowed from a running browser.

A Session holds one CredentialSnapshot at a time and refreshes it lazily,
on the first call that finds it older than ``cache_ttl``. Concurrent callers
that find it stale share a single refresh: the first one fetches, the rest
wait on its pending future and get the same outcome.

There is no background refresh thread. Sessions are process-scoped and are
never persisted.
"""
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable

from .browser import DEFAULT_DEBUG_URL, BrowserSource, CDPBrowser
from .cookies import Cookie
from .errors import RefreshFailed

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_CACHE_TTL = 5 * 60.0


@dataclass(frozen=True)
class CredentialSnapshot:
    """Cookies and User-Agent fetched together; replaced as a whole."""
    cookies: tuple[Cookie, ...]
    user_agent: str
    fetched_at: float


@dataclass
class Options:
    """Session settings bundled for callers that pass configuration around.

    ``stale_grace`` is how long (seconds) past ``cache_ttl`` a snapshot may
    still be served when refreshing it fails. ``0`` surfaces every failure.
    """
    debug_url: str = DEFAULT_DEBUG_URL
    timeout: float = DEFAULT_TIMEOUT
    cache_ttl: float = DEFAULT_CACHE_TTL
    stale_grace: float = 0.0


def _check_settings(timeout, cache_ttl, stale_grace) -> None:
    if timeout is not None and timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout}")
    if cache_ttl is not None and cache_ttl < 0:
        raise ValueError(f"cache_ttl must not be negative, got {cache_ttl}")
    if stale_grace is not None and stale_grace < 0:
        raise ValueError(f"stale_grace must not be negative, got {stale_grace}")


class Session:
    """Time-bounded, thread-safe cache of one browser's credentials.

    *browser* defaults to a :class:`CDPBrowser` on *debug_url*. *clock* is
    the time source for cache ages (monotonic seconds).
    """

    def __init__(
        self,
        debug_url: str = "",
        *,
        browser: BrowserSource | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        stale_grace: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        _check_settings(timeout, cache_ttl, stale_grace)
        self.debug_url = debug_url or DEFAULT_DEBUG_URL
        self._browser = browser if browser is not None else CDPBrowser(self.debug_url)
        self._clock = clock
        self._timeout = timeout
        self._cache_ttl = cache_ttl
        self._stale_grace = stale_grace

        self._lock = threading.Lock()
        self._snapshot: CredentialSnapshot | None = None
        self._invalidated = False
        self._pending: Future | None = None
        self._refreshes = 0
        self._failures = 0
        self._last_error: str | None = None

    @classmethod
    def from_options(cls, options: Options, browser: BrowserSource | None = None) -> "Session":
        return cls(
            options.debug_url,
            browser=browser,
            timeout=options.timeout,
            cache_ttl=options.cache_ttl,
            stale_grace=options.stale_grace,
        )

    def __repr__(self) -> str:
        return f"Session({self.debug_url!r})"

    # ── Configuration ───────────────────────────────────────────────────────

    @property
    def timeout(self) -> float:
        with self._lock:
            return self._timeout

    @property
    def cache_ttl(self) -> float:
        with self._lock:
            return self._cache_ttl

    @property
    def stale_grace(self) -> float:
        with self._lock:
            return self._stale_grace

    def configure(
        self,
        timeout: float | None = None,
        cache_ttl: float | None = None,
        stale_grace: float | None = None,
    ) -> "Session":
        """Change any of the given settings; ``None`` leaves one as is.

        Takes effect for the next refresh. A refresh already running keeps the
        timeout it started with.
        """
        _check_settings(timeout, cache_ttl, stale_grace)
        with self._lock:
            if timeout is not None:
                self._timeout = timeout
            if cache_ttl is not None:
                self._cache_ttl = cache_ttl
            if stale_grace is not None:
                self._stale_grace = stale_grace
        return self

    def with_timeout(self, timeout: float) -> "Session":
        """Set the bound (seconds) on each browser round trip."""
        return self.configure(timeout=timeout)

    def with_cache_ttl(self, ttl: float) -> "Session":
        """Set how long (seconds) fetched credentials are reused."""
        return self.configure(cache_ttl=ttl)

    # ── Cache ───────────────────────────────────────────────────────────────

    def current_credentials(self) -> CredentialSnapshot | None:
        """The last successfully fetched snapshot, stale or not."""
        with self._lock:
            return self._snapshot

    def invalidate(self) -> None:
        """Force the next :meth:`ensure_fresh` to refetch.

        The snapshot itself is kept, so a failing refetch can still fall back
        to it within ``stale_grace``.
        """
        with self._lock:
            self._invalidated = True

    def ensure_fresh(self, timeout: float | None = None) -> CredentialSnapshot:
        """Return fresh credentials, fetching them from the browser if needed.

        *timeout* is the caller's own budget in seconds; the fetch is bounded
        by the smaller of it and the session timeout. Raises
        :class:`RefreshFailed` if the fetch fails, leaving the previous
        snapshot in place.
        """
        with self._lock:
            if self._is_fresh(self._clock()):
                return self._snapshot
            pending = self._pending
            owner = pending is None
            if owner:
                pending = self._pending = Future()

        if not owner:
            return self._wait(pending, timeout)
        return self._refresh(pending, timeout)

    def _is_fresh(self, now: float) -> bool:
        # caller holds self._lock
        if self._snapshot is None or self._invalidated:
            return False
        return now - self._snapshot.fetched_at < self._cache_ttl

    def _wait(self, pending: Future, timeout: float | None) -> CredentialSnapshot:
        log.debug("Waiting for refresh already in progress on %s", self.debug_url)
        try:
            return pending.result(timeout=timeout)
        except TimeoutError as e:
            # only this caller gives up; the refresh keeps running
            raise RefreshFailed(
                f"timed out after {timeout}s waiting for refresh from {self.debug_url}"
            ) from e

    def _refresh(self, pending: Future, timeout: float | None) -> CredentialSnapshot:
        try:
            snapshot = self._fetch(timeout)
        except Exception as e:
            error = RefreshFailed(f"refreshing credentials from {self.debug_url} failed: {e}")
            error.__cause__ = e
            with self._lock:
                self._pending = None
                self._failures += 1
                self._last_error = str(error)
                fallback = self._grace_snapshot(self._clock())
            if fallback is not None:
                log.warning("Credential refresh failed (%s); serving stale snapshot", e)
                pending.set_result(fallback)
                return fallback
            log.warning("Credential refresh from %s failed: %s", self.debug_url, e)
            pending.set_exception(error)
            raise error from e
        except BaseException as e:
            with self._lock:
                self._pending = None
            pending.set_exception(e)
            raise

        with self._lock:
            self._snapshot = snapshot
            self._invalidated = False
            self._refreshes += 1
            self._pending = None
        pending.set_result(snapshot)
        log.info(
            "Refreshed credentials from %s: %d cookies", self.debug_url, len(snapshot.cookies)
        )
        return snapshot

    def _fetch(self, timeout: float | None) -> CredentialSnapshot:
        """Fetch cookies then User-Agent under one deadline, in one round trip
        when the browser offers ``fetch_credentials``."""
        with self._lock:
            bound = self._timeout if timeout is None else min(self._timeout, timeout)
        if bound <= 0:
            raise TimeoutError("caller deadline already expired")

        started = time.monotonic()
        fetch_both = getattr(self._browser, "fetch_credentials", None)
        if fetch_both is not None:
            cookies, user_agent = fetch_both(bound)
            return self._snapshot_of(cookies, user_agent, started)

        deadline = started + bound
        cookies = self._browser.fetch_cookies(bound)

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError(f"no time left for user-agent after {bound:.1f}s")
        user_agent = self._browser.fetch_user_agent(remaining)
        return self._snapshot_of(cookies, user_agent, started)

    def _snapshot_of(self, cookies, user_agent, started: float) -> CredentialSnapshot:
        log.debug("Fetched %d cookies in %.2fs", len(cookies), time.monotonic() - started)
        return CredentialSnapshot(
            cookies=tuple(cookies),
            user_agent=user_agent or "",
            fetched_at=self._clock(),
        )

    def _grace_snapshot(self, now: float) -> CredentialSnapshot | None:
        # caller holds self._lock
        if self._snapshot is None or self._stale_grace <= 0:
            return None
        if now - self._snapshot.fetched_at < self._cache_ttl + self._stale_grace:
            return self._snapshot
        return None

    @property
    def stats(self) -> dict:
        """Return refresh counters and cache age for logging."""
        with self._lock:
            snapshot = self._snapshot
            age = None if snapshot is None else round(self._clock() - snapshot.fetched_at, 2)
            return {
                "refreshes": self._refreshes,
                "failures": self._failures,
                "cookies": 0 if snapshot is None else len(snapshot.cookies),
                "age": age,
                "refreshing": self._pending is not None,
                "last_error": self._last_error,
            }
