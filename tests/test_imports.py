"""Smoke tests: the public API is importable from the package root."""


def test_core_imports():
    from browser_request import (
        Cookie,
        CredentialSnapshot,
        Options,
        Session,
        build_cookie_string,
        decorate,
        matches_domain,
    )
    assert callable(Session)
    assert callable(decorate)
    assert callable(matches_domain)
    assert callable(build_cookie_string)
    assert Options().debug_url == "ws://localhost:9222"
    assert Cookie("a", "1").domain == ""
    assert CredentialSnapshot((), "", 0.0).cookies == ()


def test_transport_imports():
    import httpx
    from browser_request import AsyncCookieTransport, CookieTransport, new_async_client, new_http_client
    assert issubclass(CookieTransport, httpx.BaseTransport)
    assert issubclass(AsyncCookieTransport, httpx.AsyncBaseTransport)
    assert callable(new_http_client)
    assert callable(new_async_client)


def test_error_imports():
    from browser_request import (
        BrowserRequestError,
        BrowserUnavailable,
        CredentialUnavailable,
        ErrorKind,
        InvalidArgument,
        RefreshFailed,
    )
    assert ErrorKind.REFRESH_FAILED.value == "refresh_failed"
    for cls in (BrowserUnavailable, CredentialUnavailable, InvalidArgument, RefreshFailed):
        assert issubclass(cls, BrowserRequestError)


def test_browser_imports():
    from browser_request import DEFAULT_DEBUG_URL, BrowserSource, CDPBrowser
    assert DEFAULT_DEBUG_URL == "ws://localhost:9222"
    assert isinstance(CDPBrowser(), BrowserSource)
