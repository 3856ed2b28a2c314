"""Tests for request decoration."""
import httpx
import pytest

from browser_request.cookies import Cookie
from browser_request.errors import CredentialUnavailable, InvalidArgument
from browser_request.request import HeaderCarrier, HttpxRequest, decorate, resolve_host
from browser_request.session import Session
from fakes import FakeBrowser


class PlainRequest:
    """Minimal HeaderCarrier that is not an httpx request."""

    def __init__(self, host="", headers=None):
        self._host = host
        self.headers = dict(headers or {})

    @property
    def host(self):
        return self._host

    def get_header(self, name):
        for k, v in self.headers.items():
            if k.lower() == name.lower():
                return v
        return None

    def set_header(self, name, value):
        for k in [k for k in self.headers if k.lower() == name.lower()]:
            del self.headers[k]
        self.headers[name] = value


def _session(cookies=None, user_agent="UA"):
    browser = FakeBrowser(cookies=cookies if cookies is not None else [], user_agent=user_agent)
    return Session(browser=browser), browser


def test_plain_request_is_header_carrier():
    assert isinstance(PlainRequest(), HeaderCarrier)
    assert isinstance(HttpxRequest(httpx.Request("GET", "https://x.com")), HeaderCarrier)


def test_none_request():
    s, browser = _session()
    with pytest.raises(InvalidArgument):
        decorate(s, None)
    assert browser.fetches == 0


def test_unsupported_request_type():
    s, _ = _session()
    with pytest.raises(InvalidArgument):
        decorate(s, "https://x.com")


def test_sets_matching_cookies_and_user_agent():
    s, _ = _session([Cookie("a", "1", ".x.com"), Cookie("b", "2", "y.com")])
    req = httpx.Request("GET", "https://sub.x.com/path", headers={"User-Agent": "python-httpx"})
    decorate(s, req)
    assert req.headers["Cookie"] == "a=1; gen=1"
    assert req.headers["User-Agent"] == "UA/1"


def test_appends_to_existing_cookie_header():
    s, _ = _session([Cookie("a", "1", "x.com")])
    req = httpx.Request("GET", "https://x.com/", headers={"Cookie": "k=v"})
    decorate(s, req)
    assert req.headers.get_list("Cookie") == ["k=v; a=1; gen=1"]


def test_existing_cookie_untouched_when_nothing_matches():
    s, _ = _session([Cookie("a", "1", "y.com")])
    req = PlainRequest("other.org", {"Cookie": "k=v"})
    # FakeBrowser adds a gen cookie on .x.com, which does not match other.org either
    decorate(s, req)
    assert req.headers["Cookie"] == "k=v"
    assert req.headers["User-Agent"] == "UA/1"


def test_no_cookie_header_added_when_nothing_matches():
    s, _ = _session([Cookie("a", "1", "y.com")])
    req = httpx.Request("GET", "https://other.org/")
    decorate(s, req)
    assert "Cookie" not in req.headers


def test_duplicate_cookies_sent_once():
    s, _ = _session([Cookie("sid", "abc", ".x.com"), Cookie("sid", "abc", "www.x.com")])
    req = httpx.Request("GET", "https://www.x.com/")
    decorate(s, req)
    assert req.headers["Cookie"] == "sid=abc; gen=1"


def test_empty_user_agent_still_overwrites():
    s, browser = _session()
    browser.fetch_user_agent = lambda timeout: ""
    req = httpx.Request("GET", "https://x.com/", headers={"User-Agent": "mine"})
    decorate(s, req)
    assert req.headers["User-Agent"] == ""


def test_other_headers_untouched():
    s, _ = _session([Cookie("a", "1", "x.com")])
    req = httpx.Request("POST", "https://x.com/api", headers={"Accept": "application/json"}, content=b"{}")
    decorate(s, req)
    assert req.headers["Accept"] == "application/json"
    assert req.method == "POST"
    assert str(req.url) == "https://x.com/api"
    assert req.content == b"{}"


def test_host_override_when_url_has_no_host():
    s, _ = _session([Cookie("a", "1", "x.com")])
    req = PlainRequest("", {"Host": "x.com:8443"})
    decorate(s, req)
    assert req.headers["Cookie"] == "a=1; gen=1"


def test_no_host_at_all():
    s, _ = _session()
    with pytest.raises(InvalidArgument):
        decorate(s, PlainRequest(""))


def test_resolve_host_prefers_url():
    assert resolve_host(PlainRequest("x.com", {"Host": "y.com"})) == "x.com"
    assert resolve_host(PlainRequest("", {"Host": "[::1]:8080"})) == "::1"


def test_refresh_failure_becomes_credential_unavailable():
    s, browser = _session()
    browser.fail_cookies = ConnectionRefusedError("no browser")
    req = httpx.Request("GET", "https://x.com/", headers={"Cookie": "k=v"})
    with pytest.raises(CredentialUnavailable) as exc_info:
        decorate(s, req)
    assert exc_info.value.__cause__.__cause__.__class__ is ConnectionRefusedError
    assert req.headers["Cookie"] == "k=v"


def test_punycode_host_receives_punycode_cookies():
    """Browsers report IDN cookie domains in punycode; match on the wire host."""
    s, _ = _session([Cookie("sid", "abc", ".xn--mnchen-3ya.de")])
    req = httpx.Request("GET", "https://xn--mnchen-3ya.de/")
    decorate(s, req)
    assert req.headers["Cookie"] == "sid=abc"


def test_unicode_host_matched_in_ascii_form():
    s, _ = _session([Cookie("sid", "abc", ".xn--mnchen-3ya.de")])
    req = httpx.Request("GET", "https://münchen.de/")
    assert HttpxRequest(req).host == "xn--mnchen-3ya.de"
    decorate(s, req)
    assert req.headers["Cookie"] == "sid=abc"
