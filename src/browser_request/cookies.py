"""Browser cookies and the domain rule deciding where they are sent.

Only name, value and domain are kept. Path, expiry and the Secure/HttpOnly/
SameSite attributes are ignored: this forwards credentials, it is not a
cookie jar.
"""
from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True)
class Cookie:
    """One cookie as reported by the browser."""
    name: str
    value: str
    domain: str = ""


def cookie_from_cdp(raw: dict[str, Any]) -> Cookie:
    """Build a Cookie from a CDP ``Network.Cookie`` / Playwright cookie dict."""
    return Cookie(
        name=str(raw.get("name", "")),
        value=str(raw.get("value", "")),
        domain=str(raw.get("domain", "")),
    )


def matches_domain(cookie_domain: str, request_domain: str) -> bool:
    """Check if a cookie domain applies to the request host.

    Deliberately looser than RFC 6265 domain matching: after the exact and
    parent-domain checks, either name containing the other counts as a match,
    so ``"c.com"`` matches ``"abc.com"``.
    """
    if cookie_domain.startswith("."):
        cookie_domain = cookie_domain[1:]

    if cookie_domain == request_domain:
        return True

    # cookie domain is a parent of the request host
    if request_domain.endswith("." + cookie_domain):
        return True

    if cookie_domain in request_domain:
        return True

    # partial match the other way around
    return request_domain in cookie_domain


def build_cookie_string(cookies: Iterable[Cookie], domain: str) -> str:
    """Join the cookies matching *domain* into a ``Cookie`` header value.

    Keeps fetch order. Cookies with the same name and value are sent once,
    whichever domain they came from.
    """
    parts: list[str] = []
    seen: set[tuple[str, str]] = set()
    for cookie in cookies:
        if not matches_domain(cookie.domain, domain):
            continue
        key = (cookie.name, cookie.value)
        if key in seen:
            continue
        seen.add(key)
        parts.append(f"{cookie.name}={cookie.value}")
    return "; ".join(parts)
