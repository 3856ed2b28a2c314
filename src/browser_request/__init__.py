"""browser-request: send HTTP requests with a running browser's credentials.

Borrows the cookies and User-Agent of a Chrome session reachable over the
remote-debugging protocol, caches them, and injects them into outgoing
httpx requests through a drop-in transport.
"""
from .browser import BrowserSource, CDPBrowser, DEFAULT_DEBUG_URL  # noqa: F401
from .cookies import Cookie, build_cookie_string, matches_domain  # noqa: F401
from .errors import (  # noqa: F401
    BrowserRequestError,
    BrowserUnavailable,
    CredentialUnavailable,
    ErrorKind,
    InvalidArgument,
    RefreshFailed,
)
from .request import HeaderCarrier, decorate  # noqa: F401
from .session import CredentialSnapshot, Options, Session  # noqa: F401
from .transport import (  # noqa: F401
    AsyncCookieTransport,
    CookieTransport,
    new_async_client,
    new_http_client,
)
