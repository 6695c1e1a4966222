"""Proxy selection for outbound requests."""

import logging
import re
from typing import Any, Callable
from urllib.parse import quote, unquote, urlsplit

from process_agent.errors import ProxyConfigError
from process_agent.constants import DEFAULT_PROXY_PORT

logger = logging.getLogger(__name__)

# Characters RFC 3986 allows unescaped in the userinfo component
_USERINFO_SAFE = "&=+$,;"
_BAD_PERCENT_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class ProxySelector:
    """Maps any outbound request to the single configured proxy URL."""

    def __init__(self, url: str):
        self._url = url
        self._parts = urlsplit(url)

    @property
    def url(self) -> str:
        return self._url

    @property
    def scheme(self) -> str:
        return self._parts.scheme

    @property
    def hostname(self) -> str | None:
        return self._parts.hostname

    @property
    def port(self) -> int | None:
        return self._parts.port

    @property
    def username(self) -> str | None:
        """Decoded user name, if any."""
        if self._parts.username is None:
            return None
        return unquote(self._parts.username)

    @property
    def password(self) -> str | None:
        """Decoded password, if any."""
        if self._parts.password is None:
            return None
        return unquote(self._parts.password)

    def __call__(self, request: Any = None) -> str:
        # one proxy applies to every request
        return self._url

    def as_requests_proxies(self) -> dict[str, str]:
        """Proxy mapping in the format expected by ``requests``."""
        return {"http": self._url, "https": self._url}

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ProxySelector) and other._url == self._url

    def __hash__(self) -> int:
        return hash(self._url)

    def __repr__(self) -> str:
        redacted = self._parts._replace(
            netloc=self._parts.netloc.rpartition("@")[2]
        ).geturl()
        return f"ProxySelector({redacted!r})"


def split_scheme(host: str, scheme: str) -> tuple[str, str]:
    """Accept either ``http://myproxy.com`` or ``myproxy.com``."""
    if "://" in host:
        prefix, _, rest = host.partition("://")
        return prefix, rest
    return scheme, host


def resolve_proxy(
    host: str | None,
    scheme: str = "http",
    port: int | None = None,
    user: str | None = None,
    password: str | None = None,
) -> ProxySelector | None:
    """Build a proxy selector from its parts.

    Args:
        host: Proxy host, optionally prefixed with ``scheme://``
        scheme: Scheme used when the host carries none
        port: Proxy port, ``None`` or negative selects the default port
        user: Optional user name
        password: Optional password, only used together with a user name

    Returns:
        The selector, or None when no host is configured.

    Raises:
        ProxyConfigError: If the parts do not form a valid URL
    """
    if not host:
        return None

    scheme, host = split_scheme(host, scheme or "http")
    if not host:
        raise ProxyConfigError("proxy host is empty once the scheme is removed")

    if port is None or port <= 0:
        port = DEFAULT_PROXY_PORT

    userinfo = ""
    if user:
        userinfo = quote(user, safe=_USERINFO_SAFE)
        if password:
            userinfo += ":" + quote(password, safe=_USERINFO_SAFE)
        userinfo += "@"

    url = f"{scheme}://{userinfo}{host}:{port}"

    if _BAD_PERCENT_ESCAPE.search(host):
        raise ProxyConfigError(f"invalid percent-encoding in proxy host '{host}'")
    try:
        parts = urlsplit(url)
        parsed_port = parts.port
    except ValueError as e:
        raise ProxyConfigError(f"invalid proxy URL: {e}") from e
    if not parts.hostname or parsed_port != port:
        raise ProxyConfigError(f"invalid proxy host '{host}'")

    return ProxySelector(url)


def proxy_from_settings(
    get: Callable[[str], str | int | None],
    default: ProxySelector | None = None,
) -> ProxySelector | None:
    """Build a proxy selector from ``proxy_host``-style settings.

    Args:
        get: Lookup for the ``host``, ``port``, ``user`` and ``password`` keys
        default: Returned when no host is configured

    Raises:
        ProxyConfigError: If the settings do not form a valid URL
    """
    host = get("host")
    if not host:
        return default

    raw_port = get("port")
    port = None
    if raw_port not in (None, ""):
        try:
            port = int(raw_port)
        except ValueError as e:
            raise ProxyConfigError(f"invalid proxy port '{raw_port}'") from e

    selector = resolve_proxy(
        str(host),
        port=port,
        user=str(get("user") or ""),
        password=str(get("password") or ""),
    )
    logger.info("Using proxy %r", selector)
    return selector
