"""Outbound HTTP transport settings shared by every submission."""

import requests
from requests.adapters import HTTPAdapter
from pydantic import BaseModel, ConfigDict, PositiveFloat, PositiveInt

from process_agent import constants
from process_agent.proxy import ProxySelector


class OutboundTransport(BaseModel):
    """Connection settings and proxy used for requests to the collector."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    connect_timeout: PositiveFloat = constants.TRANSPORT_DIAL_TIMEOUT
    read_timeout: PositiveFloat = constants.TRANSPORT_READ_TIMEOUT
    max_idle_connections: PositiveInt = 5
    proxy: ProxySelector | None = None

    @property
    def timeout(self) -> tuple[float, float]:
        return self.connect_timeout, self.read_timeout

    def session(self) -> requests.Session:
        """Create a session honoring the pool size and the proxy."""
        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=self.max_idle_connections,
            pool_maxsize=self.max_idle_connections,
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        if self.proxy is not None:
            session.proxies.update(self.proxy.as_requests_proxies())
            # the configured proxy wins over *_PROXY variables
            session.trust_env = False
        return session
