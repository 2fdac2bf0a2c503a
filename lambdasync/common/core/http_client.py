import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import BaseAppConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProxyConfig:
    """
    Outbound proxy settings, owned by whichever client factory receives them.
    """

    enabled: bool = False
    uri: str = ""

    @classmethod
    def from_config(cls, config: BaseAppConfig) -> "ProxyConfig":
        return cls(enabled=config.USE_PROXY, uri=config.PROXY_URI)

    @property
    def proxy(self) -> Optional[str]:
        """Proxy URL to hand to httpx, or None when proxying is off."""
        if self.enabled and self.uri:
            return self.uri
        return None


class HttpClientFactory:
    """
    HTTP Client Factory for centralized SSL verification and proxy handling.
    """

    def __init__(self, config: BaseAppConfig, proxy_config: Optional[ProxyConfig] = None):
        self.config = config
        self.proxy_config = proxy_config or ProxyConfig.from_config(config)
        if self.proxy_config.enabled and not self.proxy_config.uri:
            logger.warning("USE_PROXY is set but PROXY_URI is empty; proxy disabled")

    def _client_kwargs(self, kwargs: dict) -> dict:
        verify = kwargs.pop("verify", None)

        # If verify is not explicitly provided, use config default
        if verify is None:
            verify = self.config.VERIFY_SSL
        kwargs["verify"] = verify

        proxy = self.proxy_config.proxy
        if proxy and "proxy" not in kwargs:
            kwargs["proxy"] = proxy
            logger.debug("Outbound HTTP routed through proxy %s", proxy)

        # Avoid leaking host HTTP(S)_PROXY/NO_PROXY into calls unless explicitly requested.
        kwargs.setdefault("trust_env", False)
        return kwargs

    def create_async_client(self, **kwargs) -> httpx.AsyncClient:
        """
        Create an httpx.AsyncClient with configured SSL verification and proxy.

        Args:
            **kwargs: Additional arguments for httpx.AsyncClient
        """
        return httpx.AsyncClient(**self._client_kwargs(kwargs))

    def create_sync_client(self, **kwargs) -> httpx.Client:
        """
        Create an httpx.Client with configured SSL verification and proxy.
        """
        return httpx.Client(**self._client_kwargs(kwargs))
