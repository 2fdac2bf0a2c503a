import logging
from typing import Dict, Optional, Union

import httpx

from lambdasync.common.core.http_client import HttpClientFactory

from .config import INTERNAL_PREFIX, DevServerConfig

logger = logging.getLogger("devserver.client")


class DevServerClient:
    """
    HTTP client for exercising a running dev server from the command line.

    Outbound proxy and TLS settings come from the HttpClientFactory.
    """

    def __init__(self, client: httpx.Client, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_config(
        cls,
        config: DevServerConfig,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> "DevServerClient":
        factory = HttpClientFactory(config)
        # Leave headroom over the server-side invocation timeout so its 502 gets through.
        client = factory.create_sync_client(timeout=timeout or config.INVOCATION_TIMEOUT + 5.0)
        return cls(client, base_url or f"http://{config.HOST}:{config.PORT}")

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "DevServerClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def invoke(
        self,
        method: str,
        path: str,
        body: Optional[Union[str, bytes]] = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Send one request through the dev server to the handler."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"Invoking {method.upper()} {url}")
        return self.client.request(
            method.upper(), url, content=body, headers=headers, params=params
        )

    def health(self) -> bool:
        try:
            response = self.client.get(f"{self.base_url}{INTERNAL_PREFIX}/health")
        except httpx.RequestError as e:
            logger.warning(f"Dev server unreachable at {self.base_url}: {e}")
            return False
        return response.status_code == 200

    def reload(self) -> httpx.Response:
        return self.client.post(f"{self.base_url}{INTERNAL_PREFIX}/reload")
