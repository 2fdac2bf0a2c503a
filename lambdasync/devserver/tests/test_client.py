from unittest.mock import patch

import httpx
import respx

from lambdasync.devserver.client import DevServerClient
from lambdasync.devserver.config import DevServerConfig


def _config(**overrides) -> DevServerConfig:
    return DevServerConfig(_env_file=None, **overrides)


@patch("httpx.Client")
def test_from_config_uses_factory_settings(mock_client):
    config = _config(
        PORT=4000, INVOCATION_TIMEOUT=10.0, USE_PROXY=True, PROXY_URI="http://proxy:3128"
    )

    client = DevServerClient.from_config(config)

    assert client.base_url == "http://127.0.0.1:4000"
    _, kwargs = mock_client.call_args
    assert kwargs["timeout"] == 15.0
    assert kwargs["proxy"] == "http://proxy:3128"
    assert kwargs["trust_env"] is False


@respx.mock
def test_invoke_sends_method_path_and_body():
    route = respx.patch("http://devserver.test/users/1").mock(
        return_value=httpx.Response(200, text="patched")
    )

    with DevServerClient(httpx.Client(), "http://devserver.test/") as client:
        response = client.invoke("patch", "users/1", body="{}", headers={"X-A": "1"})

    assert response.text == "patched"
    assert route.calls.last.request.content == b"{}"
    assert route.calls.last.request.headers["x-a"] == "1"


@respx.mock
def test_health_and_reload():
    respx.get("http://devserver.test/__lambdasync/health").mock(
        return_value=httpx.Response(200, json={"status": "healthy"})
    )
    reload_route = respx.post("http://devserver.test/__lambdasync/reload").mock(
        return_value=httpx.Response(200, json={"status": "reloaded"})
    )

    with DevServerClient(httpx.Client(), "http://devserver.test") as client:
        assert client.health() is True
        assert client.reload().json() == {"status": "reloaded"}

    assert reload_route.called


@respx.mock
def test_health_unreachable():
    respx.get("http://devserver.test/__lambdasync/health").mock(
        side_effect=httpx.ConnectError("refused")
    )

    with DevServerClient(httpx.Client(), "http://devserver.test") as client:
        assert client.health() is False
