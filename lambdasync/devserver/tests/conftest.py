import os
from contextlib import asynccontextmanager

import httpx
import pytest

# Keep the host environment (and any .env) from leaking into test configs.
for _key in [k for k in os.environ if k.startswith("LAMBDASYNC_")]:
    del os.environ[_key]

from lambdasync.devserver.config import DevServerConfig  # noqa: E402
from lambdasync.devserver.main import create_app  # noqa: E402
from lambdasync.devserver.models.request import InboundRequest  # noqa: E402
from lambdasync.devserver.services.handler_provider import StaticHandlerProvider  # noqa: E402


def make_config(tmp_dir=None, **overrides) -> DevServerConfig:
    """DevServerConfig that ignores .env files; the project dir defaults to an empty temp dir."""
    if tmp_dir is not None:
        overrides.setdefault("PROJECT_DIR", str(tmp_dir))
    return DevServerConfig(_env_file=None, **overrides)


@pytest.fixture
def config_factory(tmp_path):
    def factory(**overrides) -> DevServerConfig:
        return make_config(tmp_path, **overrides)

    return factory


@pytest.fixture
def serve(tmp_path):
    """
    Returns an async context manager factory: ``async with serve(handler) as client``.

    Runs the real app (lifespan included) behind httpx's ASGI transport.
    Without a handler or provider, the handler is loaded from the temp project dir.
    """

    @asynccontextmanager
    async def _serve(handler=None, provider=None, **overrides):
        config = make_config(tmp_path, **overrides)
        if provider is None and handler is not None:
            provider = StaticHandlerProvider(handler)
        app = create_app(config, provider)
        async with app.router.lifespan_context(app):
            transport = httpx.ASGITransport(app=app, client=("10.0.0.7", 51234))
            async with httpx.AsyncClient(
                transport=transport, base_url="http://devserver"
            ) as client:
                yield client

    return _serve


@pytest.fixture
def inbound_request():
    def factory(**fields) -> InboundRequest:
        fields.setdefault("method", "GET")
        fields.setdefault("path", "/")
        return InboundRequest(**fields)

    return factory
