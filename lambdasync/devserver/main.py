"""
Lambdasync Dev Server - API Gateway compatible local server

Runs the project's handler for every HTTP request, translating the request
into an API Gateway (REST, v1) proxy event and the handler's completion back
into an HTTP response.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, Response

from .api.deps import (
    ConfigDep,
    HandlerProviderDep,
    InboundRequestDep,
    InvocationIdDep,
    ProcessorDep,
)
from .config import INTERNAL_PREFIX, DevServerConfig, get_config
from .core.logging_config import setup_logging
from .core.responses import NO_CACHE_HEADERS
from .exceptions import register_exception_handlers
from .lifecycle import manage_lifespan
from .middleware import request_id_middleware
from .services.handler_provider import HandlerProvider

logger = logging.getLogger("devserver.main")

# Every method API Gateway can proxy.
PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def create_app(
    config: Optional[DevServerConfig] = None, provider: Optional[HandlerProvider] = None
) -> FastAPI:
    """
    Assemble the dev server application.

    Args:
        config: Server configuration (environment-derived when omitted)
        provider: Handler provider override; defaults to loading config.HANDLER
    """
    config = config or get_config()

    app = FastAPI(
        title="Lambdasync Dev Server",
        version="1.0.0",
        lifespan=lambda app: manage_lifespan(app, config, provider),
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Available before the lifespan runs (and in tests that skip it).
    app.state.config = config

    app.middleware("http")(request_id_middleware)
    if config.CORS_ENABLED:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["x-amzn-RequestId"],
        )

    register_exception_handlers(app)

    # ===========================================
    # Reserved routes
    # ===========================================

    @app.get("/favicon{suffix:path}", include_in_schema=False)
    async def favicon(suffix: str, server_config: ConfigDep):
        """Static icon so browsers never trigger an invocation."""
        icon = server_config.FAVICON_PATH
        if icon and os.path.isfile(icon):
            return FileResponse(icon)
        return Response(status_code=204, headers=NO_CACHE_HEADERS)

    @app.get(f"{INTERNAL_PREFIX}/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.post(f"{INTERNAL_PREFIX}/reload")
    async def reload_handler(provider: HandlerProviderDep):
        """Force a fresh import of the handler module."""
        provider.reload()
        return {"status": "reloaded"}

    # ===========================================
    # Catch-all proxy route
    # ===========================================

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def proxy_handler(
        path: str,
        inbound: InboundRequestDep,
        request_id: InvocationIdDep,
        processor: ProcessorDep,
    ):
        """
        Invoke the handler for any method and path not reserved above.
        """
        return await processor.process_request(inbound, request_id)

    return app


setup_logging(get_config())
app = create_app()


if __name__ == "__main__":
    import uvicorn

    _config = get_config()
    uvicorn.run(app, host=_config.HOST, port=_config.PORT, log_config=None)
