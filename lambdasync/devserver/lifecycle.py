"""
Where: lambdasync/devserver/lifecycle.py
What: Dev server startup/shutdown orchestration for shared resources.
Why: Keep main.py focused on app assembly while preserving lifecycle behavior.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .config import DevServerConfig
from .core.context import ContextBuilder
from .core.event_builder import V1ProxyEventBuilder
from .core.exceptions import HandlerLoadError
from .services.handler_provider import HandlerProvider, ModuleHandlerProvider
from .services.invoker import HandlerInvoker
from .services.processor import DevServerRequestProcessor
from .services.project_settings import load_project_settings

logger = logging.getLogger("devserver.main")


def _pick(config: DevServerConfig, field: str, file_value):
    """A flag or environment value beats lambdasync.json, which beats the built-in default."""
    if file_value is None or field in config.model_fields_set:
        return getattr(config, field)
    return file_value


def build_processor(
    config: DevServerConfig, provider: Optional[HandlerProvider] = None
) -> DevServerRequestProcessor:
    """Wire provider, builders and invoker from configuration and project settings."""
    settings_path = os.path.join(config.PROJECT_DIR, config.SETTINGS_FILE)
    settings = load_project_settings(settings_path)

    timeout = _pick(config, "INVOCATION_TIMEOUT", settings.timeout)

    if provider is None:
        provider = ModuleHandlerProvider(
            _pick(config, "HANDLER", settings.handler),
            project_dir=config.PROJECT_DIR,
            function_name=config.HANDLER_FUNCTION,
            auto_reload=config.RELOAD_HANDLER,
        )

    context_builder = ContextBuilder(
        function_name=_pick(config, "FUNCTION_NAME", settings.function_name),
        function_version=config.FUNCTION_VERSION,
        region=_pick(config, "AWS_REGION", settings.region),
        account_id=config.AWS_ACCOUNT_ID,
        memory_limit_in_mb=_pick(config, "MEMORY_SIZE", settings.memory_size),
        timeout=timeout,
    )

    return DevServerRequestProcessor(
        provider=provider,
        event_builder=V1ProxyEventBuilder(stage=config.STAGE, account_id=config.AWS_ACCOUNT_ID),
        context_builder=context_builder,
        invoker=HandlerInvoker(timeout=timeout, max_workers=config.HANDLER_THREADS),
    )


@asynccontextmanager
async def manage_lifespan(
    app: FastAPI, config: DevServerConfig, provider: Optional[HandlerProvider] = None
) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    processor = build_processor(config, provider)

    # Load eagerly so a broken handler shows up in the console at startup.
    # The server still starts; every request reports the load error until it is fixed.
    try:
        processor.provider.current()
    except HandlerLoadError as e:
        logger.error(f"{e}. Requests will fail until the handler loads.")

    app.state.config = config
    app.state.handler_provider = processor.provider
    app.state.processor = processor

    logger.info(
        f"running server on http://{config.HOST}:{config.PORT}",
        extra={
            "handler": getattr(processor.provider, "handler_ref", config.HANDLER),
            "project_dir": os.path.abspath(config.PROJECT_DIR),
            "invocation_timeout": processor.invoker.timeout,
        },
    )
    yield
    logger.info("Dev server shutting down.")
    processor.invoker.shutdown()
