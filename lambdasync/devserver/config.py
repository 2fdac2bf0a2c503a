"""
Dev server configuration definition.

Loads configuration from environment variables (LAMBDASYNC_ prefix) and
provides a Pydantic model. Uses pydantic-settings for type safety and defaults.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field

from lambdasync.common.core.config import BaseAppConfig

# Reserved path prefix for the dev server's own endpoints.
INTERNAL_PREFIX = "/__lambdasync"


class DevServerConfig(BaseAppConfig):
    """
    Configuration management for the local dev server.
    """

    # Server settings
    HOST: str = Field(default="127.0.0.1", description="Listen host")
    PORT: int = Field(default=3003, description="Listen port")
    CORS_ENABLED: bool = Field(default=True, description="Allow cross-origin requests")
    FAVICON_PATH: Optional[str] = Field(default=None, description="Icon served on /favicon*")

    # Handler settings
    PROJECT_DIR: str = Field(default=".", description="Project root the handler lives in")
    HANDLER: str = Field(
        default="index.py", description="Handler module (path, module name or 'module:function')"
    )
    HANDLER_FUNCTION: str = Field(default="handler", description="Exported handler attribute")
    RELOAD_HANDLER: bool = Field(default=True, description="Re-import the handler when it changes")
    SETTINGS_FILE: str = Field(default="lambdasync.json", description="Project settings file")

    # Invocation settings
    INVOCATION_TIMEOUT: float = Field(
        default=30.0, gt=0, description="Seconds to wait for the handler to complete"
    )
    HANDLER_THREADS: int = Field(
        default=32, gt=0, description="Worker threads available to synchronous handlers"
    )
    FUNCTION_NAME: str = Field(default="lambdasync-local", description="Reported function name")
    FUNCTION_VERSION: str = Field(default="$LATEST", description="Reported function version")
    AWS_REGION: str = Field(default="us-east-1", description="Reported region")
    AWS_ACCOUNT_ID: str = Field(default="123456789012", description="Reported account id")
    MEMORY_SIZE: int = Field(default=128, description="Reported memory limit (MB)")
    STAGE: str = Field(default="dev", description="API Gateway stage name")

    # Logging
    LOG_CONFIG_PATH: str = Field(
        default="", description="Logging dictConfig YAML (packaged default when empty)"
    )


@lru_cache
def get_config() -> DevServerConfig:
    """Load config once; pydantic-settings reads environment variables on instantiation."""
    return DevServerConfig()
