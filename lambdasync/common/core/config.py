"""
Common Configuration
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class BaseAppConfig(BaseSettings):
    """
    Common application settings.
    """

    LOG_LEVEL: str = Field(default="INFO", description="Log level")
    VERIFY_SSL: bool = Field(default=True, description="Whether to verify SSL certificates")

    # ===== Outbound proxy =====
    USE_PROXY: bool = Field(default=False, description="Route outbound HTTP through PROXY_URI")
    PROXY_URI: str = Field(default="", description="Proxy URI for outbound HTTP calls")

    model_config = SettingsConfigDict(
        env_prefix="LAMBDASYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )
