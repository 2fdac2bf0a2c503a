"""
Project settings.

Loads the project's ``lambdasync.json`` (written by the project init flow) so
the invocation context reports the same function name and region the
deployed function will have. Missing or unreadable files fall back to the
server configuration.
"""

import json
import logging
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("devserver.project_settings")


class ProjectSettings(BaseModel):
    """The subset of lambdasync.json the dev server cares about."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    function_name: Optional[str] = Field(default=None, alias="functionName")
    region: Optional[str] = None
    timeout: Optional[float] = Field(default=None, gt=0)
    memory_size: Optional[int] = Field(default=None, gt=0, alias="memorySize")
    handler: Optional[str] = None


def load_project_settings(settings_path: str) -> ProjectSettings:
    """
    Load project settings from a JSON file.

    Returns:
        ProjectSettings (all fields None when the file is missing or invalid)
    """
    if not os.path.exists(settings_path):
        logger.debug(f"Project settings not found at {settings_path}")
        return ProjectSettings()

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error reading project settings {settings_path}: {e}")
        return ProjectSettings()

    if not isinstance(raw, dict):
        logger.error(f"Project settings {settings_path} must contain a JSON object")
        return ProjectSettings()

    try:
        settings = ProjectSettings.model_validate(raw)
    except ValidationError as e:
        logger.error(f"Invalid project settings in {settings_path}: {e}")
        return ProjectSettings()

    logger.info(
        f"Loaded project settings from {settings_path}",
        extra={"function_name": settings.function_name, "region": settings.region},
    )
    return settings
