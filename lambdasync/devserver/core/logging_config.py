import os

from lambdasync.common.core.logging_config import setup_logging as common_setup_logging

from ..config import DevServerConfig

DEFAULT_LOG_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "devserver_log.yaml"
)


def setup_logging(config: DevServerConfig) -> bool:
    """
    Load the YAML logging config for the dev server.
    Falls back to plain console logging when the file is absent.
    """
    config_path = config.LOG_CONFIG_PATH or DEFAULT_LOG_CONFIG_PATH
    return common_setup_logging(config_path, log_level=config.LOG_LEVEL)
