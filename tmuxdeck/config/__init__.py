"""Global configuration management.

Config is loaded at module import time and available globally via:
    from tmuxdeck.config import config

The YAML file is read from $TMUXDECK_CONFIG_PATH (default
~/.tmuxdeck/tmuxdeck.yml). A .env file is loaded first so ${VAR}
references in the YAML can resolve against it.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from tmuxdeck.config.loader import load_global_config
from tmuxdeck.config.schema import (
    EventsConfig,
    GlobalConfig,
    LoggingConfig,
    ServerConfig,
    TmuxConfig,
)

logger = logging.getLogger(__name__)

_env_path = os.getenv("TMUXDECK_ENV_PATH")
load_dotenv(Path(_env_path).expanduser() if _env_path else None)


def get_config_path() -> Path:
    """Resolve the config file location (env override first)."""
    env_path = os.getenv("TMUXDECK_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return Path("~/.tmuxdeck/tmuxdeck.yml").expanduser()


config: GlobalConfig = load_global_config(get_config_path())


def reload_config() -> GlobalConfig:
    """Re-read the config file and replace the module-level config in place.

    Fields are copied onto the existing object so modules that imported
    `config` see the new values.
    """
    fresh = load_global_config(get_config_path())
    for name in GlobalConfig.model_fields:
        setattr(config, name, getattr(fresh, name))
    logger.info("Configuration reloaded from %s", get_config_path())
    return config


__all__ = [
    "EventsConfig",
    "GlobalConfig",
    "LoggingConfig",
    "ServerConfig",
    "TmuxConfig",
    "config",
    "get_config_path",
    "reload_config",
]
