"""Configuration loading and project initialization."""

from docskel.config.loader import (
    home_config_exists,
    load_config,
    load_yaml_config,
    local_config_exists,
    save_config,
)
from docskel.config.schema import DEFAULT_CONFIG, DocskelConfig

__all__ = [
    "DEFAULT_CONFIG",
    "DocskelConfig",
    "home_config_exists",
    "load_config",
    "load_yaml_config",
    "local_config_exists",
    "save_config",
]
