"""Two-tier configuration manager (user + project override)."""

import yaml
from pathlib import Path
from typing import Dict, Any
from .paths import get_user_config_path, get_project_config_path
from ..utils.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger("config.manager")


def load_config() -> Dict[str, Any]:
    """
    Load the user config tree with project override.

    Unreadable files are logged and ignored; the packaged defaults still apply.

    Returns:
        Configuration dictionary (project config overrides user config)
    """
    user_config_path = get_user_config_path()
    project_config_path = get_project_config_path()

    config: Dict[str, Any] = {}
    if user_config_path.exists():
        try:
            config = read_yaml_mapping(user_config_path)
            logger.info(f"Loaded user config from {user_config_path}")
        except ConfigError as e:
            logger.warning(f"Could not load user config from {user_config_path}: {e}")

    if project_config_path:
        try:
            deep_merge(config, read_yaml_mapping(project_config_path))
            logger.info(f"Loaded project config from {project_config_path}")
        except ConfigError as e:
            logger.warning(f"Could not load project config from {project_config_path}: {e}")

    return config


def read_yaml_mapping(path: Path) -> Dict[str, Any]:
    """
    Read a YAML file that must contain a mapping (an empty file yields {}).

    Raises:
        ConfigError: If the file cannot be read or is not a mapping
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Error reading config file {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a dictionary: {path}")
    return data


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
