"""Config file locations: packaged defaults, user config and project config."""

import os
from pathlib import Path
from typing import Optional

CONFIG_DIR_NAME = ".testradius"
CONFIG_FILE_NAME = "config.yaml"
PROJECT_CONFIG_ENV = "TESTRADIUS_PROJECT_CONFIG"

# Parent directories searched above the working directory
PROJECT_SEARCH_DEPTH = 3


def get_defaults_path() -> Path:
    """Get the packaged defaults: testradius/config/defaults.yaml"""
    return Path(__file__).parent / "defaults.yaml"


def get_user_config_path() -> Path:
    """Get user config path: ~/.testradius/config.yaml"""
    return Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def get_project_config_path(start: Optional[Path] = None) -> Optional[Path]:
    """
    Find the project config.

    TESTRADIUS_PROJECT_CONFIG wins when it names an existing file. Otherwise
    .testradius/config.yaml is looked up in the start directory (default:
    the working directory) and up to three parents, so running from a
    provider subdirectory still picks up the checkout's config. The user
    config is never returned as a project config.

    Returns:
        Path to the project config, or None
    """
    env_path = os.getenv(PROJECT_CONFIG_ENV)
    if env_path and Path(env_path).is_file():
        return Path(env_path)

    current_dir = Path(start) if start is not None else Path.cwd()
    user_config = get_user_config_path().resolve()
    for directory in [current_dir, *current_dir.parents[:PROJECT_SEARCH_DEPTH]]:
        candidate = directory / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        if candidate.is_file() and candidate.resolve() != user_config:
            return candidate
    return None
