"""Configuration module: load and validate analysis settings."""

import copy
from pathlib import Path
from typing import Dict, Any, Optional
from ..utils.errors import ConfigError
from ..utils.logging import get_logger
from .environment import apply_environment_overrides
from .manager import load_config, read_yaml_mapping, deep_merge
from .paths import get_defaults_path, get_user_config_path, get_project_config_path

logger = get_logger("config")

REQUIRED_SECTIONS = ["scanner", "groups", "extractor", "sequential"]

_LIST_SETTINGS = {
    "scanner": ["excluded_dirs", "registration_files"],
    "extractor": [
        "test_function_prefixes", "helper_receiver_suffixes", "helper_result_types",
        "excluded_names", "excluded_prefixes", "excluded_suffixes",
        "entity_prefixes", "block_keywords",
    ],
}


def load_analysis_config(config_path: Optional[str] = None, use_user_config: bool = True) -> Dict[str, Any]:
    """
    Load analysis configuration.

    Layers, lowest precedence first: packaged defaults.yaml, user config,
    project config, the explicit config file, TESTRADIUS_* environment variables.

    Args:
        config_path: Optional path to a YAML file overriding the defaults
        use_user_config: Whether to apply user and project config files

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If a config file cannot be loaded or the result is invalid
    """
    defaults_path = get_defaults_path()
    if not defaults_path.exists():
        raise ConfigError(f"Packaged defaults not found: {defaults_path}")
    config = copy.deepcopy(read_yaml_mapping(defaults_path))

    if use_user_config:
        deep_merge(config, load_config())

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        deep_merge(config, read_yaml_mapping(path))
        logger.info(f"Loaded configuration from {config_path}")

    apply_environment_overrides(config)
    validate_analysis_config(config)
    return config


def validate_analysis_config(config: Dict[str, Any]) -> None:
    """
    Validate required sections and setting types.

    Raises:
        ConfigError: Listing every problem found
    """
    issues = []

    missing_sections = [s for s in REQUIRED_SECTIONS if s not in config]
    if missing_sections:
        issues.append(f"missing sections: {missing_sections}")

    for section in REQUIRED_SECTIONS:
        if section in config and not isinstance(config[section], dict):
            issues.append(f"{section} is not a dict")

    for section, keys in _LIST_SETTINGS.items():
        values = config.get(section)
        if not isinstance(values, dict):
            continue
        for key in keys:
            if key not in values:
                issues.append(f"{section} missing {key}")
            elif not isinstance(values[key], list):
                issues.append(f"{section}.{key} is not a list")

    scanner = config.get("scanner")
    if isinstance(scanner, dict):
        workers = scanner.get("workers", 8)
        if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
            issues.append("scanner.workers must be a positive integer")
        for key in ("test_root", "test_file_suffix"):
            if not isinstance(scanner.get(key), str):
                issues.append(f"scanner.{key} must be a string")

    extractor = config.get("extractor")
    if isinstance(extractor, dict) and isinstance(extractor.get("entity_prefixes"), list):
        if not extractor["entity_prefixes"]:
            issues.append("extractor.entity_prefixes must not be empty")

    if issues:
        raise ConfigError(f"Invalid configuration: {'; '.join(issues)}")


__all__ = [
    "load_analysis_config",
    "validate_analysis_config",
    "load_config",
    "get_defaults_path",
    "get_user_config_path",
    "get_project_config_path",
]
