"""Environment variable overrides for analysis configuration."""

import os
from typing import Dict, Any
from ..utils.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger("config.environment")

WORKERS_ENV = "TESTRADIUS_WORKERS"
TEST_ROOT_ENV = "TESTRADIUS_TEST_ROOT"


def apply_environment_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply TESTRADIUS_* environment variables on top of a loaded config.

    Supported variables:
    - TESTRADIUS_WORKERS: scanner worker count (positive integer)
    - TESTRADIUS_TEST_ROOT: test root relative to the corpus root

    Args:
        config: Configuration dictionary (mutated in place)

    Returns:
        The same configuration dictionary

    Raises:
        ConfigError: If a variable holds an invalid value
    """
    scanner = config.setdefault("scanner", {})

    workers = os.getenv(WORKERS_ENV)
    if workers:
        try:
            value = int(workers)
        except ValueError:
            raise ConfigError(f"{WORKERS_ENV} must be an integer, got '{workers}'")
        if value < 1:
            raise ConfigError(f"{WORKERS_ENV} must be at least 1, got {value}")
        scanner["workers"] = value
        logger.debug(f"Worker count overridden by {WORKERS_ENV}: {value}")

    test_root = os.getenv(TEST_ROOT_ENV)
    if test_root:
        scanner["test_root"] = test_root.strip().strip("/")
        logger.debug(f"Test root overridden by {TEST_ROOT_ENV}: {scanner['test_root']}")

    return config
