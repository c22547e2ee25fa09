"""Tests for logging setup."""

import logging
import pytest
from click.testing import CliRunner
from testradius.cli.main import cli
from testradius.utils.logging import get_logger, resolve_level, setup_logging


@pytest.fixture
def package_logger():
    """The testradius logger, put back to its previous level afterwards."""
    logger = logging.getLogger("testradius")
    level = logger.level
    yield logger
    logger.setLevel(level)


class TestResolveLevel:
    """Test level names and numbers."""

    def test_names_and_numbers(self):
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level(" Warning ") == logging.WARNING
        assert resolve_level(logging.ERROR) == logging.ERROR

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="verbose"):
            resolve_level("verbose")


class TestSetupLogging:
    """Test where the level comes from."""

    def test_explicit_level_wins(self, package_logger, monkeypatch):
        monkeypatch.setenv("TESTRADIUS_LOG_LEVEL", "ERROR")

        assert setup_logging("debug") is package_logger
        assert package_logger.level == logging.DEBUG
        assert get_logger("store.builder").getEffectiveLevel() == logging.DEBUG

    def test_environment_level(self, package_logger, monkeypatch):
        monkeypatch.setenv("TESTRADIUS_LOG_LEVEL", "warning")
        setup_logging()
        assert package_logger.level == logging.WARNING

    def test_unknown_environment_level_ignored(self, package_logger, monkeypatch):
        monkeypatch.setenv("TESTRADIUS_LOG_LEVEL", "chatty")
        setup_logging()
        assert package_logger.level == logging.INFO

    def test_cli_option(self, package_logger):
        result = CliRunner().invoke(cli, ['--log-level', 'error', 'version'])

        assert result.exit_code == 0
        assert package_logger.level == logging.ERROR

    def test_cli_rejects_unknown_level(self):
        result = CliRunner().invoke(cli, ['--log-level', 'chatty', 'version'])
        assert result.exit_code != 0
