"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from scriptorium.config import Config
from scriptorium.database import create_tables, get_engine


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Create a test configuration with temp database."""
    return Config(data_dir=tmp_path, log_level="DEBUG")


@pytest.fixture
def engine(test_config: Config):
    """Create a test database engine with all tables."""
    eng = get_engine(test_config)
    create_tables(eng)
    yield eng
    eng.dispose()
