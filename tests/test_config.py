"""Tests for the configuration module."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from scriptorium.config import Config, ProxyConfig


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    """Create a sample config file for testing."""
    config = {
        "data_dir": str(tmp_path / "data"),
        "log_level": "DEBUG",
        "log_json": False,
        "discord": {"activity_text": "the archive"},
        "database": {"path": "test.db"},
        "proxy": {"webhook_name": "Quill", "reply_arrow": "->"},
        "api": {"port": 8080},
    }
    config_path = tmp_path / "config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(config, f)
    return config_path


def test_config_load(sample_config_yaml: Path) -> None:
    """Test loading a valid configuration file."""
    config = Config.load(sample_config_yaml)

    assert config.log_level == "DEBUG"
    assert config.log_json is False
    assert config.discord.activity_text == "the archive"
    assert config.database.path == "test.db"
    assert config.proxy.webhook_name == "Quill"
    assert config.proxy.reply_arrow == "->"
    assert config.api.port == 8080


def test_config_load_not_found() -> None:
    """Test that missing config file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        Config.load(Path("/nonexistent/config.yaml"))


def test_config_load_empty_file(tmp_path: Path) -> None:
    """An empty YAML file yields defaults."""
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("")

    config = Config.load(config_path)
    assert config.proxy.webhook_name == "Scriptorium"


def test_config_load_or_default_missing() -> None:
    """Test that load_or_default returns defaults when file missing."""
    config = Config.load_or_default(Path("/nonexistent/config.yaml"))

    assert config.log_level == "INFO"
    assert config.log_json is True


def test_config_defaults() -> None:
    """Test that default values are set correctly."""
    config = Config()

    assert config.data_dir == Path("./data")
    assert config.log_level == "INFO"
    assert config.log_json is True
    assert config.database.path == "scriptorium.db"
    assert config.proxy.enabled is True
    assert config.proxy.webhook_name == "Scriptorium"
    assert config.api.port == 3000


def test_config_database_path() -> None:
    """Test database path property."""
    config = Config(data_dir=Path("/var/scriptorium"))

    assert config.database_path == Path("/var/scriptorium/scriptorium.db")


def test_config_env_override(sample_config_yaml: Path, monkeypatch) -> None:
    """Test environment variable overrides."""
    monkeypatch.setenv("SCRIPTORIUM_LOG_LEVEL", "ERROR")
    monkeypatch.setenv("SCRIPTORIUM_LOG_JSON", "true")
    monkeypatch.setenv("SCRIPTORIUM_DATA_DIR", "/srv/data")

    config = Config.load(sample_config_yaml)

    assert config.log_level == "ERROR"
    assert config.log_json is True
    assert config.data_dir == Path("/srv/data")


def test_config_discord_token(monkeypatch) -> None:
    """Test Discord token from environment."""
    monkeypatch.setenv("DISCORD_TOKEN", "test_token_123")

    assert Config().discord_token == "test_token_123"


def test_config_discord_token_missing(monkeypatch) -> None:
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)

    assert Config().discord_token is None


def test_log_level_normalized() -> None:
    """Log level is case-insensitive and stored upper-case."""
    assert Config(log_level="debug").log_level == "DEBUG"


def test_log_level_invalid() -> None:
    with pytest.raises(ValidationError):
        Config(log_level="VERBOSE")


class TestProxyConfig:
    """Tests for webhook name validation."""

    def test_webhook_name_stripped(self) -> None:
        assert ProxyConfig(webhook_name="  Quill  ").webhook_name == "Quill"

    def test_webhook_name_blank_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProxyConfig(webhook_name="   ")

    def test_webhook_name_too_long_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProxyConfig(webhook_name="x" * 81)
