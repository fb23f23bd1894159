"""Configuration loading and validation for Scriptorium."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator


class DiscordConfig(BaseModel):
    """Discord configuration."""

    activity_text: str = "players' writings"  # Shown as "Watching ..."


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "scriptorium.db"


class ProxyConfig(BaseModel):
    """Persona proxy configuration."""

    enabled: bool = True
    webhook_name: str = "Scriptorium"
    reply_arrow: str = "↩️"

    @field_validator("webhook_name")
    @classmethod
    def validate_webhook_name(cls, v: str) -> str:
        """Discord requires webhook names of 1-80 characters."""
        v = v.strip()
        if not 1 <= len(v) <= 80:
            raise ValueError("webhook_name must be between 1 and 80 characters")
        return v


class ApiConfig(BaseModel):
    """Health API configuration."""

    host: str = "0.0.0.0"
    port: int = 3000


class Config(BaseModel):
    """Root configuration for Scriptorium."""

    data_dir: Path = Path("./data")
    log_level: str = "INFO"
    log_json: bool = True

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log_level is valid."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v_upper

    @property
    def database_path(self) -> Path:
        """Get full path to database file."""
        return self.data_dir / self.database.path

    @property
    def discord_token(self) -> str | None:
        """Get Discord token from environment."""
        return os.environ.get("DISCORD_TOKEN")

    @classmethod
    def load(cls, config_path: Path | str = Path("config.yaml")) -> "Config":
        """Load configuration from YAML file with env var overlay.

        Args:
            config_path: Path to YAML configuration file.

        Returns:
            Validated Config instance.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config is invalid.
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}

        # Environment variable overrides
        if "SCRIPTORIUM_DATA_DIR" in os.environ:
            yaml_config["data_dir"] = os.environ["SCRIPTORIUM_DATA_DIR"]
        if "SCRIPTORIUM_LOG_LEVEL" in os.environ:
            yaml_config["log_level"] = os.environ["SCRIPTORIUM_LOG_LEVEL"]
        if "SCRIPTORIUM_LOG_JSON" in os.environ:
            yaml_config["log_json"] = os.environ["SCRIPTORIUM_LOG_JSON"].lower() == "true"

        return cls.model_validate(yaml_config)

    @classmethod
    def load_or_default(cls, config_path: Path | str | None = None) -> "Config":
        """Load configuration, falling back to defaults if file not found.

        Args:
            config_path: Optional path to YAML configuration file.

        Returns:
            Config instance (from file or defaults).
        """
        if config_path is None:
            # Try default locations
            for path in [Path("config.yaml"), Path("config.yml")]:
                if path.exists():
                    return cls.load(path)
            # Return defaults
            return cls()

        try:
            return cls.load(config_path)
        except FileNotFoundError:
            return cls()
