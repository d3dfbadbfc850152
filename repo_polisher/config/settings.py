"""
Configuration system using Pydantic for type-safe settings management.

Settings come from an optional YAML file (with ``${VAR}`` interpolation) and
from ``POLISHER_*`` environment variables, e.g.
``POLISHER_PUBLISH__COMMAND_TIMEOUT=60``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from repo_polisher.exceptions import ConfigurationError

DEFAULT_HOME = Path.home() / ".repo-polisher"


class GhCliConfig(BaseModel):
    """Hosting CLI (gh) configuration."""

    path: str | None = Field(default=None, description="Explicit path to the gh executable")
    host: str = Field(default="github.com", description="Default gh host, exported as GH_HOST when not github.com")
    extra_path_dirs: list[str] = Field(
        default_factory=lambda: ["/opt/homebrew/bin", "/usr/local/bin"],
        description="Directories appended to PATH when running gh",
    )
    resolve_via_shell: bool = Field(default=True, description="Ask the login shell where gh lives")


class CheckoutConfig(BaseModel):
    """Working checkout configuration for GitHub projects."""

    cache_dir: Path = Field(default=DEFAULT_HOME / "cache" / "repos", description="Root of cached clones")
    clone_depth: int = Field(default=1, ge=1, description="History depth of cached clones")
    refresh: bool = Field(default=True, description="Reset cached clones to the base branch before use")
    clone_timeout: float = Field(default=600.0, gt=0, description="Seconds allowed for clone and fetch")


class StoreConfig(BaseModel):
    """Persistence store configuration."""

    data_dir: Path = Field(default=DEFAULT_HOME / "data", description="Directory of the JSON store")


class PublishConfig(BaseModel):
    """Draft creation and publishing behavior."""

    attribution: str = Field(
        default="Generated by RepoPolisher",
        description="Secondary commit message line and PR body footer",
    )
    base_branch: str = Field(default="main", description="Default base branch of new drafts")
    branch_prefix: str = Field(default="fix/typos", description="Prefix of generated branch names")
    body_issue_limit: int = Field(default=20, ge=1, description="Changes listed in a generated PR body")
    command_timeout: float = Field(default=120.0, gt=0, description="Seconds allowed per local command")
    push_timeout: float = Field(default=300.0, gt=0, description="Seconds allowed per push or PR call")


class PolisherSettings(BaseSettings):
    """Main repo-polisher settings."""

    model_config = SettingsConfigDict(
        env_prefix="POLISHER_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    gh: GhCliConfig = Field(default_factory=GhCliConfig)
    checkout: CheckoutConfig = Field(default_factory=CheckoutConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    log_level: str = Field(default="INFO", description="Minimum log level")
    log_json: bool = Field(default=True, description="Emit JSON log lines")

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> PolisherSettings:
        """Load settings from YAML file with environment variable interpolation.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            PolisherSettings instance

        Raises:
            ConfigurationError: If config file is invalid or missing
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file) as f:
                yaml_content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e

        if config_dict is None:
            config_dict = {}
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except Exception as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ${VAR_NAME} and ${VAR_NAME:-default} placeholders.

        YAML comment lines are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            if default_value is not None:
                return default_value
            raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))


def load_settings(config_path: str | Path | None = None) -> PolisherSettings:
    """Load settings from ``config_path``, or from defaults and environment."""
    if config_path is None:
        return PolisherSettings()
    return PolisherSettings.from_yaml(config_path)
