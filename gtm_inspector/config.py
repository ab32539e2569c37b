"""Configuration for GTM container inspection with YAML and environment overrides.

Precedence: explicit overrides (CLI flags) > environment variables >
environment section of the config file > config file > defaults.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from .parsing.locator import LocatorLimits
from .persistence.sinks import ExportFormat


logger = logging.getLogger(__name__)

ENV_PREFIX = "GTM_INSPECTOR_"


class ConfigLoadError(Exception):
    """Exception raised when configuration loading fails."""
    pass


class FetchConfig(BaseModel):
    """Settings for downloading the published container."""

    endpoint: str = Field(
        default="https://www.googletagmanager.com/gtm.js",
        description="Public container endpoint; the container id is passed as ?id="
    )
    timeout_seconds: float = Field(default=30.0, gt=0, le=300.0, description="Request timeout")
    user_agent: Optional[str] = Field(default=None, description="Override User-Agent header")


class OutputConfig(BaseModel):
    """Where and how inspection tables are written."""

    directory: Optional[Path] = Field(default=None, description="Output directory (None disables file output)")
    format: ExportFormat = Field(default=ExportFormat.CSV)
    write_debug: bool = Field(default=False, description="Also write the GTM_Debug diagnostics table")
    write_summary: bool = Field(default=False, description="Also write the container summary file")


class LoggingConfig(BaseModel):
    """Logging settings applied by the CLI."""

    level: str = Field(default="WARNING")
    format: str = Field(default="%(asctime)s %(levelname)s %(name)s: %(message)s")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        normalized = str(v).upper()
        if normalized not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized


class InspectorConfig(BaseModel):
    """Root configuration."""

    environment: str = Field(default="production")
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    locator: LocatorLimits = Field(default_factory=LocatorLimits)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        allowed_envs = ["development", "staging", "production", "test"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environment: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> InspectorConfig:
    """Load InspectorConfig from an optional YAML file with overrides.

    Args:
        config_path: Path to YAML config file. If None, only defaults,
            environment variables and overrides are used.
        environment: Environment name for override selection. If None, uses
            the GTM_INSPECTOR_ENV variable, then "production".
        overrides: Additional configuration overrides to apply last.

    Returns:
        Validated InspectorConfig instance.

    Raises:
        ConfigLoadError: If configuration loading or validation fails.
    """
    config_data: Dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigLoadError(f"Config file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Failed to parse YAML config: {e}")
        except IOError as e:
            raise ConfigLoadError(f"Failed to read config file: {e}")

        if not isinstance(config_data, dict):
            raise ConfigLoadError("Config file must contain a YAML dictionary")

    if environment is None:
        environment = os.getenv(f"{ENV_PREFIX}ENV", config_data.get("environment", "production"))

    environments = config_data.pop("environments", None) or {}
    if environment in environments:
        config_data = _deep_merge(config_data, environments[environment])
        logger.info(f"Applied environment overrides for: {environment}")
    config_data["environment"] = environment

    config_data = _deep_merge(config_data, _environment_variables())

    if overrides:
        config_data = _deep_merge(config_data, overrides)
        logger.debug("Applied additional configuration overrides")

    try:
        return InspectorConfig(**config_data)
    except Exception as e:
        raise ConfigLoadError(f"Invalid configuration: {e}")


def _environment_variables() -> Dict[str, Any]:
    """Configuration values taken from GTM_INSPECTOR_* variables."""
    env_config: Dict[str, Any] = {}

    if timeout := os.getenv(f"{ENV_PREFIX}TIMEOUT"):
        env_config.setdefault("fetch", {})["timeout_seconds"] = timeout

    if endpoint := os.getenv(f"{ENV_PREFIX}ENDPOINT"):
        env_config.setdefault("fetch", {})["endpoint"] = endpoint

    if output_dir := os.getenv(f"{ENV_PREFIX}OUTPUT_DIR"):
        env_config.setdefault("output", {})["directory"] = output_dir

    if log_level := os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
        env_config.setdefault("logging", {})["level"] = log_level

    if os.getenv(f"{ENV_PREFIX}DEBUG") == "true":
        env_config.setdefault("output", {})["write_debug"] = True
        env_config.setdefault("logging", {})["level"] = "DEBUG"

    return env_config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence.

    Args:
        base: Base configuration dictionary.
        override: Override values to merge in.

    Returns:
        Merged configuration dictionary.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def create_default_config() -> Dict[str, Any]:
    """Default configuration dictionary suitable for YAML serialization."""
    return {
        "environment": "production",
        "fetch": {
            "endpoint": "https://www.googletagmanager.com/gtm.js",
            "timeout_seconds": 30.0,
            "user_agent": None,
        },
        "locator": LocatorLimits().model_dump(),
        "output": {
            "directory": None,
            "format": "csv",
            "write_debug": False,
            "write_summary": False,
        },
        "logging": {
            "level": "WARNING",
        },
        "environments": {
            "development": {
                "output": {"write_debug": True, "write_summary": True},
                "logging": {"level": "DEBUG"},
            },
            "test": {
                "fetch": {"timeout_seconds": 5.0},
            },
        }
    }


def save_default_config(output_path: Union[str, Path]) -> None:
    """Save default configuration to a YAML file.

    Raises:
        ConfigLoadError: If file writing fails.
    """
    try:
        with open(output_path, "w") as f:
            yaml.dump(create_default_config(), f, default_flow_style=False, sort_keys=False)
        logger.info(f"Saved default configuration to: {output_path}")
    except IOError as e:
        raise ConfigLoadError(f"Failed to save config file: {e}")
