"""
Anna AI Configuration Module
Loads config/config.toml, overlays an environment file and validates the result
"""

import logging
import os
import re
import tomllib
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
CONFIG_DIR = BASE_DIR / "config"
DEFAULT_CONFIG_NAME = "config.toml"
# Environment names map to files inside the config directory
ENV_NAME = re.compile(r"[\w-]+")


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded or is invalid."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OllamaSection(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    model: StrictStr
    host: Optional[StrictStr] = None


class LoggingSection(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    level: Literal["DEBUG", "INFO", "WARN", "ERROR"]


class Settings(BaseModel):
    """Validated application settings. Immutable once loaded."""

    model_config = ConfigDict(frozen=True, extra="allow")

    ollama: OllamaSection
    logging: LoggingSection


def load_env_file(env_path: str = ".env") -> None:
    """
    Load environment variables from .env files if they exist.

    Search order:
    1) Provided env_path (current working directory by default)
    2) The directory of this config.py module

    Only sets variables that are not already present in the environment.
    """
    candidates = [Path(env_path), BASE_DIR / ".env"]

    for env_file in candidates:
        if not env_file.is_file():
            continue
        with open(env_file, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                # Skip empty lines and comments
                if not line or line.startswith("#"):
                    continue
                if "=" not in line:
                    logger.debug(f"Ignoring malformed line in {env_file}: {line}")
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and value and not os.environ.get(key):
                    os.environ[key] = value


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overlay override onto base, one top-level key at a time.

    Nested tables are replaced wholesale: a key present in the base table
    but missing from the override table is dropped.
    """
    merged = dict(base)
    merged.update(override)
    return merged


def validate_config(config: Dict[str, Any]) -> Settings:
    """
    Validate a merged configuration document.

    Args:
        config: Configuration dictionary

    Returns:
        Frozen Settings instance

    Raises:
        ConfigError: if required keys are missing or have the wrong type
    """
    try:
        return Settings.model_validate(config)
    except ValidationError as e:
        raise ConfigError(f"Configuration is invalid: {e}") from e


def load_config(environment: Optional[str] = None, config_dir: Optional[Path] = None) -> Settings:
    """
    Load the default configuration and optionally overlay an environment file.

    Args:
        environment: Environment name such as "development" or "production"
        config_dir: Directory holding config.toml and <environment>.toml

    Returns:
        Validated Settings

    Raises:
        ConfigError: if the default file is missing or unparseable, the
            environment name is not a plain file stem, the environment file
            is unparseable, or validation fails
    """
    directory = Path(config_dir) if config_dir else CONFIG_DIR
    default_path = directory / DEFAULT_CONFIG_NAME

    if not default_path.is_file():
        raise ConfigError(f"Default configuration not found at {default_path}")

    config = _read_toml(default_path)

    if environment:
        if not ENV_NAME.fullmatch(environment):
            raise ConfigError(f"Invalid environment name: {environment!r}")
        env_path = directory / f"{environment}.toml"
        if env_path.is_file():
            config = merge_config(config, _read_toml(env_path))
            logger.debug(f"Applied {environment} configuration from {env_path}")
        else:
            logger.warning(f"Environment config file not found at {env_path}")

    return validate_config(config)
