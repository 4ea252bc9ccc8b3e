"""
Configuration loader for cf_metrics.

Sources, in order of increasing precedence:

1. built-in defaults (the pydantic models),
2. a YAML or JSON config file,
3. environment variables, after ``.env`` files have been folded in,
4. explicit overrides (the command line).
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import ExporterConfig

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TOKEN_ENV_VAR = "CLOUDFLARE_API_TOKEN"
ENV_PREFIX = "CF_METRICS_"

# Suffix after ENV_PREFIX -> (section, field)
PREFIXED_ENV_FIELDS: Dict[str, Tuple[str, str]] = {
    "API_BASE_URL": ("api", "base_url"),
    "GRAPHQL_ENDPOINT": ("api", "graphql_endpoint"),
    "API_TIMEOUT": ("api", "timeout"),
    "POLL_INTERVAL": ("poller", "interval"),
    "LOOKBACK_DAYS": ("poller", "lookback_days"),
    "DAYS_LIMIT": ("poller", "days_limit"),
    "MAX_CONCURRENCY": ("poller", "max_concurrency"),
    "LISTEN_HOST": ("server", "host"),
    "LISTEN_PORT": ("server", "port"),
    "METRICS_PATH": ("server", "path"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FILE": ("logging", "file_path"),
    "LOG_FORMAT": ("logging", "format"),
    "LOG_STRUCTURED": ("logging", "enable_structured"),
}

CONFIG_FILE_NAMES = ("cf_metrics.yaml", "cf_metrics.yml", "cf_metrics.json")
CONFIG_SEARCH_DIRS = (Path("."), Path("config"))
# The service historically kept its token in a .env one level up
ENV_FILE_CANDIDATES = (Path(".env"), Path("../.env"))


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Builds an ExporterConfig from files, the environment and overrides."""

    def __init__(
        self,
        config_paths: Optional[Iterable[Path]] = None,
        env_files: Iterable[Path] = ENV_FILE_CANDIDATES,
    ) -> None:
        if config_paths is None:
            config_paths = [
                directory / name
                for directory in CONFIG_SEARCH_DIRS
                for name in CONFIG_FILE_NAMES
            ]
        self.config_paths = list(config_paths)
        self.env_files = list(env_files)
        self.env_prefix = ENV_PREFIX

    def load_config(
        self,
        config_file: Optional[PathLike] = None,
        env_file: Optional[PathLike] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> ExporterConfig:
        """
        Merge every source and validate the result.

        Args:
            config_file: Config file to read instead of searching the defaults
            env_file: .env file to load instead of searching the defaults
            overrides: Nested values that win over every other source

        Returns:
            Validated ExporterConfig

        Raises:
            ConfigurationError: If a named file is missing or unreadable, or
                the merged values fail validation
        """
        self._load_env_file(env_file)

        data: Dict[str, Any] = self._read_config_file(config_file) or {}
        data = deep_merge(data, self._load_from_environment())
        if overrides:
            data = deep_merge(data, overrides)

        try:
            return ExporterConfig(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _load_env_file(self, env_file: Optional[PathLike] = None) -> None:
        """Fold a .env file into os.environ; variables already set win."""
        if env_file:
            env_path = Path(env_file)
            if not env_path.is_file():
                raise ConfigurationError(f"Env file not found: {env_path}")
            load_dotenv(env_path, override=False)
            return

        env_path = next((p for p in self.env_files if p.is_file()), None)
        if env_path is None:
            logger.debug("No .env file found, using process environment only")
            return
        load_dotenv(env_path, override=False)
        logger.debug("Loaded environment from %s", env_path)

    def _read_config_file(self, config_file: Optional[PathLike] = None) -> Optional[Dict[str, Any]]:
        if config_file:
            config_path = Path(config_file)
            if not config_path.is_file():
                raise ConfigurationError(f"Config file not found: {config_path}")
            return self._parse_config_file(config_path)

        found = next((p for p in self.config_paths if p.is_file()), None)
        if found is None:
            return None
        logger.debug("Using config file %s", found)
        return self._parse_config_file(found)

    @staticmethod
    def _parse_config_file(config_path: Path) -> Dict[str, Any]:
        suffix = config_path.suffix.lower()
        if suffix not in (".yaml", ".yml", ".json"):
            raise ConfigurationError(f"Unsupported config file format: {config_path.suffix}")

        try:
            text = config_path.read_text(encoding="utf-8")
            data = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to parse config file {config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a mapping at the top level"
            )
        return data

    def _load_from_environment(self) -> Dict[str, Any]:
        """Nested config values taken from the environment."""
        sources = {TOKEN_ENV_VAR: ("api", "token")}
        sources.update(
            {self.env_prefix + suffix: target for suffix, target in PREFIXED_ENV_FIELDS.items()}
        )

        # Raw strings; pydantic coerces them to the field types
        config: Dict[str, Dict[str, Any]] = {}
        for env_var, (section, key) in sources.items():
            value = os.getenv(env_var)
            if value is not None:
                config.setdefault(section, {})[key] = value

        if "file_path" in config.get("logging", {}):
            config["logging"].setdefault("enable_file", True)

        return config


def load_config(
    config_file: Optional[PathLike] = None,
    env_file: Optional[PathLike] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ExporterConfig:
    """Load configuration using a fresh ConfigLoader."""
    return ConfigLoader().load_config(config_file, env_file, overrides)
