"""Configuration management for eventgallery.

Values come from environment variables, optionally seeded from a ``.env``
file through python-dotenv. The storage factory is the main consumer.
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .errors import ConfigurationError
from .logging_config import get_logger

logger = get_logger(__name__)


class Config:
    """Centralized configuration management using environment variables."""

    def __init__(self, overrides: dict[str, Any] | None = None):
        self._cache: dict[str, Any] = {}
        self._overrides = dict(overrides or {})

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = self._overrides.get(key)
        if value is None:
            value = os.getenv(key)

        # Empty environment variables count as unset
        if value is None or value == "":
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.lower() in ("true", "1", "yes", "on")
                    else:
                        value = bool(value)
                elif cast_type is not str:
                    value = cast_type(value)
                else:
                    value = str(value)
            except (ValueError, TypeError) as e:
                logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
                value = default

        self._cache[cache_key] = value
        return value

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get a required configuration value.

        Raises:
            ConfigurationError: If the value is not set
        """
        value = self.get(key, cast_type=cast_type)
        if value is None:
            raise ConfigurationError(f"Required configuration '{key}' not found", setting=key)
        return value

    def first(self, *keys: str, default: Any = None) -> Any:
        """Return the first configured value among several alias keys."""
        for key in keys:
            value = self.get(key)
            if value is not None:
                return value
        return default

    def clear_cache(self) -> None:
        self._cache.clear()


def load_env_file(env_file: str | Path = ".env") -> bool:
    """Load variables from a dotenv file into the process environment.

    Existing environment variables win over the file.

    Returns:
        True if the file existed and was loaded
    """
    path = Path(env_file)
    if not path.is_file():
        logger.warning("env_file_not_found", path=str(path))
        return False

    load_dotenv(dotenv_path=path, override=False)
    get_config().clear_cache()
    logger.info("env_file_loaded", path=str(path))
    return True


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Drop the global configuration instance."""
    global _config
    _config = None


def get_environment() -> str:
    """Name of the deployment environment, reported by the health endpoint."""
    return str(get_config().get("ENVIRONMENT", "development"))
