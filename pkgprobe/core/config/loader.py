"""
Configuration loader — reads pkgprobe.yml into a settings model.

Configuration is optional: with no file, every setting has a default
that matches the stock cache layout. Environment variables override
the cache location so multiple installations can share (or avoid
sharing) a cache file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from pkgprobe.adapters.registry import DEFAULT_BACKENDS, Backend

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "pkgprobe.yml"

# Cache file name shared with existing installations
DEFAULT_CACHE_FILE = "zypper-docker.json"

ENV_CONFIG = "PKGPROBE_CONFIG"
ENV_CACHE_DIRS = "PKGPROBE_CACHE_DIRS"
ENV_CACHE_FILE = "PKGPROBE_CACHE_FILE"


class ConfigError(Exception):
    """Raised when configuration is invalid or unreadable."""


def default_cache_dirs() -> list[str]:
    """Candidate cache directories: the user cache dir, then /tmp."""
    return [os.path.join(os.environ.get("HOME", ""), ".cache"), "/tmp"]


class PkgprobeConfig(BaseModel):
    """Runtime settings for the classification cache."""

    cache_file_name: str = DEFAULT_CACHE_FILE
    cache_dirs: list[str] = Field(default_factory=default_cache_dirs)
    backends: list[Backend] = Field(default_factory=lambda: list(DEFAULT_BACKENDS))
    runtime: str = "docker"
    probe_timeout: int = 300
    reset_replaces: bool = True


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Locate the config file: $PKGPROBE_CONFIG, else pkgprobe.yml in ``start_dir``."""
    env_path = os.environ.get(ENV_CONFIG)
    if env_path:
        return Path(env_path)

    candidate = (start_dir or Path.cwd()) / CONFIG_FILE
    if candidate.is_file():
        return candidate
    return None


def load_config(path: Path | None = None) -> PkgprobeConfig:
    """Load and validate configuration, then apply env overrides.

    Args:
        path: Explicit config path. If None, uses find_config_file().

    Returns:
        Validated PkgprobeConfig. Defaults if no config file exists.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    explicit = path is not None
    if path is None:
        path = find_config_file()

    data: dict = {}
    if path is not None:
        if not path.is_file():
            if explicit:
                raise ConfigError(f"Config file not found: {path}")
            logger.debug("No config at %s — using defaults", path)
        else:
            data = _read_yaml(path)

    try:
        config = PkgprobeConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    dirs = os.environ.get(ENV_CACHE_DIRS)
    if dirs:
        config.cache_dirs = [d for d in dirs.split(":") if d]
    cache_file = os.environ.get(ENV_CACHE_FILE)
    if cache_file:
        config.cache_file_name = cache_file

    logger.debug(
        "Config: cache %s in %s, %d backends",
        config.cache_file_name, config.cache_dirs, len(config.backends),
    )
    return config


def _read_yaml(path: Path) -> dict:
    logger.debug("Loading config from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data
