"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: PIXELCOUNT_<SECTION>_<KEY> (uppercase).
The bare PORT variable is also honoured for platforms that only set that.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    env: str = "dev"  # "dev" or "prod"


@dataclass
class StorageConfig:
    url: str = "sqlite+aiosqlite:///data/hits.db"
    echo: bool = False
    timeout_seconds: float = 5.0


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "PORT": lambda v: setattr(config.server, "port", int(v)),
        "PIXELCOUNT_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "PIXELCOUNT_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "PIXELCOUNT_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "PIXELCOUNT_STORAGE_URL": lambda v: setattr(config.storage, "url", v),
        "PIXELCOUNT_STORAGE_ECHO": lambda v: setattr(config.storage, "echo", _parse_bool(v)),
        "PIXELCOUNT_STORAGE_TIMEOUT": lambda v: setattr(config.storage, "timeout_seconds", float(v)),
        "PIXELCOUNT_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "PIXELCOUNT_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    # Dict order matters: PIXELCOUNT_SERVER_PORT is applied after PORT.
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    if config_path is None:
        config_path = Path("config.yaml")
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section_name in ("server", "storage", "logging"):
            section = getattr(config, section_name)
            for k, v in (raw.get(section_name) or {}).items():
                if hasattr(section, k):
                    setattr(section, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
