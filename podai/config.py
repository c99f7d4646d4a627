"""Persisted configuration management."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Optional

from .models import Config

APP_DIR = Path.home() / ".podai"
CONFIG_PATH = (APP_DIR / "config.json").expanduser()

GEMINI_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")
OPENAI_KEY_ENV_VAR = "OPENAI_API_KEY"
BACKENDS = ("auto", "gemini", "openai")
MAX_HISTORY_LIMIT = 50


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or saved."""


def load_config() -> Config:
    if not CONFIG_PATH.exists():
        return Config()
    try:
        payload = json.loads(CONFIG_PATH.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
    known = {f.name for f in fields(Config)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys in {CONFIG_PATH}: {', '.join(unknown)}")
    return Config(**payload)


def save_config(config: Config) -> None:
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    data = {k: v for k, v in asdict(config).items() if v is not None}
    CONFIG_PATH.write_text(json.dumps(data, indent=2))


def update_config(**kwargs: Any) -> Config:
    config = load_config()
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            raise ConfigError(f"Unknown configuration key: {key}")
    if config.backend not in BACKENDS:
        raise ConfigError(f"Unknown backend {config.backend!r}; choose one of {', '.join(BACKENDS)}.")
    if config.max_file_size_mb <= 0 or config.history_limit <= 0:
        raise ConfigError("max_file_size_mb and history_limit must be positive.")
    if config.history_limit > MAX_HISTORY_LIMIT:
        raise ConfigError(f"history_limit cannot exceed {MAX_HISTORY_LIMIT}.")
    save_config(config)
    return config


def gemini_api_key(config: Config) -> Optional[str]:
    """Return the configured Gemini key, falling back to the environment."""

    if config.gemini_api_key:
        return config.gemini_api_key
    for var in GEMINI_KEY_ENV_VARS:
        value = os.getenv(var)
        if value:
            return value
    return None


def openai_api_key(config: Config) -> Optional[str]:
    return config.openai_api_key or os.getenv(OPENAI_KEY_ENV_VAR) or None
