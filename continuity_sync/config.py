# continuity_sync/config.py
# Description: Configuration management for the sync engine.
#
# Imports
import copy
import os
import tomllib
from pathlib import Path
from typing import Dict, Any, Optional
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from continuity_sync.Constants import (
    DEFAULT_DEBOUNCE_SECONDS, DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_PHOTOS_BUCKET, DEFAULT_DOCUMENTS_BUCKET,
)
#
#######################################################################################################################
#
# Functions:

# --- Path to the user's configuration file ---
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "continuity_sync" / "config.toml"

# --- Environment overrides ---
ENV_REMOTE_URL = "CONTINUITY_SYNC_URL"
ENV_REMOTE_API_KEY = "CONTINUITY_SYNC_API_KEY"

CONFIG_TOML_CONTENT = f"""
# Configuration for continuity_sync
# This file is created with defaults the first time the engine loads its settings.

[remote]
# Base URL of the shared backend (REST tables, RPC, storage and auth all live under it)
url = ""
# Public (anon) API key sent with every request. Prefer the {ENV_REMOTE_API_KEY} env var.
api_key = ""
timeout = {DEFAULT_HTTP_TIMEOUT_SECONDS}

[storage]
photos_bucket = "{DEFAULT_PHOTOS_BUCKET}"
documents_bucket = "{DEFAULT_DOCUMENTS_BUCKET}"

[sync]
# Quiet period after the last local edit of a category before it is pushed
debounce_seconds = {DEFAULT_DEBOUNCE_SECONDS}

[cache]
photo_cache_db_path = "~/.local/share/continuity_sync/photo_cache.db"

[logging]
log_level = "INFO"
app_log_path = "~/.local/share/continuity_sync/Logs/continuity_sync.log"
metrics_log_path = "~/.local/share/continuity_sync/Logs/continuity_sync_metrics.json"
"""

try:
    DEFAULT_CONFIG_FROM_TOML: Dict[str, Any] = tomllib.loads(CONFIG_TOML_CONTENT)
except tomllib.TOMLDecodeError as e:
    logger.critical(f"FATAL: Could not parse internal CONFIG_TOML_CONTENT: {e}.")
    DEFAULT_CONFIG_FROM_TOML = {}


# --- Helper for deep merging dictionaries ---
def deep_merge_dicts(base: Dict, update: Dict) -> Dict:
    """Recursively merges update into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in update.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = deep_merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    remote_section = config.setdefault("remote", {})
    env_url = os.getenv(ENV_REMOTE_URL)
    if env_url:
        remote_section["url"] = env_url
        logger.debug(f"Remote URL taken from environment variable {ENV_REMOTE_URL}")
    env_key = os.getenv(ENV_REMOTE_API_KEY)
    if env_key:
        remote_section["api_key"] = env_key
        logger.debug(f"Remote API key taken from environment variable {ENV_REMOTE_API_KEY}")
    return config


# --- Primary Configuration Loading Logic ---
_CONFIG_CACHE: Optional[Dict[str, Any]] = None


def load_settings(force_reload: bool = False, config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Loads settings from ~/.config/continuity_sync/config.toml (or `config_path`).
    If the file doesn't exist, it's created with default values.
    Environment variables override the remote URL and API key.
    """
    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None and not force_reload:
        return _CONFIG_CACHE

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    loaded_config = copy.deepcopy(DEFAULT_CONFIG_FROM_TOML)

    if not path.exists():
        logger.info(f"Config file not found at {path}. Creating with default values.")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(CONFIG_TOML_CONTENT)
            logger.info(f"Created default config file at {path}")
        except OSError as e:
            logger.error(f"Could not create default config file {path}: {e}. Using internal defaults.")
    else:
        logger.info(f"Attempting to load config from: {path}")
        try:
            with open(path, "rb") as f:
                user_config_from_file = tomllib.load(f)
            loaded_config = deep_merge_dicts(loaded_config, user_config_from_file)
            logger.info(f"Successfully loaded and merged config from {path}")
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Error decoding TOML config file {path}: {e}. Using internal defaults.")
        except OSError as e:
            logger.error(f"Could not read config file {path}: {e}. Using internal defaults.")

    _CONFIG_CACHE = _apply_env_overrides(loaded_config)
    logger.debug(f"load_settings returning config with top-level keys: {list(_CONFIG_CACHE.keys())}")
    return _CONFIG_CACHE


def get_sync_setting(section: str, key: str, default: Any = None) -> Any:
    """Helper to get a specific setting from the loaded configuration."""
    config = load_settings()
    section_data = config.get(section)
    if isinstance(section_data, dict):
        return section_data.get(key, default)
    return default


def get_photo_cache_db_path() -> Path:
    raw_path = get_sync_setting("cache", "photo_cache_db_path",
                                "~/.local/share/continuity_sync/photo_cache.db")
    return Path(raw_path).expanduser()

#
# End of config.py
#######################################################################################################################
