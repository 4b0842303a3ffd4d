"""
Configuration Module for mentiond.

This module provides configuration loading and management for the webmention
service. Configuration is loaded from config.yml and supports Docker secrets.

Usage:
    >>> from config import load_config
    >>> config = load_config()
    >>> queue_size = config["webmention"]["queue_size"]
"""
import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


logger = logging.getLogger(__name__)

QUEUE_FULL_BLOCK = "block"
QUEUE_FULL_REJECT = "reject"

DEFAULT_WEBMENTION_CONFIG: Dict[str, Any] = {
    "endpoint_path": "/webmention",
    "queue_size": 100,
    "queue_full": QUEUE_FULL_BLOCK,
    "workers": 1,
    "fetch_timeout": 10,
    "max_response_bytes": 1_048_576,
    "advertise_link_header": True,
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from config.yml file.

    Args:
        config_path: Path to config.yml file. If None, looks in current directory
                    and parent directories.

    Returns:
        Dictionary containing configuration settings, with missing webmention
        settings filled in from defaults.

    Example:
        >>> config = load_config()
        >>> workers = config["webmention"]["workers"]
    """
    if config_path is None:
        # Try to find config.yml in current directory or parent directories
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            candidate = parent / "config.yml"
            if candidate.exists():
                config_path = str(candidate)
                break

    if config_path is None:
        logger.warning("config.yml not found, using default configuration")
        return get_default_config()

    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning(f"Configuration file not found: {config_path}")
        return get_default_config()
    except yaml.YAMLError as e:
        logger.error(f"Error parsing configuration file: {e}")
        return get_default_config()

    if not isinstance(config, dict):
        logger.warning("Configuration root must be a mapping, using default configuration")
        return get_default_config()

    config["webmention"] = get_webmention_config(config)
    logger.info(f"Loaded configuration from {config_path}")
    return config


def get_default_config() -> Dict[str, Any]:
    """Return default configuration when config.yml is not available.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "webmention": copy.deepcopy(DEFAULT_WEBMENTION_CONFIG),
        "cors": {
            "enabled": False,
            "origins": []
        },
        "pushover": {
            "enabled": False,
            "app_token_file": "/run/secrets/pushover_app_token",
            "user_key_file": "/run/secrets/pushover_user_key"
        }
    }


def get_webmention_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return the webmention section with defaults applied and values checked.

    Invalid values are logged and replaced by their default.
    """
    section = config.get("webmention") or {}
    if not isinstance(section, dict):
        logger.warning("webmention configuration must be a mapping, using defaults")
        section = {}

    merged = copy.deepcopy(DEFAULT_WEBMENTION_CONFIG)
    merged.update(section)

    if merged["queue_full"] not in (QUEUE_FULL_BLOCK, QUEUE_FULL_REJECT):
        logger.warning(
            f"Unknown queue_full behavior {merged['queue_full']!r}; "
            f"falling back to {QUEUE_FULL_BLOCK!r}"
        )
        merged["queue_full"] = QUEUE_FULL_BLOCK

    for key in ("queue_size", "workers"):
        value = merged[key]
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            logger.warning(f"Invalid webmention.{key} {value!r}; falling back to {DEFAULT_WEBMENTION_CONFIG[key]}")
            merged[key] = DEFAULT_WEBMENTION_CONFIG[key]

    path = merged["endpoint_path"]
    if not isinstance(path, str) or not path.startswith("/"):
        logger.warning(f"Invalid webmention.endpoint_path {path!r}; falling back to /webmention")
        merged["endpoint_path"] = DEFAULT_WEBMENTION_CONFIG["endpoint_path"]

    return merged


def read_secret_file(filepath: str) -> Optional[str]:
    """Read a Docker secret from a file.

    Docker secrets are mounted as files in /run/secrets/ directory.
    This function reads the content of the secret file.

    Args:
        filepath: Path to the secret file

    Returns:
        Content of the secret file (stripped of whitespace), or None if file doesn't exist

    Example:
        >>> token = read_secret_file("/run/secrets/pushover_app_token")
    """
    try:
        with open(filepath, "r") as f:
            return f.read().strip()
    except FileNotFoundError:
        logger.debug(f"Secret file not found: {filepath}")
        return None
    except OSError as e:
        logger.error(f"Error reading secret file {filepath}: {e}")
        return None
