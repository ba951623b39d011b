"""
Configuration management for the NMS Glyph Generator.
Handles loading/saving settings and resolving data paths.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger('nms_glyphs.config')

CONFIG_ENV_VAR = 'NMS_GLYPHS_CONFIG'
CACHE_ENV_VAR = 'NMS_GLYPHS_CACHE'

# Default configuration
DEFAULT_CONFIG = {
    "wiki": {
        "api_url": "https://nomanssky.fandom.com/api.php",
        "page_size": 500,
        "min_page_size": 50,
        "request_interval": 35,
        "timeout": 30,
        "retries": 0,
        "user_agent": "NMS-Glyph-Generator/1.0"
    },
    "cache": {
        "path": None,  # None for data/cache.db next to the package
        "ttl_seconds": None  # None to never expire
    },
    "defaults": {
        "path": None  # None for the bundled defaultData.json
    },
    "server": {
        "host": "127.0.0.1",
        "port": 8010
    },
    "debug": {
        "enabled": False,
        "log_file": "glyphs.log",
        "log_level": "INFO"
    }
}


def get_app_dir() -> Path:
    """Get the application directory (the repository root when running from source)."""
    return Path(__file__).resolve().parent.parent


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return get_app_dir() / "config.json"


def get_data_dir() -> Path:
    """Get the data directory for the local cache."""
    data_dir = get_app_dir() / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_default_data_path(config: dict) -> Path:
    """Path of the default directory dataset."""
    configured = config.get('defaults', {}).get('path')
    if configured:
        return Path(configured)
    return Path(__file__).resolve().parent / 'data' / 'defaultData.json'


def get_cache_path(config: dict) -> Path:
    """Path of the SQLite cache, honouring the NMS_GLYPHS_CACHE override."""
    env_path = os.getenv(CACHE_ENV_VAR)
    if env_path:
        return Path(env_path)
    configured = config.get('cache', {}).get('path')
    if configured:
        return Path(configured)
    return get_data_dir() / 'cache.db'


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from file or create default."""
    config_path = Path(config_path) if config_path else get_config_path()

    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)

            # Merge with defaults to ensure all keys exist
            return _deep_merge(DEFAULT_CONFIG, config)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load config: {e}")
            return copy.deepcopy(DEFAULT_CONFIG)
    else:
        # Create default config file
        save_config(DEFAULT_CONFIG, config_path)
        return copy.deepcopy(DEFAULT_CONFIG)


def save_config(config: dict, config_path: Optional[Path] = None) -> bool:
    """Save configuration to file."""
    config_path = Path(config_path) if config_path else get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=2)
        logger.info(f"Configuration saved to {config_path}")
        return True
    except OSError as e:
        logger.error(f"Failed to save config: {e}")
        return False


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def validate_config(config: dict) -> tuple[bool, list[str]]:
    """
    Validate configuration.
    Returns (is_valid, list_of_errors).
    """
    errors = []
    wiki = config.get('wiki', {})

    if not wiki.get('api_url'):
        errors.append("Wiki API URL is not configured")

    page_size = wiki.get('page_size')
    if not isinstance(page_size, int) or page_size <= 0:
        errors.append(f"Invalid page size: {page_size}")

    min_page_size = wiki.get('min_page_size')
    if not isinstance(min_page_size, int) or min_page_size < 0:
        errors.append(f"Invalid minimum page size: {min_page_size}")

    interval = wiki.get('request_interval')
    if not isinstance(interval, (int, float)) or interval < 0:
        errors.append(f"Invalid request interval: {interval}")

    ttl = config.get('cache', {}).get('ttl_seconds')
    if ttl is not None and (not isinstance(ttl, (int, float)) or ttl <= 0):
        errors.append(f"Invalid cache TTL: {ttl} (use a positive number or null)")

    port = config.get('server', {}).get('port')
    if not isinstance(port, int) or not 0 < port < 65536:
        errors.append(f"Invalid server port: {port}")

    return (len(errors) == 0, errors)
