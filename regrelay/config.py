#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("regrelay")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. REGRELAY_CONFIG environment variable
    2. ~/.regrelay/ directory
    """
    if 'REGRELAY_CONFIG' in os.environ:
        path = Path(os.environ['REGRELAY_CONFIG'])
        if path.exists():
            return path

    regrelay_dir = Path.home() / '.regrelay'
    for filename in CONFIG_FILENAMES:
        path = regrelay_dir / filename
        if path.exists() and path.stat().st_size > 10:  # Not empty/trivial
            return path

    # If no file exists, return default path for saving
    return regrelay_dir / 'config.json'


def get_default_config():
    """Get default configuration."""
    return {
        "relay": {
            "binary": "skopeo",
            "certs_dir": "/etc/skopeo/certs.d",
            "mode": "copy",
        },
        "registry": {
            "timeout_seconds": 30,
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def _read_config_file(config_path: Path) -> dict:
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ('.yaml', '.yml'):
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    with open(config_path, 'r') as f:
        return json.load(f)


def load_config(strict: bool = False):
    """Load configuration from file.

    Args:
        strict: Raise ConfigError on an unreadable file instead of
            logging and falling back to defaults.
    """
    config_path = get_config_path()

    # Start with default config
    config = get_default_config()

    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
            if not isinstance(file_config, dict):
                raise ValueError("top level must be a mapping")
            config = merge_configs(config, file_config)
        except (OSError, ValueError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
            if strict:
                raise ConfigError(f"Error loading config from {config_path}: {e}") from e
            logger.error(f"Error loading config from {config_path}: {e}")

    return apply_env_overrides(config)


def save_config(config):
    """Save configuration to file."""
    config_path = get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        if config_path.suffix.lower() == '.toml':
            # tomllib is read-only
            logger.warning("TOML config files are read-only. Saving as JSON instead.")
            config_path = config_path.with_suffix('.json')
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)
        elif config_path.suffix.lower() in ['.yaml', '.yml']:
            with open(config_path, 'w') as f:
                yaml.safe_dump(config, f, default_flow_style=False)
        else:
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)

        logger.info(f"Configuration saved to {config_path}")
    except OSError as e:
        logger.error(f"Error saving config to {config_path}: {e}")
    return config_path


def configure_logging(config: dict, debug: bool = False) -> None:
    """Apply the logging section of the config to the root logger."""
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            force=True,
        )
        return

    section = config.get('logging', {})
    level = getattr(logging, str(section.get('level', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=section.get('format', "%(levelname)s: %(message)s"),
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: REGRELAY_SECTION_KEY
    For example: REGRELAY_RELAY_MODE=sync or REGRELAY_RELAY_CERTS_DIR=/certs
    """
    env_prefix = "REGRELAY_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == 'REGRELAY_CONFIG':
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Longest config key that is a prefix of the remaining parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i : i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if not matched_key:
                break

            if i + best_match_len == len(key_parts):
                current_level[matched_key] = typed_value
                break

            if isinstance(current_level[matched_key], dict):
                current_level = current_level[matched_key]
                i += best_match_len
            else:
                # Path conflict: env var is longer than a leaf value
                break

    return config
