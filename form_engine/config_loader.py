"""
Configuration loading utilities for the employment form app.

This module loads the YAML application configuration and merges it over
built-in defaults, falling back to the defaults when the file is missing
or unusable.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from copy import deepcopy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")
EXPORT_TARGETS = ("download", "directory")


def deep_merge(base_dict: Dict[str, Any], update_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with update_dict taking precedence.

    Args:
        base_dict: Base dictionary (defaults)
        update_dict: Dictionary to merge in (user config)

    Returns:
        Merged dictionary
    """
    result = deepcopy(base_dict)

    for key, value in update_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def get_default_config() -> Dict[str, Any]:
    """
    Get the default configuration.

    Returns:
        Dictionary with default configuration
    """
    return {
        'app': {
            'name': 'Employment Form',
            'version': '1.0.0',
            'debug': False
        },
        'schema': {
            'path': 'schemas/employment_form.json'
        },
        'locale': {
            'default': None
        },
        'computation': {
            'debounce_ms': 500
        },
        'export': {
            'target': 'download',
            'directory': 'exports',
            'filename_prefix': 'employment-form'
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        }
    }


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load application configuration.

    Args:
        config_path: Optional path to config file (defaults to config.yaml)

    Returns:
        Complete configuration dictionary
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    default_config = get_default_config()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return default_config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)

        if user_config is None:
            logger.warning(f"Configuration file is empty: {config_path}")
            return default_config

        if not isinstance(user_config, dict):
            logger.error(f"Configuration file is not a valid dictionary: {config_path}")
            logger.info("Using default configuration")
            return default_config

        config = deep_merge(default_config, user_config)

        if not validate_config(config):
            logger.warning(f"Configuration in {config_path} is invalid, using defaults")
            return default_config

        logger.info(f"Successfully loaded configuration from {config_path}")
        return config

    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config

    except (IOError, OSError) as e:
        logger.error(f"Failed to read configuration file {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration structure and required fields.

    Args:
        config: Configuration dictionary to validate

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ['app', 'schema', 'locale', 'computation', 'export', 'logging']

    for section in required_sections:
        if not isinstance(config.get(section), dict):
            logger.warning(f"Missing required configuration section: {section}")
            return False

    app = config['app']
    if 'name' not in app or 'version' not in app:
        logger.warning("Missing required app configuration (name or version)")
        return False

    if not isinstance(config['schema'].get('path'), str):
        logger.warning("Schema path must be a string")
        return False

    locale_default = config['locale'].get('default')
    if locale_default is not None and not isinstance(locale_default, str):
        logger.warning("locale.default must be a string or null")
        return False

    debounce_ms = config['computation'].get('debounce_ms')
    if isinstance(debounce_ms, bool):
        logger.warning("debounce_ms must be a valid number")
        return False
    try:
        if float(debounce_ms) <= 0:
            logger.warning("debounce_ms must be positive")
            return False
    except (ValueError, TypeError):
        logger.warning("debounce_ms must be a valid number")
        return False

    export = config['export']
    if export.get('target') not in EXPORT_TARGETS:
        logger.warning(f"Export target must be one of {EXPORT_TARGETS}")
        return False

    for key in ('directory', 'filename_prefix'):
        if not isinstance(export.get(key), str) or not export.get(key):
            logger.warning(f"Export {key} must be a non-empty string")
            return False

    return True


def get_config_value(config: Dict[str, Any], section: str, key: str, default: Any = None) -> Any:
    """
    Read a single value from a configuration section.

    Args:
        config: Configuration dictionary
        section: Top-level section name
        key: Key inside the section
        default: Value returned when the section or key is missing

    Returns:
        The configured value or the default
    """
    section_values = config.get(section)
    if not isinstance(section_values, dict):
        return default
    value = section_values.get(key)
    return default if value is None else value


def get_debounce_seconds(config: Dict[str, Any]) -> float:
    """Debounce delay of the total income computation, in seconds."""
    return float(get_config_value(config, 'computation', 'debounce_ms', 500)) / 1000
