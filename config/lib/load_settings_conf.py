"""Settings configuration loader module.

This module handles loading and parsing of the settings.conf file which contains
the marketplace backend settings: database location, identity provider access,
and a handful of tuning knobs.

The settings file uses INI format with a [DEFAULT] section containing key-value pairs.
Any setting may be overridden with a MARKETPLACE_<KEY> environment variable, e.g.
MARKETPLACE_DB_URL or MARKETPLACE_AUTH_SERVICE_KEY.

Example settings.conf:
    [DEFAULT]
    db_url = postgresql://root@localhost:26257/marketplace?sslmode=disable
    auth_url = https://auth.example.com
    auth_service_key = service-role-key

Raises:
    SettingsError: If the settings file is invalid or a setting fails validation
"""
from configparser import ConfigParser
from pathlib import Path
from typing import Dict, Any, List
import os

ENV_PREFIX = 'MARKETPLACE_'

class ConfigValidationError:
    """Helper class to format configuration validation errors"""
    def __init__(self):
        self.missing: List[str] = []
        self.invalid: List[str] = []

    def has_errors(self) -> bool:
        """Check if any errors exist"""
        return bool(self.missing or self.invalid)

    def format_message(self) -> str:
        """Format error message in a clean, readable way"""
        messages = []

        if self.missing:
            messages.append("Missing required settings:")
            messages.extend(f"  - {item}" for item in self.missing)

        if self.invalid:
            if messages:
                messages.append("")
            messages.append("Invalid settings:")
            messages.extend(f"  - {item}" for item in self.invalid)

        return "\n".join(messages)

class SettingsError(Exception):
    """Raised when there are issues loading or parsing the settings configuration."""
    pass

# Default settings
DEFAULTS = {
    'db_url': 'postgresql://root@localhost:26257/marketplace?sslmode=disable',
    'kv_table': 'kv_store',
    'store_backend': 'postgres',  # 'postgres' or 'memory'
    'auth_url': 'http://localhost:54321',
    'auth_service_key': '',
    'auth_timeout': '10',  # Seconds to wait on the identity provider
    'currency': 'ZAR',
    'listing_page_size': '50',  # Default limit for listing queries
    'order_write_attempts': '3',  # Compare-and-set attempts when placing an order
    'log_level': 'INFO',
    'api_host': '0.0.0.0',
    'api_port': '8000'
}

INT_SETTINGS = ('listing_page_size', 'order_write_attempts', 'api_port')
STORE_BACKENDS = ('postgres', 'memory')

def load_settings_conf(settings_path: str = ".") -> Dict[str, Any]:
    """Load settings.conf, fill in defaults and apply environment overrides.

    A missing settings.conf is not an error: defaults and environment
    variables are enough to run against a local database.

    Args:
        settings_path: Directory containing settings.conf

    Returns:
        Dictionary containing raw (string) settings

    Raises:
        SettingsError: If the file exists but cannot be parsed
    """
    config_path = Path(settings_path) / 'settings.conf'
    settings = dict(DEFAULTS)

    if config_path.exists():
        try:
            parser = ConfigParser()
            parser.read(config_path)
            settings.update(dict(parser['DEFAULT']))
        except Exception as e:
            raise SettingsError(f"Error parsing settings.conf: {str(e)}")

    for key in list(settings):
        env_value = os.environ.get(ENV_PREFIX + key.upper())
        if env_value is not None:
            settings[key] = env_value

    return settings

def validate_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Validate loaded settings.

    Args:
        settings: Dictionary of settings to validate

    Returns:
        Validated and processed settings

    Raises:
        SettingsError: If validation fails
    """
    errors = ConfigValidationError()

    for key in ('db_url', 'kv_table', 'auth_url'):
        if not settings.get(key):
            errors.missing.append(key)

    for key in INT_SETTINGS:
        try:
            settings[key] = int(settings[key])
            if settings[key] < 1:
                errors.invalid.append(f"{key} must be at least 1")
        except (TypeError, ValueError, KeyError):
            errors.invalid.append(f"{key} must be an integer")

    try:
        settings['auth_timeout'] = float(settings['auth_timeout'])
        if settings['auth_timeout'] <= 0:
            errors.invalid.append("auth_timeout must be positive")
    except (TypeError, ValueError, KeyError):
        errors.invalid.append("auth_timeout must be a number")

    if settings.get('store_backend') not in STORE_BACKENDS:
        errors.invalid.append(
            f"store_backend must be one of {', '.join(STORE_BACKENDS)}"
        )

    if not str(settings.get('kv_table', '')).replace('_', '').isalnum():
        errors.invalid.append("kv_table must be a plain table name")

    settings['auth_url'] = str(settings.get('auth_url', '')).rstrip('/')
    settings['log_level'] = str(settings.get('log_level', 'INFO')).upper()

    if errors.has_errors():
        raise SettingsError(
            "Settings Configuration Validation Failed\n\n" +
            errors.format_message()
        )

    return settings
