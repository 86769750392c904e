"""
Configuration Validator
Validates the ledger's environment variables at application startup
Fails fast if any configuration value is invalid

NOTE: This module MUST NOT configure logging, as the log level is one of the
values it validates. Problems are reported on stderr.
"""

import os
import sys
from typing import List, Mapping, Optional, Tuple
from urllib.parse import urlparse


class ConfigValidationError(Exception):
    """Raised when one or more configuration values are invalid"""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__('Invalid configuration: ' + '; '.join(errors))


def is_valid_url(url: str) -> bool:
    """Validates a URL format"""
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except ValueError:
        return False


def is_valid_log_level(level: str) -> bool:
    """Validates log level"""
    valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    return level.upper() in valid_levels


def is_valid_environment(env: str) -> bool:
    """Validates FLASK_ENV"""
    valid_envs = ['development', 'production', 'testing', 'default']
    return env.lower() in valid_envs


def is_positive_int(value: str) -> bool:
    return value.isdigit() and int(value) > 0


def is_non_negative_int(value: str) -> bool:
    return value.isdigit()


def is_valid_prefix(value: str) -> bool:
    return len(value) > 0 and '-' not in value


# Configuration validation rules
VALIDATION_RULES = {
    # Service Configuration
    'FLASK_ENV': {
        'required': False,
        'validator': is_valid_environment,
        'error_message': 'FLASK_ENV must be one of: development, production, testing, default',
        'default': 'development',
    },

    # Database Configuration
    'DATABASE_URL': {
        'required': False,
        'validator': lambda v: '://' in v,
        'error_message': 'DATABASE_URL must be an SQLAlchemy database URL',
        'default': 'sqlite:///stock_ledger.db',
    },

    # Ledger Configuration
    'LEDGER_STORAGE': {
        'required': False,
        'validator': lambda v: v.lower() in ['sql', 'memory'],
        'error_message': 'LEDGER_STORAGE must be either sql or memory',
        'default': 'sql',
    },
    'OUT_COSTING_POLICY': {
        'required': False,
        'validator': lambda v: v.lower() in ['caller', 'avg_cost'],
        'error_message': 'OUT_COSTING_POLICY must be either caller or avg_cost',
        'default': 'caller',
    },
    'TRANSACTION_NO_PREFIX': {
        'required': False,
        'validator': is_valid_prefix,
        'error_message': 'TRANSACTION_NO_PREFIX must be non-empty and contain no dashes',
        'default': 'TXN',
    },

    # External Service URLs
    'CATALOG_SERVICE_URL': {
        'required': False,
        'validator': is_valid_url,
        'error_message': 'CATALOG_SERVICE_URL must be a valid URL if provided',
    },
    'DEFAULT_REORDER_THRESHOLD': {
        'required': False,
        'validator': is_non_negative_int,
        'error_message': 'DEFAULT_REORDER_THRESHOLD must be a non-negative integer',
        'default': '10',
    },

    # CORS Configuration
    'CORS_ORIGINS': {
        'required': False,
        'validator': lambda v: all(
            origin.strip() == '*' or is_valid_url(origin.strip())
            for origin in v.split(',')
        ),
        'error_message': 'CORS_ORIGINS must be a comma-separated list of valid URLs or *',
        'default': '*',
    },

    # Logging Configuration
    'LOG_LEVEL': {
        'required': False,
        'validator': is_valid_log_level,
        'error_message': 'LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL',
        'default': 'INFO',
    },

    # Pagination
    'DEFAULT_PAGE_SIZE': {
        'required': False,
        'validator': is_positive_int,
        'error_message': 'DEFAULT_PAGE_SIZE must be a positive integer',
        'default': '20',
    },
    'MAX_PAGE_SIZE': {
        'required': False,
        'validator': is_positive_int,
        'error_message': 'MAX_PAGE_SIZE must be a positive integer',
        'default': '100',
    },
}


def validate_config(environ: Optional[Mapping[str, str]] = None) -> Tuple[List[str], List[str]]:
    """
    Validates environment variables according to the rules

    Returns:
        Tuple of (errors, warnings); no errors means the configuration is usable
    """
    if environ is None:
        environ = os.environ

    errors = []
    warnings = []

    for key, rule in VALIDATION_RULES.items():
        value = environ.get(key)

        # Check if required variable is missing
        if rule['required'] and not value:
            errors.append(f"{key} is required but not set")
            continue

        # Skip validation if value is not set and not required
        if not value:
            if 'default' in rule:
                warnings.append(f"{key} not set, using default: {rule['default']}")
            continue

        if not rule['validator'](value):
            # Don't expose sensitive values
            if 'PASSWORD' in key or 'SECRET' in key or 'DATABASE_URL' in key:
                shown = '***'
            elif len(value) > 100:
                shown = f"{value[:100]}..."
            else:
                shown = value
            errors.append(f"{key}: {rule['error_message']} (current value: {shown})")

    page_size = environ.get('DEFAULT_PAGE_SIZE')
    max_page_size = environ.get('MAX_PAGE_SIZE')
    if page_size and max_page_size and is_positive_int(page_size) and is_positive_int(max_page_size):
        if int(page_size) > int(max_page_size):
            errors.append('DEFAULT_PAGE_SIZE must not exceed MAX_PAGE_SIZE')

    return errors, warnings


def ensure_valid_config(environ: Optional[Mapping[str, str]] = None, exit_on_error: bool = True):
    """
    Validates the configuration and stops startup if it is invalid

    Raises SystemExit (or ConfigValidationError when ``exit_on_error`` is
    False) if any variable is invalid
    """
    errors, warnings = validate_config(environ)

    for warning in warnings:
        print(f"[CONFIG] {warning}", file=sys.stderr)

    if errors:
        if not exit_on_error:
            raise ConfigValidationError(errors)
        print('[CONFIG] Configuration validation failed:', file=sys.stderr)
        for error in errors:
            print(f"  {error}", file=sys.stderr)
        print('Please check your .env file and ensure all variables are set correctly.', file=sys.stderr)
        sys.exit(1)
