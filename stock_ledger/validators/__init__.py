"""
Validators package
"""

from .config_validator import validate_config, ensure_valid_config, ConfigValidationError

__all__ = ['validate_config', 'ensure_valid_config', 'ConfigValidationError']
