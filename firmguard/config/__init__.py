"""
Configuration module for firmguard.

Provides validation engine settings loaded from the environment.
"""

from firmguard.config.settings import ValidationSettings, get_validation_settings, reload_validation_settings

__all__ = [
	'ValidationSettings',
	'get_validation_settings',
	'reload_validation_settings',
]
