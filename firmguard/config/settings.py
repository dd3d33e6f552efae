"""
Validation Engine Settings

Centralized configuration for the integrity engine, read from environment variables.
"""

import logging
import os
from typing import Any

from firmguard.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ValidationSettings:
	"""
	Tunable limits for validation, batching and repair.

	Values can be overridden via environment variables:
	- FIRMGUARD_CACHE_TTL_SECONDS=300
	- FIRMGUARD_MAX_CONCURRENT_VALIDATIONS=10
	- FIRMGUARD_RULE_TIMEOUT_SECONDS=30 (0 disables the per-rule timeout)
	- etc.
	"""

	def __init__(self):
		"""Initialize settings from environment variables."""
		self.cache_ttl_seconds = self._get_float('FIRMGUARD_CACHE_TTL_SECONDS', default=300.0)
		self.max_concurrent_validations = self._get_int('FIRMGUARD_MAX_CONCURRENT_VALIDATIONS', default=10)
		self.batch_size = self._get_int('FIRMGUARD_BATCH_SIZE', default=50)
		self.optimized_batch_size = self._get_int('FIRMGUARD_OPTIMIZED_BATCH_SIZE', default=20)
		self.repair_max_retries = self._get_int('FIRMGUARD_REPAIR_MAX_RETRIES', default=3)
		self.repair_retry_delay_seconds = self._get_float('FIRMGUARD_REPAIR_RETRY_DELAY_SECONDS', default=1.0)
		self.rule_timeout_seconds = self._get_float('FIRMGUARD_RULE_TIMEOUT_SECONDS', default=30.0)

		level = os.getenv('FIRMGUARD_VALIDATION_LEVEL', 'strict').lower()
		if level not in ('strict', 'lenient'):
			raise ConfigurationError(
				f"FIRMGUARD_VALIDATION_LEVEL must be 'strict' or 'lenient', got '{level}'"
			)
		self.validation_level = level

		for name in ('max_concurrent_validations', 'batch_size', 'optimized_batch_size', 'repair_max_retries'):
			if getattr(self, name) < 1:
				raise ConfigurationError(f"{name} must be at least 1")

		logger.debug(f"Validation settings loaded: {self.to_dict()}")

	def _get_int(self, env_var: str, default: int) -> int:
		"""
		Get an integer setting from an environment variable.

		Args:
			env_var: Environment variable name
			default: Default value if not set

		Returns:
			Parsed integer value

		Raises:
			ConfigurationError: If the value is not an integer
		"""
		raw = os.getenv(env_var)
		if raw is None or raw.strip() == '':
			return default
		try:
			return int(raw)
		except ValueError as e:
			raise ConfigurationError(f"{env_var} must be an integer, got '{raw}'") from e

	def _get_float(self, env_var: str, default: float) -> float:
		"""Get a non-negative float setting from an environment variable."""
		raw = os.getenv(env_var)
		if raw is None or raw.strip() == '':
			return default
		try:
			value = float(raw)
		except ValueError as e:
			raise ConfigurationError(f"{env_var} must be a number, got '{raw}'") from e
		if value < 0:
			raise ConfigurationError(f"{env_var} must not be negative, got {value}")
		return value

	def to_dict(self) -> dict[str, Any]:
		"""Export settings as dictionary."""
		return {
			'cache_ttl_seconds': self.cache_ttl_seconds,
			'max_concurrent_validations': self.max_concurrent_validations,
			'batch_size': self.batch_size,
			'optimized_batch_size': self.optimized_batch_size,
			'repair_max_retries': self.repair_max_retries,
			'repair_retry_delay_seconds': self.repair_retry_delay_seconds,
			'rule_timeout_seconds': self.rule_timeout_seconds,
			'validation_level': self.validation_level,
		}


# Global settings instance
_validation_settings: ValidationSettings | None = None


def get_validation_settings() -> ValidationSettings:
	"""
	Get global validation settings instance.

	Returns:
		ValidationSettings instance
	"""
	global _validation_settings
	if _validation_settings is None:
		_validation_settings = ValidationSettings()
	return _validation_settings


def reload_validation_settings() -> ValidationSettings:
	"""Reload settings from environment (useful for testing)."""
	global _validation_settings
	_validation_settings = ValidationSettings()
	return _validation_settings
