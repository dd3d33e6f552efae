"""
Validation settings tests.
"""

import pytest

from firmguard.config.settings import ValidationSettings, get_validation_settings, reload_validation_settings
from firmguard.errors import ConfigurationError


class TestValidationSettings:
	"""Test environment-driven settings."""

	def test_defaults(self, settings):
		fresh = ValidationSettings()

		assert fresh.cache_ttl_seconds == 300.0
		assert fresh.max_concurrent_validations == 10
		assert fresh.batch_size == 50
		assert fresh.optimized_batch_size == 20
		assert fresh.repair_max_retries == 3
		assert fresh.repair_retry_delay_seconds == 1.0
		assert fresh.rule_timeout_seconds == 30.0
		assert fresh.validation_level == 'strict'

	def test_environment_overrides(self, settings, monkeypatch):
		monkeypatch.setenv('FIRMGUARD_BATCH_SIZE', '7')
		monkeypatch.setenv('FIRMGUARD_CACHE_TTL_SECONDS', '12.5')
		monkeypatch.setenv('FIRMGUARD_VALIDATION_LEVEL', 'LENIENT')

		fresh = ValidationSettings()

		assert fresh.batch_size == 7
		assert fresh.cache_ttl_seconds == 12.5
		assert fresh.validation_level == 'lenient'
		assert fresh.to_dict()['batch_size'] == 7

	@pytest.mark.parametrize('env_var, value', [
		('FIRMGUARD_BATCH_SIZE', 'fifty'),
		('FIRMGUARD_MAX_CONCURRENT_VALIDATIONS', '0'),
		('FIRMGUARD_REPAIR_RETRY_DELAY_SECONDS', '-1'),
		('FIRMGUARD_RULE_TIMEOUT_SECONDS', 'soon'),
		('FIRMGUARD_VALIDATION_LEVEL', 'paranoid'),
	])
	def test_invalid_values_raise(self, settings, monkeypatch, env_var, value):
		monkeypatch.setenv(env_var, value)

		with pytest.raises(ConfigurationError):
			ValidationSettings()

	def test_reload_replaces_global_instance(self, settings, monkeypatch):
		first = reload_validation_settings()
		assert get_validation_settings() is first

		monkeypatch.setenv('FIRMGUARD_BATCH_SIZE', '3')
		second = reload_validation_settings()

		assert second is not first
		assert get_validation_settings().batch_size == 3

		monkeypatch.delenv('FIRMGUARD_BATCH_SIZE')
		reload_validation_settings()
