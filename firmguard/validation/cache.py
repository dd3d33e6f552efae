"""
Validation Cache

Time-boxed map from `entity_type:entity_id` to the last computed issue list.
Entries are pruned lazily on read; there is no background sweep.
"""

import logging
import time
from typing import Callable

from firmguard.validation.models import ValidationIssue

logger = logging.getLogger(__name__)


class ValidationCache:
	"""Owned, explicitly clearable TTL store for validation results."""

	def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
		"""Initialize validation cache.

		Args:
			ttl_seconds: Time-to-live for cache entries in seconds (default: 5 minutes)
			clock: Monotonic time source, injectable for tests
		"""
		self.ttl_seconds = ttl_seconds
		self._clock = clock
		self._cache: dict[str, tuple[list[ValidationIssue], float]] = {}  # key -> (issues, timestamp)
		self._last_cleanup = clock()
		self._cleanup_interval = 60.0
		self.hits = 0
		self.misses = 0

	def get(self, key: str) -> list[ValidationIssue] | None:
		"""Return the cached issues for a key, or None if absent or expired.

		Args:
			key: Cache key (`entity_type:entity_id`)
		"""
		self._cleanup_expired()

		entry = self._cache.get(key)
		if entry is None:
			self.misses += 1
			return None

		issues, timestamp = entry
		if self._clock() - timestamp >= self.ttl_seconds:
			del self._cache[key]
			self.misses += 1
			return None

		self.hits += 1
		return list(issues)

	def set(self, key: str, issues: list[ValidationIssue]) -> None:
		"""Store a copy of the issue list for a key with the current timestamp."""
		self._cache[key] = (list(issues), self._clock())

	def clear(self) -> None:
		"""Clear all cache entries."""
		count = len(self._cache)
		self._cache.clear()
		logger.debug(f"Cleared validation cache ({count} entries)")

	def _cleanup_expired(self) -> None:
		"""Drop expired entries, at most once per cleanup interval."""
		now = self._clock()
		if now - self._last_cleanup < self._cleanup_interval:
			return

		expired = [
			key
			for key, (_, timestamp) in self._cache.items()
			if now - timestamp >= self.ttl_seconds
		]
		for key in expired:
			del self._cache[key]

		if expired:
			logger.debug(f"Cleaned up {len(expired)} expired validation cache entries")

		self._last_cleanup = now

	def __len__(self) -> int:
		return len(self._cache)
