"""
Validation cache and validation queue tests.
"""

import asyncio

import pytest

from firmguard.validation.cache import ValidationCache
from firmguard.validation.queue import ValidationQueue


class FakeClock:
	def __init__(self):
		self.now = 1000.0

	def __call__(self):
		return self.now


class TestValidationCache:
	"""Test TTL semantics and counters."""

	def test_fresh_entry_is_returned(self):
		clock = FakeClock()
		cache = ValidationCache(ttl_seconds=300, clock=clock)
		issues = []
		cache.set('staff:1', issues)

		clock.now += 299
		assert cache.get('staff:1') == issues
		assert cache.hits == 1

	def test_callers_cannot_mutate_cached_entry(self):
		cache = ValidationCache()
		issues = ['status issue']
		cache.set('staff:1', issues)

		issues.clear()
		cache.get('staff:1').append('extra')

		assert cache.get('staff:1') == ['status issue']

	def test_entry_expires_at_ttl(self):
		clock = FakeClock()
		cache = ValidationCache(ttl_seconds=300, clock=clock)
		cache.set('staff:1', [])

		clock.now += 300
		assert cache.get('staff:1') is None
		assert len(cache) == 0
		assert cache.misses == 1

	def test_missing_key(self):
		cache = ValidationCache()
		assert cache.get('case:missing') is None
		assert cache.misses == 1

	def test_periodic_cleanup_prunes_other_expired_entries(self):
		clock = FakeClock()
		cache = ValidationCache(ttl_seconds=10, clock=clock)
		cache.set('staff:1', [])
		cache.set('staff:2', [])

		clock.now += 61
		cache.get('staff:3')

		assert len(cache) == 0

	def test_clear(self):
		cache = ValidationCache()
		cache.set('staff:1', [])
		cache.set('case:1', [])

		cache.clear()

		assert len(cache) == 0
		assert cache.get('staff:1') is None


class TestValidationQueue:
	"""Test concurrency cap and in-flight de-duplication."""

	@pytest.mark.asyncio
	async def test_concurrency_is_capped(self):
		queue = ValidationQueue(max_concurrent=2)

		async def job():
			await asyncio.sleep(0.01)
			return []

		await asyncio.gather(*(queue.submit(f"staff:{i}", job) for i in range(6)))

		assert queue.peak_active == 2
		assert queue.active == 0
		assert queue.in_flight == 0

	@pytest.mark.asyncio
	async def test_same_key_shares_one_run(self):
		queue = ValidationQueue(max_concurrent=5)
		calls = 0

		async def job():
			nonlocal calls
			calls += 1
			await asyncio.sleep(0.01)
			return ['issue']

		first, second = await asyncio.gather(
			queue.submit('case:1', job),
			queue.submit('case:1', job),
		)

		assert calls == 1
		assert first == second == ['issue']
		assert queue.deduplicated == 1

	@pytest.mark.asyncio
	async def test_key_is_released_after_completion(self):
		queue = ValidationQueue()
		calls = 0

		async def job():
			nonlocal calls
			calls += 1
			return []

		await queue.submit('case:1', job)
		await queue.submit('case:1', job)

		assert calls == 2
		assert queue.in_flight == 0

	@pytest.mark.asyncio
	async def test_failing_job_yields_no_issues(self):
		queue = ValidationQueue()

		async def job():
			raise RuntimeError("repository unavailable")

		assert await queue.submit('case:1', job) == []
		assert queue.in_flight == 0

	def test_invalid_cap(self):
		with pytest.raises(ValueError):
			ValidationQueue(max_concurrent=0)
