"""
Bounded Validation Queue

Caps the number of simultaneously running entity validations and de-duplicates
concurrent requests for the same entity. A counting semaphore bounds the number of
concurrent repository round-trips independently of the input batch size.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from firmguard.validation.models import ValidationIssue

logger = logging.getLogger(__name__)

ValidationJob = Callable[[], Awaitable[list[ValidationIssue]]]


class ValidationQueue:
	"""
	Request de-duplicating, concurrency-capped executor for validations.

	Per key the lifecycle is idle -> in-flight -> (done | error-logged) -> idle.
	A submission for a key already in flight awaits the running task instead of
	starting a new one. Submissions beyond the cap wait on the semaphore.
	"""

	def __init__(self, max_concurrent: int = 10):
		"""
		Initialize the queue.

		Args:
			max_concurrent: Maximum number of validations running at once (default: 10)
		"""
		if max_concurrent < 1:
			raise ValueError("max_concurrent must be at least 1")

		self.max_concurrent = max_concurrent
		self._semaphore = asyncio.Semaphore(max_concurrent)
		self._in_flight: dict[str, asyncio.Task] = {}

		# Counters for diagnostics and tests
		self.active = 0
		self.peak_active = 0
		self.deduplicated = 0

		logger.debug(f"ValidationQueue initialized (max_concurrent: {max_concurrent})")

	@property
	def in_flight(self) -> int:
		"""Number of distinct keys currently submitted and not finished."""
		return len(self._in_flight)

	async def submit(self, key: str, job: ValidationJob) -> list[ValidationIssue]:
		"""
		Run a validation for a key, or join the one already running.

		Args:
			key: De-duplication key (`entity_type:entity_id`)
			job: Zero-argument coroutine function producing the issues

		Returns:
			The issues produced by the (possibly shared) validation
		"""
		existing = self._in_flight.get(key)
		if existing is not None:
			self.deduplicated += 1
			logger.debug(f"Joining in-flight validation for {key}")
			return await asyncio.shield(existing)

		task = asyncio.ensure_future(self._run(key, job))
		self._in_flight[key] = task

		def _release(finished: asyncio.Task) -> None:
			if self._in_flight.get(key) is finished:
				del self._in_flight[key]

		task.add_done_callback(_release)
		return await asyncio.shield(task)

	async def _run(self, key: str, job: ValidationJob) -> list[ValidationIssue]:
		async with self._semaphore:
			self.active += 1
			self.peak_active = max(self.peak_active, self.active)
			try:
				return await job()
			except Exception as e:
				logger.error(f"Validation for {key} failed: {e}", exc_info=True)
				return []
			finally:
				self.active -= 1
