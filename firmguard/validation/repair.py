"""
Repair Engine

Executes the repair actions attached to auto-repairable issues, writes one audit
record per executed repair, and invalidates the validation cache afterwards.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from tenacity import AsyncRetrying, stop_after_attempt, wait_incrementing

from firmguard.repositories.audit_log import AuditLogRepository
from firmguard.schemas.domain import AuditAction, AuditDetails, AuditLogEntry, utcnow
from firmguard.validation.cache import ValidationCache
from firmguard.validation.models import SEVERITY_ORDER, RepairResult, ValidationIssue

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = 'SYSTEM'


def _check_issues(issues: list[ValidationIssue]) -> None:
	for issue in issues:
		if not isinstance(issue, ValidationIssue):
			raise TypeError(f"Expected ValidationIssue, got {type(issue).__name__}")


def _is_repairable(issue: ValidationIssue) -> bool:
	return issue.can_auto_repair and issue.repair_action is not None


class RepairEngine:
	"""
	Applies repairs in severity order, with an optional retrying variant.

	Repair failures are isolated per issue and never abort the batch.
	"""

	def __init__(
		self,
		audit_log: AuditLogRepository,
		cache: ValidationCache,
		retry_base_delay: float = 1.0,
		sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
	):
		"""
		Initialize the repair engine.

		Args:
			audit_log: Audit trail receiving one record per executed repair
			cache: Validation cache cleared after every repair batch
			retry_base_delay: Seconds; smart repair waits base * attempt number between attempts
			sleep: Awaitable sleep used for backoff (injectable for tests)
		"""
		self.audit_log = audit_log
		self.cache = cache
		self.retry_base_delay = retry_base_delay
		self._sleep = sleep

	async def repair_integrity_issues(self, issues: list[ValidationIssue], dry_run: bool = False) -> RepairResult:
		"""
		Repair issues once each, critical first.

		Args:
			issues: Issues to repair; non-repairable ones are skipped
			dry_run: Count repairs without executing them or writing audit records

		Returns:
			RepairResult
		"""
		_check_issues(issues)
		result = RepairResult(total_issues_found=len(issues))
		ordered = sorted(issues, key=lambda issue: SEVERITY_ORDER[issue.severity])

		try:
			for issue in ordered:
				if not _is_repairable(issue):
					continue

				if dry_run:
					result.mark_repaired(issue)
					continue

				try:
					await issue.repair_action()
				except Exception as e:
					logger.error(f"Failed to repair issue for {issue.entity_type} {issue.entity_id}: {e}", exc_info=True)
					error = str(e) or type(e).__name__
					result.mark_failed(issue, error)
					await self._record_repair(issue, error=error)
					continue

				result.mark_repaired(issue)
				await self._record_repair(issue)
		finally:
			self.cache.clear()

		logger.info(
			f"Repair {'dry run ' if dry_run else ''}complete: {result.issues_repaired} repaired, "
			f"{result.issues_failed} failed of {result.total_issues_found} issues"
		)
		return result

	async def smart_repair(
		self,
		issues: list[ValidationIssue],
		max_retries: int = 3,
		dry_run: bool = False,
	) -> RepairResult:
		"""
		Repair issues grouped per entity, retrying failed repairs with linear backoff.

		Entities with the most critical issues are repaired first. Each repairable
		issue gets up to `max_retries` attempts.

		Args:
			issues: Issues to repair
			max_retries: Maximum attempts per issue (default: 3)
			dry_run: Count repairs without executing them or writing audit records

		Returns:
			RepairResult
		"""
		_check_issues(issues)
		if max_retries < 1:
			raise ValueError("max_retries must be at least 1")

		result = RepairResult(total_issues_found=len(issues))

		issues_by_entity: dict[str, list[ValidationIssue]] = {}
		for issue in issues:
			issues_by_entity.setdefault(issue.key, []).append(issue)

		ordered_entities = sorted(
			issues_by_entity.items(),
			key=lambda item: -sum(1 for issue in item[1] if issue.severity == 'critical'),
		)

		try:
			for entity_key, entity_issues in ordered_entities:
				logger.debug(f"Repairing {entity_key} ({len(entity_issues)} issues)")
				for issue in entity_issues:
					if not _is_repairable(issue):
						continue
					await self._repair_with_retries(issue, max_retries, dry_run, result)
		finally:
			self.cache.clear()

		logger.info(
			f"Smart repair {'dry run ' if dry_run else ''}complete: {result.issues_repaired} repaired, "
			f"{result.issues_failed} failed across {len(ordered_entities)} entities"
		)
		return result

	async def _repair_with_retries(
		self,
		issue: ValidationIssue,
		max_retries: int,
		dry_run: bool,
		result: RepairResult,
	) -> None:
		if dry_run:
			result.mark_repaired(issue)
			return

		retrying = AsyncRetrying(
			stop=stop_after_attempt(max_retries),
			wait=wait_incrementing(start=self.retry_base_delay, increment=self.retry_base_delay),
			sleep=self._sleep,
			reraise=True,
		)

		try:
			async for attempt in retrying:
				with attempt:
					try:
						await issue.repair_action()
					except Exception as e:
						logger.warning(
							f"Repair attempt {attempt.retry_state.attempt_number}/{max_retries} failed for "
							f"{issue.entity_type} {issue.entity_id}: {e}"
						)
						raise
		except Exception as e:
			logger.error(f"Repair for {issue.entity_type} {issue.entity_id} failed after {max_retries} attempts")
			error = str(e) or type(e).__name__
			result.mark_failed(issue, error)
			await self._record_repair(issue, error=error, attempts=max_retries)
			return

		result.mark_repaired(issue)
		await self._record_repair(issue, retry=attempt.retry_state.attempt_number - 1)

	async def _record_repair(
		self,
		issue: ValidationIssue,
		retry: int | None = None,
		error: str | None = None,
		attempts: int | None = None,
	) -> None:
		"""
		Write the single audit record for an executed repair.

		Args:
			issue: The repaired (or failed) issue
			retry: Zero-based attempt index that succeeded (smart repair only)
			error: Last error message when the repair failed
			attempts: Number of attempts made before giving up
		"""
		metadata: dict[str, Any] = {
			'severity': issue.severity,
			'field': issue.field_name,
			'entity_type': issue.entity_type,
			'outcome': 'failed' if error is not None else 'repaired',
		}
		if retry is not None:
			metadata['retry'] = retry
		if error is not None:
			metadata['error'] = error
		if attempts is not None:
			metadata['attempts'] = attempts

		if error is None:
			reason = f"Auto-repaired integrity issue: {issue.message}"
		else:
			reason = f"Failed to auto-repair integrity issue: {issue.message}"

		entry = AuditLogEntry(
			guild_id=issue.guild_id or 'unknown',
			action=AuditAction.SYSTEM_REPAIR,
			actor_id=SYSTEM_ACTOR_ID,
			target_id=issue.entity_id,
			details=AuditDetails(
				before={issue.field_name: issue.current_value} if issue.field_name else None,
				after=dict(issue.repair_patch) if issue.repair_patch is not None else None,
				reason=reason,
				metadata=metadata,
			),
			timestamp=utcnow(),
		)

		try:
			await self.audit_log.add(entry)
		except Exception as e:
			# The repair outcome stands even when its record cannot be written
			logger.error(f"Failed to write audit record for {issue.entity_type} {issue.entity_id}: {e}", exc_info=True)
