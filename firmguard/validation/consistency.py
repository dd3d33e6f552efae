"""
Cross-Entity Consistency Checks

Tenant-wide passes that look at several entity sets at once, layered on top of
the per-entity rules:
1. Orphan/self-reference sweep (part of every scan)
2. Data consistency between cases, staff, applications and jobs (deep check)
3. Referential integrity of reminders (deep check)
"""

import logging

from firmguard.repositories.entities import EntityRepositories
from firmguard.schemas.domain import Case, EntityType, Staff
from firmguard.validation.models import ValidationContext, ValidationIssue
from firmguard.validation.rules.common import (
	list_append_repair,
	list_remove_repair,
	make_issue,
	make_repairable_issue,
	update_repair,
)

logger = logging.getLogger(__name__)

CASE = EntityType.CASE.value
STAFF = EntityType.STAFF.value
APPLICATION = EntityType.APPLICATION.value
REMINDER = EntityType.REMINDER.value


class ConsistencyChecker:
	"""
	Multi-entity consistency checks for one tenant.

	Each check raises on repository failure; the caller decides how to isolate it.
	"""

	def __init__(self, repositories: EntityRepositories):
		"""
		Initialize consistency checker.

		Args:
			repositories: Entity repositories to read tenant data from
		"""
		self.repositories = repositories

	async def check_orphaned_relationships(
		self,
		guild_id: str,
		context: ValidationContext,
		staff: list[Staff] | None = None,
		cases: list[Case] | None = None,
	) -> list[ValidationIssue]:
		"""
		Detect self-referencing staff and cases whose client left the tenant.

		Args:
			guild_id: Tenant to check
			context: Validation context (client membership is only checked with a lookup)
			staff: Already-fetched staff, fetched here when omitted
			cases: Already-fetched cases, fetched here when omitted

		Returns:
			Issues found
		"""
		issues: list[ValidationIssue] = []

		if context.lookup is not None:
			if cases is None:
				cases = await self.repositories.case.find_by_guild(guild_id)
			for case in cases:
				try:
					is_member = await context.lookup.member_exists(guild_id, case.client_id)
				except Exception as e:
					logger.error(f"Error checking client {case.client_id} of case {case.id}: {e}", exc_info=True)
					continue
				if not is_member:
					issues.append(make_issue(
						CASE, case, 'info',
						f"Client {case.client_id} not found in chat server",
						field_name='client_id',
					))

		if staff is None:
			staff = await self.repositories.staff.find_by_guild(guild_id)
		for member in staff:
			if member.hired_by and member.hired_by == member.user_id:
				issues.append(make_issue(
					STAFF, member, 'warning',
					'Staff member hired by themselves',
					field_name='hired_by',
				))

		logger.debug(f"Orphan sweep for {guild_id}: {len(issues)} issues")
		return issues

	async def check_data_consistency(self, guild_id: str) -> list[ValidationIssue]:
		"""Check case assignments against staff and applications against jobs."""
		logger.info(f"Checking data consistency for {guild_id}")
		issues: list[ValidationIssue] = []

		cases = await self.repositories.case.find_by_guild(guild_id)
		staff = await self.repositories.staff.find_by_guild(guild_id)
		staff_ids = {member.user_id for member in staff}

		for case in cases:
			for lawyer_id in case.assigned_lawyer_ids:
				if lawyer_id not in staff_ids:
					issues.append(make_repairable_issue(
						CASE, case, 'critical',
						f"Assigned lawyer {lawyer_id} not found in staff records",
						field_name='assigned_lawyer_ids',
						repair_action=list_remove_repair(self.repositories.case, case.id, 'assigned_lawyer_ids', lawyer_id),
						repair_patch={'assigned_lawyer_ids': [lid for lid in case.assigned_lawyer_ids if lid != lawyer_id]},
					))

			if case.lead_attorney_id and case.lead_attorney_id not in case.assigned_lawyer_ids:
				issues.append(make_repairable_issue(
					CASE, case, 'warning',
					'Lead attorney is not in assigned lawyers list',
					field_name='lead_attorney_id',
					repair_action=list_append_repair(
						self.repositories.case, case.id, 'assigned_lawyer_ids', case.lead_attorney_id,
					),
					repair_patch={'assigned_lawyer_ids': case.assigned_lawyer_ids + [case.lead_attorney_id]},
				))

		applications = await self.repositories.application.find_by_guild(guild_id)
		jobs = await self.repositories.job.find_by_guild(guild_id)
		job_ids = {job.id for job in jobs}

		for application in applications:
			if application.job_id not in job_ids:
				issues.append(make_issue(
					APPLICATION, application, 'critical',
					f"Application references non-existent job {application.job_id}",
					field_name='job_id',
				))

		return issues

	async def check_referential_integrity(self, guild_id: str) -> list[ValidationIssue]:
		"""Check that reminders only reference existing cases."""
		logger.info(f"Checking referential integrity for {guild_id}")
		issues: list[ValidationIssue] = []

		cases = await self.repositories.case.find_by_guild(guild_id)
		case_ids = {case.id for case in cases}
		reminders = await self.repositories.reminder.find_by_guild(guild_id)

		for reminder in reminders:
			if reminder.case_id and reminder.case_id not in case_ids:
				patch = {'case_id': None, 'is_active': False}
				issues.append(make_repairable_issue(
					REMINDER, reminder, 'info',
					f"Reminder references non-existent case {reminder.case_id}",
					field_name='case_id',
					repair_action=update_repair(self.repositories.reminder, reminder.id, patch),
					repair_patch=patch,
				))

		return issues
