"""
Case validation rules.

Checks that lead and assigned lawyers resolve to active staff, that the case
timeline is coherent, and (when a chat lookup is available) that the case channel
still exists.
"""

import logging

from firmguard.repositories.entities import EntityRepositories
from firmguard.schemas.domain import Case, EntityType, StaffStatus
from firmguard.validation.models import ValidationContext, ValidationIssue, ValidationRule
from firmguard.validation.rules.common import (
	find_staff_member,
	list_remove_repair,
	make_issue,
	make_repairable_issue,
	update_repair,
)

logger = logging.getLogger(__name__)

CASE = EntityType.CASE.value


class CaseRules:
	"""Built-in rules for case records."""

	def __init__(self, repositories: EntityRepositories):
		self.repositories = repositories

	def rules(self) -> list[ValidationRule]:
		return [
			ValidationRule(
				name='case-staff-assignments',
				description='Validate case staff assignments reference active staff',
				entity_type=CASE,
				priority=90,
				validate=self.check_staff_assignments,
			),
			ValidationRule(
				name='case-channel-existence',
				description='Validate case channels exist on the chat platform',
				entity_type=CASE,
				priority=85,
				validate=self.check_channel_exists,
			),
			ValidationRule(
				name='temporal-consistency',
				description='Validate temporal consistency between cases and staff',
				entity_type=CASE,
				priority=92,
				validate=self.check_timeline,
			),
		]

	def _remove_lawyer_issue(self, case: Case, lawyer_id: str, message: str) -> ValidationIssue:
		remaining = [lid for lid in case.assigned_lawyer_ids if lid != lawyer_id]
		return make_repairable_issue(
			CASE, case, 'critical', message,
			field_name='assigned_lawyer_ids',
			repair_action=list_remove_repair(self.repositories.case, case.id, 'assigned_lawyer_ids', lawyer_id),
			repair_patch={'assigned_lawyer_ids': remaining},
		)

	async def check_staff_assignments(self, case: Case, context: ValidationContext) -> list[ValidationIssue]:
		issues = []

		if case.lead_attorney_id:
			lead = await find_staff_member(self.repositories.staff, context, case.guild_id, case.lead_attorney_id)
			if lead is None:
				patch = {'lead_attorney_id': None}
				issues.append(make_repairable_issue(
					CASE, case, 'critical',
					f"Lead attorney {case.lead_attorney_id} not found in staff records",
					field_name='lead_attorney_id',
					repair_action=update_repair(self.repositories.case, case.id, patch),
					repair_patch=patch,
				))
			elif lead.status != StaffStatus.ACTIVE.value:
				issues.append(make_issue(
					CASE, case, 'warning',
					f"Lead attorney {case.lead_attorney_id} is not active (status: {lead.status})",
					field_name='lead_attorney_id',
				))

		for lawyer_id in case.assigned_lawyer_ids:
			lawyer = await find_staff_member(self.repositories.staff, context, case.guild_id, lawyer_id)
			if lawyer is None:
				issues.append(self._remove_lawyer_issue(
					case, lawyer_id, f"Assigned lawyer {lawyer_id} not found in staff records",
				))
			elif lawyer.status != StaffStatus.ACTIVE.value:
				issues.append(make_issue(
					CASE, case, 'warning',
					f"Assigned lawyer {lawyer_id} is not active (status: {lawyer.status})",
					field_name='assigned_lawyer_ids',
				))

		return issues

	async def check_channel_exists(self, case: Case, context: ValidationContext) -> list[ValidationIssue]:
		if not case.channel_id or context.lookup is None:
			return []

		try:
			exists = await context.lookup.channel_exists(case.guild_id, case.channel_id)
		except Exception as e:
			logger.error(f"Error checking case channel {case.channel_id}: {e}", exc_info=True)
			return []

		if exists:
			return []

		patch = {'channel_id': None}
		return [make_repairable_issue(
			CASE, case, 'warning',
			f"Case channel {case.channel_id} not found on the chat platform",
			field_name='channel_id',
			repair_action=update_repair(self.repositories.case, case.id, patch),
			repair_patch=patch,
		)]

	async def check_timeline(self, case: Case, context: ValidationContext) -> list[ValidationIssue]:
		# Records without a creation date cannot be ordered against anything
		if case.created_at is None:
			return []

		issues = []

		for lawyer_id in case.assigned_lawyer_ids:
			lawyer = await find_staff_member(self.repositories.staff, context, case.guild_id, lawyer_id)
			if lawyer is not None and lawyer.hired_at is not None and lawyer.hired_at > case.created_at:
				issues.append(self._remove_lawyer_issue(
					case, lawyer_id, f"Lawyer {lawyer_id} was hired after case was created",
				))

		if case.closed_at is not None and case.closed_at < case.created_at:
			patch = {'closed_at': None}
			issues.append(make_repairable_issue(
				CASE, case, 'critical',
				'Case closed date is before creation date',
				field_name='closed_at',
				repair_action=update_repair(self.repositories.case, case.id, patch),
				repair_patch=patch,
			))

		return issues
