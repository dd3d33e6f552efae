"""
Staff validation rules.

- Employment status must be one of the known values
- Promotion history must not contain self-promotion
- Only senior roles may lead cases
- Active caseload must stay within the role's limit
"""

import logging

from firmguard.repositories.entities import EntityRepositories
from firmguard.schemas.domain import CaseStatus, EntityType, Staff, StaffStatus
from firmguard.validation.models import ValidationContext, ValidationIssue, ValidationRule
from firmguard.validation.rules.common import (
	VALID_STAFF_STATUSES,
	make_issue,
	make_repairable_issue,
	normalize_role,
	update_repair,
)

logger = logging.getLogger(__name__)

STAFF = EntityType.STAFF.value

# Roles that may not act as lead attorney
JUNIOR_ROLES = {'paralegal', 'junior associate'}

# Maximum in-progress cases per role
WORKLOAD_LIMITS = {
	'managing partner': 20,
	'senior partner': 15,
	'junior partner': 12,
	'senior associate': 10,
	'junior associate': 8,
	'paralegal': 5,
}
DEFAULT_WORKLOAD_LIMIT = 10


class StaffRules:
	"""Built-in rules for staff records."""

	def __init__(self, repositories: EntityRepositories):
		self.repositories = repositories

	def rules(self) -> list[ValidationRule]:
		return [
			ValidationRule(
				name='staff-active-check',
				description='Validate staff members have a known employment status',
				entity_type=STAFF,
				priority=100,
				validate=self.check_status,
			),
			ValidationRule(
				name='staff-role-consistency',
				description='Validate staff roles are consistent with case leadership',
				entity_type=STAFF,
				priority=95,
				dependencies=['staff-active-check'],
				validate=self.check_role_consistency,
			),
			ValidationRule(
				name='case-workload-balance',
				description='Validate case assignments are balanced',
				entity_type=STAFF,
				priority=85,
				validate=self.check_workload,
			),
			ValidationRule(
				name='circular-reference-detection',
				description='Detect circular references in promotion history',
				entity_type=STAFF,
				priority=100,
				validate=self.check_promotion_history,
			),
		]

	async def check_status(self, staff: Staff, context: ValidationContext) -> list[ValidationIssue]:
		if staff.status in VALID_STAFF_STATUSES:
			return []

		patch = {'status': StaffStatus.INACTIVE.value}
		return [make_repairable_issue(
			STAFF, staff, 'critical',
			f"Invalid staff status: {staff.status}",
			field_name='status',
			repair_action=update_repair(self.repositories.staff, staff.id, patch),
			repair_patch=patch,
		)]

	async def check_role_consistency(self, staff: Staff, context: ValidationContext) -> list[ValidationIssue]:
		if normalize_role(staff.role) not in JUNIOR_ROLES:
			return []

		lead_cases = await self.repositories.case.find_by_filters({
			'guild_id': staff.guild_id,
			'lead_attorney_id': staff.user_id,
		})
		if not lead_cases:
			return []

		return [make_issue(
			STAFF, staff, 'critical',
			f"Staff member with role {staff.role} cannot be lead attorney on {len(lead_cases)} cases",
			field_name='role',
		)]

	async def check_workload(self, staff: Staff, context: ValidationContext) -> list[ValidationIssue]:
		if staff.status != StaffStatus.ACTIVE.value:
			return []

		assigned = await self.repositories.case.find_assigned_to_lawyer(staff.user_id)
		in_progress = [
			case for case in assigned
			if case.guild_id == staff.guild_id and case.status == CaseStatus.IN_PROGRESS.value
		]
		limit = WORKLOAD_LIMITS.get(normalize_role(staff.role), DEFAULT_WORKLOAD_LIMIT)

		if len(in_progress) <= limit:
			return []

		return [make_issue(
			STAFF, staff, 'warning',
			f"Staff member has {len(in_progress)} active cases, exceeding recommended limit of {limit}",
			field_name='case_load',
		)]

	async def check_promotion_history(self, staff: Staff, context: ValidationContext) -> list[ValidationIssue]:
		issues = []
		seen_promoters: set[str] = set()

		for promotion in staff.promotion_history:
			if promotion.promoted_by == staff.user_id:
				issues.append(make_issue(
					STAFF, staff, 'critical',
					'Circular reference detected in promotion history',
					field_name='promotion_history',
				))
				break

			if promotion.promoted_by in seen_promoters:
				issues.append(make_issue(
					STAFF, staff, 'warning',
					'Duplicate promoter detected in promotion history',
					field_name='promotion_history',
				))

			seen_promoters.add(promotion.promoted_by)

		return issues
