"""
Client-facing validation rules: retainers, feedback and reminders.
"""

import logging

from firmguard.repositories.entities import EntityRepositories
from firmguard.schemas.domain import EntityType, Feedback, Reminder, Retainer, StaffStatus
from firmguard.validation.models import ValidationContext, ValidationIssue, ValidationRule
from firmguard.validation.rules.common import (
	find_by_id_cached,
	find_staff_member,
	make_issue,
	make_repairable_issue,
	update_repair,
)

logger = logging.getLogger(__name__)

RETAINER = EntityType.RETAINER.value
FEEDBACK = EntityType.FEEDBACK.value
REMINDER = EntityType.REMINDER.value


class ClientRules:
	"""Built-in rules for retainers, feedback and reminders."""

	def __init__(self, repositories: EntityRepositories):
		self.repositories = repositories

	def rules(self) -> list[ValidationRule]:
		return [
			ValidationRule(
				name='retainer-lawyer-reference',
				description='Validate retainers reference existing staff lawyers',
				entity_type=RETAINER,
				priority=70,
				validate=self.check_retainer_lawyer,
			),
			ValidationRule(
				name='feedback-staff-reference',
				description='Validate feedback references existing staff members',
				entity_type=FEEDBACK,
				priority=65,
				validate=self.check_feedback_target,
			),
			ValidationRule(
				name='reminder-case-reference',
				description='Validate reminders reference existing cases',
				entity_type=REMINDER,
				priority=60,
				validate=self.check_reminder_case,
			),
			ValidationRule(
				name='reminder-channel-existence',
				description='Validate reminder channels exist on the chat platform',
				entity_type=REMINDER,
				priority=55,
				validate=self.check_reminder_channel,
			),
		]

	async def check_retainer_lawyer(self, retainer: Retainer, context: ValidationContext) -> list[ValidationIssue]:
		lawyer = await find_staff_member(self.repositories.staff, context, retainer.guild_id, retainer.lawyer_id)

		if lawyer is None:
			return [make_issue(
				RETAINER, retainer, 'critical',
				f"Lawyer {retainer.lawyer_id} not found in staff records",
				field_name='lawyer_id',
			)]

		if lawyer.status != StaffStatus.ACTIVE.value:
			return [make_issue(
				RETAINER, retainer, 'warning',
				f"Lawyer {retainer.lawyer_id} is not active (status: {lawyer.status})",
				field_name='lawyer_id',
			)]

		return []

	async def check_feedback_target(self, feedback: Feedback, context: ValidationContext) -> list[ValidationIssue]:
		if not feedback.target_staff_id or feedback.is_for_firm:
			return []

		staff = await find_staff_member(
			self.repositories.staff, context, feedback.guild_id, feedback.target_staff_id,
		)
		if staff is not None:
			return []

		# Orphaned feedback is kept as firm-wide feedback
		patch = {
			'target_staff_id': None,
			'target_staff_username': None,
			'is_for_firm': True,
		}
		return [make_repairable_issue(
			FEEDBACK, feedback, 'warning',
			f"Target staff member {feedback.target_staff_id} not found",
			field_name='target_staff_id',
			repair_action=update_repair(self.repositories.feedback, feedback.id, patch),
			repair_patch=patch,
		)]

	async def check_reminder_case(self, reminder: Reminder, context: ValidationContext) -> list[ValidationIssue]:
		if not reminder.case_id:
			return []

		case = await find_by_id_cached(self.repositories.case, context, EntityType.CASE.value, reminder.case_id)
		if case is not None:
			return []

		patch = {'case_id': None}
		return [make_repairable_issue(
			REMINDER, reminder, 'warning',
			f"Referenced case {reminder.case_id} not found",
			field_name='case_id',
			repair_action=update_repair(self.repositories.reminder, reminder.id, patch),
			repair_patch=patch,
		)]

	async def check_reminder_channel(self, reminder: Reminder, context: ValidationContext) -> list[ValidationIssue]:
		if not reminder.channel_id or not reminder.is_active or context.lookup is None:
			return []

		try:
			exists = await context.lookup.channel_exists(reminder.guild_id, reminder.channel_id)
		except Exception as e:
			logger.error(f"Error checking reminder channel {reminder.channel_id}: {e}", exc_info=True)
			return []

		if exists:
			return []

		patch = {'is_active': False}
		return [make_repairable_issue(
			REMINDER, reminder, 'warning',
			f"Reminder channel {reminder.channel_id} not found on the chat platform",
			field_name='channel_id',
			repair_action=update_repair(self.repositories.reminder, reminder.id, patch),
			repair_patch=patch,
		)]
