"""
Hiring validation rules for job postings and applications.
"""

import logging

from firmguard.repositories.entities import EntityRepositories
from firmguard.schemas.domain import Application, ApplicationStatus, EntityType, Job
from firmguard.validation.models import ValidationContext, ValidationIssue, ValidationRule
from firmguard.validation.rules.common import (
	find_by_id_cached,
	find_staff_member,
	make_issue,
	make_repairable_issue,
	update_repair,
)

logger = logging.getLogger(__name__)

APPLICATION = EntityType.APPLICATION.value
JOB = EntityType.JOB.value


class HiringRules:
	"""Built-in rules for applications and jobs."""

	def __init__(self, repositories: EntityRepositories):
		self.repositories = repositories

	def rules(self) -> list[ValidationRule]:
		return [
			ValidationRule(
				name='application-job-reference',
				description='Validate applications reference existing jobs',
				entity_type=APPLICATION,
				priority=80,
				validate=self.check_job_reference,
			),
			ValidationRule(
				name='application-reviewer-reference',
				description='Validate application reviewers are staff members',
				entity_type=APPLICATION,
				priority=75,
				validate=self.check_reviewer,
			),
			ValidationRule(
				name='job-poster-reference',
				description='Validate job postings are owned by staff and closed consistently',
				entity_type=JOB,
				priority=70,
				validate=self.check_job_posting,
			),
			ValidationRule(
				name='application-integrity',
				description='Validate application review data integrity',
				entity_type=APPLICATION,
				priority=88,
				dependencies=['application-job-reference'],
				validate=self.check_review_integrity,
			),
		]

	async def check_job_reference(self, application: Application, context: ValidationContext) -> list[ValidationIssue]:
		job = await find_by_id_cached(self.repositories.job, context, JOB, application.job_id)

		if job is None:
			return [make_issue(
				APPLICATION, application, 'critical',
				f"Referenced job {application.job_id} not found",
				field_name='job_id',
			)]

		if not job.is_open and application.status == ApplicationStatus.PENDING.value:
			patch = {
				'status': ApplicationStatus.REJECTED.value,
				'review_reason': 'Job closed before review',
			}
			return [make_repairable_issue(
				APPLICATION, application, 'warning',
				'Application is pending for a closed job',
				field_name='status',
				repair_action=update_repair(self.repositories.application, application.id, patch),
				repair_patch=patch,
			)]

		return []

	async def check_reviewer(self, application: Application, context: ValidationContext) -> list[ValidationIssue]:
		if not application.reviewed_by:
			return []

		reviewer = await find_staff_member(
			self.repositories.staff, context, application.guild_id, application.reviewed_by,
		)
		if reviewer is not None:
			return []

		return [make_issue(
			APPLICATION, application, 'warning',
			f"Reviewer {application.reviewed_by} not found in staff records",
			field_name='reviewed_by',
		)]

	async def check_review_integrity(self, application: Application, context: ValidationContext) -> list[ValidationIssue]:
		issues = []

		if (
			application.reviewed_at is not None
			and application.created_at is not None
			and application.reviewed_at < application.created_at
		):
			patch = {'reviewed_at': None}
			issues.append(make_repairable_issue(
				APPLICATION, application, 'critical',
				'Application reviewed before it was created',
				field_name='reviewed_at',
				repair_action=update_repair(self.repositories.application, application.id, patch),
				repair_patch=patch,
			))

		if application.status == ApplicationStatus.ACCEPTED.value and not application.reviewed_by:
			issues.append(make_issue(
				APPLICATION, application, 'warning',
				'Accepted application has no reviewer',
				field_name='reviewed_by',
			))

		return issues

	async def check_job_posting(self, job: Job, context: ValidationContext) -> list[ValidationIssue]:
		issues = []

		if job.posted_by:
			poster = await find_staff_member(self.repositories.staff, context, job.guild_id, job.posted_by)
			if poster is None:
				issues.append(make_issue(
					JOB, job, 'info',
					f"Job poster {job.posted_by} not found in staff records",
					field_name='posted_by',
				))

		if not job.is_open and job.closed_at is None:
			issues.append(make_issue(
				JOB, job, 'info',
				'Closed job has no closing date',
				field_name='closed_at',
			))

		return issues
