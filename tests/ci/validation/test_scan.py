"""
Tenant scan and deep integrity check tests.

Validates:
- Report counters (severity, entity type, repairable)
- Per-type isolation of fetch failures
- Orphan sweep (self-hired staff, clients who left the chat server)
- Deep consistency and referential integrity passes
"""

import pytest

from firmguard.errors import RepositoryError
from firmguard.validation.models import ValidationContext


def messages(report):
	return [issue.message for issue in report.issues]


class TestScanForIntegrityIssues:
	"""Test full tenant scans."""

	@pytest.mark.asyncio
	async def test_consistent_tenant_has_no_issues(self, validator, firm):
		firm.staff('lawyer-1')
		case = firm.case(lead_attorney_id='lawyer-1', assigned_lawyer_ids=['lawyer-1'])
		job = firm.job()
		firm.application(job.id)
		firm.retainer('lawyer-1')
		firm.feedback(target_staff_id='lawyer-1', target_staff_username='Lawyer')
		firm.reminder(case_id=case.id)

		report = await validator.scan_for_integrity_issues(firm.guild_id)

		assert report.issues == []
		assert report.total_entities_scanned == 7
		assert report.is_complete
		assert report.scan_completed_at is not None
		assert not report.has_critical_issues

	@pytest.mark.asyncio
	async def test_report_counters(self, validator, firm):
		firm.staff('lawyer-1', status='invalid_status')
		firm.staff('lawyer-2', hired_by='lawyer-2')
		firm.case(lead_attorney_id='ghost')
		firm.job(is_open=False)

		report = await validator.scan_for_integrity_issues(firm.guild_id)

		assert report.total_entities_scanned == 4
		assert report.issues_by_severity == {'critical': 2, 'warning': 1, 'info': 1}
		assert report.issues_by_entity_type == {'staff': 2, 'case': 1, 'job': 1}
		assert report.repairable_issues == 2
		assert report.has_critical_issues
		assert 'Staff member hired by themselves' in messages(report)

	@pytest.mark.asyncio
	async def test_scan_is_scoped_to_tenant(self, validator, firm):
		firm.staff('lawyer-1')
		firm.staff('other-lawyer', guild_id='guild-2', status='invalid_status')

		report = await validator.scan_for_integrity_issues(firm.guild_id)

		assert report.total_entities_scanned == 1
		assert report.issues == []

	@pytest.mark.asyncio
	async def test_fetch_failure_is_isolated_per_type(self, validator, firm, repositories):
		firm.staff('lawyer-1', status='invalid_status')
		firm.job()
		firm.reminder(case_id='case-gone')
		repositories.job.fail_with = RepositoryError('connection reset', operation='find', collection='firmguard_jobs')

		report = await validator.scan_for_integrity_issues(firm.guild_id)

		assert list(report.scan_gaps) == ['job']
		assert 'connection reset' in report.scan_gaps['job']
		assert not report.is_complete
		assert report.issues_by_entity_type == {'staff': 1, 'reminder': 1}
		assert report.total_entities_scanned == 2

	@pytest.mark.asyncio
	async def test_client_membership_checked_with_lookup(self, validator, firm, lookup):
		lookup.members.add('client-2')
		departed = firm.case(client_id='client-1')
		firm.case(client_id='client-2')

		without_lookup = await validator.scan_for_integrity_issues(firm.guild_id)
		validator.clear_validation_cache()
		with_lookup = await validator.scan_for_integrity_issues(
			firm.guild_id, ValidationContext(guild_id=firm.guild_id, lookup=lookup),
		)

		assert without_lookup.issues == []
		assert len(with_lookup.issues) == 1
		issue = with_lookup.issues[0]
		assert issue.entity_id == departed.id
		assert issue.severity == 'info'
		assert issue.field_name == 'client_id'
		assert issue.can_auto_repair is False

	@pytest.mark.asyncio
	async def test_second_scan_uses_cache(self, validator, firm):
		firm.staff('lawyer-1', status='invalid_status')

		first = await validator.scan_for_integrity_issues(firm.guild_id)
		hits_before = validator.cache.hits
		second = await validator.scan_for_integrity_issues(firm.guild_id)

		assert validator.cache.hits == hits_before + 1
		assert messages(first) == messages(second)


class TestDeepIntegrityCheck:
	"""Test the data consistency and referential integrity passes."""

	@pytest.mark.asyncio
	async def test_lead_missing_from_assigned_is_found_by_deep_pass_only(self, validator, firm, repositories):
		firm.staff('lawyer-1')
		case = firm.case(lead_attorney_id='lawyer-1', assigned_lawyer_ids=[])

		scan = await validator.scan_for_integrity_issues(firm.guild_id)
		validator.clear_validation_cache()
		deep = await validator.perform_deep_integrity_check(firm.guild_id)

		assert scan.issues == []
		assert len(deep.issues) == 1
		issue = deep.issues[0]
		assert issue.severity == 'warning'
		assert issue.field_name == 'lead_attorney_id'
		assert issue.can_auto_repair is True
		assert deep.issues_by_severity['warning'] == 1
		assert deep.repairable_issues == 1

		await validator.repair_integrity_issues(deep.issues)

		assert repositories.case.entities[case.id].assigned_lawyer_ids == ['lawyer-1']

	@pytest.mark.asyncio
	async def test_application_with_missing_job(self, validator, firm):
		firm.job()
		firm.application('job-gone')

		report = await validator.perform_deep_integrity_check(firm.guild_id)

		assert report.issues_by_entity_type == {'application': 2}
		assert report.issues_by_severity['critical'] == 2
		assert 'Application references non-existent job job-gone' in messages(report)

	@pytest.mark.asyncio
	async def test_assigned_lawyer_missing_from_staff(self, validator, firm):
		firm.case(assigned_lawyer_ids=['ghost'])

		report = await validator.perform_deep_integrity_check(firm.guild_id)

		assert 'Assigned lawyer ghost not found in staff records' in messages(report)
		assert report.issues_by_severity['critical'] == 2

	@pytest.mark.asyncio
	async def test_reminder_with_missing_case_is_deactivated(self, validator, firm, repositories, audit_log):
		reminder = firm.reminder(case_id='case-gone')

		report = await validator.perform_deep_integrity_check(firm.guild_id)

		assert report.issues_by_severity == {'critical': 0, 'warning': 1, 'info': 1}
		assert report.repairable_issues == 2

		result = await validator.repair_integrity_issues(report.issues)

		assert result.issues_repaired == 2
		repaired = repositories.reminder.entities[reminder.id]
		assert repaired.case_id is None
		assert repaired.is_active is False
		assert len(audit_log.entries) == 2

	@pytest.mark.asyncio
	async def test_deep_pass_failures_are_isolated(self, validator, firm, repositories):
		firm.staff('lawyer-1', status='invalid_status')
		repositories.case.fail_with = RepositoryError('timeout', operation='find')

		report = await validator.perform_deep_integrity_check(firm.guild_id)

		assert set(report.scan_gaps) == {'case', 'data_consistency', 'referential_integrity'}
		assert report.issues_by_entity_type == {'staff': 1}
