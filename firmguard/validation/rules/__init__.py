"""
Built-in validation rules.
"""

from firmguard.repositories.entities import EntityRepositories
from firmguard.validation.models import ValidationRule
from firmguard.validation.rules.cases import CaseRules
from firmguard.validation.rules.client import ClientRules
from firmguard.validation.rules.hiring import HiringRules
from firmguard.validation.rules.staff import DEFAULT_WORKLOAD_LIMIT, JUNIOR_ROLES, WORKLOAD_LIMITS, StaffRules


def build_builtin_rules(repositories: EntityRepositories) -> list[ValidationRule]:
	"""All built-in rules, in registration order."""
	rules: list[ValidationRule] = []
	for rule_set in (
		StaffRules(repositories),
		CaseRules(repositories),
		HiringRules(repositories),
		ClientRules(repositories),
	):
		rules.extend(rule_set.rules())
	return rules


__all__ = [
	'build_builtin_rules',
	'CaseRules',
	'ClientRules',
	'HiringRules',
	'StaffRules',
	'DEFAULT_WORKLOAD_LIMIT',
	'JUNIOR_ROLES',
	'WORKLOAD_LIMITS',
]
