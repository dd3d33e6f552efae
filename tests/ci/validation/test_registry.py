"""
Rule registry tests.

Validates:
- Priority ordering with insertion-order ties
- Declared dependencies run first regardless of priority
- Cycles fall back to priority order
- Overwrite by name keeps position
"""

import pytest

from firmguard.validation.models import ValidationRule
from firmguard.validation.registry import RuleRegistry
from firmguard.validation.rules import build_builtin_rules


async def no_issues(entity, context):
	return []


def make_rule(name, priority, entity_type='case', dependencies=None):
	return ValidationRule(
		name=name,
		entity_type=entity_type,
		priority=priority,
		validate=no_issues,
		dependencies=dependencies or [],
	)


def names(rules):
	return [rule.name for rule in rules]


class TestRuleOrdering:
	"""Test execution order per entity type."""

	def test_priority_descending_with_stable_ties(self):
		registry = RuleRegistry()
		registry.add_rule(make_rule('low', 10))
		registry.add_rule(make_rule('high-first', 50))
		registry.add_rule(make_rule('high-second', 50))

		assert names(registry.get_rules_for_type('case')) == ['high-first', 'high-second', 'low']

	def test_only_rules_of_requested_type(self):
		registry = RuleRegistry()
		registry.add_rule(make_rule('case-rule', 10))
		registry.add_rule(make_rule('staff-rule', 10, entity_type='staff'))

		assert names(registry.get_rules_for_type('staff')) == ['staff-rule']
		assert registry.get_rules_for_type('job') == []

	def test_dependency_runs_before_dependent(self):
		registry = RuleRegistry()
		registry.add_rule(make_rule('dependent', 90, dependencies=['base']))
		registry.add_rule(make_rule('base', 10))
		registry.add_rule(make_rule('middle', 50))

		assert names(registry.get_rules_for_type('case')) == ['middle', 'base', 'dependent']

	def test_dependency_outside_type_is_ignored(self):
		registry = RuleRegistry()
		registry.add_rule(make_rule('staff-base', 10, entity_type='staff'))
		registry.add_rule(make_rule('case-rule', 50, dependencies=['staff-base', 'unknown-rule']))

		assert names(registry.get_rules_for_type('case')) == ['case-rule']

	def test_cycle_falls_back_to_priority_order(self):
		registry = RuleRegistry()
		registry.add_rule(make_rule('a', 10, dependencies=['b']))
		registry.add_rule(make_rule('b', 20, dependencies=['a']))
		registry.add_rule(make_rule('free', 5))

		assert names(registry.get_rules_for_type('case')) == ['free', 'b', 'a']

	def test_builtin_staff_order(self, repositories):
		registry = RuleRegistry()
		for rule in build_builtin_rules(repositories):
			registry.add_rule(rule)

		assert names(registry.get_rules_for_type('staff')) == [
			'staff-active-check',
			'circular-reference-detection',
			'staff-role-consistency',
			'case-workload-balance',
		]
		assert names(registry.get_rules_for_type('application')) == [
			'application-job-reference',
			'application-integrity',
			'application-reviewer-reference',
		]
		assert names(registry.get_rules_for_type('case')) == [
			'temporal-consistency',
			'case-staff-assignments',
			'case-channel-existence',
		]


class TestRuleRegistration:
	"""Test insert, overwrite and lookup."""

	def test_overwrite_keeps_insertion_position(self):
		registry = RuleRegistry()
		registry.add_rule(make_rule('first', 10))
		registry.add_rule(make_rule('second', 10))
		registry.add_rule(make_rule('first', 10))

		assert names(registry.get_all_rules()) == ['first', 'second']
		assert len(registry) == 2

	def test_overwrite_invalidates_cached_order(self):
		registry = RuleRegistry()
		registry.add_rule(make_rule('a', 10))
		registry.add_rule(make_rule('b', 20))
		assert names(registry.get_rules_for_type('case')) == ['b', 'a']

		registry.add_rule(make_rule('a', 30))
		assert names(registry.get_rules_for_type('case')) == ['a', 'b']

	def test_returned_list_is_a_copy(self):
		registry = RuleRegistry()
		registry.add_rule(make_rule('a', 10))

		rules = registry.get_rules_for_type('case')
		rules.clear()

		assert names(registry.get_rules_for_type('case')) == ['a']

	def test_lookup_and_graph(self):
		registry = RuleRegistry()
		registry.add_rule(make_rule('a', 10))
		registry.add_rule(make_rule('b', 10, dependencies=['a']))

		assert 'a' in registry
		assert registry.get_rule('missing') is None
		assert registry.dependency_graph() == {'a': set(), 'b': {'a'}}

	def test_unknown_entity_type_rejected(self):
		with pytest.raises(ValueError):
			make_rule('bad', 10, entity_type='invoice')
