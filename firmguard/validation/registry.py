"""
Rule Registry

Ordered collection of validation rules keyed by name. Rules for an entity type run
by descending priority (ties in insertion order), adjusted so that a rule never
runs before the same-type rules it declares as dependencies.
"""

import heapq
import logging

from firmguard.schemas.domain import EntityType
from firmguard.validation.models import ValidationRule

logger = logging.getLogger(__name__)


class RuleRegistry:
	"""Registry of validation rules with dependency-aware execution order."""

	def __init__(self):
		self._rules: dict[str, ValidationRule] = {}
		self._order_cache: dict[str, list[ValidationRule]] = {}

	def add_rule(self, rule: ValidationRule) -> None:
		"""
		Insert or overwrite a rule by name.

		An overwritten rule keeps its original insertion position.
		"""
		if rule.name in self._rules:
			logger.debug(f"Replacing validation rule '{rule.name}'")
		self._rules[rule.name] = rule
		self._order_cache.clear()

	def get_rule(self, name: str) -> ValidationRule | None:
		return self._rules.get(name)

	def get_all_rules(self) -> list[ValidationRule]:
		"""All rules in insertion order."""
		return list(self._rules.values())

	def dependency_graph(self) -> dict[str, set[str]]:
		"""Rule name -> names of the rules it declares as dependencies."""
		return {name: set(rule.dependencies) for name, rule in self._rules.items()}

	def get_rules_for_type(self, entity_type: EntityType | str) -> list[ValidationRule]:
		"""
		Rules for an entity type in execution order.

		Args:
			entity_type: Entity type to select

		Returns:
			New list of rules; callers may keep it across calls
		"""
		type_name = EntityType(entity_type).value
		if type_name not in self._order_cache:
			self._order_cache[type_name] = self._build_execution_order(type_name)
		return list(self._order_cache[type_name])

	def _build_execution_order(self, type_name: str) -> list[ValidationRule]:
		"""Topological sort (Kahn) with priority/insertion tie-breaking."""
		candidates = [rule for rule in self._rules.values() if rule.entity_type == type_name]
		position = {rule.name: index for index, rule in enumerate(candidates)}
		by_name = {rule.name: rule for rule in candidates}

		def sort_key(rule: ValidationRule) -> tuple[int, int]:
			return (-rule.priority, position[rule.name])

		indegree = {rule.name: 0 for rule in candidates}
		dependents: dict[str, list[str]] = {rule.name: [] for rule in candidates}

		for rule in candidates:
			for dependency in rule.dependencies:
				if dependency not in by_name:
					# Unknown or other-type dependencies cannot constrain this type's order
					logger.debug(f"Rule '{rule.name}' depends on '{dependency}' outside {type_name} rules; ignoring")
					continue
				indegree[rule.name] += 1
				dependents[dependency].append(rule.name)

		ready = [sort_key(rule) + (rule.name,) for rule in candidates if indegree[rule.name] == 0]
		heapq.heapify(ready)

		ordered: list[ValidationRule] = []
		while ready:
			*_, name = heapq.heappop(ready)
			ordered.append(by_name[name])
			for dependent in dependents[name]:
				indegree[dependent] -= 1
				if indegree[dependent] == 0:
					heapq.heappush(ready, sort_key(by_name[dependent]) + (dependent,))

		if len(ordered) < len(candidates):
			placed = {rule.name for rule in ordered}
			remaining = sorted((rule for rule in candidates if rule.name not in placed), key=sort_key)
			logger.warning(
				f"Dependency cycle among {type_name} rules: {', '.join(rule.name for rule in remaining)}; "
				f"running them in priority order"
			)
			ordered.extend(remaining)

		return ordered

	def __len__(self) -> int:
		return len(self._rules)

	def __contains__(self, name: str) -> bool:
		return name in self._rules
