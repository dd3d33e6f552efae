"""
Cross-Entity Integrity Engine

Validates law firm records against the registered rules, scans whole tenants,
runs the deep consistency passes, and hands repairable issues to the repair engine.

Features:
- Dependency-aware rule ordering per entity type
- TTL cache of per-entity results, cleared after every repair
- Bounded, de-duplicated concurrent validation for large batches
- Per-type isolation of fetch failures during scans
"""

import asyncio
import dataclasses
import logging
from typing import Any, Iterable

from firmguard.config.settings import ValidationSettings, get_validation_settings
from firmguard.repositories.audit_log import AuditLogRepository
from firmguard.repositories.entities import EntityRepositories
from firmguard.repositories.lookup import ExistenceLookup
from firmguard.schemas.domain import BaseEntity, EntityType, utcnow
from firmguard.validation.cache import ValidationCache
from firmguard.validation.consistency import ConsistencyChecker
from firmguard.validation.models import (
	IntegrityReport,
	RepairResult,
	ValidationContext,
	ValidationIssue,
	ValidationRule,
	cache_key,
)
from firmguard.validation.queue import ValidationQueue
from firmguard.validation.registry import RuleRegistry
from firmguard.validation.repair import RepairEngine
from firmguard.validation.rules import build_builtin_rules
from firmguard.validation.rules.common import entity_id_of

logger = logging.getLogger(__name__)

# Fixed order in which a tenant scan fetches and validates entity types
SCAN_ORDER = (
	EntityType.STAFF,
	EntityType.CASE,
	EntityType.APPLICATION,
	EntityType.JOB,
	EntityType.RETAINER,
	EntityType.FEEDBACK,
	EntityType.REMINDER,
)

OPERATIONS = ('create', 'update', 'delete')

EntityBatch = Iterable[tuple[BaseEntity, EntityType | str]]


def _result_key(entity: BaseEntity) -> str:
	"""Key for batch results: the entity id, or its JSON form when unsaved."""
	if entity.id is not None:
		return str(entity.id)
	return entity.model_dump_json()


class CrossEntityValidator:
	"""
	Integrity engine for one deployment.

	Owns the rule registry, the validation cache and the validation queue.
	Repositories and the audit log are injected.
	"""

	def __init__(
		self,
		repositories: EntityRepositories,
		audit_log: AuditLogRepository,
		settings: ValidationSettings | None = None,
		lookup: ExistenceLookup | None = None,
		cache: ValidationCache | None = None,
		register_builtin_rules: bool = True,
	):
		"""
		Initialize the integrity engine.

		Args:
			repositories: Repositories for the seven entity types
			audit_log: Audit trail for executed repairs
			settings: Engine limits (default: global settings from the environment)
			lookup: Default chat-platform lookup for contexts built by the engine
			cache: Validation cache (default: new cache with the configured TTL)
			register_builtin_rules: Register the built-in firm rules
		"""
		self.repositories = repositories
		self.audit_log = audit_log
		self.settings = settings or get_validation_settings()
		self.lookup = lookup

		self.registry = RuleRegistry()
		self.cache = cache or ValidationCache(ttl_seconds=self.settings.cache_ttl_seconds)
		self.queue = ValidationQueue(max_concurrent=self.settings.max_concurrent_validations)
		self.consistency = ConsistencyChecker(repositories)
		self.repair_engine = RepairEngine(
			audit_log,
			self.cache,
			retry_base_delay=self.settings.repair_retry_delay_seconds,
		)

		if register_builtin_rules:
			for rule in build_builtin_rules(repositories):
				self.registry.add_rule(rule)

		logger.info(f"CrossEntityValidator initialized with {len(self.registry)} rules")

	# =========================================================================
	# Context and single-entity validation
	# =========================================================================

	def _build_context(self, guild_id: str, context: ValidationContext | None) -> ValidationContext:
		"""Fill defaults for a caller-supplied (possibly absent) context."""
		if context is None:
			return ValidationContext(
				guild_id=guild_id,
				validation_level=self.settings.validation_level,
				lookup=self.lookup,
			)
		return dataclasses.replace(
			context,
			guild_id=guild_id,
			lookup=context.lookup or self.lookup,
			related_entities=dict(context.related_entities),
		)

	async def _run_rule(
		self,
		rule: ValidationRule,
		entity: BaseEntity,
		context: ValidationContext,
	) -> list[ValidationIssue]:
		timeout = self.settings.rule_timeout_seconds
		if timeout > 0:
			issues = await asyncio.wait_for(rule.validate(entity, context), timeout=timeout)
		else:
			issues = await rule.validate(entity, context)
		return list(issues or [])

	async def _validate_entity(
		self,
		entity: BaseEntity,
		entity_type: str,
		context: ValidationContext,
		rules: list[ValidationRule],
	) -> list[ValidationIssue]:
		"""
		Run rules against one entity, consulting the cache first.

		Entities without an id are never cached. Results containing a timed-out
		rule are not cached either.
		"""
		key = cache_key(entity_type, entity.id) if entity.id is not None else None
		if key is not None:
			cached = self.cache.get(key)
			if cached is not None:
				return cached

		issues: list[ValidationIssue] = []
		timed_out = False

		for rule in rules:
			if rule.entity_type != entity_type:
				continue
			try:
				issues.extend(await self._run_rule(rule, entity, context))
			except asyncio.TimeoutError:
				timed_out = True
				logger.warning(f"Validation rule '{rule.name}' timed out on {entity_type} {entity.id}")
				issues.append(ValidationIssue(
					severity='warning',
					entity_type=entity_type,
					entity_id=entity_id_of(entity),
					message=f"Validation rule '{rule.name}' timed out after {self.settings.rule_timeout_seconds}s",
					guild_id=entity.guild_id,
				))
			except Exception as e:
				logger.error(f"Error in validation rule '{rule.name}': {e}", exc_info=True)

		if key is not None and not timed_out:
			self.cache.set(key, issues)

		return issues

	async def validate_before_operation(
		self,
		entity: BaseEntity,
		entity_type: EntityType | str,
		operation: str = 'update',
		context: ValidationContext | None = None,
	) -> list[ValidationIssue]:
		"""
		Validate one entity ahead of a create, update or delete.

		Args:
			entity: Entity to validate
			entity_type: Its entity type
			operation: 'create', 'update' or 'delete'
			context: Optional context; defaults are filled in

		Returns:
			Issues found (possibly from the cache)
		"""
		if operation not in OPERATIONS:
			raise ValueError(f"Unknown operation '{operation}'")

		type_name = EntityType(entity_type).value
		ctx = self._build_context(entity.guild_id, context)
		rules = self.registry.get_rules_for_type(type_name)

		logger.debug(f"Validating {type_name} {entity.id} before {operation} ({len(rules)} rules)")
		return await self._validate_entity(entity, type_name, ctx, rules)

	# =========================================================================
	# Tenant scans
	# =========================================================================

	async def scan_for_integrity_issues(
		self,
		guild_id: str,
		context: ValidationContext | None = None,
	) -> IntegrityReport:
		"""
		Validate every entity of a tenant and run the orphan sweep.

		A type whose fetch fails is recorded in `report.scan_gaps` and the scan
		continues with the next type.

		Args:
			guild_id: Tenant to scan
			context: Optional context; defaults are filled in

		Returns:
			IntegrityReport
		"""
		logger.info(f"Starting integrity scan for {guild_id}")
		report = IntegrityReport(guild_id=guild_id, scan_started_at=utcnow())
		ctx = self._build_context(guild_id, context)

		fetched: dict[str, list[BaseEntity]] = {}

		for entity_type in SCAN_ORDER:
			type_name = entity_type.value
			try:
				entities = await self.repositories.for_type(entity_type).find_by_guild(guild_id)
			except Exception as e:
				logger.error(f"Failed to fetch {type_name} records for {guild_id}: {e}", exc_info=True)
				report.scan_gaps[type_name] = str(e) or type(e).__name__
				continue

			fetched[type_name] = entities
			ctx.related_entities[type_name] = entities
			report.total_entities_scanned += len(entities)

			rules = self.registry.get_rules_for_type(entity_type)
			for entity in entities:
				report.add_issues(await self._validate_entity(entity, type_name, ctx, rules))

		try:
			orphan_issues = await self.consistency.check_orphaned_relationships(
				guild_id,
				ctx,
				staff=fetched.get(EntityType.STAFF.value),
				cases=fetched.get(EntityType.CASE.value),
			)
			report.add_issues(orphan_issues)
		except Exception as e:
			logger.error(f"Orphan sweep failed for {guild_id}: {e}", exc_info=True)
			report.scan_gaps['orphan_sweep'] = str(e) or type(e).__name__

		report.scan_completed_at = utcnow()
		logger.info(f"Integrity scan complete: {report.summary()}")
		return report

	async def perform_deep_integrity_check(
		self,
		guild_id: str,
		context: ValidationContext | None = None,
	) -> IntegrityReport:
		"""
		Run a full scan plus the data-consistency and referential-integrity passes.

		Args:
			guild_id: Tenant to check
			context: Optional context; defaults are filled in

		Returns:
			IntegrityReport with the deep-pass issues merged in
		"""
		report = await self.scan_for_integrity_issues(guild_id, context)

		passes = (
			('data_consistency', self.consistency.check_data_consistency),
			('referential_integrity', self.consistency.check_referential_integrity),
		)
		for name, check in passes:
			try:
				report.add_issues(await check(guild_id))
			except Exception as e:
				logger.error(f"Deep check '{name}' failed for {guild_id}: {e}", exc_info=True)
				report.scan_gaps[name] = str(e) or type(e).__name__

		report.scan_completed_at = utcnow()
		logger.info(f"Deep integrity check complete: {report.summary()}")
		return report

	# =========================================================================
	# Repair
	# =========================================================================

	async def repair_integrity_issues(
		self,
		issues: list[ValidationIssue],
		dry_run: bool = False,
	) -> RepairResult:
		"""Repair issues once each in severity order. See RepairEngine."""
		return await self.repair_engine.repair_integrity_issues(issues, dry_run=dry_run)

	async def smart_repair(
		self,
		issues: list[ValidationIssue],
		max_retries: int | None = None,
		dry_run: bool = False,
	) -> RepairResult:
		"""Repair issues per entity with retries. See RepairEngine."""
		if max_retries is None:
			max_retries = self.settings.repair_max_retries
		return await self.repair_engine.smart_repair(issues, max_retries=max_retries, dry_run=dry_run)

	# =========================================================================
	# Batches
	# =========================================================================

	async def batch_validate(
		self,
		entities: EntityBatch,
		context: ValidationContext | None = None,
	) -> dict[str, list[ValidationIssue]]:
		"""
		Validate entities in fixed-size concurrent chunks.

		Args:
			entities: (entity, entity_type) pairs
			context: Optional context shared by every entity

		Returns:
			Entity id -> issues, for entities with at least one issue
		"""
		items = list(entities)
		results: dict[str, list[ValidationIssue]] = {}
		batch_size = self.settings.batch_size

		for start in range(0, len(items), batch_size):
			chunk = items[start:start + batch_size]
			chunk_results = await asyncio.gather(*(
				self.validate_before_operation(entity, entity_type, 'update', context)
				for entity, entity_type in chunk
			))
			for (entity, _), issues in zip(chunk, chunk_results):
				if issues:
					results[_result_key(entity)] = issues

		logger.debug(f"Batch validated {len(items)} entities, {len(results)} with issues")
		return results

	async def optimized_batch_validate(
		self,
		entities: EntityBatch,
		context: ValidationContext | None = None,
	) -> dict[str, list[ValidationIssue]]:
		"""
		Validate entities grouped by type through the bounded validation queue.

		Types are processed concurrently; within a type, entities are dispatched in
		sub-batches and concurrent requests for the same entity share one run.

		Args:
			entities: (entity, entity_type) pairs
			context: Optional context shared by every entity

		Returns:
			Entity id -> issues, for entities with at least one issue
		"""
		by_type: dict[str, list[BaseEntity]] = {}
		for entity, entity_type in entities:
			by_type.setdefault(EntityType(entity_type).value, []).append(entity)

		results: dict[str, list[ValidationIssue]] = {}

		async def validate_one(entity: BaseEntity, type_name: str, rules: list[ValidationRule]) -> None:
			ctx = self._build_context(entity.guild_id, context)
			if entity.id is None:
				issues = await self._validate_entity(entity, type_name, ctx, rules)
			else:
				issues = await self.queue.submit(
					cache_key(type_name, entity.id),
					lambda: self._validate_entity(entity, type_name, ctx, rules),
				)
			if issues:
				results[_result_key(entity)] = issues

		async def process_type(type_name: str, type_entities: list[BaseEntity]) -> None:
			rules = self.registry.get_rules_for_type(type_name)
			batch_size = self.settings.optimized_batch_size
			for start in range(0, len(type_entities), batch_size):
				batch = type_entities[start:start + batch_size]
				await asyncio.gather(*(validate_one(entity, type_name, rules) for entity in batch))

		await asyncio.gather(*(
			process_type(type_name, type_entities)
			for type_name, type_entities in by_type.items()
		))

		logger.debug(
			f"Optimized batch validated {sum(len(v) for v in by_type.values())} entities "
			f"across {len(by_type)} types, {len(results)} with issues"
		)
		return results

	# =========================================================================
	# Rule and cache management
	# =========================================================================

	def add_custom_rule(self, rule: ValidationRule) -> None:
		"""
		Register (or replace by name) a rule.

		Cached results were computed without it, so the cache is cleared.
		"""
		self.registry.add_rule(rule)
		self.cache.clear()
		logger.info(f"Registered validation rule '{rule.name}' for {rule.entity_type}")

	def get_validation_rules(self) -> list[ValidationRule]:
		"""All registered rules in insertion order."""
		return self.registry.get_all_rules()

	def clear_validation_cache(self) -> None:
		self.cache.clear()

	def get_stats(self) -> dict[str, Any]:
		"""Cache and queue counters."""
		return {
			'rules': len(self.registry),
			'cache_entries': len(self.cache),
			'cache_hits': self.cache.hits,
			'cache_misses': self.cache.misses,
			'queue_in_flight': self.queue.in_flight,
			'queue_peak_active': self.queue.peak_active,
			'queue_deduplicated': self.queue.deduplicated,
		}
