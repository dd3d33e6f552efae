"""
Shared helpers for built-in rules: issue construction, repair closures, and
related-entity lookups that reuse entities already fetched into the context.
"""

import logging
from typing import Any

from firmguard.repositories.base import EntityRepository
from firmguard.repositories.entities import StaffRepository
from firmguard.schemas.domain import BaseEntity, Staff, StaffStatus
from firmguard.validation.models import RepairAction, ValidationContext, ValidationIssue

logger = logging.getLogger(__name__)

# Identifier reported for entities validated before they were first saved
UNSAVED_ENTITY_ID = 'unsaved'

VALID_STAFF_STATUSES = {status.value for status in StaffStatus}


def entity_id_of(entity: BaseEntity) -> str:
	return str(entity.id) if entity.id is not None else UNSAVED_ENTITY_ID


def update_repair(repository: EntityRepository, entity_id: str, patch: dict[str, Any]) -> RepairAction:
	"""Repair that applies a field patch (None clears a field)."""
	async def repair() -> None:
		await repository.update(entity_id, dict(patch))
	return repair


def list_remove_repair(repository: EntityRepository, entity_id: str, field_name: str, value: str) -> RepairAction:
	"""Repair that removes a value from a list field, re-reading the current list first."""
	async def repair() -> None:
		current = await repository.find_by_id(entity_id)
		if current is None:
			logger.warning(f"Repair target {entity_id} no longer exists")
			return
		values = list(getattr(current, field_name) or [])
		if value in values:
			await repository.update(entity_id, {field_name: [v for v in values if v != value]})
	return repair


def list_append_repair(repository: EntityRepository, entity_id: str, field_name: str, value: str) -> RepairAction:
	"""Repair that appends a value to a list field if it is not already present."""
	async def repair() -> None:
		current = await repository.find_by_id(entity_id)
		if current is None:
			logger.warning(f"Repair target {entity_id} no longer exists")
			return
		values = list(getattr(current, field_name) or [])
		if value not in values:
			await repository.update(entity_id, {field_name: values + [value]})
	return repair


def make_issue(
	entity_type: str,
	entity: BaseEntity,
	severity: str,
	message: str,
	field_name: str | None = None,
) -> ValidationIssue:
	"""Build a non-repairable issue."""
	return ValidationIssue(
		severity=severity,
		entity_type=entity_type,
		entity_id=entity_id_of(entity),
		message=message,
		field_name=field_name,
		guild_id=entity.guild_id,
		current_value=getattr(entity, field_name, None) if field_name else None,
	)


def make_repairable_issue(
	entity_type: str,
	entity: BaseEntity,
	severity: str,
	message: str,
	field_name: str,
	repair_action: RepairAction,
	repair_patch: dict[str, Any],
) -> ValidationIssue:
	"""
	Build an auto-repairable issue.

	Entities without an id cannot be patched, so their issues are reported as
	non-repairable.
	"""
	if entity.id is None:
		return make_issue(entity_type, entity, severity, message, field_name)

	return ValidationIssue(
		severity=severity,
		entity_type=entity_type,
		entity_id=entity_id_of(entity),
		message=message,
		field_name=field_name,
		can_auto_repair=True,
		repair_action=repair_action,
		guild_id=entity.guild_id,
		current_value=getattr(entity, field_name, None),
		repair_patch=repair_patch,
	)


def find_cached(context: ValidationContext, entity_type: str, **match: Any) -> Any | None:
	"""Find an entity in the context's related-entity cache by field equality."""
	for candidate in context.related_entities.get(entity_type, []):
		if all(getattr(candidate, key, None) == value for key, value in match.items()):
			return candidate
	return None


async def find_staff_member(
	staff_repository: StaffRepository,
	context: ValidationContext,
	guild_id: str,
	user_id: str,
) -> Staff | None:
	"""Resolve a staff member by user id, preferring already-fetched records."""
	cached = find_cached(context, 'staff', guild_id=guild_id, user_id=user_id)
	if cached is not None:
		return cached
	return await staff_repository.find_by_user_id(guild_id, user_id)


async def find_by_id_cached(
	repository: EntityRepository,
	context: ValidationContext,
	entity_type: str,
	entity_id: str,
) -> Any | None:
	"""Resolve an entity by id, preferring already-fetched records."""
	cached = find_cached(context, entity_type, id=entity_id)
	if cached is not None:
		return cached
	return await repository.find_by_id(entity_id)


def normalize_role(role: str | None) -> str:
	"""'Junior Associate', 'junior_associate' and 'JUNIOR ASSOCIATE' compare equal."""
	return (role or '').strip().lower().replace('_', ' ')
