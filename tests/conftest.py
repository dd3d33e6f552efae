"""
Pytest configuration and shared fixtures for all tests.

Provides in-memory repositories with MongoDB equality semantics (a scalar filter
on a list field matches by membership), a recording audit log, a static
chat-platform lookup, and a builder for firm records with coherent timelines.
"""

from datetime import datetime, timedelta
from typing import Any

import pytest

from firmguard.config.settings import ValidationSettings
from firmguard.repositories.audit_log import AuditLogRepository
from firmguard.repositories.base import EntityRepository
from firmguard.repositories.entities import CaseRepository, EntityRepositories, StaffRepository
from firmguard.repositories.lookup import ExistenceLookup
from firmguard.schemas.domain import (
	Application,
	AuditLogEntry,
	Case,
	Feedback,
	Job,
	Reminder,
	Retainer,
	Staff,
	utcnow,
)
from firmguard.validation.engine import CrossEntityValidator

GUILD_ID = 'guild-1'

# Records are created "now"; staff were hired a year earlier
BASE_TIME = datetime(2024, 6, 1, 12, 0, 0)
HIRE_TIME = BASE_TIME - timedelta(days=365)


class InMemoryRepository(EntityRepository):
	"""Dict-backed repository recording every update."""

	def __init__(self):
		self.entities: dict[str, Any] = {}
		self.updates: list[tuple[str, dict[str, Any]]] = []
		self.find_calls = 0
		self.fail_with: Exception | None = None
		self.fail_updates_with: Exception | None = None

	def add(self, entity):
		self.entities[entity.id] = entity
		return entity

	@staticmethod
	def _matches(entity, filters: dict[str, Any]) -> bool:
		for key, expected in filters.items():
			actual = getattr(entity, key, None)
			if isinstance(actual, list) and not isinstance(expected, list):
				if expected not in actual:
					return False
			elif actual != expected:
				return False
		return True

	async def find_by_filters(self, filters: dict[str, Any]) -> list:
		self.find_calls += 1
		if self.fail_with is not None:
			raise self.fail_with
		return [entity for entity in self.entities.values() if self._matches(entity, filters)]

	async def find_by_id(self, entity_id: str):
		self.find_calls += 1
		if self.fail_with is not None:
			raise self.fail_with
		return self.entities.get(entity_id)

	async def update(self, entity_id: str, patch: dict[str, Any]):
		if self.fail_updates_with is not None:
			raise self.fail_updates_with
		entity = self.entities.get(entity_id)
		if entity is None:
			return None
		self.updates.append((entity_id, dict(patch)))
		updated = entity.model_copy(update={**patch, 'updated_at': utcnow()})
		self.entities[entity_id] = updated
		return updated

	async def delete(self, entity_id: str) -> bool:
		return self.entities.pop(entity_id, None) is not None


class InMemoryStaffRepository(InMemoryRepository, StaffRepository):
	pass


class InMemoryCaseRepository(InMemoryRepository, CaseRepository):
	pass


class RecordingAuditLog(AuditLogRepository):
	"""Audit log keeping entries in a list."""

	def __init__(self):
		self.entries: list[AuditLogEntry] = []
		self.fail_with: Exception | None = None

	async def add(self, entry: AuditLogEntry) -> AuditLogEntry:
		if self.fail_with is not None:
			raise self.fail_with
		stored = entry.model_copy(update={'id': f"audit-{len(self.entries) + 1}"})
		self.entries.append(stored)
		return stored

	async def find_by_target(self, guild_id: str, target_id: str) -> list[AuditLogEntry]:
		return [e for e in self.entries if e.guild_id == guild_id and e.target_id == target_id]


class StaticLookup(ExistenceLookup):
	"""Chat platform lookup over fixed member and channel sets."""

	def __init__(self, members: set[str] | None = None, channels: set[str] | None = None):
		self.members = set(members or ())
		self.channels = set(channels or ())

	async def member_exists(self, guild_id: str, user_id: str) -> bool:
		return user_id in self.members

	async def channel_exists(self, guild_id: str, channel_id: str) -> bool:
		return channel_id in self.channels


class FirmData:
	"""Builds firm records into in-memory repositories."""

	def __init__(self, repositories: EntityRepositories, guild_id: str = GUILD_ID):
		self.repositories = repositories
		self.guild_id = guild_id
		self._counter = 0

	def _next_id(self, prefix: str) -> str:
		self._counter += 1
		return f"{prefix}-{self._counter}"

	def _base(self, prefix: str, overrides: dict[str, Any]) -> dict[str, Any]:
		data = {
			'_id': self._next_id(prefix),
			'guild_id': self.guild_id,
			'created_at': BASE_TIME,
			'updated_at': BASE_TIME,
		}
		data.update(overrides)
		return data

	def staff(self, user_id: str, **overrides) -> Staff:
		data = self._base('staff', {
			'user_id': user_id,
			'role': 'Senior Associate',
			'status': 'active',
			'hired_at': HIRE_TIME,
			'created_at': HIRE_TIME,
		})
		data.update(overrides)
		return self.repositories.staff.add(Staff(**data))

	def case(self, **overrides) -> Case:
		data = self._base('case', {'client_id': 'client-1', 'status': 'in-progress'})
		data.update(overrides)
		return self.repositories.case.add(Case(**data))

	def job(self, **overrides) -> Job:
		data = self._base('job', {'title': 'Paralegal', 'is_open': True})
		data.update(overrides)
		return self.repositories.job.add(Job(**data))

	def application(self, job_id: str, **overrides) -> Application:
		data = self._base('application', {'job_id': job_id, 'applicant_id': 'applicant-1'})
		data.update(overrides)
		return self.repositories.application.add(Application(**data))

	def retainer(self, lawyer_id: str, **overrides) -> Retainer:
		data = self._base('retainer', {'client_id': 'client-1', 'lawyer_id': lawyer_id})
		data.update(overrides)
		return self.repositories.retainer.add(Retainer(**data))

	def feedback(self, **overrides) -> Feedback:
		data = self._base('feedback', {'submitter_id': 'client-1', 'rating': 4})
		data.update(overrides)
		return self.repositories.feedback.add(Feedback(**data))

	def reminder(self, **overrides) -> Reminder:
		data = self._base('reminder', {'user_id': 'user-1', 'message': 'Court hearing'})
		data.update(overrides)
		return self.repositories.reminder.add(Reminder(**data))


@pytest.fixture
def repositories() -> EntityRepositories:
	"""Empty in-memory repositories for every entity type."""
	return EntityRepositories(
		staff=InMemoryStaffRepository(),
		case=InMemoryCaseRepository(),
		application=InMemoryRepository(),
		job=InMemoryRepository(),
		retainer=InMemoryRepository(),
		feedback=InMemoryRepository(),
		reminder=InMemoryRepository(),
	)


@pytest.fixture
def audit_log() -> RecordingAuditLog:
	return RecordingAuditLog()


@pytest.fixture
def firm(repositories) -> FirmData:
	return FirmData(repositories)


@pytest.fixture
def settings(monkeypatch) -> ValidationSettings:
	"""Default settings, independent of the developer's environment."""
	for name in (
		'FIRMGUARD_CACHE_TTL_SECONDS',
		'FIRMGUARD_MAX_CONCURRENT_VALIDATIONS',
		'FIRMGUARD_BATCH_SIZE',
		'FIRMGUARD_OPTIMIZED_BATCH_SIZE',
		'FIRMGUARD_REPAIR_MAX_RETRIES',
		'FIRMGUARD_REPAIR_RETRY_DELAY_SECONDS',
		'FIRMGUARD_RULE_TIMEOUT_SECONDS',
		'FIRMGUARD_VALIDATION_LEVEL',
	):
		monkeypatch.delenv(name, raising=False)
	settings = ValidationSettings()
	settings.repair_retry_delay_seconds = 0.0
	return settings


@pytest.fixture
def validator(repositories, audit_log, settings) -> CrossEntityValidator:
	return CrossEntityValidator(repositories, audit_log, settings=settings)


@pytest.fixture
def lookup() -> StaticLookup:
	"""Lookup with no members or channels; tests add what should exist."""
	return StaticLookup()
