"""
Per-entity repositories.

Type-specific queries are expressed through `find_by_filters` so that any
store honoring MongoDB equality semantics (including array membership) can
implement them.
"""

import logging
from dataclasses import dataclass

from firmguard.repositories.base import EntityRepository, MongoEntityRepository
from firmguard.schemas.domain import (
	Application,
	Case,
	EntityType,
	Feedback,
	Job,
	Reminder,
	Retainer,
	Staff,
)

logger = logging.getLogger(__name__)

# Collection names (base names, will be prefixed automatically)
STAFF_COLLECTION = 'staff'
CASES_COLLECTION = 'cases'
APPLICATIONS_COLLECTION = 'applications'
JOBS_COLLECTION = 'jobs'
RETAINERS_COLLECTION = 'retainers'
FEEDBACK_COLLECTION = 'feedback'
REMINDERS_COLLECTION = 'reminders'


class StaffRepository(EntityRepository[Staff]):
	"""Staff store with lookup by chat user id."""

	async def find_by_user_id(self, guild_id: str, user_id: str) -> Staff | None:
		matches = await self.find_by_filters({'guild_id': guild_id, 'user_id': user_id})
		return matches[0] if matches else None


class CaseRepository(EntityRepository[Case]):
	"""Case store with lookup by assigned lawyer."""

	async def find_assigned_to_lawyer(self, lawyer_id: str) -> list[Case]:
		"""Cases (across tenants) whose assigned lawyers include `lawyer_id`."""
		return await self.find_by_filters({'assigned_lawyer_ids': lawyer_id})


class MongoStaffRepository(MongoEntityRepository[Staff], StaffRepository):
	def __init__(self, collection=None):
		super().__init__(Staff, STAFF_COLLECTION, collection)


class MongoCaseRepository(MongoEntityRepository[Case], CaseRepository):
	def __init__(self, collection=None):
		super().__init__(Case, CASES_COLLECTION, collection)


@dataclass
class EntityRepositories:
	"""The seven repositories the integrity engine reads and repairs through."""

	staff: StaffRepository
	case: CaseRepository
	application: EntityRepository[Application]
	job: EntityRepository[Job]
	retainer: EntityRepository[Retainer]
	feedback: EntityRepository[Feedback]
	reminder: EntityRepository[Reminder]

	def for_type(self, entity_type: EntityType | str) -> EntityRepository:
		"""Get the repository for an entity type."""
		return getattr(self, EntityType(entity_type).value)


def create_mongo_repositories() -> EntityRepositories:
	"""
	Build MongoDB-backed repositories for every entity type.

	Collections are resolved lazily on first use.
	"""
	return EntityRepositories(
		staff=MongoStaffRepository(),
		case=MongoCaseRepository(),
		application=MongoEntityRepository(Application, APPLICATIONS_COLLECTION),
		job=MongoEntityRepository(Job, JOBS_COLLECTION),
		retainer=MongoEntityRepository(Retainer, RETAINERS_COLLECTION),
		feedback=MongoEntityRepository(Feedback, FEEDBACK_COLLECTION),
		reminder=MongoEntityRepository(Reminder, REMINDERS_COLLECTION),
	)
