"""
Audit log repository.

The repair engine writes one `system_repair` entry per executed repair.
"""

import logging
from abc import ABC, abstractmethod

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from firmguard.errors import RepositoryError
from firmguard.schemas.domain import AuditLogEntry
from firmguard.storage.mongodb import get_collection, get_collection_name

logger = logging.getLogger(__name__)

AUDIT_LOG_COLLECTION = 'audit_logs'


class AuditLogRepository(ABC):
	"""Append-only audit trail."""

	@abstractmethod
	async def add(self, entry: AuditLogEntry) -> AuditLogEntry:
		"""Persist an entry and return it with its assigned id."""

	@abstractmethod
	async def find_by_target(self, guild_id: str, target_id: str) -> list[AuditLogEntry]:
		"""Entries about one target entity, oldest first."""


class MongoAuditLogRepository(AuditLogRepository):
	"""MongoDB-backed audit trail."""

	def __init__(self, collection: AsyncIOMotorCollection | None = None):
		self.collection_name = get_collection_name(AUDIT_LOG_COLLECTION)
		self._collection = collection

	async def _get_collection(self) -> AsyncIOMotorCollection:
		if self._collection is None:
			self._collection = await get_collection(self.collection_name)
		if self._collection is None:
			raise RepositoryError("MongoDB not available", operation='connect', collection=self.collection_name)
		return self._collection

	async def add(self, entry: AuditLogEntry) -> AuditLogEntry:
		collection = await self._get_collection()
		doc = entry.model_dump(by_alias=True, mode='python')
		doc.pop('_id', None)
		doc['action'] = entry.action.value
		try:
			result = await collection.insert_one(doc)
		except PyMongoError as e:
			logger.error(f"Failed to write audit entry for {entry.target_id}: {e}", exc_info=True)
			raise RepositoryError(str(e), operation='insert', collection=self.collection_name) from e
		return entry.model_copy(update={'id': str(result.inserted_id)})

	async def find_by_target(self, guild_id: str, target_id: str) -> list[AuditLogEntry]:
		collection = await self._get_collection()
		entries = []
		try:
			async for doc in collection.find({'guild_id': guild_id, 'target_id': target_id}).sort('timestamp', 1):
				entries.append(AuditLogEntry.model_validate(doc))
		except PyMongoError as e:
			raise RepositoryError(str(e), operation='find', collection=self.collection_name) from e
		return entries
