"""
Repository interfaces and the MongoDB implementation shared by all entity types.

The integrity engine only depends on the abstract interfaces; the Mongo-backed
classes are what the maintenance runner wires in.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from firmguard.errors import RepositoryError
from firmguard.schemas.domain import BaseEntity, utcnow
from firmguard.storage.mongodb import get_collection, get_collection_name

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseEntity)


class EntityRepository(ABC, Generic[T]):
	"""Capability set the engine consumes for each entity type."""

	@abstractmethod
	async def find_by_filters(self, filters: dict[str, Any]) -> list[T]:
		"""Find all entities matching equality filters."""

	@abstractmethod
	async def find_by_id(self, entity_id: str) -> T | None:
		"""Find an entity by its identifier."""

	@abstractmethod
	async def update(self, entity_id: str, patch: dict[str, Any]) -> T | None:
		"""
		Apply a field patch.

		A value of None removes the field.
		"""

	@abstractmethod
	async def delete(self, entity_id: str) -> bool:
		"""Delete an entity, returning whether it existed."""

	async def find_by_guild(self, guild_id: str) -> list[T]:
		"""Find every entity of a tenant."""
		return await self.find_by_filters({'guild_id': guild_id})


def split_patch(patch: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
	"""Split a patch into fields to set and fields to remove."""
	to_set = {key: value for key, value in patch.items() if value is not None}
	to_unset = [key for key, value in patch.items() if value is None]
	return to_set, to_unset


def id_filter(entity_id: str) -> dict[str, Any]:
	"""Build an `_id` filter, matching ObjectIds when the id looks like one."""
	if isinstance(entity_id, str) and len(entity_id) == 24 and ObjectId.is_valid(entity_id):
		return {'_id': ObjectId(entity_id)}
	return {'_id': entity_id}


class MongoEntityRepository(EntityRepository[T]):
	"""
	MongoDB-backed repository for one entity type.

	Documents are stored with snake_case field names matching the pydantic schema.
	"""

	def __init__(self, model: type[T], collection_name: str, collection: AsyncIOMotorCollection | None = None):
		"""
		Initialize repository.

		Args:
			model: Pydantic model documents are converted to
			collection_name: Base collection name (prefixed automatically)
			collection: Optional pre-resolved collection (skips connection lookup)
		"""
		self.model = model
		self.collection_name = get_collection_name(collection_name)
		self._collection = collection
		self.skipped_documents = 0

	async def _get_collection(self) -> AsyncIOMotorCollection:
		if self._collection is None:
			self._collection = await get_collection(self.collection_name)
		if self._collection is None:
			raise RepositoryError("MongoDB not available", operation='connect', collection=self.collection_name)
		return self._collection

	def _to_entity(self, doc: dict[str, Any]) -> T:
		return self.model.model_validate(doc)

	async def find_by_filters(self, filters: dict[str, Any]) -> list[T]:
		"""Find matching documents, skipping any that do not load as the model."""
		collection = await self._get_collection()
		try:
			entities = []
			async for doc in collection.find(filters):
				try:
					entities.append(self._to_entity(doc))
				except ValidationError as e:
					self.skipped_documents += 1
					logger.error(
						f"Skipping malformed document {doc.get('_id')} in {self.collection_name}: "
						f"{e.error_count()} validation errors"
					)
			return entities
		except PyMongoError as e:
			logger.error(f"find failed on {self.collection_name}: {e}", exc_info=True)
			raise RepositoryError(str(e), operation='find', collection=self.collection_name) from e

	async def find_by_id(self, entity_id: str) -> T | None:
		collection = await self._get_collection()
		try:
			doc = await collection.find_one(id_filter(entity_id))
		except PyMongoError as e:
			logger.error(f"find_one failed on {self.collection_name}: {e}", exc_info=True)
			raise RepositoryError(str(e), operation='find_by_id', collection=self.collection_name) from e
		if not doc:
			return None
		try:
			return self._to_entity(doc)
		except ValidationError as e:
			raise RepositoryError(
				f"Malformed document {entity_id}: {e.error_count()} validation errors",
				operation='find_by_id',
				collection=self.collection_name,
			) from e

	async def update(self, entity_id: str, patch: dict[str, Any]) -> T | None:
		collection = await self._get_collection()
		to_set, to_unset = split_patch(patch)
		to_set['updated_at'] = utcnow()
		update: dict[str, Any] = {'$set': to_set}
		if to_unset:
			update['$unset'] = {key: "" for key in to_unset}

		try:
			doc = await collection.find_one_and_update(
				id_filter(entity_id),
				update,
				return_document=ReturnDocument.AFTER,
			)
		except PyMongoError as e:
			logger.error(f"update failed on {self.collection_name}: {e}", exc_info=True)
			raise RepositoryError(str(e), operation='update', collection=self.collection_name) from e

		if doc is None:
			logger.warning(f"update: no document {entity_id} in {self.collection_name}")
			return None
		return self._to_entity(doc)

	async def delete(self, entity_id: str) -> bool:
		collection = await self._get_collection()
		try:
			result = await collection.delete_one(id_filter(entity_id))
		except PyMongoError as e:
			logger.error(f"delete failed on {self.collection_name}: {e}", exc_info=True)
			raise RepositoryError(str(e), operation='delete', collection=self.collection_name) from e
		return result.deleted_count > 0
