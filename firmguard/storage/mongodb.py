"""
MongoDB connection for the integrity engine

One lazily opened motor client per process. Every firm collection lives under
the 'firmguard_' prefix so the engine can share a database with the bot.
"""

import asyncio
import logging
import os
from typing import Any
from urllib.parse import urlparse

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase

from firmguard.errors import ConfigurationError

logger = logging.getLogger(__name__)

COLLECTION_PREFIX = "firmguard_"

# Applied to server selection and connect; socket reads get twice as long
DEFAULT_TIMEOUT_MS = 5000

_client: AsyncIOMotorClient | None = None
_database: AsyncIOMotorDatabase | None = None


def get_collection_name(base_name: str) -> str:
	"""
	Prefix a collection name once.

	>>> get_collection_name('staff')
	'firmguard_staff'
	>>> get_collection_name('firmguard_cases')
	'firmguard_cases'
	"""
	if base_name.startswith(COLLECTION_PREFIX):
		return base_name
	return COLLECTION_PREFIX + base_name


def get_mongodb_url() -> str:
	"""MONGODB_URI, falling back to MONGODB_URL."""
	url = os.getenv("MONGODB_URI") or os.getenv("MONGODB_URL")
	if not url:
		raise ConfigurationError("Set MONGODB_URI (or MONGODB_URL) to the firm database connection string")
	return url


def get_mongodb_database_name() -> str:
	"""
	Resolve the database holding the firm collections.

	MONGODB_DATABASE wins; otherwise the path of the connection string is used
	(`mongodb://host/law_firm?tls=true` gives `law_firm`).

	Raises:
		ConfigurationError: If neither source names a database
	"""
	explicit = os.getenv("MONGODB_DATABASE")
	if explicit:
		return explicit

	url = os.getenv("MONGODB_URI") or os.getenv("MONGODB_URL") or ""
	from_path = urlparse(url).path.strip('/')
	if from_path:
		return from_path

	raise ConfigurationError("Set MONGODB_DATABASE or put the database name in the MONGODB_URI path")


def _timeout_ms() -> int:
	raw = os.getenv("MONGODB_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))
	try:
		value = int(raw)
	except ValueError:
		raise ConfigurationError(f"MONGODB_TIMEOUT_MS must be an integer, got {raw!r}") from None
	if value <= 0:
		raise ConfigurationError(f"MONGODB_TIMEOUT_MS must be positive, got {value}")
	return value


async def get_mongodb_client() -> AsyncIOMotorClient | None:
	"""
	Return the shared client, connecting and pinging on first use.

	Returns:
		The client, or None when the server cannot be reached. A later call
		tries again.
	"""
	global _client

	if _client is not None:
		return _client

	timeout_ms = _timeout_ms()
	client = AsyncIOMotorClient(
		get_mongodb_url(),
		serverSelectionTimeoutMS=timeout_ms,
		connectTimeoutMS=timeout_ms,
		socketTimeoutMS=timeout_ms * 2,
	)
	try:
		await asyncio.wait_for(client.admin.command('ping'), timeout=timeout_ms / 1000)
	except asyncio.TimeoutError:
		logger.error(f"MongoDB did not answer a ping within {timeout_ms}ms")
		client.close()
		return None
	except Exception as e:
		logger.error(f"MongoDB connection failed: {e}")
		client.close()
		return None

	logger.info("MongoDB client connected")
	_client = client
	return _client


async def get_mongodb_database() -> AsyncIOMotorDatabase | None:
	"""Return the firm database, or None while MongoDB is unreachable."""
	global _database

	if _database is None:
		client = await get_mongodb_client()
		if client is None:
			return None
		_database = client[get_mongodb_database_name()]
		logger.info(f"Using MongoDB database '{_database.name}'")

	return _database


async def get_collection(collection_name: str) -> AsyncIOMotorCollection | None:
	"""Prefixed collection handle, or None while MongoDB is unreachable."""
	database = await get_mongodb_database()
	if database is None:
		return None
	return database[get_collection_name(collection_name)]


async def close_mongodb_connection() -> None:
	"""Close the shared client; the next access reconnects."""
	global _client, _database

	if _client is None:
		return
	_client.close()
	_client = None
	_database = None
	logger.info("MongoDB connection closed")


def describe_connection() -> dict[str, Any]:
	"""Connection state for the maintenance log."""
	return {
		'connected': _client is not None,
		'database': _database.name if _database is not None else None,
		'collection_prefix': COLLECTION_PREFIX,
	}
