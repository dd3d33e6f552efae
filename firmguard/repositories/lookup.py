"""
External existence lookups against the chat platform.

The engine never talks to the chat platform directly. Callers that have a live
client pass an implementation of this interface in the validation context; checks
that need it are skipped when it is absent.
"""

from abc import ABC, abstractmethod


class ExistenceLookup(ABC):
	"""Tenant-scoped membership and channel existence checks."""

	@abstractmethod
	async def member_exists(self, guild_id: str, user_id: str) -> bool:
		"""Whether the user is currently a member of the tenant."""

	@abstractmethod
	async def channel_exists(self, guild_id: str, channel_id: str) -> bool:
		"""Whether the channel still exists in the tenant."""
