"""
Error types for the integrity engine.

Business inconsistencies are never raised; they are reported as ValidationIssue
objects. These exceptions cover infrastructure and configuration failures only.
"""


class FirmGuardError(Exception):
	"""Base class for all firmguard errors."""


class ConfigurationError(FirmGuardError):
	"""Raised when environment configuration is missing or malformed."""


class RepositoryError(FirmGuardError):
	"""
	Raised when an entity store operation fails.

	Wraps driver exceptions so callers can isolate storage failures without
	depending on the driver's exception types.
	"""

	def __init__(self, message: str, operation: str, collection: str | None = None):
		super().__init__(message)
		self.operation = operation
		self.collection = collection

	def __str__(self) -> str:
		base = super().__str__()
		if self.collection:
			return f"{base} (operation={self.operation}, collection={self.collection})"
		return f"{base} (operation={self.operation})"
