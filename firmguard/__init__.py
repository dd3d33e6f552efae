"""
FirmGuard - Cross-Entity Integrity Engine

Validates and repairs the records of a multi-tenant law firm management bot.
"""

from firmguard.errors import ConfigurationError, FirmGuardError, RepositoryError
from firmguard.validation import (
	CrossEntityValidator,
	IntegrityReport,
	RepairResult,
	ValidationContext,
	ValidationIssue,
	ValidationRule,
)

__all__ = [
	'CrossEntityValidator',
	'IntegrityReport',
	'RepairResult',
	'ValidationContext',
	'ValidationIssue',
	'ValidationRule',
	'ConfigurationError',
	'FirmGuardError',
	'RepositoryError',
]
