"""
Cross-entity integrity validation and repair.

Components:
- Rule registry with dependency-aware ordering
- Built-in firm rules for staff, cases, hiring and client records
- Tenant scans, deep consistency checks and batch validation
- Repair engine with audit trail and retries
"""

from firmguard.validation.cache import ValidationCache
from firmguard.validation.consistency import ConsistencyChecker
from firmguard.validation.engine import SCAN_ORDER, CrossEntityValidator
from firmguard.validation.models import (
	SEVERITY_ORDER,
	FailedRepair,
	IntegrityReport,
	RepairResult,
	ValidationContext,
	ValidationIssue,
	ValidationRule,
)
from firmguard.validation.queue import ValidationQueue
from firmguard.validation.registry import RuleRegistry
from firmguard.validation.repair import RepairEngine

__all__ = [
	'CrossEntityValidator',
	'SCAN_ORDER',
	'ConsistencyChecker',
	'RepairEngine',
	'RuleRegistry',
	'ValidationCache',
	'ValidationQueue',
	'SEVERITY_ORDER',
	'FailedRepair',
	'IntegrityReport',
	'RepairResult',
	'ValidationContext',
	'ValidationIssue',
	'ValidationRule',
]
