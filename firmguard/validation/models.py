"""
Validation data model.

Issues, rules, the validation context, and the scan/repair result types shared by
every part of the integrity engine.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from firmguard.repositories.lookup import ExistenceLookup
from firmguard.schemas.domain import EntityType

logger = logging.getLogger(__name__)

SEVERITIES = ('critical', 'warning', 'info')

# Repair precedence: lower runs first
SEVERITY_ORDER = {'critical': 0, 'warning': 1, 'info': 2}

VALIDATION_LEVELS = ('strict', 'lenient')

RepairAction = Callable[[], Awaitable[Any]]


def cache_key(entity_type: str, entity_id: str) -> str:
	"""Key used for the validation cache and in-flight de-duplication."""
	return f"{entity_type}:{entity_id}"


@dataclass
class ValidationIssue:
	"""A single inconsistency found on one entity."""
	severity: str  # 'critical', 'warning', 'info'
	entity_type: str  # 'staff', 'case', 'application', etc.
	entity_id: str
	message: str
	field_name: str | None = None
	can_auto_repair: bool = False
	repair_action: RepairAction | None = field(default=None, repr=False, compare=False)
	guild_id: str | None = None
	current_value: Any = None  # value of field_name when detected
	repair_patch: dict[str, Any] | None = None  # patch the repair applies

	def __post_init__(self):
		if self.severity not in SEVERITIES:
			raise ValueError(f"Unknown severity '{self.severity}'")
		if isinstance(self.entity_type, EntityType):
			self.entity_type = self.entity_type.value
		if self.can_auto_repair != (self.repair_action is not None):
			raise ValueError(
				f"Issue on {self.entity_type} {self.entity_id}: can_auto_repair must be set "
				f"exactly when a repair_action is provided"
			)

	@property
	def key(self) -> str:
		return cache_key(self.entity_type, self.entity_id)

	def to_dict(self) -> dict[str, Any]:
		"""Serializable view (without the repair closure)."""
		return {
			'severity': self.severity,
			'entity_type': self.entity_type,
			'entity_id': self.entity_id,
			'field': self.field_name,
			'message': self.message,
			'can_auto_repair': self.can_auto_repair,
		}


@dataclass
class ValidationContext:
	"""Per-call settings and collaborators passed to every rule."""
	guild_id: str
	validation_level: str = 'strict'  # 'strict' or 'lenient'
	lookup: ExistenceLookup | None = None
	related_entities: dict[str, list[Any]] = field(default_factory=dict)
	repair_mode: bool = False

	def __post_init__(self):
		if self.validation_level not in VALIDATION_LEVELS:
			raise ValueError(f"Unknown validation level '{self.validation_level}'")


ValidateFn = Callable[[Any, ValidationContext], Awaitable[list[ValidationIssue]]]


@dataclass
class ValidationRule:
	"""A named, prioritized, type-scoped check."""
	name: str
	entity_type: str
	priority: int
	validate: ValidateFn = field(repr=False, compare=False)
	dependencies: list[str] = field(default_factory=list)
	description: str = ""

	def __post_init__(self):
		self.entity_type = EntityType(self.entity_type).value


@dataclass
class IntegrityReport:
	"""Aggregate result of a tenant scan."""
	guild_id: str
	scan_started_at: datetime
	scan_completed_at: datetime | None = None
	total_entities_scanned: int = 0
	issues: list[ValidationIssue] = field(default_factory=list)
	issues_by_severity: dict[str, int] = field(default_factory=lambda: {s: 0 for s in SEVERITIES})
	issues_by_entity_type: dict[str, int] = field(default_factory=dict)
	repairable_issues: int = 0
	scan_gaps: dict[str, str] = field(default_factory=dict)  # entity_type -> failure reason

	@property
	def has_critical_issues(self) -> bool:
		"""Check if there are any critical issues."""
		return self.issues_by_severity.get('critical', 0) > 0

	@property
	def is_complete(self) -> bool:
		"""True when every entity type was fetched successfully."""
		return not self.scan_gaps

	def add_issues(self, issues: list[ValidationIssue]) -> None:
		"""Append issues and update every counter."""
		for issue in issues:
			self.issues.append(issue)
			self.issues_by_severity[issue.severity] = self.issues_by_severity.get(issue.severity, 0) + 1
			self.issues_by_entity_type[issue.entity_type] = self.issues_by_entity_type.get(issue.entity_type, 0) + 1
			if issue.can_auto_repair:
				self.repairable_issues += 1

	def summary(self) -> dict[str, Any]:
		"""Counters only, for logging and display."""
		duration = None
		if self.scan_completed_at:
			duration = (self.scan_completed_at - self.scan_started_at).total_seconds()
		return {
			'guild_id': self.guild_id,
			'entities_scanned': self.total_entities_scanned,
			'issues': len(self.issues),
			'by_severity': dict(self.issues_by_severity),
			'by_entity_type': dict(self.issues_by_entity_type),
			'repairable': self.repairable_issues,
			'gaps': dict(self.scan_gaps),
			'duration_seconds': duration,
		}


@dataclass
class FailedRepair:
	"""A repair whose action raised."""
	issue: ValidationIssue
	error: str


@dataclass
class RepairResult:
	"""Outcome of a repair batch."""
	total_issues_found: int = 0
	issues_repaired: int = 0
	issues_failed: int = 0
	repaired_issues: list[ValidationIssue] = field(default_factory=list)
	failed_repairs: list[FailedRepair] = field(default_factory=list)

	def mark_repaired(self, issue: ValidationIssue) -> None:
		self.issues_repaired += 1
		self.repaired_issues.append(issue)

	def mark_failed(self, issue: ValidationIssue, error: str) -> None:
		self.issues_failed += 1
		self.failed_repairs.append(FailedRepair(issue=issue, error=error))
