"""
Law firm domain data schemas.

This module defines Pydantic models for the seven business entities the integrity
engine validates (staff, cases, applications, jobs, retainers, feedback, reminders)
plus the audit log entry written by the repair engine.

Status and role fields are plain strings rather than enums: the engine has to load
records that are already corrupted (e.g. an unknown staff status) so that it can
report and repair them. The enums below list the canonical values.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
	"""Current time as a naive UTC datetime (the form MongoDB returns)."""
	return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Enumerations
# =============================================================================

class EntityType(str, Enum):
	"""The seven record kinds validated by the integrity engine."""

	STAFF = "staff"
	CASE = "case"
	APPLICATION = "application"
	JOB = "job"
	RETAINER = "retainer"
	FEEDBACK = "feedback"
	REMINDER = "reminder"


class StaffStatus(str, Enum):
	"""Employment status of a staff member."""

	ACTIVE = "active"
	INACTIVE = "inactive"
	TERMINATED = "terminated"


class StaffRole(str, Enum):
	"""Firm hierarchy, most senior first."""

	MANAGING_PARTNER = "Managing Partner"
	SENIOR_PARTNER = "Senior Partner"
	JUNIOR_PARTNER = "Junior Partner"
	SENIOR_ASSOCIATE = "Senior Associate"
	JUNIOR_ASSOCIATE = "Junior Associate"
	PARALEGAL = "Paralegal"


class CaseStatus(str, Enum):
	"""
	Case lifecycle.

	- PENDING: review requested, not yet accepted
	- IN_PROGRESS: accepted and actively worked on
	- CLOSED: completed
	"""

	PENDING = "pending"
	IN_PROGRESS = "in-progress"
	CLOSED = "closed"


class ApplicationStatus(str, Enum):
	"""Job application review status."""

	PENDING = "pending"
	ACCEPTED = "accepted"
	REJECTED = "rejected"
	WITHDRAWN = "withdrawn"


class RetainerStatus(str, Enum):
	"""Retainer agreement status."""

	PENDING = "pending"
	SIGNED = "signed"
	CANCELLED = "cancelled"


class AuditAction(str, Enum):
	"""Audit actions written by this engine."""

	SYSTEM_REPAIR = "system_repair"


# =============================================================================
# Base entity
# =============================================================================

class BaseEntity(BaseModel):
	"""
	Common fields for every tenant-scoped record.

	`id` maps to MongoDB's `_id`; ObjectIds are converted to their string form.
	"""

	model_config = ConfigDict(
		populate_by_name=True,
		extra='allow',
		validate_assignment=True,
	)

	id: str | None = Field(default=None, alias='_id', description="Stable record identifier")
	guild_id: str = Field(description="Tenant (chat server) identifier")
	created_at: datetime | None = Field(default=None, description="Creation timestamp; None when the stored record has none")
	updated_at: datetime = Field(default_factory=utcnow, description="Last update timestamp")

	@field_validator('id', mode='before')
	@classmethod
	def coerce_id(cls, v: Any) -> str | None:
		"""Accept ObjectId and other identifier types."""
		if v is None:
			return None
		return str(v)

	@field_validator('*', mode='after')
	@classmethod
	def normalize_datetimes(cls, v: Any) -> Any:
		"""Store all datetimes as naive UTC so they compare with MongoDB values."""
		if isinstance(v, datetime) and v.tzinfo is not None:
			return v.astimezone(timezone.utc).replace(tzinfo=None)
		return v

	def to_document(self) -> dict[str, Any]:
		"""Serialize for storage, using `_id` and omitting an unset id."""
		doc = self.model_dump(by_alias=True)
		if doc.get('_id') is None:
			doc.pop('_id', None)
		return doc


# =============================================================================
# Entities
# =============================================================================

class PromotionRecord(BaseModel):
	"""One entry in a staff member's promotion history."""

	model_config = ConfigDict(populate_by_name=True, extra='allow')

	from_role: str
	to_role: str
	promoted_by: str
	promoted_at: datetime = Field(default_factory=utcnow)
	reason: str | None = None
	action_type: str = Field(default="promotion", description="promotion, demotion, hire or fire")


class Staff(BaseEntity):
	"""A firm employee."""

	user_id: str = Field(description="Chat platform user ID")
	roblox_username: str = ""
	role: str = Field(default=StaffRole.PARALEGAL.value)
	hired_at: datetime | None = None
	hired_by: str | None = None
	promotion_history: list[PromotionRecord] = Field(default_factory=list)
	status: str = Field(default=StaffStatus.ACTIVE.value)
	discord_role_id: str | None = None


class Case(BaseEntity):
	"""A client case handled by the firm."""

	case_number: str = ""
	client_id: str = Field(description="Chat platform user ID of the client")
	client_username: str = ""
	title: str = ""
	description: str = ""
	status: str = Field(default=CaseStatus.PENDING.value)
	priority: str = "medium"
	lead_attorney_id: str | None = None
	assigned_lawyer_ids: list[str] = Field(default_factory=list)
	channel_id: str | None = None
	result: str | None = None
	result_notes: str | None = None
	closed_at: datetime | None = None
	closed_by: str | None = None


class Application(BaseEntity):
	"""A job application."""

	job_id: str
	applicant_id: str
	roblox_username: str = ""
	answers: list[dict[str, Any]] = Field(default_factory=list)
	status: str = Field(default=ApplicationStatus.PENDING.value)
	reviewed_by: str | None = None
	reviewed_at: datetime | None = None
	review_reason: str | None = None


class Job(BaseEntity):
	"""A job posting."""

	title: str = ""
	description: str = ""
	staff_role: str = ""
	role_id: str | None = None
	limit: int | None = None
	is_open: bool = True
	questions: list[dict[str, Any]] = Field(default_factory=list)
	posted_by: str | None = None
	closed_at: datetime | None = None
	closed_by: str | None = None
	application_count: int = 0
	hired_count: int = 0


class Retainer(BaseEntity):
	"""A client retainer agreement with a lawyer."""

	client_id: str
	lawyer_id: str
	status: str = Field(default=RetainerStatus.PENDING.value)
	agreement_template: str = ""
	client_roblox_username: str | None = None
	digital_signature: str | None = None
	signed_at: datetime | None = None


class Feedback(BaseEntity):
	"""Client feedback about a staff member or the firm as a whole."""

	submitter_id: str
	submitter_username: str = ""
	target_staff_id: str | None = None
	target_staff_username: str | None = None
	rating: int = Field(default=5, ge=1, le=5)
	comment: str = ""
	is_for_firm: bool = False


class Reminder(BaseEntity):
	"""A scheduled reminder, optionally tied to a case channel."""

	user_id: str
	username: str = ""
	message: str = ""
	scheduled_for: datetime = Field(default_factory=utcnow)
	channel_id: str | None = None
	case_id: str | None = None
	is_active: bool = True
	delivered_at: datetime | None = None


# =============================================================================
# Audit log
# =============================================================================

class AuditDetails(BaseModel):
	"""Before/after intent of an audited change."""

	before: dict[str, Any] | None = None
	after: dict[str, Any] | None = None
	reason: str | None = None
	metadata: dict[str, Any] = Field(default_factory=dict)


class AuditLogEntry(BaseModel):
	"""An audit trail record."""

	model_config = ConfigDict(populate_by_name=True, extra='allow')

	id: str | None = Field(default=None, alias='_id')
	guild_id: str
	action: AuditAction
	actor_id: str
	target_id: str | None = None
	details: AuditDetails = Field(default_factory=AuditDetails)
	timestamp: datetime = Field(default_factory=utcnow)

	@field_validator('id', mode='before')
	@classmethod
	def coerce_id(cls, v: Any) -> str | None:
		"""Accept ObjectId and other identifier types."""
		return None if v is None else str(v)


ENTITY_MODELS: dict[EntityType, type[BaseEntity]] = {
	EntityType.STAFF: Staff,
	EntityType.CASE: Case,
	EntityType.APPLICATION: Application,
	EntityType.JOB: Job,
	EntityType.RETAINER: Retainer,
	EntityType.FEEDBACK: Feedback,
	EntityType.REMINDER: Reminder,
}
