"""
Domain schemas for the law firm integrity engine.
"""

from firmguard.schemas.domain import (
	ENTITY_MODELS,
	Application,
	ApplicationStatus,
	AuditAction,
	AuditDetails,
	AuditLogEntry,
	BaseEntity,
	Case,
	CaseStatus,
	EntityType,
	Feedback,
	Job,
	PromotionRecord,
	Reminder,
	Retainer,
	RetainerStatus,
	Staff,
	StaffRole,
	StaffStatus,
	utcnow,
)

__all__ = [
	'ENTITY_MODELS',
	'Application',
	'ApplicationStatus',
	'AuditAction',
	'AuditDetails',
	'AuditLogEntry',
	'BaseEntity',
	'Case',
	'CaseStatus',
	'EntityType',
	'Feedback',
	'Job',
	'PromotionRecord',
	'Reminder',
	'Retainer',
	'RetainerStatus',
	'Staff',
	'StaffRole',
	'StaffStatus',
	'utcnow',
]
