"""
Repositories consumed by the integrity engine.
"""

from firmguard.repositories.audit_log import AuditLogRepository, MongoAuditLogRepository
from firmguard.repositories.base import EntityRepository, MongoEntityRepository, id_filter, split_patch
from firmguard.repositories.entities import (
	CaseRepository,
	EntityRepositories,
	MongoCaseRepository,
	MongoStaffRepository,
	StaffRepository,
	create_mongo_repositories,
)
from firmguard.repositories.lookup import ExistenceLookup

__all__ = [
	'AuditLogRepository',
	'MongoAuditLogRepository',
	'EntityRepository',
	'MongoEntityRepository',
	'id_filter',
	'split_patch',
	'CaseRepository',
	'EntityRepositories',
	'MongoCaseRepository',
	'MongoStaffRepository',
	'StaffRepository',
	'create_mongo_repositories',
	'ExistenceLookup',
]
