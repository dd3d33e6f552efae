"""
Integrity maintenance runner

Scans one tenant's records, logs the findings, and optionally repairs them.

Run with: python -m firmguard.run_maintenance --guild-id 123
Deep check and repair: python -m firmguard.run_maintenance --guild-id 123 --deep --repair
Retrying repair, dry run: python -m firmguard.run_maintenance --guild-id 123 --repair --smart --dry-run
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def configure_logging() -> None:
	"""Configure root logging; set FIRMGUARD_DEBUG=true for debug output."""
	debug_mode = os.getenv('FIRMGUARD_DEBUG', 'false').lower() == 'true'

	logging.basicConfig(
		level=logging.DEBUG if debug_mode else logging.INFO,
		format='%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
		force=True,
	)

	# MongoDB driver loggers only show errors unless MONGODB_DEBUG_LOGS=true
	mongodb_debug = os.getenv('MONGODB_DEBUG_LOGS', 'false').lower() == 'true'
	mongodb_log_level = logging.DEBUG if mongodb_debug else logging.ERROR
	for name in ('motor', 'motor.motor_asyncio', 'pymongo', 'pymongo.serverSelection', 'pymongo.connection'):
		logging.getLogger(name).setLevel(mongodb_log_level)

	logging.getLogger('firmguard.storage.mongodb').setLevel(logging.INFO)


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(description='Scan and repair law firm record integrity')
	parser.add_argument('--guild-id', required=True, help='Tenant (chat server) to check')
	parser.add_argument('--deep', action='store_true', help='Also run the deep consistency passes')
	parser.add_argument('--repair', action='store_true', help='Repair auto-repairable issues')
	parser.add_argument('--smart', action='store_true', help='Use retrying per-entity repair')
	parser.add_argument('--dry-run', action='store_true', help='Count repairs without applying them')
	parser.add_argument('--max-retries', type=int, default=None, help='Attempts per issue for --smart')
	return parser


async def run(args: argparse.Namespace) -> int:
	"""
	Run one maintenance pass.

	Returns:
		Process exit code: 0 when no critical issues remain, 1 otherwise
	"""
	from firmguard.repositories import MongoAuditLogRepository, create_mongo_repositories
	from firmguard.storage import close_mongodb_connection, describe_connection
	from firmguard.validation import CrossEntityValidator

	logger.info('=' * 70)
	logger.info(f'Integrity maintenance for guild {args.guild_id}')
	logger.info('=' * 70)

	validator = CrossEntityValidator(create_mongo_repositories(), MongoAuditLogRepository())

	try:
		if args.deep:
			report = await validator.perform_deep_integrity_check(args.guild_id)
		else:
			report = await validator.scan_for_integrity_issues(args.guild_id)

		# The scan's first fetch opens the connection
		logger.info(f'MongoDB: {describe_connection()}')

		summary = report.summary()
		logger.info(f"Scanned {summary['entities_scanned']} entities, found {summary['issues']} issues")
		logger.info(f"   By severity: {summary['by_severity']}")
		logger.info(f"   By entity type: {summary['by_entity_type']}")
		logger.info(f"   Auto-repairable: {summary['repairable']}")
		for issue in report.issues:
			logger.info(f"   [{issue.severity}] {issue.entity_type} {issue.entity_id}: {issue.message}")
		if not report.is_complete:
			logger.warning(f"Scan incomplete: {report.scan_gaps}")

		remaining_critical = report.issues_by_severity.get('critical', 0)

		if args.repair and report.repairable_issues:
			if args.smart:
				result = await validator.smart_repair(report.issues, max_retries=args.max_retries, dry_run=args.dry_run)
			else:
				result = await validator.repair_integrity_issues(report.issues, dry_run=args.dry_run)

			logger.info(f"Repaired {result.issues_repaired}, failed {result.issues_failed}")
			for failed in result.failed_repairs:
				logger.warning(f"   {failed.issue.entity_type} {failed.issue.entity_id}: {failed.error}")

			if not args.dry_run:
				remaining_critical -= sum(1 for issue in result.repaired_issues if issue.severity == 'critical')

		if remaining_critical > 0:
			logger.error(f"{remaining_critical} critical issues remain")
			return 1
		return 0
	finally:
		await close_mongodb_connection()


def main(argv: list[str] | None = None) -> int:
	# .env.local takes precedence over .env
	load_dotenv(dotenv_path='.env.local', override=False)
	load_dotenv(override=False)

	configure_logging()
	args = build_parser().parse_args(argv)

	try:
		return asyncio.run(run(args))
	except Exception as e:
		logger.error(f'Maintenance run failed: {e}', exc_info=True)
		return 2


if __name__ == '__main__':
	sys.exit(main())
