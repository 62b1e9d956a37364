"""Operator command line for partition lifecycle operations.

Run with: python -m partition_lifecycle.cli <command>

Results are printed as JSON on stdout; logs go to the configured handlers.
The exit code is 0 when the operation completed without failures, 1 when
it reported failures or raised an application error.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from datetime import date
from typing import Any

from partition_lifecycle.core import close_db, init_db, set_run_id, setup_logging
from partition_lifecycle.core.exceptions import PartitionLifecycleError
from partition_lifecycle.core.logging import get_logger
from partition_lifecycle.services.partition_manager import PartitionLifecycleManager

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="partition_lifecycle",
        description="Manage monthly partitions of PostgreSQL time-series tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Show recommendations for every monitored table
    python -m partition_lifecycle.cli health

    # Provision the first half of 2025 for StudySession
    python -m partition_lifecycle.cli create StudySession 2025-01-01 2025-06-30

    # Nightly job: extend, clean up and report
    python -m partition_lifecycle.cli maintain
        """,
    )
    parser.add_argument(
        "--init-schema",
        action="store_true",
        help="Create the parent and archive tables if missing before running",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("health", help="Partition health report")

    info = subparsers.add_parser("info", help="List partitions")
    info.add_argument("--table", help="Limit to one table")

    subparsers.add_parser("efficiency", help="Check tables are partitioned and not oversized")
    subparsers.add_parser("check-size", help="Extend partitions of tables over threshold")

    create = subparsers.add_parser("create", help="Create monthly partitions for a date range")
    create.add_argument("table_name", help="Partitioned parent table")
    create.add_argument("start_date", type=date.fromisoformat, help="YYYY-MM-DD (inclusive)")
    create.add_argument("end_date", type=date.fromisoformat, help="YYYY-MM-DD (inclusive)")

    subparsers.add_parser("cleanup", help="Archive and drop partitions past retention")
    subparsers.add_parser("maintain", help="Run check-size, cleanup and health")

    return parser


async def run_command(
    manager: PartitionLifecycleManager, parsed: argparse.Namespace
) -> tuple[dict[str, Any], bool]:
    """Run one lifecycle command.

    Args:
        manager: Partition lifecycle manager
        parsed: Parsed command line

    Returns:
        Tuple of (JSON-serializable result, whether the operation had failures)
    """
    command = parsed.command

    if command == "health":
        return (await manager.get_partition_health_report()).to_dict(), False

    if command == "info":
        if parsed.table:
            info = {parsed.table: await manager.get_partition_info(parsed.table)}
        else:
            info = await manager.get_partition_info_for_all()
        partitions = {name: [p.to_dict() for p in parts] for name, parts in info.items()}
        return {"partitions": partitions}, False

    if command == "efficiency":
        report = await manager.verify_partitioning_efficiency()
        return report.to_dict(), False

    if command == "check-size":
        capacity = await manager.check_and_extend_partitions_if_needed()
        return capacity.to_dict(), bool(capacity.failures)

    if command == "create":
        provisioned = await manager.create_monthly_partitions(
            parsed.table_name, parsed.start_date, parsed.end_date
        )
        return provisioned.to_dict(), False

    if command == "cleanup":
        cleanup = await manager.cleanup_old_partitions()
        return cleanup.to_dict(), bool(cleanup.failures)

    if command == "maintain":
        maintenance = await manager.run_maintenance()
        failed = bool(maintenance.capacity.failures or maintenance.cleanup.failures)
        return maintenance.to_dict(), failed

    raise ValueError(f"Unknown command: {command}")


async def _main(parsed: argparse.Namespace) -> int:
    await init_db(create_tables=parsed.init_schema)
    try:
        manager = PartitionLifecycleManager.from_settings()
        try:
            result, failed = await run_command(manager, parsed)
        except PartitionLifecycleError as e:
            logger.error(
                f"{parsed.command} failed: {e.message}", extra={"error_code": e.error_code}
            )
            print(json.dumps({"error": e.to_dict()}, indent=2))
            return 1
    finally:
        await close_db()

    print(json.dumps(result, indent=2, default=str))
    return 1 if failed else 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for CLI.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parsed = build_parser().parse_args(args)

    setup_logging()
    set_run_id(uuid.uuid4().hex[:12])

    return asyncio.run(_main(parsed))


if __name__ == "__main__":
    sys.exit(main())
