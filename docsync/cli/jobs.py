"""Inspect and maintain the sync job queue from the command line.

Usage::

    python -m docsync.cli.jobs status
    python -m docsync.cli.jobs list --status failed --limit 20
    python -m docsync.cli.jobs retry-failed
    python -m docsync.cli.jobs clear-old --days 14
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import timedelta
from typing import Any, TextIO

from docsync.application.job_queue import JobQueue
from docsync.config import AppConfig, load_config
from docsync.core.logging_utils import setup_json_logging
from docsync.db.session import DatabaseSessionManager
from docsync.domain.models.job import JobStatus
from docsync.infrastructure.persistence.sqlite.repositories import SqliteJobRepository

logger = logging.getLogger(__name__)

__all__ = ["main", "parse_args", "run_jobs_cli"]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docsync-jobs",
        description="Inspect and maintain the offline sync job queue",
        allow_abbrev=False,
    )
    parser.add_argument("--db-path", help="SQLite database path (overrides DB_PATH)")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    parser.add_argument("--log-level", default=None, help="Log level (overrides LOG_LEVEL)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="Show job counts per status")

    list_parser = sub.add_parser("list", help="List jobs in enqueue order")
    list_parser.add_argument("--status", choices=[s.value for s in JobStatus])
    list_parser.add_argument("--limit", type=int, default=50)

    sub.add_parser("retry-failed", help="Re-arm failed jobs with a fresh attempt budget")

    clear_parser = sub.add_parser("clear-old", help="Delete old completed and failed jobs")
    clear_parser.add_argument(
        "--days", type=int, default=None, help="Age in days (default SYNC_COMPLETED_RETENTION_DAYS)"
    )
    return parser.parse_args(argv)


def _prepare_config(args: argparse.Namespace) -> AppConfig:
    overrides: dict[str, Any] = {}
    if args.db_path:
        overrides["runtime"] = {"db_path": args.db_path}
    return load_config(**overrides)


def _emit(payload: Any, *, as_json: bool, out: TextIO) -> None:
    if as_json:
        out.write(json.dumps(payload, indent=2, default=str) + "\n")
        return
    if isinstance(payload, dict):
        for key, value in payload.items():
            out.write(f"{key}: {value}\n")
    elif isinstance(payload, list):
        for item in payload:
            error = f"  last_error={item['last_error']}" if item.get("last_error") else ""
            out.write(
                f"{item['job_id']}  {item['type']:<16} {item['status']:<10} "
                f"attempts={item['attempts']}  created_at={item['created_at']}{error}\n"
            )
    else:
        out.write(f"{payload}\n")


async def run_jobs_cli(
    args: argparse.Namespace, out: TextIO = sys.stdout, config: AppConfig | None = None
) -> int:
    config = config or _prepare_config(args)
    session = DatabaseSessionManager(
        path=config.runtime.db_path,
        operation_timeout=config.database.operation_timeout,
        max_retries=config.database.max_retries,
    )
    session.migrate()
    queue = JobQueue(
        SqliteJobRepository(session),
        max_attempts=config.sync.max_attempts,
        retain_completed=config.sync.retain_completed_jobs,
        retention=timedelta(days=config.sync.completed_retention_days),
    )

    try:
        if args.command == "status":
            snapshot = await queue.status_snapshot()
            _emit(
                {
                    "pending": snapshot.pending,
                    "processing": snapshot.processing,
                    "failed": snapshot.failed,
                    "completed": snapshot.completed,
                    "has_work": snapshot.has_work,
                    "has_errors": snapshot.has_errors,
                },
                as_json=args.json,
                out=out,
            )
        elif args.command == "list":
            status = JobStatus(args.status) if args.status else None
            jobs = await queue.list_jobs(status=status, limit=args.limit)
            _emit([job.to_wire() for job in jobs], as_json=args.json, out=out)
        elif args.command == "retry-failed":
            count = await queue.retry_failed_jobs()
            _emit({"rearmed": count}, as_json=args.json, out=out)
        elif args.command == "clear-old":
            age = timedelta(days=args.days) if args.days is not None else None
            count = await queue.clear_old_jobs(age)
            _emit({"cleared": count}, as_json=args.json, out=out)
    finally:
        session.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``python -m docsync.cli.jobs``."""
    args = parse_args(argv)
    config = _prepare_config(args)
    setup_json_logging(
        args.log_level or config.runtime.log_level,
        use_loguru=False,
        log_file=config.runtime.log_file,
        stream=sys.stderr,
    )
    try:
        return asyncio.run(run_jobs_cli(args, config=config))
    except KeyboardInterrupt:  # pragma: no cover - user cancelled
        return 1
    except Exception as exc:
        logger.exception("cli_jobs_failed", exc_info=exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
