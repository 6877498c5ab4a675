"""CLI entrypoint for the remediation pipeline phases."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import psycopg
import structlog

from remediate.config import default_config_path
from remediate.db.connection import DataSource
from remediate.db.sql_text import SelectionError
from remediate.generate.strategies import StrategyName
from remediate.jobs.store import JobStore, JobStoreError, prepare_results_dir
from remediate.observability.logging import bind_context, configure_logging
from remediate.orchestrator import ManualTrigger, Pipeline
from remediate.settings import AppSettings, SettingsError, load_settings, with_overrides
from remediate.testdata import clean_test_data, generate_test_data
from remediate.util.ids import generate_run_id, results_dir_name

logger = structlog.get_logger()

DEFAULT_COMMAND = "test"


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="remediate", description="Batch record remediation")
    parser.add_argument("--config", type=Path, default=default_config_path(), help="JSON settings file")
    parser.add_argument("--dsn", help="PostgreSQL DSN (overrides REMEDIATE_DSN)")
    parser.add_argument("--results-dir", type=Path, help="Working directory for job files")
    parser.add_argument(
        "-c",
        "--clean",
        action="store_true",
        help="Clean existing job files before starting",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("generate", help="Generate job files from the selection query")
    subparsers.add_parser("execute", help="Execute previously generated jobs")
    subparsers.add_parser("test", help="Generate jobs, then lint them without executing")
    subparsers.add_parser("run", help="Generate and execute repeatedly (SIGUSR1 re-checks now)")

    setup_parser = subparsers.add_parser("setup-test", help="Insert synthetic test rows")
    setup_parser.add_argument("--count", type=int, default=1000)
    subparsers.add_parser("clean-test", help="Delete synthetic test rows")

    subparsers.add_parser(
        "update-county-codes",
        help=(
            "Repair county values to 3-digit FIPS codes by zip code, then execute; "
            "the selection must return key, zip, county in that order"
        ),
    )
    countyfp_parser = subparsers.add_parser(
        "update-county-code-from-countyfp",
        help="Repair county values to 2-digit county codes by zip code",
    )
    countyfp_parser.add_argument("--yes", action="store_true", help="Execute without asking")

    subparsers.add_parser("errors", help="Print the error log of the working directory")

    return parser


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload), flush=True)


def _report(event: str, payload: dict[str, Any]) -> None:
    _emit({"phase": event, **payload})


def _ask(question: str) -> bool:
    answer = input(f"{question} (Y/N): ")
    return answer.strip().upper().startswith("Y")


def _resolve_results_dir(args: argparse.Namespace, settings: AppSettings) -> Path:
    if args.results_dir is not None:
        return args.results_dir
    if settings.results_dir:
        return Path(settings.results_dir)
    return Path(results_dir_name(datetime.now(timezone.utc)))


def _data_source(settings: AppSettings) -> DataSource:
    return DataSource.from_parts(
        settings.require_dsn(),
        user=settings.db_username,
        password=settings.db_password,
        connect_timeout=settings.timeout_seconds,
    )


def _run_command(
    command: str,
    args: argparse.Namespace,
    settings: AppSettings,
    store: JobStore,
) -> None:
    if command == "errors":
        _emit({"errors": [record.to_payload() for record in store.read_errors()]})
        return

    data_source = _data_source(settings)

    if command == "setup-test":
        with data_source.connect(autocommit=True) as conn:
            seeded = generate_test_data(conn, settings, args.count)
        _emit({"phase": "setup-test", "table": seeded.table, "inserted": seeded.inserted, "failed": seeded.failed})
        return

    if command == "clean-test":
        with data_source.connect(autocommit=True) as conn:
            deleted = clean_test_data(conn, settings)
        _emit({"phase": "clean-test", "deleted": deleted})
        return

    pipeline = Pipeline(settings, data_source, store, report=_report)

    if command == "generate":
        pipeline.generate()
    elif command == "execute":
        pipeline.execute()
    elif command == "test":
        pipeline.test()
    elif command == "run":
        with ManualTrigger().listen() as trigger:
            pipeline.run_forever(trigger)
    elif command == "update-county-codes":
        pipeline.repair(StrategyName.COUNTY_FIPS, confirm=lambda: True)
    elif command == "update-county-code-from-countyfp":
        pipeline.repair(
            StrategyName.COUNTY_CODE,
            confirm=lambda: args.yes or _ask("Do you want to execute the update queries now?"),
        )
    else:
        raise SettingsError(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> int:
    parser = _parser()
    args = parser.parse_args(argv)
    command = args.command or DEFAULT_COMMAND

    logging_ready = False
    try:
        settings = with_overrides(load_settings(args.config), dsn=args.dsn)
        results_dir = _resolve_results_dir(args, settings)
        cleaned = prepare_results_dir(results_dir, clean=args.clean)
        configure_logging(results_dir, level=settings.log_level, log_format=settings.log_format)
        logging_ready = True
        bind_context(run_id=generate_run_id(), command=command)
        logger.info("remediate_started", results_dir=str(results_dir), cleaned=cleaned)

        _run_command(command, args, settings, JobStore(results_dir))

        logger.info("remediate_completed")
        _emit({"status": "ok", "command": command, "results_dir": str(results_dir)})
        return 0
    except (SettingsError, SelectionError, JobStoreError, psycopg.Error, OSError) as exc:
        if logging_ready:
            logger.error("remediate_failed", error=str(exc))
        print(json.dumps({"status": "error", "error": str(exc)}), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
