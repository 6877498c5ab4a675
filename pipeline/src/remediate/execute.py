"""Execute phase: replay stored statements and record their outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import psycopg
import structlog

from remediate.jobs.models import ErrorRecord, JobRecord, JobStatus
from remediate.jobs.store import JobStore, JobStoreError
from remediate.util.ids import utc_now_iso

logger = structlog.get_logger()

RESULT_SUCCESS = "success - operation completed"
RESULT_SUCCESS_NO_ROWS = "success"
RESULT_NO_ROWS_ERROR = "no rows updated"


class NoRowsPolicy(str, Enum):
    """Outcome for a statement that raised nothing but returned and changed nothing."""

    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ExecuteResult:
    total: int
    succeeded: int
    failed: int
    skipped: int


def _affected_anything(cur: Any) -> bool:
    if cur.description is not None:
        return True
    rowcount = cur.rowcount
    return rowcount is not None and rowcount > 0


def _run_statement(conn: Any, statement: str) -> bool:
    """Run one statement; True when it produced rows or changed rows."""

    with conn.cursor() as cur:
        cur.execute(statement)
        return _affected_anything(cur)


def _record_failure(store: JobStore, path: Path, job: JobRecord, error: str, timestamp: str) -> JobRecord:
    store.append_error(
        ErrorRecord(key=job.key, file=path.name, error=error, timestamp=timestamp)
    )
    return job.with_outcome(JobStatus.FAILED, f"error: {error}", timestamp)


def execute_jobs(
    conn: Any,
    store: JobStore,
    *,
    no_rows_policy: NoRowsPolicy = NoRowsPolicy.COMPLETED,
) -> ExecuteResult:
    """Run every non-completed job once; failures are contained per job."""

    job_files = store.job_files()
    succeeded = 0
    failed = 0
    skipped = 0

    for path in job_files:
        try:
            job = store.load(path)
        except JobStoreError as exc:
            logger.error("job_file_unreadable", file=path.name, error=str(exc))
            failed += 1
            continue

        if job.is_completed:
            logger.debug("job_already_completed", key=job.key)
            skipped += 1
            continue

        timestamp = utc_now_iso()
        try:
            affected = _run_statement(conn, job.statement)
        except psycopg.Error as exc:
            logger.error("job_execution_failed", key=job.key, error=str(exc))
            job = _record_failure(store, path, job, str(exc), timestamp)
            failed += 1
        else:
            if affected:
                job = job.with_outcome(JobStatus.COMPLETED, RESULT_SUCCESS, timestamp)
                succeeded += 1
                logger.info("job_execution_succeeded", key=job.key)
            elif no_rows_policy is NoRowsPolicy.COMPLETED:
                job = job.with_outcome(JobStatus.COMPLETED, RESULT_SUCCESS_NO_ROWS, timestamp)
                succeeded += 1
                logger.info("job_execution_no_rows", key=job.key)
            else:
                logger.error("job_execution_no_rows", key=job.key)
                job = _record_failure(store, path, job, RESULT_NO_ROWS_ERROR, timestamp)
                failed += 1

        store.rewrite(path, job)

    result = ExecuteResult(
        total=len(job_files),
        succeeded=succeeded,
        failed=failed,
        skipped=skipped,
    )
    logger.info(
        "execute_completed",
        total=result.total,
        succeeded=succeeded,
        failed=failed,
        skipped=skipped,
    )
    return result
