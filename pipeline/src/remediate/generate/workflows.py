"""Generate phase: selection rows in, pending job files out."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from remediate.db.batches import iter_batches
from remediate.generate.strategies import JobStrategy
from remediate.jobs.store import InvalidJobKeyError, JobStore, JobStoreError

logger = structlog.get_logger()


@dataclass(frozen=True)
class GenerateResult:
    strategy: str
    checked: int
    generated: int
    skipped: int


def generate_jobs(
    conn: Any,
    store: JobStore,
    strategy: JobStrategy,
    *,
    selection_statement: str,
    batch_size: int,
) -> GenerateResult:
    """Write one pending job per selected row that needs one.

    The strategy is bound to the selection text before the statement runs,
    so a malformed selection fails before any row is processed.
    """

    strategy.bind(selection_statement)

    checked = 0
    generated = 0
    skipped = 0
    for batch in iter_batches(conn, selection_statement, batch_size):
        for row_index in range(batch.num_rows):
            checked += 1
            job = strategy.build_job(batch, row_index)
            if job is None:
                skipped += 1
                continue
            try:
                store.save(job)
            except InvalidJobKeyError as exc:
                logger.warning("row_skipped_invalid_key", key=job.key, error=str(exc))
                skipped += 1
                continue
            except JobStoreError as exc:
                logger.error("row_skipped_unwritable_job", key=job.key[:64], error=str(exc))
                skipped += 1
                continue
            generated += 1

    if checked == 0:
        logger.warning("selection_returned_no_rows")

    result = GenerateResult(
        strategy=strategy.name.value,
        checked=checked,
        generated=generated,
        skipped=skipped,
    )
    logger.info(
        "generate_completed",
        strategy=result.strategy,
        checked=checked,
        generated=generated,
        skipped=skipped,
    )
    return result
