"""Offline syntax lint for stored job statements."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from remediate.jobs.store import JobStore, JobStoreError

logger = structlog.get_logger()

ALLOWED_VERBS = ("UPDATE", "INSERT", "DELETE")


@dataclass(frozen=True)
class ValidateResult:
    total: int
    valid: int
    invalid: int


def _quotes_balanced(text: str) -> bool:
    in_single = False
    in_double = False
    for char in text:
        if char == "'" and not in_double:
            in_single = not in_single
        elif char == '"' and not in_single:
            in_double = not in_double
    return not in_single and not in_double


def _parentheses_balanced(text: str) -> bool:
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def basic_sql_validation(statement: str) -> bool:
    """Cheap structural check; does not parse SQL or touch the database.

    Every check must pass: a known verb, the clauses that verb needs,
    balanced quotes and balanced parentheses.
    """

    text = statement.strip().upper()
    if not text:
        return False
    if not text.startswith(ALLOWED_VERBS):
        return False
    if text.startswith("UPDATE") and (" SET " not in text or " WHERE " not in text):
        return False
    if text.startswith("INSERT") and " VALUES " not in text and " SELECT " not in text:
        return False
    if text.startswith("DELETE") and " FROM " not in text:
        return False
    return _quotes_balanced(text) and _parentheses_balanced(text)


def validate_jobs(store: JobStore) -> ValidateResult:
    total = 0
    valid = 0
    invalid = 0
    for path in store.job_files():
        total += 1
        try:
            job = store.load(path)
        except JobStoreError as exc:
            logger.error("job_file_unreadable", file=path.name, error=str(exc))
            invalid += 1
            continue

        if basic_sql_validation(job.statement):
            logger.info("job_statement_valid", key=job.key)
            valid += 1
        else:
            logger.error("job_statement_invalid", key=job.key, query=job.statement)
            invalid += 1

    logger.info("validate_completed", total=total, valid=valid, invalid=invalid)
    return ValidateResult(total=total, valid=valid, invalid=invalid)
