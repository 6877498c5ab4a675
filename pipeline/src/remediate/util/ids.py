"""ID generators: run IDs and default working directory names."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

RESULTS_DIR_PREFIX = "results_"


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def results_dir_name(created_at: datetime) -> str:
    """Default working directory name.

    Format:
        results_<unix seconds>
    """

    return f"{RESULTS_DIR_PREFIX}{int(_to_utc(created_at).timestamp())}"


def generate_run_id() -> str:
    """Generate a pipeline run ID as UUIDv4."""

    return str(uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


__all__ = ["generate_run_id", "results_dir_name", "utc_now_iso"]
