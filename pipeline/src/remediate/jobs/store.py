"""File-per-record job store and the shared error log."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

from remediate.jobs.models import ErrorRecord, JobFormatError, JobRecord

JOB_SUFFIX = ".json"
ERROR_LOG_NAME = "errors.json"

_FORBIDDEN_KEY_CHARS = ("/", "\\", "\x00")
_RESERVED_KEYS = {".", "..", Path(ERROR_LOG_NAME).stem}
MAX_FILE_NAME_BYTES = 255


class JobStoreError(RuntimeError):
    """Raised when a job file or the error log cannot be read or written."""


class InvalidJobKeyError(JobStoreError):
    """Raised when a job key cannot be used as a file name."""


def check_job_key(key: str) -> str:
    if not key:
        raise InvalidJobKeyError("Job key must not be empty")
    if key in _RESERVED_KEYS:
        raise InvalidJobKeyError(f"Job key is reserved: {key!r}")
    for char in _FORBIDDEN_KEY_CHARS:
        if char in key:
            raise InvalidJobKeyError(f"Job key contains a path separator or NUL: {key!r}")
    if len(f"{key}{JOB_SUFFIX}".encode("utf-8", errors="surrogatepass")) > MAX_FILE_NAME_BYTES:
        raise InvalidJobKeyError(f"Job key is too long for a file name: {key[:32]!r}...")
    return key


def prepare_results_dir(path: Path, *, clean: bool = False) -> bool:
    """Create the working directory, wiping it first when ``clean`` is set.

    Returns True when an existing directory was wiped.
    """

    cleaned = False
    try:
        if clean and path.exists():
            shutil.rmtree(path)
            cleaned = True
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise JobStoreError(f"Unable to prepare working directory {path}: {exc}") from exc
    return cleaned


def _write_json(path: Path, payload: object) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise JobStoreError(f"Failed to write {path}: {exc}") from exc


class JobStore:
    """Jobs stored as ``<results_dir>/<key>.json`` plus ``errors.json``."""

    def __init__(self, results_dir: Path) -> None:
        self.results_dir = results_dir

    @property
    def error_log_path(self) -> Path:
        return self.results_dir / ERROR_LOG_NAME

    def path_for(self, key: str) -> Path:
        return self.results_dir / f"{check_job_key(key)}{JOB_SUFFIX}"

    def save(self, job: JobRecord) -> Path:
        path = self.path_for(job.key)
        _write_json(path, job.to_payload())
        return path

    def rewrite(self, path: Path, job: JobRecord) -> None:
        """Overwrite an existing job file in place."""

        _write_json(path, job.to_payload())

    def load(self, path: Path) -> JobRecord:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            raise JobStoreError(f"Failed to read job file {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise JobStoreError(f"Invalid JSON in job file {path}: {exc}") from exc
        try:
            return JobRecord.from_payload(payload)
        except JobFormatError as exc:
            raise JobStoreError(f"Invalid job file {path}: {exc}") from exc

    def get(self, key: str) -> JobRecord:
        return self.load(self.path_for(key))

    def job_files(self) -> list[Path]:
        """Every job file in the working directory, error log excluded."""

        if not self.results_dir.is_dir():
            return []
        return sorted(
            path
            for path in self.results_dir.iterdir()
            if path.is_file() and path.suffix == JOB_SUFFIX and path.name != ERROR_LOG_NAME
        )

    def read_errors(self) -> list[ErrorRecord]:
        path = self.error_log_path
        if not path.exists():
            return []
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise JobStoreError(f"Failed to read error log {path}: {exc}") from exc
        if not isinstance(payload, list):
            raise JobStoreError(f"Error log root must be an array: {path}")
        try:
            return [ErrorRecord.from_payload(item) for item in payload]
        except JobFormatError as exc:
            raise JobStoreError(f"Invalid error log {path}: {exc}") from exc

    def append_error(self, record: ErrorRecord) -> None:
        errors = self.read_errors()
        errors.append(record)
        _write_json(self.error_log_path, [item.to_payload() for item in errors])
