"""Job and error records persisted in a run's working directory."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


class JobFormatError(ValueError):
    """Raised when a job payload does not have the job file shape."""


@dataclass(frozen=True)
class JobRecord:
    key: str
    statement: str
    status: JobStatus = JobStatus.PENDING
    result: str | None = None
    timestamp: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status is JobStatus.COMPLETED

    def with_outcome(self, status: JobStatus, result: str, timestamp: str) -> JobRecord:
        return replace(self, status=status, result=result, timestamp=timestamp)

    def to_payload(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "query": self.statement,
            "status": self.status.value,
            "result": self.result,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> JobRecord:
        if not isinstance(payload, dict):
            raise JobFormatError("Job file root must be an object")

        key = payload.get("key")
        statement = payload.get("query")
        if not isinstance(key, str):
            raise JobFormatError("Job field 'key' must be a string")
        if not isinstance(statement, str):
            raise JobFormatError("Job field 'query' must be a string")

        try:
            status = JobStatus(payload.get("status"))
        except ValueError as exc:
            raise JobFormatError(f"Invalid job status: {payload.get('status')!r}") from exc

        result = payload.get("result")
        timestamp = payload.get("timestamp")
        if result is not None and not isinstance(result, str):
            raise JobFormatError("Job field 'result' must be a string or null")
        if timestamp is not None and not isinstance(timestamp, str):
            raise JobFormatError("Job field 'timestamp' must be a string or null")

        return cls(key=key, statement=statement, status=status, result=result, timestamp=timestamp)


@dataclass(frozen=True)
class ErrorRecord:
    key: str
    file: str
    error: str
    timestamp: str

    def to_payload(self) -> dict[str, str]:
        return {
            "key": self.key,
            "file": self.file,
            "error": self.error,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> ErrorRecord:
        if not isinstance(payload, dict):
            raise JobFormatError("Error log entries must be objects")
        values: dict[str, str] = {}
        for field_name in ("key", "file", "error", "timestamp"):
            value = payload.get(field_name)
            if not isinstance(value, str):
                raise JobFormatError(f"Error log field '{field_name}' must be a string")
            values[field_name] = value
        return cls(**values)
