"""Job records and their file store."""

from .models import ErrorRecord, JobRecord, JobStatus
from .store import InvalidJobKeyError, JobStore, JobStoreError

__all__ = [
    "ErrorRecord",
    "InvalidJobKeyError",
    "JobRecord",
    "JobStatus",
    "JobStore",
    "JobStoreError",
]
