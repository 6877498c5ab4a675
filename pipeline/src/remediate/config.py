"""Runtime defaults for the remediation pipeline."""

from __future__ import annotations

import os
from pathlib import Path

ENV_PREFIX = "REMEDIATE_"
LOG_FILE_NAME = "batch_process.log"
TRIGGER_POLL_SECONDS = 0.1

DEFAULT_SELECTION_QUERY = "SELECT key_field, field1, field2 FROM table_name WHERE condition = 't'"
DEFAULT_UPDATE_QUERY_TEMPLATE = (
    "UPDATE table_name SET field1 = 'new_value' WHERE key_field = '{{key}}'"
)
DEFAULT_BATCH_SIZE = 100
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_CHECK_AGAIN_AFTER = 1800


def default_config_path() -> Path:
    return Path(os.getenv(f"{ENV_PREFIX}CONFIG", "remediate.json"))
