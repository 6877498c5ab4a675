"""Utility helpers for the remediation pipeline."""

from .ids import generate_run_id, results_dir_name
from .normalise import cell_text, zip5

__all__ = ["cell_text", "generate_run_id", "results_dir_name", "zip5"]
