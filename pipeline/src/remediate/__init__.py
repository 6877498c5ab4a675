"""Batch record remediation: generate, validate and execute corrective SQL jobs."""

__version__ = "0.1.0"
