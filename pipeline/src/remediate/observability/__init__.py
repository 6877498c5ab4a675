"""Logging setup."""

from .logging import bind_context, configure_logging

__all__ = ["bind_context", "configure_logging"]
