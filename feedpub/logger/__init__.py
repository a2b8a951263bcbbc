"""Logging utilities for the feedpub publisher."""

from .logging_decorator import setup_logging, log_function, log_with_timer, log_detailed

__all__ = ["setup_logging", "log_function", "log_with_timer", "log_detailed"]
