"""Utility module for confkeep."""

from .log_setup import display_error_summary, setup_logging

__all__ = [
	"display_error_summary",
	"setup_logging",
]
