"""Exception types raised by confkeep."""

from __future__ import annotations


class ConfigError(Exception):
	"""Base class for configuration errors."""


class DocumentParseError(ConfigError):
	"""Raised when document text is malformed or its root is not an object."""


class FieldDecodeError(ConfigError):
	"""Raised when a document node cannot be decoded into a field's declared type."""

	def __init__(self, path: str, reason: str) -> None:
		"""
		Initialize the error.

		Args:
		    path: Dotted path of the field that failed to decode
		    reason: Human-readable description of the mismatch

		"""
		super().__init__(f"{path}: {reason}")
		self.path = path
		self.reason = reason


class DuplicateConfigError(ConfigError):
	"""Raised when a config is registered twice under the same file name."""


class ConfigSaveError(ConfigError):
	"""Raised when a config could not be written to disk."""
