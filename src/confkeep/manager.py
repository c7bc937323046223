"""
Registry that loads and saves named config objects.

Each registered config is bound to a file name under the manager's root
directory and persisted with the manager's codec.

"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TypeVar

import platformdirs

from confkeep.base import ConfigBase
from confkeep.codec import ConfigCodec, JsonCommentCodec, resolve_file_name
from confkeep.errors import ConfigSaveError, DuplicateConfigError

ConfigT = TypeVar("ConfigT", bound=ConfigBase)

# Overrides the platform config directory; the app name is appended
CONFIG_DIR_ENV_VAR = "CONFKEEP_CONFIG_DIR"


class AutoLoadPolicy(Enum):
	"""Whether configs are loaded as soon as they are registered."""

	EAGER = "eager"
	MANUAL = "manual"


@dataclass(frozen=True)
class ConfigEntry:
	"""A registered config and the file it lives in."""

	file_name: str
	config: ConfigBase
	extension: str


def resolve_root_dir(app_name: str, root_dir: Path | str | None = None) -> Path:
	"""
	Resolve the directory config files are stored in.

	Args:
	    app_name: Application name
	    root_dir: Explicit directory (optional)

	Returns:
	    ``root_dir`` if given, else ``$CONFKEEP_CONFIG_DIR/<app_name>`` if set,
	    else the platform user config directory for the app

	"""
	if root_dir is not None:
		return Path(root_dir).expanduser()
	env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
	if env_dir:
		return Path(env_dir).expanduser() / app_name
	return Path(platformdirs.user_config_dir(app_name))


class ConfigManager:
	"""Registers, loads and saves config objects for one application."""

	def __init__(
		self,
		app_name: str,
		*,
		root_dir: Path | str | None = None,
		codec: ConfigCodec | None = None,
		logger: logging.Logger | None = None,
		policy: AutoLoadPolicy = AutoLoadPolicy.EAGER,
	) -> None:
		"""
		Initialize the manager.

		Args:
		    app_name: Application name, used for the default directory and logger
		    root_dir: Directory holding the config files (optional)
		    codec: Codec used for every config (defaults to JSON)
		    logger: Logger to report to (defaults to one named after the app)
		    policy: Whether to load configs on registration

		"""
		self.app_name = app_name
		self.root_dir = resolve_root_dir(app_name, root_dir)
		self.codec: ConfigCodec = codec if codec is not None else JsonCommentCodec()
		self.log = logger if logger is not None else logging.getLogger(app_name)
		self.policy = policy
		self._entries: dict[str, ConfigEntry] = {}
		self._lock = threading.Lock()

	@property
	def entries(self) -> list[ConfigEntry]:
		"""Snapshot of the registered entries."""
		with self._lock:
			return list(self._entries.values())

	def register(self, file_name: str, config: ConfigT) -> ConfigT:
		"""
		Register a config under a file name.

		Args:
		    file_name: Base file name; the codec extension is appended if missing
		    config: Config instance

		Returns:
		    The same config instance

		Raises:
		    DuplicateConfigError: If the file name is already registered

		"""
		entry = ConfigEntry(file_name, config, self.codec.default_extension)
		with self._lock:
			if file_name in self._entries:
				msg = f"Duplicate config: {file_name}"
				raise DuplicateConfigError(msg)
			self._entries[file_name] = entry

		if self.policy is AutoLoadPolicy.EAGER:
			self._load(entry)
		return config

	def get(self, file_name: str) -> ConfigBase:
		"""
		Get a registered config.

		Raises:
		    KeyError: If no config is registered under ``file_name``

		"""
		with self._lock:
			return self._entries[file_name].config

	def file_path(self, file_name: str) -> Path:
		"""Path of the file a registered config is stored in."""
		with self._lock:
			entry = self._entries[file_name]
		return self._path_for(entry)

	def load(self, file_name: str) -> None:
		"""Load one registered config from disk."""
		with self._lock:
			entry = self._entries[file_name]
		self._load(entry)

	def load_all(self) -> None:
		"""Load every registered config."""
		for entry in self.entries:
			self._load(entry)

	def save(self, file_name: str) -> None:
		"""
		Save one registered config.

		Raises:
		    ConfigSaveError: If the file could not be written

		"""
		with self._lock:
			entry = self._entries[file_name]
		self._save(entry)

	def save_all(self) -> None:
		"""Save every registered config."""
		for entry in self.entries:
			self._save(entry)

	def save_dirty(self) -> None:
		"""Save only configs with unsaved changes."""
		for entry in self.entries:
			if entry.config.is_dirty:
				self._save(entry)

	def _path_for(self, entry: ConfigEntry) -> Path:
		return self.root_dir / resolve_file_name(entry.file_name, entry.extension)

	def _load(self, entry: ConfigEntry) -> None:
		path = self._path_for(entry)
		config = entry.config
		try:
			config.reset_defaults()
			result = self.codec.merge_into(path, config)

			validated = config.validate(config)
			if validated is not config:
				config.copy_from(validated)

			config.after_load()
			config.mark_clean()
		except Exception:
			self.log.warning("Failed to read %s. Regenerating defaults.", path, exc_info=True)
			config.reset_defaults()
			self._save(entry)
			return

		if result.needs_rewrite:
			self.log.debug(
				"Rewriting %s (exists=%s, missing_keys=%s, parse_error=%s)",
				path,
				result.file_exists,
				result.missing_keys,
				result.parse_error,
			)
			self._save(entry)

	def _save(self, entry: ConfigEntry) -> None:
		path = self._path_for(entry)
		config = entry.config
		try:
			self.root_dir.mkdir(parents=True, exist_ok=True)
			config.before_save()
			self.codec.write(path, config)
		except OSError as e:
			self.log.exception("Failed to save %s", path)
			msg = f"Failed to save {path}: {e}"
			raise ConfigSaveError(msg) from e

		config.mark_clean()
		self.log.info("Saved %s", path)
