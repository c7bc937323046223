"""Lifecycle base class for config objects."""

from __future__ import annotations

import dataclasses
from typing import Self


class ConfigBase:
	"""
	Mixin for dataclass configs managed by :class:`~confkeep.manager.ConfigManager`.

	Subclasses are dataclasses whose persisted fields are declared with
	:func:`~confkeep.fields.setting`. Every hook has a working default, so a
	subclass only overrides what it needs.

	"""

	_dirty = True

	def reset_defaults(self) -> None:
		"""Restore every field to its declared default."""
		for f in dataclasses.fields(self):  # type: ignore[arg-type]
			if f.default is not dataclasses.MISSING:
				setattr(self, f.name, f.default)
			elif f.default_factory is not dataclasses.MISSING:
				setattr(self, f.name, f.default_factory())

	def validate(self, cfg: Self) -> Self:
		"""
		Validate or normalize a freshly merged config.

		Returning a different instance makes the manager copy its values back
		into this one.

		"""
		return cfg

	def copy_from(self, other: Self) -> None:
		"""Copy every field from another instance of the same type."""
		for f in dataclasses.fields(self):  # type: ignore[arg-type]
			setattr(self, f.name, getattr(other, f.name))

	def after_load(self) -> None:
		"""Run after a successful load."""

	def before_save(self) -> None:
		"""Run before the config is written."""

	def mark_dirty(self) -> None:
		"""Flag unsaved changes."""
		self._dirty = True

	def mark_clean(self) -> None:
		"""Clear the unsaved-changes flag."""
		self._dirty = False

	@property
	def is_dirty(self) -> bool:
		"""Whether the config has unsaved changes."""
		return self._dirty
