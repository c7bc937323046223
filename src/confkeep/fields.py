"""
Field descriptors for config types.

Config types are dataclasses. Only fields declared with :func:`setting` are
exposed to the codec; everything else (plain fields, transient settings,
``ClassVar`` members) is invisible to merge and write.

"""

from __future__ import annotations

import dataclasses
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

EXPOSED_KEY = "confkeep.exposed"
COMMENT_KEY = "confkeep.comment"


@dataclass(frozen=True)
class FieldDescriptor:
	"""Describes one field of a config type as seen by the codec."""

	name: str
	type: Any
	exposed: bool
	comment: str | None = None
	init: bool = True

	@property
	def has_comment(self) -> bool:
		"""Whether a non-blank comment is attached to the field."""
		return bool(self.comment and self.comment.strip())


def setting(
	default: Any = dataclasses.MISSING,
	*,
	default_factory: Any = dataclasses.MISSING,
	comment: str | None = None,
	transient: bool = False,
	**kwargs: Any,
) -> Any:
	"""
	Declare a persisted dataclass field.

	Args:
	    default: Default value
	    default_factory: Factory for mutable defaults
	    comment: Human-readable comment written next to the value
	    transient: Keep the field out of the persisted document
	    **kwargs: Passed through to :func:`dataclasses.field`

	Returns:
	    A dataclass field carrying confkeep metadata

	"""
	metadata = dict(kwargs.pop("metadata", None) or {})
	metadata[EXPOSED_KEY] = not transient
	if comment is not None:
		metadata[COMMENT_KEY] = comment
	return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata, **kwargs)


@lru_cache(maxsize=None)
def describe_fields(cls: type) -> tuple[FieldDescriptor, ...]:
	"""
	Build the descriptor table for a dataclass type, in declaration order.

	Args:
	    cls: Dataclass type

	Returns:
	    One descriptor per dataclass field; empty for non-dataclass types

	"""
	if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
		return ()

	try:
		hints = typing.get_type_hints(cls, include_extras=True)
	except (NameError, TypeError):
		# Unresolvable forward references fall back to the raw annotations.
		hints = {f.name: f.type for f in dataclasses.fields(cls)}
	return tuple(
		FieldDescriptor(
			name=f.name,
			type=hints.get(f.name, Any),
			exposed=bool(f.metadata.get(EXPOSED_KEY, False)),
			comment=f.metadata.get(COMMENT_KEY),
			init=f.init,
		)
		for f in dataclasses.fields(cls)
	)


def exposed_fields(cls: type) -> tuple[FieldDescriptor, ...]:
	"""Return the exposed fields of a config type."""
	return tuple(d for d in describe_fields(cls) if d.exposed)


def is_config_type(tp: Any) -> bool:
	"""Check whether a type is a dataclass with at least one exposed field."""
	return bool(exposed_fields(tp)) if isinstance(tp, type) else False
