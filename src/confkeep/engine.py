"""
Merge and serialize engine.

This module walks the exposed fields of a config dataclass. On read it decodes
document nodes into each field's declared type and assigns them in place; on
write it produces a document where every field is wrapped as
``{"value": ..., "comment": ...}``.

Both directions dispatch on a small closed set of shapes: any, union, nested
config object, sequence, string-keyed mapping and leaf. Leaf values go
through pydantic, which acts as the underlying value encoder.

"""

from __future__ import annotations

import collections.abc
import dataclasses
import json
import logging
import types
import typing
from enum import Enum
from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_json, to_jsonable_python

from confkeep.document import VALUE_KEY, Node, is_wrapper, unwrap, wrap
from confkeep.errors import FieldDecodeError
from confkeep.fields import exposed_fields, is_config_type

logger = logging.getLogger(__name__)

_NONE_TYPE = type(None)

_LIST_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_SET_ORIGINS = (set, frozenset, collections.abc.Set, collections.abc.MutableSet)
_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


@lru_cache(maxsize=None)
def _adapter(tp: Any) -> TypeAdapter:
	return TypeAdapter(tp)


def _join(path: str, name: str | int) -> str:
	if isinstance(name, int):
		return f"{path}[{name}]"
	return f"{path}.{name}" if path else name


def _strip(node: Node) -> Node:
	# Exactly one level, so a map or object keyed by "value" survives below it
	if is_wrapper(node):
		return node[VALUE_KEY]  # type: ignore[index]
	return node


# --- Decoding ---


def decode_value(node: Node, tp: Any, path: str = "", missing: list[str] | None = None) -> Any:
	"""
	Decode a document node into a value of the given type.

	One wrapper level is stripped at each step of the descent, so wrapped
	values are accepted at any depth.

	Args:
	    node: Document node, wrapped or flat
	    tp: Declared type of the destination
	    path: Dotted path used in error messages
	    missing: Collects paths of nested config fields absent from the node

	Returns:
	    The decoded value

	Raises:
	    FieldDecodeError: If the node does not match the declared type

	"""
	if missing is None:
		missing = []
	return _decode(_strip(node), tp, path, missing)


def _decode(node: Node, tp: Any, path: str, missing: list[str]) -> Any:
	if tp is Any or tp is object or isinstance(tp, str | typing.ForwardRef):
		return unwrap(node)

	origin = typing.get_origin(tp)
	args = typing.get_args(tp)

	if origin is typing.Union or origin is types.UnionType:
		return _decode_union(node, args, path, missing)
	if is_config_type(tp):
		return _decode_object(node, tp, path, missing)

	container = origin or tp
	if container is tuple:
		return _decode_tuple(node, args, path, missing)
	if container in _LIST_ORIGINS:
		item_tp = args[0] if args else Any
		return _decode_items(node, item_tp, path, missing)
	if container in _SET_ORIGINS:
		item_tp = args[0] if args else Any
		items = _decode_items(node, item_tp, path, missing)
		try:
			return frozenset(items) if container is frozenset else set(items)
		except TypeError as e:
			raise FieldDecodeError(path, f"unhashable set element: {e}") from e
	if container in _MAP_ORIGINS:
		key_tp, value_tp = args if len(args) == 2 else (Any, Any)  # noqa: PLR2004
		return _decode_mapping(node, key_tp, value_tp, path, missing)

	return _decode_leaf(node, tp, path)


def _decode_union(node: Node, args: tuple[Any, ...], path: str, missing: list[str]) -> Any:
	if node is None:
		if _NONE_TYPE in args:
			return None
		raise FieldDecodeError(path, "null is not allowed")

	errors = []
	for arm in args:
		if arm is _NONE_TYPE:
			continue
		arm_missing: list[str] = []
		try:
			value = _decode(node, arm, path, arm_missing)
		except FieldDecodeError as e:
			errors.append(e.reason)
			continue
		missing.extend(arm_missing)
		return value
	raise FieldDecodeError(path, "no union member matched (" + "; ".join(errors) + ")")


def _decode_object(node: Node, tp: type, path: str, missing: list[str]) -> Any:
	if not isinstance(node, dict):
		raise FieldDecodeError(path, f"expected an object for {tp.__name__}, got {type(node).__name__}")
	try:
		default = tp()
	except Exception as e:
		raise FieldDecodeError(path, f"cannot build a default {tp.__name__}: {e}") from e

	init_values: dict[str, Any] = {}
	late_values: dict[str, Any] = {}
	for descriptor in exposed_fields(tp):
		field_path = _join(path, descriptor.name)
		if descriptor.name not in node:
			missing.append(field_path)
			continue
		value = decode_value(node[descriptor.name], descriptor.type, field_path, missing)
		(init_values if descriptor.init else late_values)[descriptor.name] = value

	# Rebuilt through __init__ so frozen dataclasses load too
	try:
		instance = dataclasses.replace(default, **init_values) if init_values else default
		for name, value in late_values.items():
			setattr(instance, name, value)
	except Exception as e:
		raise FieldDecodeError(path, f"cannot build {tp.__name__}: {e}") from e
	return instance


def _decode_items(node: Node, item_tp: Any, path: str, missing: list[str]) -> list[Any]:
	if not isinstance(node, list):
		raise FieldDecodeError(path, f"expected an array, got {type(node).__name__}")
	return [decode_value(item, item_tp, _join(path, i), missing) for i, item in enumerate(node)]


def _decode_tuple(node: Node, args: tuple[Any, ...], path: str, missing: list[str]) -> tuple[Any, ...]:
	if not args or (len(args) == 2 and args[1] is Ellipsis):  # noqa: PLR2004
		item_tp = args[0] if args else Any
		return tuple(_decode_items(node, item_tp, path, missing))

	if not isinstance(node, list):
		raise FieldDecodeError(path, f"expected an array, got {type(node).__name__}")
	if len(node) != len(args):
		raise FieldDecodeError(path, f"expected {len(args)} elements, got {len(node)}")
	return tuple(
		decode_value(item, item_tp, _join(path, i), missing)
		for i, (item, item_tp) in enumerate(zip(node, args, strict=True))
	)


def _decode_mapping(node: Node, key_tp: Any, value_tp: Any, path: str, missing: list[str]) -> dict[Any, Any]:
	if not isinstance(node, dict):
		raise FieldDecodeError(path, f"expected an object, got {type(node).__name__}")

	result = {}
	for key, value in node.items():
		result[_decode_key(key, key_tp, path)] = decode_value(value, value_tp, _join(path, str(key)), missing)
	return result


def _decode_key(key: Any, key_tp: Any, path: str) -> Any:
	if key_tp is Any:
		return key
	if key_tp is str:
		# YAML mappings may carry int, bool or null keys
		if not isinstance(key, str):
			raise FieldDecodeError(_join(path, str(key)), f"expected a string key, got {type(key).__name__}")
		return key
	try:
		return _adapter(key_tp).validate_python(key)
	except (ValidationError, ValueError, TypeError) as e:
		raise FieldDecodeError(_join(path, str(key)), f"invalid key for {key_tp!r}") from e


def _decode_leaf(node: Node, tp: Any, path: str) -> Any:
	# Strict JSON-mode validation: no "5" -> 5 or true -> 1 coercion,
	# but enums by value and paths/datetimes from strings.
	try:
		return _adapter(tp).validate_json(to_json(unwrap(node)), strict=True)
	except ValidationError as e:
		raise FieldDecodeError(path, e.errors()[0]["msg"] if e.errors() else str(e)) from e
	except (ValueError, TypeError) as e:
		raise FieldDecodeError(path, str(e)) from e


def merge_document(root: dict[str, Node], target: Any) -> bool:
	"""
	Merge a parsed document into an already-defaulted config instance.

	A field that is absent or cannot be decoded keeps its current value; the
	remaining fields are still merged.

	Args:
	    root: Parsed root object
	    target: Config instance to update in place

	Returns:
	    True if any field (top-level or nested) was missing or undecodable

	"""
	missing_any = False
	for descriptor in exposed_fields(type(target)):
		if descriptor.name not in root:
			logger.debug("Key '%s' missing from document", descriptor.name)
			missing_any = True
			continue

		nested_missing: list[str] = []
		try:
			value = decode_value(root[descriptor.name], descriptor.type, descriptor.name, nested_missing)
			setattr(target, descriptor.name, value)
		except FieldDecodeError as e:
			logger.debug("Keeping current value of '%s': %s", descriptor.name, e)
			missing_any = True
			continue
		except AttributeError as e:
			logger.warning("Cannot assign field '%s': %s", descriptor.name, e)
			missing_any = True
			continue

		if nested_missing:
			logger.debug("Keys missing from document: %s", ", ".join(nested_missing))
			missing_any = True
	return missing_any


# --- Encoding ---


def _is_config_instance(value: Any) -> bool:
	return not isinstance(value, type) and is_config_type(type(value))


def _encode_key(key: Any) -> str | None:
	if isinstance(key, Enum):
		key = key.value
	return key if isinstance(key, str) else None


def encode_value(value: Any, *, recursive: bool = True) -> Node:
	"""
	Encode a runtime value as a document node.

	Args:
	    value: Value to encode
	    recursive: Wrap sequence elements, mapping values and nested fields too

	Returns:
	    The encoded node

	"""

	def child(item: Any) -> Node:
		encoded = encode_value(item, recursive=recursive)
		return wrap(encoded) if recursive else encoded

	if _is_config_instance(value):
		return encode_object(value, recursive=recursive, wrap_fields=recursive)
	if isinstance(value, list | tuple):
		return [child(item) for item in value]
	if isinstance(value, set | frozenset):
		nodes = [child(item) for item in value]
		return sorted(nodes, key=lambda n: json.dumps(n, sort_keys=True, default=str))
	if isinstance(value, collections.abc.Mapping):
		result: dict[str, Node] = {}
		for key, item in value.items():
			encoded_key = _encode_key(key)
			if encoded_key is None:
				logger.warning("Skipping non-string mapping key %r", key)
				continue
			result[encoded_key] = child(item)
		return result
	return to_jsonable_python(value)


def encode_object(instance: Any, *, recursive: bool = True, wrap_fields: bool = True) -> dict[str, Node]:
	"""
	Encode the exposed fields of a config instance.

	Fields that cannot be read or encoded are left out of the result.

	Args:
	    instance: Config instance
	    recursive: Wrap values below this object as well
	    wrap_fields: Wrap this object's own fields

	Returns:
	    An object node keyed by field name, in declaration order

	"""
	result: dict[str, Node] = {}
	for descriptor in exposed_fields(type(instance)):
		try:
			node = encode_value(getattr(instance, descriptor.name), recursive=recursive)
		except (AttributeError, ValueError, TypeError) as e:
			logger.warning("Omitting field '%s' from output: %s", descriptor.name, e)
			continue
		result[descriptor.name] = wrap(node, descriptor.comment) if wrap_fields else node
	return result


def to_document(instance: Any, *, recursive: bool = True) -> dict[str, Node]:
	"""
	Build the annotated document for a config instance.

	Args:
	    instance: Config instance
	    recursive: Also wrap nested values, not only top-level fields

	Returns:
	    The root object

	"""
	return encode_object(instance, recursive=recursive, wrap_fields=True)
