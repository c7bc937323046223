"""
Structured document model.

A document is a tree of plain Python values: ``None``, ``bool``, ``int``,
``float``, ``str``, ``list`` and ``dict``. It is the intermediate form between
the text on disk and typed config objects. Dicts keep insertion order so that
written files diff cleanly.

"""

from __future__ import annotations

import json
from typing import Any

import yaml

from confkeep.errors import DocumentParseError

Node = None | bool | int | float | str | list["Node"] | dict[str, "Node"]

VALUE_KEY = "value"
COMMENT_KEY = "comment"

_WRAPPER_KEYS = ({VALUE_KEY}, {VALUE_KEY, COMMENT_KEY})


def _require_object(data: Any, source: str) -> dict[str, Node]:
	if not isinstance(data, dict):
		msg = f"Top-level {source} must be an object, got: {type(data).__name__}"
		raise DocumentParseError(msg)
	return data


def parse_json(text: str) -> dict[str, Node]:
	"""
	Parse JSON text into a document.

	Args:
	    text: JSON text

	Returns:
	    The root object

	Raises:
	    DocumentParseError: If the text is malformed or the root is not an object

	"""
	try:
		data = json.loads(text)
	except ValueError as e:
		msg = f"Invalid JSON document: {e}"
		raise DocumentParseError(msg) from e
	return _require_object(data, "JSON")


def parse_yaml(text: str) -> dict[str, Node]:
	"""
	Parse YAML text into a document.

	An empty document has no root mapping and is rejected like any other
	non-mapping root.

	Args:
	    text: YAML text

	Returns:
	    The root mapping

	Raises:
	    DocumentParseError: If the text is malformed or the root is not a mapping

	"""
	try:
		data = yaml.safe_load(text)
	except yaml.YAMLError as e:
		msg = f"Invalid YAML document: {e}"
		raise DocumentParseError(msg) from e
	return _require_object(data, "YAML")


def encode_json(root: dict[str, Node]) -> str:
	"""Encode a document as pretty-printed JSON."""
	return json.dumps(root, indent=2, ensure_ascii=False) + "\n"


def encode_yaml(root: dict[str, Node]) -> str:
	"""Encode a document as block-style YAML."""
	return yaml.safe_dump(root, default_flow_style=False, sort_keys=False, allow_unicode=True)


def is_wrapper(node: Node) -> bool:
	"""
	Check whether a node is an annotated ``{value, comment?}`` wrapper.

	Args:
	    node: Node to check

	Returns:
	    True if the node is an object holding ``value`` and at most ``comment``

	"""
	return isinstance(node, dict) and set(node) in _WRAPPER_KEYS


def unwrap(node: Node) -> Node:
	"""
	Strip annotated wrappers from a node at every depth.

	Args:
	    node: Node in wrapped, flat, or mixed form

	Returns:
	    The same tree in flat form

	"""
	while is_wrapper(node):
		node = node[VALUE_KEY]  # type: ignore[index]
	if isinstance(node, list):
		return [unwrap(item) for item in node]
	if isinstance(node, dict):
		return {key: unwrap(value) for key, value in node.items()}
	return node


def wrap(node: Node, comment: str | None = None) -> dict[str, Node]:
	"""
	Wrap a node with an optional comment.

	Args:
	    node: Encoded value
	    comment: Comment text; blank comments are dropped

	Returns:
	    ``{"value": node}`` plus ``"comment"`` when a comment is present

	"""
	wrapper: dict[str, Node] = {VALUE_KEY: node}
	if comment and comment.strip():
		wrapper[COMMENT_KEY] = comment
	return wrapper
