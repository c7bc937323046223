"""
Codecs that read and write config instances.

A codec merges file contents into an existing, already-defaulted instance and
writes instances back to disk. The commented codecs store every exposed field
as ``{"value": ..., "comment": ...}``; on read they also accept flat values.

"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from confkeep.document import Node, encode_json, encode_yaml, parse_json, parse_yaml
from confkeep.engine import merge_document, to_document
from confkeep.errors import DocumentParseError
from confkeep.persistence import atomic_write

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
	"""
	Outcome of merging a file into an instance.

	Attributes:
	    file_exists: Whether the file was present on disk
	    missing_keys: Whether any field was missing or could not be decoded
	    parse_error: Whether the file could not be parsed at all

	"""

	file_exists: bool
	missing_keys: bool
	parse_error: bool

	@property
	def needs_rewrite(self) -> bool:
		"""Whether the file should be written back right away."""
		return not self.file_exists or self.missing_keys or self.parse_error


class ConfigCodec(Protocol):
	"""Reads and writes config instances."""

	default_extension: str

	def merge_into(self, path: Path, target: Any) -> MergeResult:
		"""Merge the file at ``path`` into ``target``."""
		...

	def write(self, path: Path, instance: Any) -> None:
		"""Write ``instance`` to ``path``."""
		...


def resolve_file_name(name: str, extension: str) -> str:
	"""
	Append the codec extension to a file name unless it is already there.

	Args:
	    name: Base file name
	    extension: Extension including the leading dot

	Returns:
	    The file name ending in ``extension``

	"""
	return name if name.endswith(extension) else name + extension


class CommentedCodec(ABC):
	"""
	Base codec storing each field with an optional comment.

	Subclasses supply the text format through :meth:`parse` and :meth:`encode`.

	"""

	default_extension = ""

	def __init__(self, *, recursive: bool = True) -> None:
		"""
		Initialize the codec.

		Args:
		    recursive: Wrap nested values as well as top-level fields. When
		        False, only top-level fields are wrapped.

		"""
		self.recursive = recursive

	@abstractmethod
	def parse(self, text: str) -> dict[str, Node]:
		"""Parse document text."""

	@abstractmethod
	def encode(self, root: dict[str, Node]) -> str:
		"""Encode a document as text."""

	def loads(self, text: str, target: Any) -> MergeResult:
		"""
		Merge document text into ``target``.

		Args:
		    text: Document text
		    target: Already-defaulted config instance

		Returns:
		    The merge outcome, with ``file_exists`` set

		"""
		try:
			root = self.parse(text)
		except DocumentParseError as e:
			logger.debug("Could not parse document: %s", e)
			return MergeResult(file_exists=True, missing_keys=True, parse_error=True)

		missing = merge_document(root, target)
		return MergeResult(file_exists=True, missing_keys=missing, parse_error=False)

	def dumps(self, instance: Any) -> str:
		"""Encode a config instance as annotated document text."""
		return self.encode(to_document(instance, recursive=self.recursive))

	def merge_into(self, path: Path, target: Any) -> MergeResult:
		"""
		Merge the file at ``path`` into ``target``.

		Missing files, unreadable files and parse errors are reported through
		the result and never raised.

		Args:
		    path: File to read
		    target: Already-defaulted config instance

		Returns:
		    The merge outcome

		"""
		path = Path(path)
		if not path.exists():
			return MergeResult(file_exists=False, missing_keys=True, parse_error=False)

		try:
			text = path.read_text(encoding="utf-8")
		except (OSError, UnicodeDecodeError) as e:
			logger.warning("Could not read %s: %s", path, e)
			return MergeResult(file_exists=True, missing_keys=True, parse_error=True)

		result = self.loads(text, target)
		if result.parse_error:
			logger.warning("Could not parse %s; it will be regenerated", path)
		return result

	def write(self, path: Path, instance: Any) -> None:
		"""
		Write ``instance`` to ``path`` atomically.

		Args:
		    path: Destination file
		    instance: Config instance

		Raises:
		    OSError: If the file cannot be written

		"""
		path = Path(path)
		atomic_write(path.parent, path, self.dumps(instance), prefix=path.stem)


class JsonCommentCodec(CommentedCodec):
	"""Commented codec using JSON text."""

	default_extension = ".json"

	def parse(self, text: str) -> dict[str, Node]:
		"""Parse JSON document text."""
		return parse_json(text)

	def encode(self, root: dict[str, Node]) -> str:
		"""Encode a document as JSON."""
		return encode_json(root)


class YamlCommentCodec(CommentedCodec):
	"""Commented codec using YAML text."""

	default_extension = ".yml"

	def parse(self, text: str) -> dict[str, Node]:
		"""Parse YAML document text."""
		return parse_yaml(text)

	def encode(self, root: dict[str, Node]) -> str:
		"""Encode a document as YAML."""
		return encode_yaml(root)


def codec_for_path(path: Path | str) -> CommentedCodec:
	"""
	Pick a codec from a file extension.

	Args:
	    path: File path

	Returns:
	    The YAML codec for ``.yml``/``.yaml`` files, otherwise the JSON codec

	"""
	if Path(path).suffix.lower() in (".yml", ".yaml"):
		return YamlCommentCodec()
	return JsonCommentCodec()
