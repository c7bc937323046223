"""confkeep - keep typed config objects in sync with commented config files."""

from confkeep.base import ConfigBase
from confkeep.codec import (
	CommentedCodec,
	ConfigCodec,
	JsonCommentCodec,
	MergeResult,
	YamlCommentCodec,
)
from confkeep.errors import (
	ConfigError,
	ConfigSaveError,
	DocumentParseError,
	DuplicateConfigError,
	FieldDecodeError,
)
from confkeep.fields import FieldDescriptor, exposed_fields, setting
from confkeep.manager import AutoLoadPolicy, ConfigManager

__version__ = "0.1.0"

__all__ = [
	"AutoLoadPolicy",
	"CommentedCodec",
	"ConfigBase",
	"ConfigCodec",
	"ConfigError",
	"ConfigManager",
	"ConfigSaveError",
	"DocumentParseError",
	"DuplicateConfigError",
	"FieldDecodeError",
	"FieldDescriptor",
	"JsonCommentCodec",
	"MergeResult",
	"YamlCommentCodec",
	"__version__",
	"exposed_fields",
	"setting",
]
