"""Atomic file persistence for config documents."""

from __future__ import annotations

import contextlib
import errno
import logging
import os
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write(directory: Path | str, final_path: Path | str, text: str, *, prefix: str = "") -> Path:
	"""
	Write text to a file so that readers never see a partial file.

	The text is written to a temporary file inside ``directory`` and then
	renamed onto ``final_path``. If the platform cannot rename atomically
	across the two locations the file is moved with a plain replace instead.

	Args:
	    directory: Directory for the temporary file; created if absent
	    final_path: Destination path; an existing file is replaced
	    text: Text to write, encoded as UTF-8
	    prefix: Prefix for the temporary file name

	Returns:
	    The destination path

	Raises:
	    OSError: If the directory, the temporary file, or the rename fails

	"""
	directory = Path(directory)
	final_path = Path(final_path)
	directory.mkdir(parents=True, exist_ok=True)

	fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f"{prefix}_", suffix=f"{final_path.suffix}.tmp")
	tmp_path = Path(tmp_name)
	try:
		with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
			f.write(text)
			f.flush()
			os.fsync(f.fileno())
		try:
			os.replace(tmp_path, final_path)
		except OSError as e:
			if e.errno != errno.EXDEV:
				raise
			logger.debug("Atomic rename not supported for %s, falling back to move", final_path)
			shutil.move(tmp_path, final_path)
	except BaseException:
		with contextlib.suppress(OSError):
			tmp_path.unlink()
		raise

	logger.debug("Wrote %d characters to %s", len(text), final_path)
	return final_path
