"""Global test fixtures and configuration."""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest
from rich.logging import RichHandler


@pytest.fixture(autouse=True)
def restore_root_logger() -> Generator[None, None, None]:
    """Auto-use fixture undoing logging setup performed by CLI invocations.

    The CLI installs a rich handler on the root logger and changes its level.
    """
    root_logger = logging.getLogger()
    level = root_logger.level

    yield

    for handler in root_logger.handlers[:]:
        if isinstance(handler, RichHandler):
            root_logger.removeHandler(handler)
    root_logger.setLevel(level)
