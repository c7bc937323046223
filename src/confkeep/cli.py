"""Command-line interface for inspecting and converting config documents."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from confkeep import __version__
from confkeep.codec import codec_for_path
from confkeep.document import COMMENT_KEY, VALUE_KEY, Node, is_wrapper, unwrap
from confkeep.errors import DocumentParseError
from confkeep.persistence import atomic_write
from confkeep.utils.log_setup import display_error_summary, setup_logging

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
	help=f"confkeep - inspect and convert commented config documents\n\nVersion: {__version__}",
	no_args_is_help=True,
	context_settings={"help_option_names": ["-h", "--help"]},
)

DocumentArg = Annotated[
	Path,
	typer.Argument(
		exists=True,
		dir_okay=False,
		help="Path to a JSON or YAML config document",
	),
]


def _version_callback(value: bool) -> None:
	if value:
		typer.echo(f"confkeep version: {__version__}")
		raise typer.Exit


@app.callback()
def global_options(
	is_verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
	_version: Annotated[
		bool | None,
		typer.Option("--version", help="Show version and exit.", callback=_version_callback, is_eager=True),
	] = None,
) -> None:
	"""Global CLI options and logging setup."""
	setup_logging(is_verbose=is_verbose)


def _read_document(path: Path) -> dict[str, Node]:
	try:
		return codec_for_path(path).parse(path.read_text(encoding="utf-8"))
	except (OSError, UnicodeDecodeError, DocumentParseError) as e:
		display_error_summary(f"Could not read {path}: {e}")
		raise typer.Exit(1) from e


def _display(node: Node) -> str:
	return json.dumps(unwrap(node), ensure_ascii=False)


@app.command()
def inspect(path: DocumentArg) -> None:
	"""Show the fields of a config document with their values and comments."""
	root = _read_document(path)

	table = Table(title=str(path))
	table.add_column("Field", style="cyan", no_wrap=True)
	table.add_column("Value")
	table.add_column("Comment", style="green")

	for key, node in root.items():
		comment = node.get(COMMENT_KEY, "") if is_wrapper(node) else ""
		value = node[VALUE_KEY] if is_wrapper(node) else node
		table.add_row(key, _display(value), str(comment))

	console.print(table)


@app.command()
def convert(
	source: DocumentArg,
	destination: Annotated[Path, typer.Argument(dir_okay=False, help="Output file (.json, .yml or .yaml)")],
	flatten: Annotated[bool, typer.Option("--flatten", help="Drop value/comment wrappers.")] = False,
) -> None:
	"""Re-encode a config document as JSON or YAML, chosen by extension."""
	root = _read_document(source)
	if flatten:
		root = unwrap(root)  # type: ignore[assignment]

	text = codec_for_path(destination).encode(root)
	try:
		atomic_write(destination.parent, destination, text, prefix=destination.stem)
	except OSError as e:
		display_error_summary(f"Could not write {destination}: {e}")
		raise typer.Exit(1) from e

	logger.info("Converted %s to %s", source, destination)
	console.print(f"[green]Wrote {destination}[/]")


def main() -> int:
	"""Run the CLI application."""
	return app()


if __name__ == "__main__":
	sys.exit(main())
