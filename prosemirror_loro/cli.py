# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Command line interface for ProseMirror Loro

Converts between ProseMirror JSON files and Loro snapshot files:

- export:      snapshot -> JSON on stdout
- import:      JSON file -> new snapshot
- update:      reconcile a snapshot towards a JSON file, in place
- encode-mark: print the text attribute key of a mark
- decode-mark: print the mark type of a text attribute key
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from .constants import DEFAULT_FRAGMENT_NAME
from .model.mark_codec import decode_mark_name, encode_mark_name
from .model.prosemirror_model import ProseMirrorLoroModel

logger = logging.getLogger(__name__)

fragment_option = click.option(
    "--fragment", default=DEFAULT_FRAGMENT_NAME, show_default=True,
    help="Name of the tree container holding the document"
)


@click.group()
@click.option("--log-level", default="INFO", help="Logging level")
def main(log_level: str):
    """Convert ProseMirror JSON documents to and from Loro snapshots"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@main.command("export")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@fragment_option
@click.option("--indent", default=2, show_default=True, help="JSON indentation")
def export_command(snapshot: Path, fragment: str, indent: int):
    """Print the ProseMirror JSON of SNAPSHOT"""
    model = ProseMirrorLoroModel.load_snapshot(snapshot, fragment)
    try:
        click.echo(model.to_json_string(indent=indent))
    except ValueError as e:
        raise click.ClickException(str(e))


@main.command("import")
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("snapshot", type=click.Path(dir_okay=False, path_type=Path))
@fragment_option
def import_command(json_file: Path, snapshot: Path, fragment: str):
    """Build a new SNAPSHOT from the ProseMirror document in JSON_FILE"""
    try:
        model = ProseMirrorLoroModel.load_json(json_file, fragment)
    except ValueError as e:
        raise click.ClickException(str(e))
    model.save_snapshot(snapshot)


@main.command("update")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@fragment_option
@click.option(
    "--delta", "delta_path", default=None, type=click.Path(dir_okay=False, path_type=Path),
    help="Write the incremental update to this file"
)
def update_command(snapshot: Path, json_file: Path, fragment: str, delta_path: Optional[Path]):
    """Reconcile SNAPSHOT in place towards the document in JSON_FILE"""
    model = ProseMirrorLoroModel.load_snapshot(snapshot, fragment)
    since = model.version()
    try:
        stats = model.reconcile(json_file.read_text(encoding="utf-8"))
    except ValueError as e:
        raise click.ClickException(str(e))
    model.save_snapshot(snapshot)
    if delta_path is not None:
        delta = model.export_updates(since)
        delta_path.write_bytes(delta)
        logger.info(f"Wrote {len(delta)} byte update to {delta_path}")
    click.echo("updated" if stats.changed else "unchanged")


@main.command("encode-mark")
@click.argument("mark_type")
@click.option("--attrs", default=None, help="Mark attributes as a JSON object")
def encode_mark_command(mark_type: str, attrs: Optional[str]):
    """Print the text attribute key of MARK_TYPE with ATTRS"""
    try:
        parsed = json.loads(attrs) if attrs else None
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON format: {e}")
    if parsed is not None and not isinstance(parsed, dict):
        raise click.ClickException("--attrs must be a JSON object")
    click.echo(encode_mark_name(mark_type, parsed))


@main.command("decode-mark")
@click.argument("key")
def decode_mark_command(key: str):
    """Print the mark type encoded in KEY"""
    click.echo(decode_mark_name(key))


if __name__ == "__main__":
    main()
