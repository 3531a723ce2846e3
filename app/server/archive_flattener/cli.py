"""
Command line entry point: convert a ZIP of JSON documents into an .xlsx file.
"""
from pathlib import Path

import click

from .constants import DEFAULT_OUTPUT_DIR, DOCUMENT_SUFFIXES
from .errors import ArchiveProcessingError
from .file_processor import convert_archive_to_excel
from .flattening import FlattenMode
from .logging_setup import setup_logging


@click.group()
def cli():
    """Flatten archives of nested JSON documents into spreadsheets."""


@cli.command('convert')
@click.argument('archive', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    '--mode', '-m',
    type=click.Choice([m.value for m in FlattenMode]),
    default=FlattenMode.EXPAND_ITEMS.value,
    show_default=True,
    help='expand: one row per product item; serialize: one row per document, arrays as JSON text'
)
@click.option(
    '--output-dir', '-o',
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_OUTPUT_DIR,
    envvar='ARCHIVE_FLATTENER_OUTPUT_DIR',
    show_default=True,
    help='Directory the workbook is written to'
)
@click.option(
    '--suffix', 'suffixes',
    multiple=True,
    default=DOCUMENT_SUFFIXES,
    show_default=True,
    help='Archive entry suffix treated as a JSON document (repeatable)'
)
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default='WARNING',
    envvar='ARCHIVE_FLATTENER_LOG_LEVEL',
    help='Console log level'
)
def convert_command(archive, mode, output_dir, suffixes, log_level):
    """
    Convert ARCHIVE (a .zip of .json documents) into an .xlsx workbook.

    \b
    Examples:
      archive-flattener convert orders.zip
      archive-flattener convert exports.zip --mode serialize -o ./out
    """
    setup_logging(log_level)

    try:
        result = convert_archive_to_excel(
            archive.read_bytes(),
            mode=mode,
            output_dir=output_dir,
            filename=archive.name,
            suffixes=tuple(suffixes),
        )
    except ArchiveProcessingError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Wrote {result['row_count']} rows x {len(result['columns'])} columns to {result['output_path']}")


if __name__ == '__main__':
    cli()
