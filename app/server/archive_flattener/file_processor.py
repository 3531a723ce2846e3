import io
import json
import logging
import uuid
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import IllegalCharacterError

from .constants import (
    ARCHIVE_EXTENSION,
    DEFAULT_OUTPUT_DIR,
    DOCUMENT_SUFFIXES,
    OUTPUT_FILENAME_TEMPLATE,
    SAMPLE_ROW_COUNT,
    SHEET_NAME,
)
from .errors import DocumentParseError, InputFormatError, NoDataError, OutputWriteError
from .flattening import EntryOutcome, FlattenMode, Table, build_table, flatten_document

logger = logging.getLogger(__name__)


class ArchiveReader:
    """
    Read named text entries out of in-memory ZIP bytes.

    Use as a context manager:

        with ArchiveReader(archive_bytes) as reader:
            for name, is_match in reader.list_entries():
                ...
    """

    def __init__(self, archive_bytes: bytes):
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(archive_bytes))
        except (zipfile.BadZipFile, ValueError) as e:
            raise InputFormatError("The uploaded file is not a valid ZIP archive.") from e

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def list_entries(self, suffixes: Tuple[str, ...] = DOCUMENT_SUFFIXES) -> List[Tuple[str, bool]]:
        """Return ``(name, is_match)`` for every file entry, in archive order."""
        return [
            (info.filename, info.filename.endswith(suffixes))
            for info in self._zip.infolist()
            if not info.is_dir()
        ]

    def read_text(self, name: str) -> str:
        """Read an entry as UTF-8 text. A leading byte order mark is dropped."""
        try:
            return self._zip.read(name).decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise DocumentParseError(f"Entry '{name}' is not UTF-8 text: {e}", entry_name=name) from e
        except (zipfile.BadZipFile, RuntimeError, NotImplementedError) as e:
            # RuntimeError: encrypted entry; NotImplementedError: unsupported compression
            raise InputFormatError(f"Entry '{name}' could not be extracted: {e}") from e


def parse_document(text: str, entry_name: str = '') -> Any:
    """
    Decode JSON text into nested dicts, lists and scalars.

    Raises:
        DocumentParseError: If the text is not valid JSON
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as e:
        raise DocumentParseError(f"Entry '{entry_name}' is not valid JSON: {e}", entry_name=entry_name) from e


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity are not part of JSON
    raise ValueError(f"Invalid JSON constant {name!r}")


def _clean_cell(value: Any) -> Any:
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub('', value)
    return value


def _clean_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Drop the control characters openpyxl refuses to store from headers and string cells."""
    df = df.apply(lambda column: column.map(_clean_cell))
    df.columns = [_clean_cell(col) for col in df.columns]
    return df


def process_archive(
    archive_bytes: bytes,
    mode: Union[FlattenMode, str] = FlattenMode.EXPAND_ITEMS,
    suffixes: Tuple[str, ...] = DOCUMENT_SUFFIXES,
) -> Table:
    """
    Flatten every JSON document in a ZIP archive into one table.

    This function processes archives by:
    1. Listing the entries whose names end with one of ``suffixes``
    2. Parsing and flattening each of them, in archive order
    3. Unifying the columns of all records (serialize mode)
    4. Building the rows of the table

    A single malformed document aborts the whole archive.

    Args:
        archive_bytes: The raw bytes of the uploaded ZIP file
        mode: ``FlattenMode`` or its value (``"expand"`` / ``"serialize"``)
        suffixes: Entry name suffixes treated as JSON documents

    Returns:
        A Table with the rows of every document and a per-entry record count

    Raises:
        InputFormatError: If the bytes are not a ZIP archive
        NoDataError: If no entry matches, or the matching entries produce no rows
        DocumentParseError: If a matching entry is not valid JSON
    """
    mode = FlattenMode(mode)
    records: List[Dict[str, Any]] = []
    entries: List[EntryOutcome] = []

    with ArchiveReader(archive_bytes) as reader:
        matching = [name for name, is_match in reader.list_entries(suffixes) if is_match]
        if not matching:
            raise NoDataError(f"The ZIP archive does not contain any {', '.join(suffixes)} documents.")

        logger.info(f"Processing {len(matching)} documents in {mode.value} mode")

        for name in matching:
            document = parse_document(reader.read_text(name), entry_name=name)
            rows = flatten_document(document, mode)
            logger.debug(f"{name}: {len(rows)} rows")
            records.extend(rows)
            entries.append(EntryOutcome(name=name, record_count=len(rows)))

    if not records:
        raise NoDataError("The documents in the ZIP archive did not produce any rows.")

    table = build_table(records, mode, entries)
    logger.info(f"Built table with {table.row_count} rows and {len(table.columns)} columns")
    return table


def write_table(table: Table, destination: Union[str, Path], sheet_name: str = SHEET_NAME) -> Path:
    """
    Write a Table to an .xlsx workbook.

    Control characters that spreadsheets cannot hold are stripped from text
    cells. The workbook is written to a temporary file beside the destination
    and moved into place only once complete, so a failed write leaves nothing.

    Raises:
        OutputWriteError: If the destination cannot be written, or the table
            does not fit in a sheet
    """
    destination = Path(destination)
    partial = destination.with_name(f".partial-{destination.name}")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        df = _clean_frame(table.to_dataframe())
        df.to_excel(partial, sheet_name=sheet_name, index=False, engine='openpyxl')
        partial.replace(destination)
    except (OSError, ValueError, IllegalCharacterError) as e:
        if partial.exists():
            partial.unlink()
        raise OutputWriteError(f"Could not write spreadsheet to {destination}: {e}") from e

    logger.info(f"Wrote {table.row_count} rows to {destination}")
    return destination


def convert_archive_to_excel(
    archive_bytes: bytes,
    mode: Union[FlattenMode, str] = FlattenMode.EXPAND_ITEMS,
    output_dir: Union[str, Path] = DEFAULT_OUTPUT_DIR,
    filename: Optional[str] = None,
    file_id: Optional[str] = None,
    suffixes: Tuple[str, ...] = DOCUMENT_SUFFIXES,
) -> Dict[str, Any]:
    """
    Convert an uploaded ZIP archive of JSON documents into an .xlsx file.

    Every conversion writes to its own file, named after ``file_id``.

    Args:
        archive_bytes: The raw bytes of the uploaded file
        mode: ``FlattenMode`` or its value
        output_dir: Directory the workbook is written to
        filename: Original name of the upload; when given it must end in .zip
        file_id: Identifier embedded in the output filename (default: random)
        suffixes: Entry name suffixes treated as JSON documents

    Returns:
        A dictionary containing:
        - file_id: The identifier of this conversion
        - output_path: Path of the written workbook
        - mode: The flatten mode used
        - row_count: Number of rows written
        - columns: Column names, in order
        - entries: List of {'name', 'record_count'} per document
        - sample_data: Up to 5 rows as dicts

    Raises:
        ArchiveProcessingError: Any subclass, when the conversion fails
    """
    if filename is not None and not filename.lower().endswith(ARCHIVE_EXTENSION):
        raise InputFormatError(f"The uploaded file '{filename}' is not a ZIP archive.")

    table = process_archive(archive_bytes, mode, suffixes=suffixes)

    file_id = file_id or uuid.uuid4().hex
    output_path = write_table(table, Path(output_dir) / OUTPUT_FILENAME_TEMPLATE.format(file_id=file_id))

    return {
        'file_id': file_id,
        'output_path': str(output_path),
        'mode': table.mode.value,
        'row_count': table.row_count,
        'columns': table.columns,
        'entries': [{'name': e.name, 'record_count': e.record_count} for e in table.entries],
        'sample_data': table.sample(SAMPLE_ROW_COUNT),
    }
