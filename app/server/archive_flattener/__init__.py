"""
Flatten archives of nested JSON documents into a single spreadsheet.

Architecture:
    ZIP → file_processor (read, parse) → flattening (flatten, unify, project) → .xlsx
"""

from .file_processor import convert_archive_to_excel, process_archive, write_table
from .flattening import FlattenMode, Table, flatten_dict, project_row, unify_columns

__all__ = [
    'FlattenMode',
    'Table',
    'convert_archive_to_excel',
    'flatten_dict',
    'process_archive',
    'project_row',
    'unify_columns',
    'write_table',
]
