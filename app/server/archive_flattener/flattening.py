import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .constants import (
    BLANK_VALUE,
    ITEM_FIELDS,
    ITEMS_FIELD,
    NESTED_FIELD_DELIMITER,
    PRODUCT_FIELDS,
    PRODUCTS_FIELD,
)

logger = logging.getLogger(__name__)


class FlattenMode(str, Enum):
    """How a document becomes rows."""

    # One row per (product, item) pair; arrays are dropped from the generic pass
    EXPAND_ITEMS = "expand"
    # One row per document; arrays are written as JSON text
    SERIALIZE_ARRAYS = "serialize"


@dataclass
class EntryOutcome:
    """Number of rows one archive entry contributed."""

    name: str
    record_count: int


@dataclass
class Table:
    """
    Rows ready for the spreadsheet writer.

    In expand mode ``header`` is None and ``rows`` holds the flat records
    themselves, so the writer derives the columns from each record's keys.
    In serialize mode ``rows`` are positional lists aligned to ``header``.
    """

    header: Optional[List[str]]
    rows: List[Any]
    mode: FlattenMode
    entries: List[EntryOutcome] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def columns(self) -> List[str]:
        if self.header is not None:
            return list(self.header)
        return unify_columns(self.rows)

    def to_dataframe(self) -> pd.DataFrame:
        if self.header is None:
            return pd.DataFrame(self.rows, columns=self.columns)
        return pd.DataFrame(self.rows, columns=self.header)

    def sample(self, limit: int) -> List[Dict[str, Any]]:
        """Return the first ``limit`` rows as column → value dicts."""
        columns = self.columns
        sample_rows = []
        for row in self.rows[:limit]:
            if isinstance(row, dict):
                sample_rows.append({col: row.get(col, BLANK_VALUE) for col in columns})
            else:
                sample_rows.append(dict(zip(columns, row)))
        return sample_rows


def serialize_array(value: List[Any]) -> str:
    """
    Encode an array as compact JSON text.

    Examples:
        >>> serialize_array(["x", "y"])
        '["x","y"]'
    """
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def flatten_dict(
    data: Dict[str, Any],
    parent_key: str = '',
    sep: str = NESTED_FIELD_DELIMITER,
    serialize_arrays: bool = False,
) -> Dict[str, Any]:
    """
    Recursively flatten a nested object into a flat dictionary.

    Nested objects contribute their keys under a compound name built from every
    ancestor key. Arrays are never descended into: they are skipped, or written
    as JSON text when ``serialize_arrays`` is set. Null values become the blank
    sentinel.

    Keys are visited in document order and a compound key produced twice keeps
    the value written last; each such overwrite is logged as a warning.

    Args:
        data: The object to flatten
        parent_key: Prefix for every key produced at this level (used in recursion)
        sep: The delimiter placed between ancestor keys
        serialize_arrays: Write arrays as JSON text instead of skipping them

    Returns:
        A flat dictionary of compound keys to scalar values

    Examples:
        >>> flatten_dict({'a': {'b': 1, 'c': None}})
        {'a_b': 1, 'a_c': ''}

        >>> flatten_dict({'id': 7, 'tags': ['x']})
        {'id': 7}

        >>> flatten_dict({'id': 7, 'tags': ['x']}, serialize_arrays=True)
        {'id': 7, 'tags': '["x"]'}
    """
    result: Dict[str, Any] = {}

    for key, value in data.items():
        if isinstance(value, dict):
            nested = flatten_dict(value, f"{parent_key}{key}{sep}", sep=sep, serialize_arrays=serialize_arrays)
            for nested_key, nested_value in nested.items():
                _assign(result, nested_key, nested_value)

        elif isinstance(value, list):
            if serialize_arrays:
                _assign(result, f"{parent_key}{key}", serialize_array(value))

        else:
            _assign(result, f"{parent_key}{key}", BLANK_VALUE if value is None else value)

    return result


def _assign(record: Dict[str, Any], key: str, value: Any) -> None:
    if key in record:
        logger.warning(f"Flattened key '{key}' produced more than once; keeping the last value")
    record[key] = value


def _field_value(source: Dict[str, Any], key: str) -> Any:
    value = source.get(key)
    return BLANK_VALUE if value is None else value


def flatten_and_expand(document: Dict[str, Any], sep: str = NESTED_FIELD_DELIMITER) -> List[Dict[str, Any]]:
    """
    Flatten a document into one row per item of each of its products.

    Every row carries the flattened document (without the products array) plus
    the product and item fields named in ``PRODUCT_FIELDS`` and ``ITEM_FIELDS``.
    The product and item fields are written last, so they replace any flattened
    field of the same name.

    A document with no products, or products without items, yields no rows.

    Examples:
        >>> doc = {'name': 'X', 'products': [{'name': 'P1', 'price': 5, 'quantity': 1,
        ...        'items': [{'code': 'I1', 'name': 'Item1', 'price': 2, 'quantity': 3}]}]}
        >>> flatten_and_expand(doc)[0]['item_code']
        'I1'
    """
    products = document.get(PRODUCTS_FIELD)
    if not isinstance(products, list) or not products:
        return []

    base = flatten_dict(
        {key: value for key, value in document.items() if key != PRODUCTS_FIELD},
        sep=sep,
    )

    rows = []
    for p_idx, product in enumerate(products):
        if not isinstance(product, dict):
            logger.warning(f"Skipping {PRODUCTS_FIELD}[{p_idx}]: expected an object, got {type(product).__name__}")
            continue
        items = product.get(ITEMS_FIELD)
        if not isinstance(items, list):
            continue

        for i_idx, item in enumerate(items):
            if not isinstance(item, dict):
                logger.warning(
                    f"Skipping {PRODUCTS_FIELD}[{p_idx}].{ITEMS_FIELD}[{i_idx}]: "
                    f"expected an object, got {type(item).__name__}"
                )
                continue
            row = dict(base)
            for column, source_key in PRODUCT_FIELDS.items():
                row[column] = _field_value(product, source_key)
            for column, source_key in ITEM_FIELDS.items():
                row[column] = _field_value(item, source_key)
            rows.append(row)

    return rows


def flatten_with_serialized_arrays(document: Dict[str, Any], sep: str = NESTED_FIELD_DELIMITER) -> List[Dict[str, Any]]:
    """Flatten a document into exactly one row, writing arrays as JSON text."""
    return [flatten_dict(document, sep=sep, serialize_arrays=True)]


def flatten_document(document: Any, mode: FlattenMode) -> List[Dict[str, Any]]:
    """
    Flatten one parsed document according to ``mode``.

    Returns zero or more flat records. A document whose root is not an object
    produces no records.
    """
    if not isinstance(document, dict):
        logger.warning(f"Skipping document with a {type(document).__name__} root; expected an object")
        return []

    if mode is FlattenMode.EXPAND_ITEMS:
        return flatten_and_expand(document)
    return flatten_with_serialized_arrays(document)


def unify_columns(records: Iterable[Dict[str, Any]]) -> List[str]:
    """
    Collect every key seen across ``records`` in first-seen order.

    Examples:
        >>> unify_columns([{'a': 1, 'b': 2}, {'b': 3, 'c': 4}])
        ['a', 'b', 'c']
    """
    # dict keys keep insertion order and drop repeats
    seen: Dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def project_row(header: List[str], record: Dict[str, Any], blank: Any = BLANK_VALUE) -> List[Any]:
    """
    Lay a record out positionally against ``header``.

    Examples:
        >>> project_row(['a', 'b', 'c'], {'b': 3, 'c': 4})
        ['', 3, 4]
    """
    return [record.get(column, blank) for column in header]


def build_table(
    records: List[Dict[str, Any]],
    mode: FlattenMode,
    entries: Optional[List[EntryOutcome]] = None,
) -> Table:
    """Turn the accumulated records of an archive into a Table for ``mode``."""
    entries = list(entries or [])

    if mode is FlattenMode.EXPAND_ITEMS:
        return Table(header=None, rows=list(records), mode=mode, entries=entries)

    header = unify_columns(records)
    rows = [project_row(header, record) for record in records]
    return Table(header=header, rows=rows, mode=mode, entries=entries)
