"""Metadata row reads and writes.

Every metadata read returns ``None`` for an absent cell; callers apply
one policy per field through ``require_cell``. Rows, columns and type
are mandatory, the reference count defaults to zero and the alias is
optional.
"""

from __future__ import annotations

from typing import TypeVar

from core.constants import (
    METADATA_ALIAS,
    METADATA_COLUMNS,
    METADATA_REFERENCE,
    METADATA_ROW,
    METADATA_ROWS,
    METADATA_TYPE,
)
from core.errors import MatrixMetadataError
from store.cell_codec import decode_int, decode_text, encode_int, encode_text
from store.table_store import TableStore

_ValueT = TypeVar("_ValueT")


def read_int(store: TableStore, path: str, column: str) -> int | None:
    payload = store.get_cell(path, METADATA_ROW, column)
    return None if payload is None else decode_int(payload, column)


def read_text(store: TableStore, path: str, column: str) -> str | None:
    payload = store.get_cell(path, METADATA_ROW, column)
    return None if payload is None else decode_text(payload)


def require_cell(value: _ValueT | None, column: str, path: str) -> _ValueT:
    """Return a mandatory metadata value.

    Raises:
        MatrixMetadataError: If the cell is absent.
    """
    if value is None:
        raise MatrixMetadataError(
            f"Matrix '{path}' is missing mandatory metadata cell '{column}'. "
            "The table was not created by TableMatrix or its metadata row was damaged."
        )
    return value


def read_rows(store: TableStore, path: str) -> int:
    return require_cell(read_int(store, path, METADATA_ROWS), METADATA_ROWS, path)


def read_columns(store: TableStore, path: str) -> int:
    return require_cell(read_int(store, path, METADATA_COLUMNS), METADATA_COLUMNS, path)


def read_type(store: TableStore, path: str) -> str:
    return require_cell(read_text(store, path, METADATA_TYPE), METADATA_TYPE, path)


def read_reference(store: TableStore, path: str) -> int:
    """Return the stored reference count, treating an absent cell as zero."""
    return read_int(store, path, METADATA_REFERENCE) or 0


def read_alias(store: TableStore, path: str) -> str | None:
    return read_text(store, path, METADATA_ALIAS)


def write_dimension(store: TableStore, path: str, rows: int, columns: int) -> None:
    store.put_cells(
        path,
        METADATA_ROW,
        {METADATA_ROWS: encode_int(rows), METADATA_COLUMNS: encode_int(columns)},
    )


def write_type_once(store: TableStore, path: str, type_name: str) -> None:
    """Write the type cell unless one is already present.

    Raises:
        MatrixMetadataError: If a different type is already stored.
    """
    written = store.check_and_put(
        path, METADATA_ROW, METADATA_TYPE, None, encode_text(type_name)
    )
    if written:
        return
    current = read_type(store, path)
    if current != type_name:
        raise MatrixMetadataError(
            f"Matrix '{path}' already has type '{current}'; the type cannot change to "
            f"'{type_name}'."
        )
