"""In-memory column-family store.

This backend keeps tables in process memory behind a re-entrant lock.
Every handle created against the same instance sees the same tables,
which makes it the shared store for tests and single-process use.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping

from core.errors import MatrixStorageError, TableExistsError, TableNotFoundError
from core.logging_config import get_logger
from store.table_schema import TableSchema, column_family

_LOGGER = get_logger(__name__)


@dataclass
class TableData:
    """Mutable state of one stored table."""

    schema: TableSchema
    enabled: bool = True
    rows: dict[str, dict[str, bytes]] = field(default_factory=dict)


class InMemoryTableStore:
    """Thread-safe table store held in process memory."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables: dict[str, TableData] = {}

    def table_exists(self, name: str) -> bool:
        with self._lock:
            return self._read_table(name) is not None

    def list_tables(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._table_names()))

    def create_table(self, schema: TableSchema) -> None:
        """Create a table atomically.

        Args:
            schema: Table name and families.

        Raises:
            TableExistsError: If the table already exists.
        """
        _validate_table_name(schema.name)
        with self._lock:
            if self._read_table(schema.name) is not None:
                raise TableExistsError(f"Table '{schema.name}' already exists.")
            self._write_table(schema.name, TableData(schema=schema))
        _LOGGER.debug("table_created", table=schema.name, families=list(schema.family_names()))

    def delete_table(self, name: str) -> None:
        """Delete a disabled table.

        Raises:
            TableNotFoundError: If the table does not exist.
            MatrixStorageError: If the table is still enabled.
        """
        with self._lock:
            table = self._require_table(name)
            if table.enabled:
                raise MatrixStorageError(
                    f"Table '{name}' is enabled. Disable the table before deleting it."
                )
            self._remove_table(name)
        _LOGGER.debug("table_deleted", table=name)

    def is_table_enabled(self, name: str) -> bool:
        with self._lock:
            return self._require_table(name).enabled

    def enable_table(self, name: str) -> None:
        self._set_enabled(name, True)

    def disable_table(self, name: str) -> None:
        self._set_enabled(name, False)

    def get_cell(self, table: str, row: str, column: str) -> bytes | None:
        with self._lock:
            data = self._require_enabled(table)
            return data.rows.get(row, {}).get(column)

    def get_row(
        self, table: str, row: str, families: Iterable[str] | None = None
    ) -> dict[str, bytes]:
        with self._lock:
            data = self._require_enabled(table)
            return _filter_cells(data.rows.get(row, {}), families)

    def put_cells(self, table: str, row: str, cells: Mapping[str, bytes]) -> None:
        """Commit several cells of one row as a single batch.

        Raises:
            MatrixStorageError: If a column names a family the table lacks.
        """
        if not cells:
            return
        with self._lock:
            data = self._require_enabled(table)
            _validate_families(data.schema, cells.keys())
            data.rows.setdefault(row, {}).update(cells)
            self._write_table(table, data)

    def delete_cells(self, table: str, row: str, columns: Iterable[str]) -> None:
        with self._lock:
            data = self._require_enabled(table)
            row_cells = data.rows.get(row)
            if row_cells is None:
                return
            for column in columns:
                row_cells.pop(column, None)
            if not row_cells:
                del data.rows[row]
            self._write_table(table, data)

    def check_and_put(
        self,
        table: str,
        row: str,
        column: str,
        expected: bytes | None,
        value: bytes,
    ) -> bool:
        """Atomically write ``value`` when the current cell equals ``expected``.

        Returns:
            ``True`` when the write happened.
        """
        with self._lock:
            data = self._require_enabled(table)
            _validate_families(data.schema, (column,))
            if data.rows.get(row, {}).get(column) != expected:
                return False
            data.rows.setdefault(row, {})[column] = value
            self._write_table(table, data)
            return True

    def scan(
        self, table: str, families: Iterable[str] | None = None
    ) -> Iterator[tuple[str, dict[str, bytes]]]:
        """Yield a snapshot of ``(row_key, cells)`` pairs in row key order.

        Rows without cells in the requested families are skipped.
        """
        wanted = tuple(families) if families is not None else None
        with self._lock:
            data = self._require_enabled(table)
            snapshot = [
                (key, _filter_cells(cells, wanted)) for key, cells in sorted(data.rows.items())
            ]
        for key, cells in snapshot:
            if cells:
                yield key, cells

    # Storage hooks; file-backed stores override these four.
    def _read_table(self, name: str) -> TableData | None:
        return self._tables.get(name)

    def _write_table(self, name: str, data: TableData) -> None:
        self._tables[name] = data

    def _remove_table(self, name: str) -> None:
        self._tables.pop(name, None)

    def _table_names(self) -> Iterable[str]:
        return self._tables.keys()

    def _set_enabled(self, name: str, enabled: bool) -> None:
        with self._lock:
            data = self._require_table(name)
            data.enabled = enabled
            self._write_table(name, data)

    def _require_table(self, name: str) -> TableData:
        data = self._read_table(name)
        if data is None:
            raise TableNotFoundError(
                f"Table '{name}' does not exist. Create the matrix before using it."
            )
        return data

    def _require_enabled(self, name: str) -> TableData:
        data = self._require_table(name)
        if not data.enabled:
            raise MatrixStorageError(f"Table '{name}' is disabled. Enable it before access.")
        return data


def _filter_cells(
    cells: Mapping[str, bytes], families: Iterable[str] | None
) -> dict[str, bytes]:
    if families is None:
        return dict(cells)
    wanted = set(families)
    return {column: value for column, value in cells.items() if column_family(column) in wanted}


def _validate_families(schema: TableSchema, columns: Iterable[str]) -> None:
    known = set(schema.family_names())
    for column in columns:
        if column_family(column) not in known:
            raise MatrixStorageError(
                f"Column '{column}' uses a family not defined on table '{schema.name}'. "
                f"Known families: {', '.join(sorted(known))}."
            )


def _validate_table_name(name: str) -> None:
    if not name or "/" in name or name.startswith("."):
        raise MatrixStorageError(
            f"Invalid table name '{name}': use a non-empty name without '/' or a leading '.'."
        )
