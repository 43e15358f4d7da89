"""Column-family store protocol.

The matrix layer only talks to the store through this protocol so the
backing store (in-memory, local files, or a remote cluster client)
can be swapped without touching lifecycle or job code.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Mapping, Protocol

from store.table_schema import TableSchema


class TableStore(Protocol):
    """Table administration and per-cell access on a shared store."""

    def table_exists(self, name: str) -> bool:
        """Return whether a table with this name exists."""

    def list_tables(self) -> tuple[str, ...]:
        """Return all table names in sorted order."""

    def create_table(self, schema: TableSchema) -> None:
        """Create a table atomically.

        Raises:
            TableExistsError: If the table already exists.
        """

    def delete_table(self, name: str) -> None:
        """Delete a disabled table."""

    def is_table_enabled(self, name: str) -> bool:
        """Return whether the table is enabled for reads and writes."""

    def enable_table(self, name: str) -> None:
        """Enable a disabled table."""

    def disable_table(self, name: str) -> None:
        """Disable a table; may raise ``MatrixRegionError`` transiently."""

    def get_cell(self, table: str, row: str, column: str) -> bytes | None:
        """Return one cell value or ``None`` when absent."""

    def get_row(
        self, table: str, row: str, families: Iterable[str] | None = None
    ) -> dict[str, bytes]:
        """Return all cells of a row, optionally restricted to families."""

    def put_cells(self, table: str, row: str, cells: Mapping[str, bytes]) -> None:
        """Commit several cells of one row as a single batch."""

    def delete_cells(self, table: str, row: str, columns: Iterable[str]) -> None:
        """Remove cells from a row; absent cells are ignored."""

    def check_and_put(
        self,
        table: str,
        row: str,
        column: str,
        expected: bytes | None,
        value: bytes,
    ) -> bool:
        """Write ``value`` only if the current cell equals ``expected``."""

    def scan(
        self, table: str, families: Iterable[str] | None = None
    ) -> Iterator[tuple[str, dict[str, bytes]]]:
        """Yield ``(row_key, cells)`` pairs in row key order."""
