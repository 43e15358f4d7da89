"""File-backed column-family store.

This backend persists one JSON document per table under the configured
data root so matrices outlive the process that created them. Writes go
through a temporary file and an atomic rename. Compare-and-swap is atomic
within one process only; separate processes sharing a data root race on
reference counts exactly like an unlocked remote store would.
"""

from __future__ import annotations

import base64
import json
import os
from pathlib import Path
from typing import Any, Iterable

from core.constants import TABLE_FILE_SUFFIX, TABLES_DIR_NAME
from core.errors import MatrixStorageError
from store.memory_store import InMemoryTableStore, TableData
from store.table_schema import ColumnFamily, TableSchema


class LocalTableStore(InMemoryTableStore):
    """Table store persisted as JSON files under ``<data_root>/tables``."""

    def __init__(self, data_root: Path) -> None:
        """Initialize store directories.

        Args:
            data_root: Root directory for table files.
        """
        super().__init__()
        self._tables_root = data_root.expanduser().resolve() / TABLES_DIR_NAME
        self._tables_root.mkdir(parents=True, exist_ok=True)

    @property
    def tables_root(self) -> Path:
        return self._tables_root

    def _read_table(self, name: str) -> TableData | None:
        table_path = self._table_path(name)
        if not table_path.exists():
            return None
        try:
            payload = json.loads(table_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as error:
            raise MatrixStorageError(
                f"Failed to parse table file {table_path}: {error.msg}. "
                "Restore the file or delete the table."
            ) from error
        except OSError as error:
            raise MatrixStorageError(f"Failed to read table file {table_path}: {error}.") from error
        return _table_from_payload(payload, table_path)

    def _write_table(self, name: str, data: TableData) -> None:
        table_path = self._table_path(name)
        temp_path = table_path.with_name(f".{table_path.name}.tmp")
        try:
            temp_path.write_text(json.dumps(_payload_from_table(data)) + "\n", encoding="utf-8")
            os.replace(temp_path, table_path)
        except OSError as error:
            raise MatrixStorageError(
                f"Failed to persist table file {table_path}: {error}. "
                "Check write permissions and available disk space."
            ) from error

    def _remove_table(self, name: str) -> None:
        try:
            self._table_path(name).unlink(missing_ok=True)
        except OSError as error:
            raise MatrixStorageError(f"Failed to delete table '{name}': {error}.") from error

    def _table_names(self) -> Iterable[str]:
        return [
            path.name[: -len(TABLE_FILE_SUFFIX)]
            for path in self._tables_root.glob(f"*{TABLE_FILE_SUFFIX}")
        ]

    def _table_path(self, name: str) -> Path:
        return self._tables_root / f"{name}{TABLE_FILE_SUFFIX}"


def _payload_from_table(data: TableData) -> dict[str, Any]:
    return {
        "schema": {
            "name": data.schema.name,
            "families": [
                {"name": family.name, "max_versions": family.max_versions}
                for family in data.schema.families
            ],
        },
        "enabled": data.enabled,
        "rows": {
            row: {column: base64.b64encode(value).decode("ascii") for column, value in cells.items()}
            for row, cells in data.rows.items()
        },
    }


def _table_from_payload(payload: object, table_path: Path) -> TableData:
    if not isinstance(payload, dict):
        raise MatrixStorageError(f"Invalid table file {table_path}: expected a JSON object.")
    try:
        schema_payload = payload["schema"]
        schema = TableSchema(
            name=str(schema_payload["name"]),
            families=tuple(
                ColumnFamily(name=str(item["name"]), max_versions=int(item["max_versions"]))
                for item in schema_payload["families"]
            ),
        )
        rows = {
            str(row): {str(column): base64.b64decode(value) for column, value in cells.items()}
            for row, cells in payload["rows"].items()
        }
        return TableData(schema=schema, enabled=bool(payload["enabled"]), rows=rows)
    except (KeyError, TypeError, ValueError) as error:
        raise MatrixStorageError(
            f"Invalid table file {table_path}: {error}. Restore the file or delete the table."
        ) from error
