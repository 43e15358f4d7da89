"""Persisted alias bindings.

The registry table maps an alias to a matrix path; the matrix metadata
row mirrors the alias in its ``alias:name`` cell. A bound alias keeps a
matrix alive at reference count zero. Each matrix carries at most one
alias and each alias names at most one matrix.
"""

from __future__ import annotations

from core.constants import (
    ADMIN_PATH_COLUMN,
    ADMIN_TABLE_NAME,
    METADATA_ALIAS,
    METADATA_ROW,
)
from core.errors import MatrixAliasError, MatrixArgumentError, TableExistsError
from core.logging_config import get_logger
from matrix.metadata import read_alias
from store.cell_codec import decode_text, encode_text
from store.table_schema import admin_table_schema
from store.table_store import TableStore

_LOGGER = get_logger(__name__)


class AliasRegistry:
    """Alias to matrix path bindings stored in a registry table."""

    def __init__(self, store: TableStore, table_name: str = ADMIN_TABLE_NAME) -> None:
        self._store = store
        self._table_name = table_name

    def bind(self, path: str, alias: str) -> bool:
        """Bind an alias to a matrix.

        Args:
            path: Matrix table path.
            alias: Alias name.

        Returns:
            ``True`` when the alias now names ``path``; ``False`` when the
            alias already names another matrix.

        Raises:
            MatrixAliasError: If the matrix already carries a different alias.
        """
        if not alias:
            raise MatrixArgumentError("Alias must be a non-empty string.")
        current_alias = self.alias_of(path)
        if current_alias is not None and current_alias != alias:
            raise MatrixAliasError(
                f"Matrix '{path}' is already saved as '{current_alias}'. "
                "Remove that alias before saving under a new one."
            )
        self._ensure_table()
        claimed = self._store.check_and_put(
            self._table_name, alias, ADMIN_PATH_COLUMN, None, encode_text(path)
        )
        if not claimed and self.resolve(alias) != path:
            return False
        try:
            self._store.put_cells(path, METADATA_ROW, {METADATA_ALIAS: encode_text(alias)})
        except Exception:
            if claimed:
                self._store.delete_cells(self._table_name, alias, (ADMIN_PATH_COLUMN,))
            raise
        _LOGGER.info("alias_saved", alias=alias, path=path)
        return True

    def resolve(self, alias: str) -> str | None:
        """Return the matrix path bound to an alias, or ``None``."""
        if not self._store.table_exists(self._table_name):
            return None
        payload = self._store.get_cell(self._table_name, alias, ADMIN_PATH_COLUMN)
        return None if payload is None else decode_text(payload)

    def alias_of(self, path: str) -> str | None:
        return read_alias(self._store, path)

    def has_alias(self, path: str) -> bool:
        """Return whether the matrix metadata carries an alias cell."""
        return self.alias_of(path) is not None

    def unbind(self, alias: str) -> str | None:
        """Remove an alias binding.

        Args:
            alias: Alias name.

        Returns:
            The path the alias named, or ``None`` when it was unbound.
        """
        path = self.resolve(alias)
        if path is None:
            return None
        self._store.delete_cells(self._table_name, alias, (ADMIN_PATH_COLUMN,))
        if self._store.table_exists(path) and self.alias_of(path) == alias:
            self._store.delete_cells(path, METADATA_ROW, (METADATA_ALIAS,))
        _LOGGER.info("alias_removed", alias=alias, path=path)
        return path

    def list_aliases(self) -> dict[str, str]:
        """Return all alias to path bindings."""
        if not self._store.table_exists(self._table_name):
            return {}
        return {
            alias: decode_text(cells[ADMIN_PATH_COLUMN])
            for alias, cells in self._store.scan(self._table_name)
            if ADMIN_PATH_COLUMN in cells
        }

    def _ensure_table(self) -> None:
        if self._store.table_exists(self._table_name):
            return
        try:
            self._store.create_table(admin_table_schema(self._table_name))
        except TableExistsError:
            return
