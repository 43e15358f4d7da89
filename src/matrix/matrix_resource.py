"""Matrix handle and lifecycle state machine.

A handle moves ``uninitialized -> open -> closed``; ``closed`` is absorbing
and repeated ``close()`` calls do nothing. The backing table is shared by
every client holding the same path. It is deleted by ``close()`` only when
the reference count drops to zero and no alias protects it.
"""

from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING, Mapping

from core.constants import COLUMN_FAMILY, COLUMN_INDEX_ROW, ROW_LABEL_COLUMN
from core.errors import (
    MatrixArgumentError,
    MatrixClosedError,
    MatrixMetadataError,
    MatrixStorageError,
    TableExistsError,
    TableNotFoundError,
)
from core.logging_config import get_logger
from core.types import (
    ALLOWED_STATE_TRANSITIONS,
    MATRIX_TYPE_NAMES,
    MatrixKind,
    MatrixState,
    NormType,
    column_index,
    column_label_qualifier,
    column_qualifier,
    row_key,
)
from matrix.metadata import read_columns, read_rows, write_dimension, write_type_once
from matrix.reference_counter import ReferenceCounter
from store.cell_codec import decode_float, decode_text, encode_float, encode_text
from store.table_schema import matrix_table_schema

if TYPE_CHECKING:
    from matrix.matrix_space import MatrixSpace

_LOGGER = get_logger(__name__)


class MatrixResource:
    """Handle on one matrix table."""

    def __init__(self, space: "MatrixSpace", path: str, kind: MatrixKind) -> None:
        """Create an unattached handle.

        Args:
            space: Client that owns store, registry and job access.
            path: Matrix table path.
            kind: Matrix variant carried for the life of the handle.
        """
        self._space = space
        self._path = path
        self._kind = kind
        self._state: MatrixState = "uninitialized"
        self._references = ReferenceCounter(
            space.store, path, max_attempts=space.config.reference_retries
        )

    def __repr__(self) -> str:
        return f"MatrixResource(path={self._path!r}, kind={self._kind!r}, state={self._state!r})"

    def __enter__(self) -> "MatrixResource":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def path(self) -> str:
        return self._path

    @property
    def kind(self) -> MatrixKind:
        return self._kind

    @property
    def state(self) -> MatrixState:
        return self._state

    @property
    def type_name(self) -> str:
        return MATRIX_TYPE_NAMES[self._kind]

    def create(self, rows: int = 0, columns: int = 0) -> bool:
        """Create the backing table when it does not exist yet.

        The existence check gates the whole schema step, so a table that
        already exists is left untouched and the handle stays unattached.
        If metadata initialization fails the new table is dropped again.

        Args:
            rows: Row count recorded in metadata.
            columns: Column count recorded in metadata.

        Returns:
            ``True`` when this call created the table.

        Raises:
            MatrixClosedError: If the handle is closed.
            MatrixArgumentError: If a dimension is negative.
        """
        self._require_state("uninitialized", "create")
        _validate_dimension(rows, columns)
        store = self._space.store
        if store.table_exists(self._path):
            return False
        try:
            store.create_table(matrix_table_schema(self._path))
        except TableExistsError:
            return False
        try:
            write_type_once(store, self._path, self.type_name)
            write_dimension(store, self._path, rows, columns)
            self._references.set(1)
        except Exception:
            self._discard_partial_table()
            raise
        self._transition("open")
        _LOGGER.info(
            "matrix_created", path=self._path, kind=self._kind, rows=rows, columns=columns
        )
        return True

    def open(self) -> "MatrixResource":
        """Attach to an existing table without touching schema or metadata.

        Raises:
            MatrixStorageError: If the table does not exist.
        """
        self._require_state("uninitialized", "open")
        if not self._space.store.table_exists(self._path):
            raise TableNotFoundError(
                f"Matrix '{self._path}' does not exist. Create it or check the path."
            )
        self._transition("open")
        _LOGGER.info("matrix_opened", path=self._path, kind=self._kind)
        return self

    def close(self) -> None:
        """Release this handle's reference and delete the table if unused.

        The handle ends ``closed`` whatever happens. A table another owner
        already deleted counts as released. Any other failure is raised
        after closing; a table whose deletion failed can be reclaimed later
        with ``MatrixSpace.purge``.

        Raises:
            MatrixStorageError: If the reference update or deletion fails.
        """
        if self._state == "closed":
            return
        if self._state == "uninitialized":
            self._transition("closed")
            return
        reference: int | None = None
        try:
            reference = self._references.decrement_and_get()
            if reference <= 0 and not self._space.aliases.has_alias(self._path):
                self._space.admin.drop(self._path)
        except TableNotFoundError:
            _LOGGER.info("matrix_already_deleted", path=self._path)
        except MatrixStorageError as error:
            _LOGGER.error("matrix_close_failed", path=self._path, error=str(error))
            raise
        finally:
            self._transition("closed")
            _LOGGER.info("matrix_closed", path=self._path, reference=reference)

    def save(self, alias: str) -> bool:
        """Bind an alias that keeps the matrix alive at reference zero.

        Returns:
            ``True`` when bound; ``False`` if the alias names another matrix.

        Raises:
            MatrixAliasError: If this matrix already has a different alias.
        """
        self._require_open("save")
        return self._space.aliases.bind(self._path, alias)

    def alias(self) -> str | None:
        self._require_open("alias")
        return self._space.aliases.alias_of(self._path)

    def reference_count(self) -> int:
        self._require_open("reference_count")
        return self._references.get()

    def increment_reference(self) -> int:
        """Register one more owner and return the new count."""
        self._require_open("increment_reference")
        return self._references.increment_and_get()

    def decrement_reference(self) -> int:
        """Release one owner without closing; the count never drops below zero."""
        self._require_open("decrement_reference")
        return self._references.decrement_and_get()

    def rows(self) -> int:
        self._require_open("rows")
        return read_rows(self._space.store, self._path)

    def columns(self) -> int:
        self._require_open("columns")
        return read_columns(self._space.store, self._path)

    def set_dimension(self, rows: int, columns: int) -> None:
        self._require_open("set_dimension")
        _validate_dimension(rows, columns)
        write_dimension(self._space.store, self._path, rows, columns)

    def get(self, row: int, column: int) -> float:
        """Read one entry.

        Dense matrices require the cell to exist; sparse matrices read an
        absent cell as ``0.0``.

        Raises:
            MatrixArgumentError: If an index is out of range.
            MatrixMetadataError: If a dense cell is absent.
        """
        self._require_open("get")
        self._check_index(row, column)
        qualifier = column_qualifier(column)
        payload = self._space.store.get_cell(self._path, row_key(row), qualifier)
        if payload is not None:
            return decode_float(payload, qualifier)
        if self._kind == "sparse":
            return 0.0
        raise MatrixMetadataError(
            f"Dense matrix '{self._path}' has no cell at ({row}, {column}). "
            "Write the entry before reading it."
        )

    def set_value(self, row: int, column: int, value: float) -> None:
        """Write one entry; sparse matrices drop zero entries."""
        self._require_open("set_value")
        self._check_index(row, column)
        qualifier = column_qualifier(column)
        if self._kind == "sparse" and value == 0.0:
            self._space.store.delete_cells(self._path, row_key(row), (qualifier,))
            return
        self._space.store.put_cells(self._path, row_key(row), {qualifier: encode_float(value)})

    def add(self, row: int, column: int, value: float) -> None:
        """Add ``value`` to one entry."""
        self.set_value(row, column, self.get(row, column) + value)

    def get_row(self, row: int) -> dict[int, float]:
        """Return the stored entries of one row keyed by column index."""
        self._require_open("get_row")
        self._check_row(row)
        cells = self._space.store.get_row(self._path, row_key(row), (COLUMN_FAMILY,))
        values: dict[int, float] = {}
        for qualifier, payload in cells.items():
            column = column_index(qualifier)
            if column is not None:
                values[column] = decode_float(payload, qualifier)
        return dict(sorted(values.items()))

    def set_row(self, row: int, values: Mapping[int, float] | list[float]) -> None:
        """Write several entries of one row in a single batch.

        Args:
            row: Row index.
            values: Column-indexed mapping or a full list of row values.
        """
        self._require_open("set_row")
        entries = dict(enumerate(values)) if isinstance(values, list) else dict(values)
        for column in entries:
            self._check_index(row, column)
        cells = {
            column_qualifier(column): encode_float(value)
            for column, value in entries.items()
            if not (self._kind == "sparse" and value == 0.0)
        }
        self._space.store.put_cells(self._path, row_key(row), cells)
        if self._kind == "sparse":
            zero_columns = [column_qualifier(c) for c, v in entries.items() if v == 0.0]
            if zero_columns:
                self._space.store.delete_cells(self._path, row_key(row), zero_columns)

    def get_row_label(self, row: int) -> str | None:
        self._require_open("get_row_label")
        payload = self._space.store.get_cell(self._path, row_key(row), ROW_LABEL_COLUMN)
        return None if payload is None else decode_text(payload)

    def set_row_label(self, row: int, label: str) -> None:
        self._require_open("set_row_label")
        self._check_row(row)
        self._space.store.put_cells(
            self._path, row_key(row), {ROW_LABEL_COLUMN: encode_text(label)}
        )

    def get_column_label(self, column: int) -> str | None:
        self._require_open("get_column_label")
        payload = self._space.store.get_cell(
            self._path, COLUMN_INDEX_ROW, column_label_qualifier(column)
        )
        return None if payload is None else decode_text(payload)

    def set_column_label(self, column: int, label: str) -> None:
        self._require_open("set_column_label")
        self._check_column(column)
        self._space.store.put_cells(
            self._path, COLUMN_INDEX_ROW, {column_label_qualifier(column): encode_text(label)}
        )

    def norm(self, norm_type: NormType = "one") -> float:
        """Compute a norm with a batch job.

        Args:
            norm_type: ``one`` (max column abs-sum), ``infinity`` (max row
                abs-sum), ``max_value`` (max abs entry) or ``frobenius``.

        Returns:
            Norm value.
        """
        self._require_open("norm")
        return self._space.orchestrator.norm(self._path, self._kind, norm_type)

    def set(self, source: "MatrixResource", alpha: float | None = None) -> "MatrixResource":
        """Copy ``source`` into this matrix, optionally scaled by ``alpha``.

        Existing data cells of this matrix are removed first, then data,
        attribute, alias-family and block cells are copied row by row; only
        numeric data cells are scaled. A sparse destination drops zero
        entries. This matrix keeps its own reference count, type and alias,
        and takes the source dimensions.

        Returns:
            This handle.
        """
        self._require_open("set")
        source._require_open("set")
        if source.path != self._path:
            self._clear_data_cells()
        self._space.orchestrator.copy(
            source.path, self._path, alpha=alpha, drop_zero_cells=self._kind == "sparse"
        )
        write_dimension(self._space.store, self._path, source.rows(), source.columns())
        return self

    def transpose(self) -> "MatrixResource":
        """Return a new matrix of the same kind holding the transpose.

        The result is created with swapped dimensions and reference count 1;
        this matrix is not modified. If the job fails the new matrix is
        closed again and the job error is raised.
        """
        self._require_open("transpose")
        result = self._space.create_matrix(self._kind, rows=self.columns(), columns=self.rows())
        try:
            self._space.orchestrator.transpose(self._path, result.path)
        except Exception:
            result.close()
            raise
        return result

    def _clear_data_cells(self) -> None:
        store = self._space.store
        for key, cells in list(store.scan(self._path, (COLUMN_FAMILY,))):
            store.delete_cells(self._path, key, tuple(cells))

    def _discard_partial_table(self) -> None:
        """Drop a table whose metadata could not be initialized."""
        try:
            self._space.admin.drop(self._path)
        except MatrixStorageError as error:
            _LOGGER.error("matrix_create_cleanup_failed", path=self._path, error=str(error))

    def _check_index(self, row: int, column: int) -> None:
        self._check_row(row)
        self._check_column(column)

    def _check_row(self, row: int) -> None:
        rows = read_rows(self._space.store, self._path)
        if not 0 <= row < rows:
            raise MatrixArgumentError(
                f"Row {row} is outside matrix '{self._path}' with {rows} rows."
            )

    def _check_column(self, column: int) -> None:
        columns = read_columns(self._space.store, self._path)
        if not 0 <= column < columns:
            raise MatrixArgumentError(
                f"Column {column} is outside matrix '{self._path}' with {columns} columns."
            )

    def _require_open(self, operation: str) -> None:
        self._require_state("open", operation)

    def _require_state(self, expected: MatrixState, operation: str) -> None:
        if self._state == expected:
            return
        if self._state == "closed":
            raise MatrixClosedError(
                f"Cannot {operation} matrix '{self._path}': the handle is closed."
            )
        raise MatrixClosedError(
            f"Cannot {operation} matrix '{self._path}' in state '{self._state}'; "
            f"expected '{expected}'."
        )

    def _transition(self, next_state: MatrixState) -> None:
        if next_state not in ALLOWED_STATE_TRANSITIONS[self._state]:
            raise MatrixClosedError(
                f"Invalid matrix state transition {self._state!r} -> {next_state!r}."
            )
        self._state = next_state


def _validate_dimension(rows: int, columns: int) -> None:
    if rows < 0 or columns < 0:
        raise MatrixArgumentError(
            f"Matrix dimension must be non-negative, got {rows}x{columns}."
        )
