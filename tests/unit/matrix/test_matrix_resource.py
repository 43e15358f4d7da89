"""Unit tests for matrix handle lifecycle and cell access."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.constants import METADATA_TYPE
from core.errors import (
    MatrixArgumentError,
    MatrixClosedError,
    MatrixMetadataError,
    MatrixRegionError,
    MatrixStorageError,
)
from matrix.matrix_resource import MatrixResource
from store.memory_store import InMemoryTableStore
from tests.matrix_fixtures import build_space, fill_matrix


class _FlakyDisableStore(InMemoryTableStore):
    """Store whose table disable fails a set number of times."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures

    def disable_table(self, name: str) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise MatrixRegionError(f"Regions of '{name}' are in transition.")
        super().disable_table(name)


class _MetadataFailureStore(InMemoryTableStore):
    """Store that refuses to write the matrix type cell."""

    def check_and_put(self, table, row, column, expected, value):  # type: ignore[override]
        if column == METADATA_TYPE:
            raise MatrixStorageError(f"Write to '{table}' timed out.")
        return super().check_and_put(table, row, column, expected, value)


def test_create_records_metadata_and_single_reference(tmp_path: Path) -> None:
    space = build_space(tmp_path)

    matrix = space.create_matrix("dense", rows=3, columns=2)

    assert (matrix.rows(), matrix.columns(), matrix.reference_count(), matrix.state) == (
        3,
        2,
        1,
        "open",
    )


def test_create_uses_type_name_prefix(tmp_path: Path) -> None:
    matrix = build_space(tmp_path).create_matrix("sparse", rows=1, columns=1)

    assert matrix.path.startswith("SparseMatrix_")


def test_create_on_existing_table_leaves_it_untouched(tmp_path: Path) -> None:
    """An existing table is not re-initialised by a second handle."""
    space = build_space(tmp_path)
    first = space.create_matrix("dense", rows=3, columns=2)
    first.increment_reference()

    second = MatrixResource(space, first.path, "dense")

    assert (second.create(5, 5), first.rows(), first.reference_count()) == (False, 3, 2)


def test_last_close_deletes_shared_table(tmp_path: Path) -> None:
    """Two owners keep the table until both have closed."""
    space = build_space(tmp_path)
    owner = space.create_matrix("dense", rows=3, columns=2)
    owner.increment_reference()
    other = space.open_matrix(owner.path)

    owner.close()
    still_there = space.matrix_exists(owner.path)
    other.close()

    assert (still_there, space.matrix_exists(owner.path)) == (True, False)


def test_alias_keeps_matrix_alive_at_zero_references(tmp_path: Path) -> None:
    space = build_space(tmp_path)
    matrix = space.create_matrix("dense", rows=2, columns=2)
    matrix.save("weights")

    matrix.close()

    reopened = space.open_alias("weights")
    assert (reopened.path, reopened.reference_count()) == (matrix.path, 0)


def test_close_is_idempotent(tmp_path: Path) -> None:
    """Closing twice releases one reference only."""
    space = build_space(tmp_path)
    matrix = space.create_matrix("dense", rows=2, columns=2)
    matrix.increment_reference()

    matrix.close()
    matrix.close()

    assert space.open_matrix(matrix.path).reference_count() == 1


def test_closed_handle_rejects_operations(tmp_path: Path) -> None:
    matrix = build_space(tmp_path).create_matrix("dense", rows=2, columns=2)
    matrix.close()

    with pytest.raises(MatrixClosedError):
        matrix.get(0, 0)


def test_context_manager_closes_handle(tmp_path: Path) -> None:
    space = build_space(tmp_path)

    with space.create_matrix("dense", rows=1, columns=1) as matrix:
        path = matrix.path

    assert (matrix.state, space.matrix_exists(path)) == ("closed", False)


def test_dense_get_of_unwritten_cell_raises(tmp_path: Path) -> None:
    matrix = build_space(tmp_path).create_matrix("dense", rows=2, columns=2)

    with pytest.raises(MatrixMetadataError):
        matrix.get(1, 1)


def test_sparse_get_of_unwritten_cell_is_zero(tmp_path: Path) -> None:
    matrix = build_space(tmp_path).create_matrix("sparse", rows=2, columns=2)

    assert matrix.get(1, 1) == 0.0


def test_sparse_zero_write_removes_cell(tmp_path: Path) -> None:
    """Sparse matrices never store explicit zeros."""
    matrix = build_space(tmp_path).create_matrix("sparse", rows=2, columns=3)
    matrix.set_row(0, [1.0, 0.0, 2.0])
    matrix.set_value(0, 2, 0.0)

    assert matrix.get_row(0) == {0: 1.0}


def test_add_accumulates_into_cell(tmp_path: Path) -> None:
    matrix = fill_matrix(
        build_space(tmp_path).create_matrix("dense", rows=1, columns=2), [[1.5, 2.0]]
    )

    matrix.add(0, 1, 0.5)

    assert matrix.get_row(0) == {0: 1.5, 1: 2.5}


def test_get_rejects_out_of_range_index(tmp_path: Path) -> None:
    matrix = build_space(tmp_path).create_matrix("dense", rows=2, columns=2)

    with pytest.raises(MatrixArgumentError):
        matrix.get(2, 0)


def test_row_and_column_labels_roundtrip(tmp_path: Path) -> None:
    matrix = build_space(tmp_path).create_matrix("dense", rows=2, columns=2)
    matrix.set_row_label(1, "beta")
    matrix.set_column_label(0, "x")

    assert (matrix.get_row_label(1), matrix.get_column_label(0), matrix.get_row_label(0)) == (
        "beta",
        "x",
        None,
    )


def test_close_retries_transient_disable_failures(tmp_path: Path) -> None:
    """Disabling retries with exponential backoff before deleting."""
    delays: list[float] = []
    store = _FlakyDisableStore(failures=2)
    space = build_space(
        tmp_path, store=store, sleep=delays.append, disable_backoff_seconds=0.5
    )
    matrix = space.create_matrix("dense", rows=1, columns=1)

    matrix.close()

    assert (delays, space.matrix_exists(matrix.path)) == ([0.5, 1.0], False)


def test_failed_delete_closes_handle_and_purge_reclaims_table(tmp_path: Path) -> None:
    """A table left behind by a failed delete is reclaimed by purge."""
    store = _FlakyDisableStore(failures=4)
    space = build_space(tmp_path, store=store, disable_retries=3)
    matrix = space.create_matrix("dense", rows=1, columns=1)

    with pytest.raises(MatrixStorageError):
        matrix.close()

    orphaned = space.matrix_exists(matrix.path)
    purged = space.purge(matrix.path)

    assert (matrix.state, orphaned, purged, space.matrix_exists(matrix.path)) == (
        "closed",
        True,
        True,
        False,
    )


def test_set_dimension_rejects_negative_values(tmp_path: Path) -> None:
    matrix = build_space(tmp_path).create_matrix("dense", rows=1, columns=1)

    with pytest.raises(MatrixArgumentError):
        matrix.set_dimension(-1, 2)


def test_close_after_peer_deleted_table_ends_closed(tmp_path: Path) -> None:
    """A table already deleted by another owner counts as released."""
    space = build_space(tmp_path)
    owner = space.create_matrix("dense", rows=2, columns=2)
    peer = space.open_matrix(owner.path)
    peer.close()

    owner.close()
    owner.close()

    assert (owner.state, space.matrix_exists(owner.path)) == ("closed", False)


def test_failed_metadata_write_drops_new_table(tmp_path: Path) -> None:
    """A failed create leaves no partial table behind."""
    store = _MetadataFailureStore()
    space = build_space(tmp_path, store=store)

    with pytest.raises(MatrixStorageError, match="timed out"):
        space.create_matrix("dense", rows=2, columns=2)

    assert store.list_tables() == ()
