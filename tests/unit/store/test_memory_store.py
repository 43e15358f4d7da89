"""Unit tests for the in-memory table store."""

from __future__ import annotations

import pytest

from core.errors import MatrixStorageError, TableExistsError, TableNotFoundError
from store.memory_store import InMemoryTableStore
from store.table_schema import matrix_table_schema


def _store_with_table(name: str = "m1") -> InMemoryTableStore:
    store = InMemoryTableStore()
    store.create_table(matrix_table_schema(name))
    return store


def test_create_table_rejects_existing_name() -> None:
    """Creating the same table twice should fail atomically."""
    store = _store_with_table()

    with pytest.raises(TableExistsError):
        store.create_table(matrix_table_schema("m1"))


def test_put_cells_and_get_cell_roundtrip() -> None:
    """Batched puts should be readable per cell."""
    store = _store_with_table()
    store.put_cells("m1", "0000000000", {"column:0": b"a", "attribute:string": b"row"})

    assert store.get_cell("m1", "0000000000", "column:0") == b"a"


def test_put_cells_rejects_unknown_family() -> None:
    store = _store_with_table()

    with pytest.raises(MatrixStorageError):
        store.put_cells("m1", "0000000000", {"unknown:0": b"a"})


def test_get_cell_returns_none_for_absent_cell() -> None:
    store = _store_with_table()

    assert store.get_cell("m1", "0000000000", "column:9") is None


def test_delete_table_requires_disabled_table() -> None:
    """Enabled tables cannot be deleted."""
    store = _store_with_table()

    with pytest.raises(MatrixStorageError):
        store.delete_table("m1")

    store.disable_table("m1")
    store.delete_table("m1")
    assert not store.table_exists("m1")


def test_disabled_table_rejects_reads() -> None:
    store = _store_with_table()
    store.disable_table("m1")

    with pytest.raises(MatrixStorageError):
        store.get_cell("m1", "metadata", "attribute:rows")


def test_missing_table_raises_not_found() -> None:
    with pytest.raises(TableNotFoundError):
        InMemoryTableStore().is_table_enabled("absent")


def test_check_and_put_only_writes_on_expected_value() -> None:
    """Compare-and-swap should reject stale expectations."""
    store = _store_with_table()

    first = store.check_and_put("m1", "metadata", "attribute:reference", None, b"1")
    stale = store.check_and_put("m1", "metadata", "attribute:reference", None, b"2")
    fresh = store.check_and_put("m1", "metadata", "attribute:reference", b"1", b"3")

    assert (first, stale, fresh) == (True, False, True)
    assert store.get_cell("m1", "metadata", "attribute:reference") == b"3"


def test_scan_filters_families_and_orders_rows() -> None:
    """Scans should return rows in key order restricted to requested families."""
    store = _store_with_table()
    store.put_cells("m1", "0000000002", {"column:0": b"c"})
    store.put_cells("m1", "0000000001", {"column:0": b"b", "attribute:string": b"x"})
    store.put_cells("m1", "metadata", {"attribute:rows": b"r"})

    rows = list(store.scan("m1", ("column",)))

    assert rows == [
        ("0000000001", {"column:0": b"b"}),
        ("0000000002", {"column:0": b"c"}),
    ]


def test_delete_cells_drops_empty_rows() -> None:
    store = _store_with_table()
    store.put_cells("m1", "0000000000", {"column:0": b"a"})

    store.delete_cells("m1", "0000000000", ("column:0",))

    assert store.get_row("m1", "0000000000") == {}
