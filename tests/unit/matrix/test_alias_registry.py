"""Unit tests for alias bindings."""

from __future__ import annotations

import pytest

from core.constants import METADATA_ALIAS
from core.errors import MatrixAliasError, MatrixStorageError
from matrix.alias_registry import AliasRegistry
from store.memory_store import InMemoryTableStore
from store.table_schema import matrix_table_schema


def _registry_with_matrices(*paths: str) -> AliasRegistry:
    store = InMemoryTableStore()
    for path in paths:
        store.create_table(matrix_table_schema(path))
    return AliasRegistry(store)


def test_bind_records_alias_in_registry_and_metadata() -> None:
    registry = _registry_with_matrices("m1")

    assert registry.bind("m1", "weights")
    assert (registry.resolve("weights"), registry.alias_of("m1")) == ("m1", "weights")


def test_bind_refuses_alias_taken_by_other_matrix() -> None:
    """An alias names at most one matrix."""
    registry = _registry_with_matrices("m1", "m2")
    registry.bind("m1", "weights")

    assert not registry.bind("m2", "weights")
    assert registry.alias_of("m2") is None


def test_bind_same_alias_twice_is_idempotent() -> None:
    registry = _registry_with_matrices("m1")
    registry.bind("m1", "weights")

    assert registry.bind("m1", "weights")


def test_bind_rejects_second_alias_for_matrix() -> None:
    """A matrix carries at most one alias."""
    registry = _registry_with_matrices("m1")
    registry.bind("m1", "weights")

    with pytest.raises(MatrixAliasError):
        registry.bind("m1", "biases")


def test_unbind_clears_both_cells() -> None:
    registry = _registry_with_matrices("m1")
    registry.bind("m1", "weights")

    path = registry.unbind("weights")

    assert (path, registry.resolve("weights"), registry.has_alias("m1")) == ("m1", None, False)


def test_list_aliases_without_registry_table_is_empty() -> None:
    assert _registry_with_matrices().list_aliases() == {}


def test_list_aliases_returns_all_bindings() -> None:
    registry = _registry_with_matrices("m1", "m2")
    registry.bind("m1", "a")
    registry.bind("m2", "b")

    assert registry.list_aliases() == {"a": "m1", "b": "m2"}


class _MirrorFailureStore(InMemoryTableStore):
    """Store that rejects writes of the metadata alias cell."""

    def put_cells(self, table, row, cells):  # type: ignore[override]
        if METADATA_ALIAS in cells:
            raise MatrixStorageError(f"Write to '{table}' timed out.")
        super().put_cells(table, row, cells)


def test_failed_mirror_write_releases_alias() -> None:
    """An alias is never left bound to a matrix that does not carry it."""
    store = _MirrorFailureStore()
    store.create_table(matrix_table_schema("m1"))
    registry = AliasRegistry(store)

    with pytest.raises(MatrixStorageError):
        registry.bind("m1", "weights")

    assert (registry.resolve("weights"), registry.has_alias("m1")) == (None, False)
