"""Unit tests for collision-free path allocation."""

from __future__ import annotations

import random

import pytest

from core.errors import MatrixArgumentError, MatrixNamingError
from naming.name_allocator import NameAllocator
from store.memory_store import InMemoryTableStore
from store.table_schema import matrix_table_schema


class _CollidingStore:
    """Store stub reporting the first ``collisions`` lookups as taken."""

    def __init__(self, collisions: int) -> None:
        self.collisions = collisions
        self.checked: list[str] = []

    def table_exists(self, name: str) -> bool:
        self.checked.append(name)
        return len(self.checked) <= self.collisions


def test_allocate_returns_prefixed_path_of_configured_length() -> None:
    allocator = NameAllocator(InMemoryTableStore(), path_length=5, rng=random.Random(1))

    path = allocator.allocate("DenseMatrix")

    assert path.startswith("DenseMatrix_") and len(path) == len("DenseMatrix_") + 5


def test_allocate_skips_existing_tables() -> None:
    """A path that exists in the store is never returned."""
    store = InMemoryTableStore()
    taken = NameAllocator(store, path_length=1, rng=random.Random(3)).allocate("m")
    store.create_table(matrix_table_schema(taken))

    allocator = NameAllocator(store, path_length=1, rng=random.Random(3))

    assert allocator.allocate("m") != taken


def test_allocate_grows_path_length_after_try_budget() -> None:
    """Exhausting the collision budget lengthens the suffix by one."""
    store = _CollidingStore(collisions=3)
    allocator = NameAllocator(store, path_length=2, try_times=3, rng=random.Random(5))

    path = allocator.allocate("m")

    assert (allocator.path_length, len(path)) == (3, len("m_") + 3)


def test_path_length_growth_persists_across_calls() -> None:
    store = _CollidingStore(collisions=2)
    allocator = NameAllocator(store, path_length=2, try_times=2, rng=random.Random(5))
    allocator.allocate("m")

    second = allocator.allocate("m")

    assert len(second) == len("m_") + 3


def test_allocate_raises_after_maximum_length() -> None:
    """Constant collisions end in a naming error once the maximum is passed."""
    store = _CollidingStore(collisions=10_000)
    allocator = NameAllocator(
        store, path_length=1, max_path_length=2, try_times=2, rng=random.Random(5)
    )

    with pytest.raises(MatrixNamingError):
        allocator.allocate("m")

    assert len(store.checked) == 4


def test_allocate_rejects_empty_prefix() -> None:
    with pytest.raises(MatrixArgumentError):
        NameAllocator(InMemoryTableStore()).allocate("")


def test_allocator_rejects_invalid_settings() -> None:
    with pytest.raises(MatrixArgumentError):
        NameAllocator(InMemoryTableStore(), path_length=6, max_path_length=5)
