"""Unit tests for persisted reference counting."""

from __future__ import annotations

import pytest

from core.constants import METADATA_REFERENCE, METADATA_ROW
from core.errors import MatrixStorageError
from matrix.reference_counter import ReferenceCounter
from store.cell_codec import decode_int, encode_int
from store.memory_store import InMemoryTableStore
from store.table_schema import matrix_table_schema


class _RacingStore(InMemoryTableStore):
    """Store whose compare-and-swap loses to another writer a set number of times."""

    def __init__(self, lost_races: int) -> None:
        super().__init__()
        self.lost_races = lost_races

    def check_and_put(self, table, row, column, expected, value):  # type: ignore[override]
        if self.lost_races > 0:
            self.lost_races -= 1
            current = self.get_cell(table, row, column)
            bumped = 0 if current is None else decode_int(current, column)
            self.put_cells(table, row, {column: encode_int(bumped + 1)})
            return False
        return super().check_and_put(table, row, column, expected, value)


def _counter(store: InMemoryTableStore, max_attempts: int = 16) -> ReferenceCounter:
    store.create_table(matrix_table_schema("m1"))
    return ReferenceCounter(store, "m1", max_attempts=max_attempts)


def test_get_treats_absent_cell_as_zero() -> None:
    assert _counter(InMemoryTableStore()).get() == 0


def test_count_follows_increments_and_decrements() -> None:
    """After creation, N increments and K decrements leave max(0, 1 + N - K)."""
    counter = _counter(InMemoryTableStore())
    counter.set(1)
    for _ in range(3):
        counter.increment_and_get()
    for _ in range(2):
        counter.decrement_and_get()

    assert counter.get() == 2


def test_decrement_never_goes_below_zero() -> None:
    counter = _counter(InMemoryTableStore())
    counter.set(1)
    counter.decrement_and_get()

    assert counter.decrement_and_get() == 0


def test_update_retries_after_concurrent_write() -> None:
    """A lost compare-and-swap re-reads the count and applies the delta again."""
    store = _RacingStore(lost_races=2)
    counter = _counter(store)
    store.put_cells("m1", METADATA_ROW, {METADATA_REFERENCE: encode_int(1)})

    assert counter.increment_and_get() == 4


def test_update_gives_up_after_max_attempts() -> None:
    store = _RacingStore(lost_races=100)
    counter = _counter(store, max_attempts=3)

    with pytest.raises(MatrixStorageError):
        counter.decrement_and_get()
