"""Persisted reference counting on a matrix metadata row.

Updates are read-modify-write cycles committed with compare-and-swap,
so two clients decrementing at once cannot both write the same value.
A cycle that keeps losing to concurrent writers gives up after a bounded
number of attempts.
"""

from __future__ import annotations

from core.constants import DEFAULT_REFERENCE_RETRIES, METADATA_REFERENCE, METADATA_ROW
from core.errors import MatrixStorageError
from core.logging_config import get_logger
from matrix.metadata import read_reference
from store.cell_codec import decode_int, encode_int
from store.table_store import TableStore

_LOGGER = get_logger(__name__)


class ReferenceCounter:
    """Reference count of one matrix table."""

    def __init__(
        self,
        store: TableStore,
        path: str,
        max_attempts: int = DEFAULT_REFERENCE_RETRIES,
    ) -> None:
        self._store = store
        self._path = path
        self._max_attempts = max_attempts

    def get(self) -> int:
        """Return the current count; an absent cell counts as zero."""
        return read_reference(self._store, self._path)

    def set(self, reference: int) -> None:
        """Overwrite the count unconditionally; used when a table is created."""
        self._store.put_cells(
            self._path, METADATA_ROW, {METADATA_REFERENCE: encode_int(max(0, reference))}
        )

    def increment_and_get(self) -> int:
        return self._update(1)

    def decrement_and_get(self) -> int:
        """Decrement with a floor of zero and return the new count."""
        return self._update(-1)

    def _update(self, delta: int) -> int:
        for attempt in range(1, self._max_attempts + 1):
            current_payload = self._store.get_cell(self._path, METADATA_ROW, METADATA_REFERENCE)
            current = 0
            if current_payload is not None:
                current = decode_int(current_payload, METADATA_REFERENCE)
            updated = max(0, current + delta)
            if self._store.check_and_put(
                self._path,
                METADATA_ROW,
                METADATA_REFERENCE,
                current_payload,
                encode_int(updated),
            ):
                return updated
            _LOGGER.debug(
                "reference_update_conflict", path=self._path, attempt=attempt, delta=delta
            )
        raise MatrixStorageError(
            f"Reference count of '{self._path}' changed concurrently on each of "
            f"{self._max_attempts} attempts. Retry the operation or raise "
            "TABLEMATRIX_REFERENCE_RETRIES."
        )
