"""Map/reduce roles for table-to-table jobs.

``TableCopyMapper`` copies rows for ``set`` with optional scaling of
data cells; ``TransposeMapper`` re-keys data cells by column so the
merge reducer writes the transposed rows.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from core.constants import METADATA_ROW
from core.types import column_index, column_qualifier, row_index
from core.types import row_key as data_row_key
from jobs.job_types import JobConfig, KeyValue
from store.cell_codec import decode_float, encode_float


class TableCopyMapper:
    """Emit each row unchanged, or with data cells scaled by ``config.alpha``.

    The metadata row is skipped; the destination keeps its own
    reference count, type and alias. With ``config.drop_zero_cells`` data
    cells that are zero after scaling are left out.
    """

    def map(
        self, row_key: str, cells: Mapping[str, bytes], config: JobConfig
    ) -> Iterable[KeyValue]:
        if row_key == METADATA_ROW:
            return
        if config.alpha is None and not config.drop_zero_cells:
            yield row_key, dict(cells)
            return
        copied: dict[str, bytes] = {}
        for qualifier, payload in cells.items():
            if column_index(qualifier) is None:
                copied[qualifier] = payload
                continue
            value = decode_float(payload, qualifier)
            if config.alpha is not None:
                value *= config.alpha
            if config.drop_zero_cells and value == 0.0:
                continue
            copied[qualifier] = encode_float(value)
        if copied:
            yield row_key, copied


class TransposeMapper:
    """Emit cell ``(i, j)`` as row ``j`` with qualifier for column ``i``."""

    def map(
        self, row_key: str, cells: Mapping[str, bytes], config: JobConfig
    ) -> Iterable[KeyValue]:
        source_row = row_index(row_key)
        if source_row is None:
            return
        target_qualifier = column_qualifier(source_row)
        for qualifier, payload in cells.items():
            source_column = column_index(qualifier)
            if source_column is not None:
                yield data_row_key(source_column), {target_qualifier: payload}


class MergeCellsReducer:
    """Merge all cell maps emitted for one row key into a single row write."""

    def reduce(self, key: str, values: list[object], config: JobConfig) -> Iterable[KeyValue]:
        merged: dict[str, bytes] = {}
        for cells in values:
            merged.update(dict(cells))  # type: ignore[call-overload]
        yield key, merged
