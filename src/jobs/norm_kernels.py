"""Map/combine/reduce roles for matrix norms.

Every role emits under the single key ``norm`` so one reducer sees all
partial results. Mappers only read ``column:`` data cells.
"""

from __future__ import annotations

import math
from typing import Iterable, Mapping

from core.constants import NORM_OUTPUT_KEY
from core.types import NormType, column_index
from jobs.job_types import JobConfig, KeyValue, Mapper, Reducer
from store.cell_codec import decode_float


def _row_values(cells: Mapping[str, bytes]) -> dict[int, float]:
    values: dict[int, float] = {}
    for qualifier, payload in cells.items():
        column = column_index(qualifier)
        if column is not None:
            values[column] = decode_float(payload, qualifier)
    return values


def _float_values(values: list[object]) -> list[float]:
    return [float(value) for value in values]  # type: ignore[arg-type]


def _merge_column_sums(values: list[object]) -> dict[str, float]:
    merged: dict[str, float] = {}
    for partial in values:
        for column, amount in dict(partial).items():  # type: ignore[call-overload]
            merged[column] = merged.get(column, 0.0) + float(amount)
    return merged


class OneNormMapper:
    """Emit per-row absolute values keyed by column."""

    def map(
        self, row_key: str, cells: Mapping[str, bytes], config: JobConfig
    ) -> Iterable[KeyValue]:
        values = _row_values(cells)
        if values:
            yield NORM_OUTPUT_KEY, {str(column): abs(value) for column, value in values.items()}


class ColumnSumCombiner:
    """Sum partial absolute column sums."""

    def reduce(self, key: str, values: list[object], config: JobConfig) -> Iterable[KeyValue]:
        yield key, _merge_column_sums(values)


class OneNormReducer:
    """Maximum absolute column sum."""

    def reduce(self, key: str, values: list[object], config: JobConfig) -> Iterable[KeyValue]:
        yield key, max(_merge_column_sums(values).values(), default=0.0)


class InfinityNormMapper:
    """Emit the absolute row sum."""

    def map(
        self, row_key: str, cells: Mapping[str, bytes], config: JobConfig
    ) -> Iterable[KeyValue]:
        values = _row_values(cells)
        if values:
            yield NORM_OUTPUT_KEY, sum(abs(value) for value in values.values())


class MaxValueNormMapper:
    """Emit the largest absolute value in the row."""

    def map(
        self, row_key: str, cells: Mapping[str, bytes], config: JobConfig
    ) -> Iterable[KeyValue]:
        values = _row_values(cells)
        if values:
            yield NORM_OUTPUT_KEY, max(abs(value) for value in values.values())


class MaxReducer:
    """Maximum of the partial values; used as combiner and reducer."""

    def reduce(self, key: str, values: list[object], config: JobConfig) -> Iterable[KeyValue]:
        yield key, max(_float_values(values), default=0.0)


class FrobeniusNormMapper:
    """Emit the sum of squares of the row."""

    def map(
        self, row_key: str, cells: Mapping[str, bytes], config: JobConfig
    ) -> Iterable[KeyValue]:
        values = _row_values(cells)
        if values:
            yield NORM_OUTPUT_KEY, sum(value * value for value in values.values())


class SumCombiner:
    def reduce(self, key: str, values: list[object], config: JobConfig) -> Iterable[KeyValue]:
        yield key, math.fsum(_float_values(values))


class FrobeniusNormReducer:
    """Square root of the summed squares."""

    def reduce(self, key: str, values: list[object], config: JobConfig) -> Iterable[KeyValue]:
        yield key, math.sqrt(math.fsum(_float_values(values)))


NormRoles = tuple[Mapper, Reducer, Reducer]

NORM_ROLES: dict[NormType, NormRoles] = {
    "one": (OneNormMapper(), ColumnSumCombiner(), OneNormReducer()),
    "infinity": (InfinityNormMapper(), MaxReducer(), MaxReducer()),
    "max_value": (MaxValueNormMapper(), MaxReducer(), MaxReducer()),
    "frobenius": (FrobeniusNormMapper(), SumCombiner(), FrobeniusNormReducer()),
}
