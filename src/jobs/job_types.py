"""Typed job descriptions.

A job names its input table and families, the map/combine/reduce roles,
and where reduce output goes. Every tunable travels in an immutable
``JobConfig`` submitted with the job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Protocol, Union

from core.constants import DEFAULT_MAP_TASKS, DEFAULT_REDUCE_TASKS

KeyValue = tuple[str, object]


@dataclass(frozen=True)
class JobConfig:
    """Immutable per-job configuration.

    Attributes:
        name: Human readable job name used in logs.
        num_map_tasks: Requested map splits.
        num_reduce_tasks: Requested reduce partitions.
        alpha: Optional scale factor applied to numeric data cells.
        drop_zero_cells: Skip numeric data cells equal to zero, for sparse outputs.
    """

    name: str
    num_map_tasks: int = DEFAULT_MAP_TASKS
    num_reduce_tasks: int = DEFAULT_REDUCE_TASKS
    alpha: float | None = None
    drop_zero_cells: bool = False


class Mapper(Protocol):
    """Map role: one input row to zero or more key/value pairs."""

    def map(
        self, row_key: str, cells: Mapping[str, bytes], config: JobConfig
    ) -> Iterable[KeyValue]:
        ...


class Reducer(Protocol):
    """Reduce or combine role: all values of one key to output pairs."""

    def reduce(self, key: str, values: list[object], config: JobConfig) -> Iterable[KeyValue]:
        ...


@dataclass(frozen=True)
class TableOutput:
    """Reduce output written as row cells into a table."""

    table: str


@dataclass(frozen=True)
class FileOutput:
    """Reduce output written as ``part-NNNNN`` record files in scratch space."""

    location: str


JobOutput = Union[TableOutput, FileOutput]


@dataclass(frozen=True)
class JobSpec:
    """Complete description of one batch job."""

    config: JobConfig
    input_table: str
    input_families: tuple[str, ...]
    mapper: Mapper
    reducer: Reducer
    output: JobOutput
    combiner: Reducer | None = None


@dataclass(frozen=True)
class JobResult:
    """Counters reported by a finished job."""

    job_name: str
    input_rows: int
    map_output_records: int
    reduce_output_records: int
