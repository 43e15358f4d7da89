"""Batch job runner protocol and local runner.

``submit`` blocks until the job reaches a terminal state. The local
runner executes map, combine and reduce serially in-process over
contiguous input splits and hash reduce partitions, which keeps job
semantics identical to a distributed runner for the kernels used here.
"""

from __future__ import annotations

import zlib
from collections import defaultdict
from typing import Iterable, Mapping, Protocol

from core.errors import MatrixJobError
from core.logging_config import get_logger
from jobs.job_types import (
    FileOutput,
    JobConfig,
    JobResult,
    JobSpec,
    KeyValue,
    Reducer,
    TableOutput,
)
from jobs.scratch import ScratchFileSystem
from store.table_store import TableStore

_LOGGER = get_logger(__name__)


class JobRunner(Protocol):
    """Submit jobs and block until they finish."""

    def submit(self, job: JobSpec) -> JobResult:
        """Run a job to completion.

        Raises:
            MatrixJobError: If the job fails.
        """


class LocalJobRunner:
    """Serial in-process job runner over a table store."""

    def __init__(self, store: TableStore, scratch: ScratchFileSystem) -> None:
        self._store = store
        self._scratch = scratch

    def submit(self, job: JobSpec) -> JobResult:
        """Run map, combine and reduce phases and write the output.

        Args:
            job: Job description.

        Returns:
            Job counters.

        Raises:
            MatrixJobError: If any phase fails.
        """
        config = job.config
        _LOGGER.info(
            "job_submitted",
            job_name=config.name,
            input_table=job.input_table,
            map_tasks=config.num_map_tasks,
            reduce_tasks=config.num_reduce_tasks,
        )
        try:
            rows = list(self._store.scan(job.input_table, job.input_families))
            map_outputs: list[KeyValue] = []
            for split in _split_rows(rows, config.num_map_tasks):
                split_outputs = _run_map(job, split)
                if job.combiner is not None:
                    split_outputs = _run_reduce(job.combiner, split_outputs, config)
                map_outputs.extend(split_outputs)
            partitions = _partition(map_outputs, _reduce_partitions(job))
            reduce_outputs = [
                _run_reduce(job.reducer, partition, config) for partition in partitions
            ]
            self._write_output(job, reduce_outputs)
        except MatrixJobError:
            raise
        except Exception as error:
            _LOGGER.error("job_failed", job_name=config.name, error=str(error))
            raise MatrixJobError(f"Job '{config.name}' failed: {error}") from error
        result = JobResult(
            job_name=config.name,
            input_rows=len(rows),
            map_output_records=len(map_outputs),
            reduce_output_records=sum(len(records) for records in reduce_outputs),
        )
        _LOGGER.info(
            "job_completed",
            job_name=config.name,
            input_rows=result.input_rows,
            reduce_output_records=result.reduce_output_records,
        )
        return result

    def _write_output(self, job: JobSpec, partitions: list[list[KeyValue]]) -> None:
        output = job.output
        if isinstance(output, FileOutput):
            for index, records in enumerate(partitions):
                location = f"{output.location.rstrip('/')}/part-{index:05d}"
                self._scratch.write_records(location, records)
            return
        if isinstance(output, TableOutput):
            for records in partitions:
                for key, cells in records:
                    if not isinstance(cells, Mapping):
                        raise MatrixJobError(
                            f"Job '{job.config.name}' emitted {type(cells).__name__} for row "
                            f"'{key}'; table output needs a cell mapping."
                        )
                    self._store.put_cells(output.table, key, cells)
            return
        raise MatrixJobError(f"Job '{job.config.name}' has unsupported output {output!r}.")


def _split_rows(
    rows: list[tuple[str, dict[str, bytes]]], num_splits: int
) -> list[list[tuple[str, dict[str, bytes]]]]:
    """Cut rows into at most ``num_splits`` contiguous splits."""
    if not rows:
        return []
    split_count = max(1, min(num_splits, len(rows)))
    size, remainder = divmod(len(rows), split_count)
    splits = []
    start = 0
    for index in range(split_count):
        end = start + size + (1 if index < remainder else 0)
        splits.append(rows[start:end])
        start = end
    return splits


def _run_map(job: JobSpec, split: Iterable[tuple[str, dict[str, bytes]]]) -> list[KeyValue]:
    outputs: list[KeyValue] = []
    for key, cells in split:
        outputs.extend(job.mapper.map(key, cells, job.config))
    return outputs


def _run_reduce(reducer: Reducer, records: list[KeyValue], config: JobConfig) -> list[KeyValue]:
    grouped: dict[str, list[object]] = defaultdict(list)
    for key, value in records:
        grouped[key].append(value)
    outputs: list[KeyValue] = []
    for key in sorted(grouped):
        outputs.extend(reducer.reduce(key, grouped[key], config))
    return outputs


def _reduce_partitions(job: JobSpec) -> int:
    return max(1, job.config.num_reduce_tasks)


def _partition(records: list[KeyValue], partition_count: int) -> list[list[KeyValue]]:
    """Hash-partition records by key, stable across processes."""
    partitions: list[list[KeyValue]] = [[] for _ in range(partition_count)]
    for key, value in records:
        partitions[zlib.crc32(key.encode("utf-8")) % partition_count].append((key, value))
    return partitions
