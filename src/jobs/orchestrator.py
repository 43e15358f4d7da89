"""Job orchestration for matrix reductions and transforms.

Norms run as scan-reduce jobs into a fresh scratch directory whose single
record is read back before the directory is removed. Copy and transpose
jobs write straight into a destination table. Job failures propagate
unchanged; this layer never retries a job.
"""

from __future__ import annotations

import time
from uuid import uuid4

from core.config import TableMatrixConfig
from core.constants import (
    COLUMN_FAMILY,
    COPY_FAMILIES,
    NORM_OUTPUT_KEY,
    REDUCE_OUTPUT_FILE_NAME,
)
from core.errors import MatrixJobError, MatrixStorageError
from core.logging_config import get_logger
from core.types import MATRIX_TYPE_NAMES, MatrixKind, NormType, validate_norm_type
from jobs.job_runner import JobRunner
from jobs.job_types import FileOutput, JobConfig, JobResult, JobSpec, TableOutput
from jobs.norm_kernels import NORM_ROLES
from jobs.scratch import ScratchFileSystem
from jobs.table_kernels import MergeCellsReducer, TableCopyMapper, TransposeMapper

_LOGGER = get_logger(__name__)

_NORM_DIR_LABELS: dict[NormType, str] = {
    "one": "norm1",
    "infinity": "normInfinity",
    "max_value": "normMaxValue",
    "frobenius": "normFrobenius",
}


class JobOrchestrator:
    """Build, submit and collect jobs against matrix tables."""

    def __init__(
        self,
        runner: JobRunner,
        scratch: ScratchFileSystem,
        config: TableMatrixConfig,
    ) -> None:
        self._runner = runner
        self._scratch = scratch
        self._config = config

    def norm(self, path: str, kind: MatrixKind, norm_type: NormType) -> float:
        """Compute one matrix norm through a single-reducer job.

        The temporary output tree is removed whether the job succeeds or
        fails.

        Args:
            path: Matrix table path.
            kind: Matrix variant, used to name the scratch directory.
            norm_type: Norm to compute.

        Returns:
            Norm value; ``0.0`` for a matrix without data cells.

        Raises:
            MatrixJobError: If the job fails or its output is malformed.
        """
        norm_type = validate_norm_type(norm_type)
        mapper, combiner, reducer = NORM_ROLES[norm_type]
        job_dir = self._scratch.join(_scratch_dir_name(kind, norm_type))
        output_dir = f"{job_dir.rstrip('/')}/out"
        job = JobSpec(
            config=JobConfig(
                name=f"{norm_type} norm job : {path}",
                num_map_tasks=self._config.num_map_tasks,
                num_reduce_tasks=1,
            ),
            input_table=path,
            input_families=(COLUMN_FAMILY,),
            mapper=mapper,
            combiner=combiner,
            reducer=reducer,
            output=FileOutput(output_dir),
        )
        try:
            self._runner.submit(job)
            records = self._scratch.read_records(f"{output_dir}/{REDUCE_OUTPUT_FILE_NAME}")
        except Exception:
            self._remove_scratch(job_dir, job_failed=True)
            raise
        self._remove_scratch(job_dir, job_failed=False)
        return _norm_from_records(records, job.config.name)

    def _remove_scratch(self, job_dir: str, job_failed: bool) -> None:
        """Delete a job scratch tree.

        After a failed job a cleanup error is logged instead of raised so
        the job error reaches the caller unchanged.
        """
        try:
            self._scratch.delete_tree(job_dir)
        except MatrixStorageError as error:
            if not job_failed:
                raise
            _LOGGER.warning("scratch_remove_failed", location=job_dir, error=str(error))
            return
        _LOGGER.debug("scratch_removed", location=job_dir, job_failed=job_failed)

    def copy(
        self,
        source_path: str,
        destination_path: str,
        alpha: float | None = None,
        drop_zero_cells: bool = False,
    ) -> JobResult:
        """Copy data, attribute, alias and block cells row by row.

        Args:
            source_path: Table read by the job.
            destination_path: Table written by the job.
            alpha: Optional factor applied to every numeric data cell.
            drop_zero_cells: Omit data cells that are zero after scaling.

        Returns:
            Job counters.
        """
        job = JobSpec(
            config=JobConfig(
                name=f"set job : {destination_path}",
                num_map_tasks=self._config.num_map_tasks,
                num_reduce_tasks=self._config.num_reduce_tasks,
                alpha=alpha,
                drop_zero_cells=drop_zero_cells,
            ),
            input_table=source_path,
            input_families=COPY_FAMILIES,
            mapper=TableCopyMapper(),
            reducer=MergeCellsReducer(),
            output=TableOutput(destination_path),
        )
        return self._runner.submit(job)

    def transpose(self, source_path: str, destination_path: str) -> JobResult:
        """Write the transpose of the source data cells into the destination.

        Args:
            source_path: Table read by the job.
            destination_path: Pre-created table with swapped dimensions.

        Returns:
            Job counters.
        """
        job = JobSpec(
            config=JobConfig(
                name=f"transpose job : {destination_path}",
                num_map_tasks=self._config.num_map_tasks,
                num_reduce_tasks=self._config.num_reduce_tasks,
            ),
            input_table=source_path,
            input_families=(COLUMN_FAMILY,),
            mapper=TransposeMapper(),
            reducer=MergeCellsReducer(),
            output=TableOutput(destination_path),
        )
        return self._runner.submit(job)


def _scratch_dir_name(kind: MatrixKind, norm_type: NormType) -> str:
    millis = int(time.time() * 1000)
    return f"{MATRIX_TYPE_NAMES[kind]}_TMP_{_NORM_DIR_LABELS[norm_type]}_dir_{millis}_{uuid4().hex[:8]}"


def _norm_from_records(records: list[tuple[str, object]], job_name: str) -> float:
    if not records:
        return 0.0
    key, value = records[0]
    if key != NORM_OUTPUT_KEY or not isinstance(value, (int, float)):
        raise MatrixJobError(
            f"Job '{job_name}' produced an unexpected record {key!r}: {value!r}."
        )
    return float(value)
