"""Public SDK surface for TableMatrix.

This module provides a stable import path for library users.
It re-exports the client, handle, config and error types.
"""

from __future__ import annotations

from core.config import TableMatrixConfig
from core.errors import (
    MatrixAliasError,
    MatrixArgumentError,
    MatrixClosedError,
    MatrixConfigError,
    MatrixDependencyError,
    MatrixJobError,
    MatrixMetadataError,
    MatrixNamingError,
    MatrixRegionError,
    MatrixStorageError,
    TableExistsError,
    TableMatrixError,
    TableNotFoundError,
)
from core.types import MatrixKind, NormType
from jobs.job_runner import LocalJobRunner
from jobs.scratch import LocalScratchFileSystem, S3ScratchFileSystem
from matrix.matrix_resource import MatrixResource
from matrix.matrix_space import MatrixSpace
from naming.name_allocator import NameAllocator
from store.local_store import LocalTableStore
from store.memory_store import InMemoryTableStore

__all__ = [
    "InMemoryTableStore",
    "LocalJobRunner",
    "LocalScratchFileSystem",
    "LocalTableStore",
    "MatrixAliasError",
    "MatrixArgumentError",
    "MatrixClosedError",
    "MatrixConfigError",
    "MatrixDependencyError",
    "MatrixJobError",
    "MatrixKind",
    "MatrixMetadataError",
    "MatrixNamingError",
    "MatrixRegionError",
    "MatrixResource",
    "MatrixSpace",
    "MatrixStorageError",
    "NameAllocator",
    "NormType",
    "S3ScratchFileSystem",
    "TableExistsError",
    "TableMatrixConfig",
    "TableMatrixError",
    "TableNotFoundError",
]
