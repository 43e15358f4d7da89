"""TableMatrix exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class TableMatrixError(Exception):
    """Base exception for all TableMatrix failures."""


class MatrixConfigError(TableMatrixError):
    """Raised for invalid runtime configuration."""


class MatrixNamingError(TableMatrixError):
    """Raised when no free matrix path can be allocated."""


class MatrixStorageError(TableMatrixError):
    """Raised for table store connection and administration failures."""


class MatrixRegionError(MatrixStorageError):
    """Raised for retryable region failures while disabling a table."""


class MatrixMetadataError(TableMatrixError):
    """Raised when a mandatory metadata or data cell is missing."""


class MatrixArgumentError(TableMatrixError):
    """Raised for invalid matrix indices or operation arguments."""


class MatrixClosedError(TableMatrixError):
    """Raised when an operation targets a closed matrix handle."""


class MatrixAliasError(TableMatrixError):
    """Raised for conflicting alias bindings."""


class MatrixJobError(TableMatrixError):
    """Raised when a batch job fails in the job runner."""


class MatrixDependencyError(TableMatrixError):
    """Raised when an optional runtime dependency is missing."""


class TableExistsError(MatrixStorageError):
    """Raised when creating a table whose name is already taken."""


class TableNotFoundError(MatrixStorageError):
    """Raised when a table operation targets a missing table."""
