"""Client entry point for matrix resources.

``MatrixSpace`` wires configuration, the table store, path allocation,
alias registry, table administration and job orchestration together,
and hands out ``MatrixResource`` handles.
"""

from __future__ import annotations

import time
from typing import Callable

from core.config import TableMatrixConfig
from core.errors import MatrixNamingError, TableNotFoundError
from core.logging_config import get_logger
from core.types import MATRIX_TYPE_NAMES, MatrixKind, parse_matrix_kind, validate_matrix_kind
from jobs.job_runner import JobRunner, LocalJobRunner
from jobs.orchestrator import JobOrchestrator
from jobs.scratch import ScratchFileSystem, build_scratch_filesystem
from matrix.alias_registry import AliasRegistry
from matrix.matrix_resource import MatrixResource
from matrix.metadata import read_reference, read_type
from matrix.table_admin import TableAdmin
from naming.name_allocator import NameAllocator
from store.local_store import LocalTableStore
from store.table_store import TableStore

_LOGGER = get_logger(__name__)


class MatrixSpace:
    """Create, open and reclaim matrices in one shared store."""

    def __init__(
        self,
        config: TableMatrixConfig | None = None,
        store: TableStore | None = None,
        scratch: ScratchFileSystem | None = None,
        runner: JobRunner | None = None,
        allocator: NameAllocator | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Create a client.

        Args:
            config: Runtime config; read from the environment when omitted.
            store: Table store; a file-backed store under ``data_root`` by default.
            scratch: Job scratch filesystem; built from ``scratch_uri`` by default.
            runner: Job runner; the local in-process runner by default.
            allocator: Path allocator; built from config naming settings by default.
            sleep: Sleep function used between table disable retries.
        """
        self._config = config or TableMatrixConfig.from_env()
        self._store = store if store is not None else LocalTableStore(self._config.data_root)
        self._scratch = scratch or build_scratch_filesystem(self._config)
        self._runner = runner or LocalJobRunner(self._store, self._scratch)
        self._allocator = allocator or NameAllocator(
            self._store,
            path_length=self._config.path_length,
            max_path_length=self._config.max_path_length,
            try_times=self._config.try_times,
        )
        self._aliases = AliasRegistry(self._store)
        self._admin = TableAdmin(self._store, self._config, sleep=sleep)
        self._orchestrator = JobOrchestrator(self._runner, self._scratch, self._config)

    @property
    def config(self) -> TableMatrixConfig:
        return self._config

    @property
    def store(self) -> TableStore:
        return self._store

    @property
    def aliases(self) -> AliasRegistry:
        return self._aliases

    @property
    def admin(self) -> TableAdmin:
        return self._admin

    @property
    def orchestrator(self) -> JobOrchestrator:
        return self._orchestrator

    def create_matrix(
        self,
        kind: MatrixKind,
        rows: int,
        columns: int,
        prefix: str | None = None,
    ) -> MatrixResource:
        """Create a matrix under a freshly allocated path.

        A path taken by another client between allocation and creation
        counts as one more collision and a new path is drawn.

        Args:
            kind: ``dense`` or ``sparse``.
            rows: Row count.
            columns: Column count.
            prefix: Path prefix; the matrix type name by default.

        Returns:
            Open handle with reference count 1.

        Raises:
            MatrixNamingError: If no free path can be allocated.
        """
        kind = validate_matrix_kind(kind)
        path_prefix = prefix or MATRIX_TYPE_NAMES[kind]
        for _ in range(self._config.try_times):
            matrix = MatrixResource(self, self._allocator.allocate(path_prefix), kind)
            if matrix.create(rows, columns):
                return matrix
        raise MatrixNamingError(
            f"Lost the race for {self._config.try_times} allocated paths with prefix "
            f"'{path_prefix}'. Retry when contention drops."
        )

    def open_matrix(self, path: str, acquire: bool = False) -> MatrixResource:
        """Open an existing matrix by path.

        Opening does not change the reference count unless ``acquire`` is
        set; ``close()`` always releases one reference.

        Args:
            path: Matrix table path.
            acquire: Register the caller as an additional owner.

        Returns:
            Open handle.

        Raises:
            TableNotFoundError: If the matrix does not exist.
            MatrixMetadataError: If the stored type is missing or unknown.
        """
        if not self._store.table_exists(path):
            raise TableNotFoundError(f"Matrix '{path}' does not exist. Check the path.")
        kind = parse_matrix_kind(read_type(self._store, path), path)
        matrix = MatrixResource(self, path, kind).open()
        if acquire:
            matrix.increment_reference()
        return matrix

    def open_alias(self, alias: str, acquire: bool = False) -> MatrixResource:
        """Open the matrix an alias names.

        Raises:
            TableNotFoundError: If the alias is unbound or its matrix is gone.
        """
        path = self._aliases.resolve(alias)
        if path is None:
            raise TableNotFoundError(f"No matrix is saved under alias '{alias}'.")
        return self.open_matrix(path, acquire=acquire)

    def matrix_exists(self, path: str) -> bool:
        return self._store.table_exists(path)

    def alias_exists(self, alias: str) -> bool:
        return self._aliases.resolve(alias) is not None

    def list_aliases(self) -> dict[str, str]:
        return self._aliases.list_aliases()

    def remove_alias(self, alias: str) -> bool:
        """Unbind an alias and delete its matrix when nothing references it.

        Returns:
            ``True`` when the matrix table was deleted.
        """
        path = self._aliases.unbind(alias)
        if path is None:
            return False
        return self.purge(path)

    def purge(self, path: str) -> bool:
        """Delete a matrix table with no references and no alias.

        Reclaims tables left behind by a ``close()`` whose deletion failed.

        Returns:
            ``True`` when the table was deleted, ``False`` when it is still
            referenced, aliased, or already absent.
        """
        if not self._store.table_exists(path):
            return False
        if read_reference(self._store, path) > 0 or self._aliases.has_alias(path):
            _LOGGER.info("matrix_purge_skipped", path=path)
            return False
        return self._admin.drop(path)
