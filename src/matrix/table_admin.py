"""Table removal with bounded disable retries.

A table must be disabled before it can be deleted. Disabling may fail
transiently while regions move; such failures are retried with
exponential backoff up to a configured bound and then surfaced.
"""

from __future__ import annotations

import time
from typing import Callable

from core.config import TableMatrixConfig
from core.errors import MatrixRegionError, MatrixStorageError, TableNotFoundError
from core.logging_config import get_logger
from store.table_store import TableStore

_LOGGER = get_logger(__name__)


class TableAdmin:
    """Disable and delete matrix tables."""

    def __init__(
        self,
        store: TableStore,
        config: TableMatrixConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._max_attempts = config.disable_retries
        self._backoff_seconds = config.disable_backoff_seconds
        self._sleep = sleep

    def drop(self, path: str) -> bool:
        """Disable and delete a table.

        Args:
            path: Table to remove.

        Returns:
            ``True`` when this call deleted the table, ``False`` when it was
            already gone.

        Raises:
            MatrixStorageError: If disabling keeps failing or deletion fails.
        """
        try:
            if self._store.is_table_enabled(path):
                self._disable(path)
            self._store.delete_table(path)
        except TableNotFoundError:
            _LOGGER.info("matrix_already_deleted", path=path)
            return False
        _LOGGER.info("matrix_deleted", path=path)
        return True

    def _disable(self, path: str) -> None:
        for attempt in range(1, self._max_attempts + 1):
            try:
                self._store.disable_table(path)
                return
            except MatrixRegionError as error:
                if attempt == self._max_attempts:
                    raise MatrixStorageError(
                        f"Failed to disable table '{path}' after {attempt} attempts: {error}. "
                        "Retry once the store has settled or raise TABLEMATRIX_DISABLE_RETRIES."
                    ) from error
                delay = self._backoff_seconds * (2 ** (attempt - 1))
                _LOGGER.warning(
                    "table_disable_retry",
                    path=path,
                    attempt=attempt,
                    delay_seconds=delay,
                    error=str(error),
                )
                self._sleep(delay)
