"""Collision-free matrix path allocation.

Paths are ``<prefix>_<suffix>`` with a random suffix. Repeated collisions
grow the suffix length instead of failing, so heavy contention degrades
into a larger name space. Each allocator owns its retry state.
"""

from __future__ import annotations

import random

from core.constants import (
    DEFAULT_MAX_PATH_LENGTH,
    DEFAULT_PATH_LENGTH,
    DEFAULT_TRY_TIMES,
    PATH_ALPHABET,
)
from core.errors import MatrixArgumentError, MatrixNamingError
from core.logging_config import get_logger
from store.table_store import TableStore

_LOGGER = get_logger(__name__)


class NameAllocator:
    """Allocate unused table paths against a table store."""

    def __init__(
        self,
        store: TableStore,
        path_length: int = DEFAULT_PATH_LENGTH,
        max_path_length: int = DEFAULT_MAX_PATH_LENGTH,
        try_times: int = DEFAULT_TRY_TIMES,
        rng: random.Random | None = None,
    ) -> None:
        """Create an allocator.

        Args:
            store: Store queried for existing tables.
            path_length: Initial random suffix length.
            max_path_length: Longest suffix length before giving up.
            try_times: Collisions tolerated at each suffix length.
            rng: Random source, seeded by tests for determinism.
        """
        if path_length < 1 or try_times < 1 or path_length > max_path_length:
            raise MatrixArgumentError(
                "Invalid allocator settings: need 1 <= path_length <= max_path_length "
                f"and try_times >= 1, got {path_length}/{max_path_length}/{try_times}."
            )
        self._store = store
        self._path_length = path_length
        self._max_path_length = max_path_length
        self._try_times = try_times
        self._rng = rng or random.SystemRandom()

    @property
    def path_length(self) -> int:
        """Current suffix length; never decreases."""
        return self._path_length

    def allocate(self, prefix: str) -> str:
        """Return a path that does not exist in the store.

        Args:
            prefix: Path prefix, usually the matrix type name.

        Returns:
            Unused path ``<prefix>_<suffix>``.

        Raises:
            MatrixNamingError: If the suffix length exceeds the maximum.
        """
        if not prefix:
            raise MatrixArgumentError("Matrix path prefix must be a non-empty string.")
        remaining_tries = self._try_times
        while self._path_length <= self._max_path_length:
            path = f"{prefix}_{self._random_suffix()}"
            if not self._store.table_exists(path):
                return path
            remaining_tries -= 1
            if remaining_tries <= 0:
                self._path_length += 1
                remaining_tries = self._try_times
                _LOGGER.info(
                    "path_length_increased", prefix=prefix, path_length=self._path_length
                )
        raise MatrixNamingError(
            f"Could not allocate a free path for prefix '{prefix}' within "
            f"{self._max_path_length} suffix characters. Remove unused matrices "
            "or raise TABLEMATRIX_MAX_PATH_LENGTH."
        )

    def _random_suffix(self) -> str:
        return "".join(self._rng.choice(PATH_ALPHABET) for _ in range(self._path_length))
