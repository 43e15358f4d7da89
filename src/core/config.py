"""Runtime configuration model for TableMatrix.

This module owns all environment variable and config file parsing.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping, cast

from core.constants import (
    DEFAULT_DATA_ROOT,
    DEFAULT_DISABLE_BACKOFF_SECONDS,
    DEFAULT_DISABLE_RETRIES,
    DEFAULT_MAP_TASKS,
    DEFAULT_MAX_PATH_LENGTH,
    DEFAULT_PATH_LENGTH,
    DEFAULT_REDUCE_TASKS,
    DEFAULT_REFERENCE_RETRIES,
    DEFAULT_TRY_TIMES,
    SCRATCH_DIR_NAME,
)
from core.errors import MatrixConfigError, MatrixDependencyError

CONFIG_FILE_ENV = "TABLEMATRIX_CONFIG_FILE"

# field name -> (environment variable, minimum value)
_INT_FIELDS: dict[str, tuple[str, int]] = {
    "path_length": ("TABLEMATRIX_PATH_LENGTH", 1),
    "max_path_length": ("TABLEMATRIX_MAX_PATH_LENGTH", 1),
    "try_times": ("TABLEMATRIX_TRY_TIMES", 1),
    "num_map_tasks": ("TABLEMATRIX_MAP_TASKS", 1),
    "num_reduce_tasks": ("TABLEMATRIX_REDUCE_TASKS", 1),
    "disable_retries": ("TABLEMATRIX_DISABLE_RETRIES", 1),
    "reference_retries": ("TABLEMATRIX_REFERENCE_RETRIES", 1),
}
_STRING_FIELDS: dict[str, str] = {
    "data_root": "TABLEMATRIX_DATA_ROOT",
    "scratch_uri": "TABLEMATRIX_SCRATCH_URI",
    "s3_region": "TABLEMATRIX_S3_REGION",
    "s3_profile": "TABLEMATRIX_S3_PROFILE",
}
_FLOAT_FIELDS: dict[str, str] = {
    "disable_backoff_seconds": "TABLEMATRIX_DISABLE_BACKOFF",
}


@dataclass(frozen=True)
class TableMatrixConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for file-backed tables.
        scratch_uri: Job scratch location, a local path or ``s3://bucket/prefix``.
        s3_region: Optional default AWS region for S3 scratch space.
        s3_profile: Optional AWS profile for boto3 session initialization.
        path_length: Initial random suffix length for new matrix paths.
        max_path_length: Suffix length beyond which naming gives up.
        try_times: Collisions tolerated per suffix length.
        num_map_tasks: Map splits requested per job.
        num_reduce_tasks: Reduce partitions requested per table-output job.
        disable_retries: Attempts to disable a table before deletion.
        disable_backoff_seconds: Initial backoff between disable attempts.
        reference_retries: Compare-and-swap attempts per reference update.
    """

    data_root: Path
    scratch_uri: str
    s3_region: str | None = None
    s3_profile: str | None = None
    path_length: int = DEFAULT_PATH_LENGTH
    max_path_length: int = DEFAULT_MAX_PATH_LENGTH
    try_times: int = DEFAULT_TRY_TIMES
    num_map_tasks: int = DEFAULT_MAP_TASKS
    num_reduce_tasks: int = DEFAULT_REDUCE_TASKS
    disable_retries: int = DEFAULT_DISABLE_RETRIES
    disable_backoff_seconds: float = DEFAULT_DISABLE_BACKOFF_SECONDS
    reference_retries: int = DEFAULT_REFERENCE_RETRIES

    @classmethod
    def from_env(cls) -> "TableMatrixConfig":
        """Build config from an optional YAML file and environment variables.

        Environment variables take precedence over config file values.

        Returns:
            A validated config object.

        Raises:
            MatrixConfigError: If file or environment values are invalid.
        """
        file_values = _load_config_file(os.getenv(CONFIG_FILE_ENV))
        raw_values: dict[str, str] = {key: str(value) for key, value in file_values.items()}
        for field_name, env_name in {
            **_STRING_FIELDS,
            **_FLOAT_FIELDS,
            **{name: env for name, (env, _) in _INT_FIELDS.items()},
        }.items():
            env_value = os.getenv(env_name)
            if env_value is not None:
                raw_values[field_name] = env_value
        return cls.from_mapping(raw_values)

    @classmethod
    def from_mapping(cls, raw_values: Mapping[str, str]) -> "TableMatrixConfig":
        """Build config from raw string values keyed by field name.

        Args:
            raw_values: Field name to raw value mapping.

        Returns:
            A validated config object.

        Raises:
            MatrixConfigError: If a value is invalid.
        """
        data_root = Path(raw_values.get("data_root", str(DEFAULT_DATA_ROOT)))
        data_root = data_root.expanduser().resolve()
        scratch_uri = raw_values.get("scratch_uri") or str(data_root / SCRATCH_DIR_NAME)
        int_values = {
            name: _parse_int(env_name, raw_values[name], minimum)
            for name, (env_name, minimum) in _INT_FIELDS.items()
            if name in raw_values
        }
        float_values = {
            name: _parse_float(env_name, raw_values[name])
            for name, env_name in _FLOAT_FIELDS.items()
            if name in raw_values
        }
        config = cls(
            data_root=data_root,
            scratch_uri=scratch_uri,
            s3_region=raw_values.get("s3_region") or None,
            s3_profile=raw_values.get("s3_profile") or None,
            **int_values,
            **float_values,
        )
        _validate_path_lengths(config)
        return config


def _load_config_file(config_file: str | None) -> dict[str, object]:
    """Load optional YAML config overrides.

    Args:
        config_file: Path from ``TABLEMATRIX_CONFIG_FILE`` or ``None``.

    Returns:
        Mapping of field names to raw values, empty when no file is set.

    Raises:
        MatrixDependencyError: If PyYAML is unavailable.
        MatrixConfigError: If the file is missing, invalid, or has unknown keys.
    """
    if not config_file:
        return {}
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise MatrixDependencyError(
            "Config file support requires PyYAML. Install with 'pip install pyyaml'."
        ) from error
    config_path = Path(config_file).expanduser().resolve()
    try:
        payload = cast(object, yaml.safe_load(config_path.read_text(encoding="utf-8")))
    except OSError as error:
        raise MatrixConfigError(
            f"Failed to read config file at {config_path}: {error}. "
            f"Fix {CONFIG_FILE_ENV} or create the file."
        ) from error
    except yaml.YAMLError as error:
        raise MatrixConfigError(
            f"Failed to parse YAML config at {config_path}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise MatrixConfigError(
            f"Invalid config file at {config_path}: expected a mapping at top level."
        )
    known_fields = set(_STRING_FIELDS) | set(_FLOAT_FIELDS) | set(_INT_FIELDS)
    unknown_fields = sorted(str(key) for key in payload if key not in known_fields)
    if unknown_fields:
        raise MatrixConfigError(
            f"Invalid config file at {config_path}: unknown keys {', '.join(unknown_fields)}. "
            f"Supported keys: {', '.join(sorted(known_fields))}."
        )
    return {str(key): value for key, value in payload.items() if value is not None}


def _parse_int(env_name: str, raw_value: str, minimum: int) -> int:
    """Parse an integer setting with a lower bound.

    Args:
        env_name: Setting name for error messages.
        raw_value: Raw string value.
        minimum: Smallest accepted value.

    Returns:
        Parsed integer.

    Raises:
        MatrixConfigError: If value is not an integer or below minimum.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise MatrixConfigError(
            f"Invalid {env_name} value: expected integer, got '{raw_value}'. "
            f"Set {env_name} to a numeric value."
        ) from error
    if value < minimum:
        raise MatrixConfigError(
            f"Invalid {env_name} value: expected >= {minimum}, got {value}."
        )
    return value


def _parse_float(env_name: str, raw_value: str) -> float:
    """Parse a non-negative float setting."""
    try:
        value = float(raw_value)
    except ValueError as error:
        raise MatrixConfigError(
            f"Invalid {env_name} value: expected number, got '{raw_value}'."
        ) from error
    if value < 0:
        raise MatrixConfigError(f"Invalid {env_name} value: expected >= 0, got {value}.")
    return value


def _validate_path_lengths(config: TableMatrixConfig) -> None:
    if config.path_length > config.max_path_length:
        raise MatrixConfigError(
            f"Invalid naming config: path_length {config.path_length} exceeds "
            f"max_path_length {config.max_path_length}."
        )
