"""Unit tests for core config parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import TableMatrixConfig
from core.errors import MatrixConfigError


def test_from_env_reads_data_root(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve data root from environment."""
    monkeypatch.setenv("TABLEMATRIX_DATA_ROOT", "./.tmp-tablematrix")

    config = TableMatrixConfig.from_env()

    assert config.data_root.name == ".tmp-tablematrix"


def test_from_env_defaults_scratch_under_data_root(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """Scratch space should default to a directory below the data root."""
    monkeypatch.setenv("TABLEMATRIX_DATA_ROOT", str(tmp_path))
    monkeypatch.delenv("TABLEMATRIX_SCRATCH_URI", raising=False)

    config = TableMatrixConfig.from_env()

    assert config.scratch_uri == str(tmp_path.resolve() / "scratch")


def test_from_env_raises_for_invalid_integer(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for a non-numeric path length."""
    monkeypatch.setenv("TABLEMATRIX_PATH_LENGTH", "not-a-number")

    with pytest.raises(MatrixConfigError):
        TableMatrixConfig.from_env()


def test_from_env_rejects_values_below_minimum(monkeypatch: pytest.MonkeyPatch) -> None:
    """Retry budgets must be positive."""
    monkeypatch.setenv("TABLEMATRIX_DISABLE_RETRIES", "0")

    with pytest.raises(MatrixConfigError):
        TableMatrixConfig.from_env()


def test_from_mapping_rejects_path_length_above_maximum(tmp_path: Path) -> None:
    """Initial path length may not exceed the maximum."""
    with pytest.raises(MatrixConfigError):
        TableMatrixConfig.from_mapping(
            {"data_root": str(tmp_path), "path_length": "9", "max_path_length": "8"}
        )


def test_config_file_values_apply_and_env_wins(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """YAML config file sets defaults and environment variables override them."""
    config_file = tmp_path / "tablematrix.yaml"
    config_file.write_text(
        "try_times: 3\nnum_map_tasks: 4\ndisable_backoff_seconds: 0.5\n", encoding="utf-8"
    )
    monkeypatch.setenv("TABLEMATRIX_CONFIG_FILE", str(config_file))
    monkeypatch.setenv("TABLEMATRIX_MAP_TASKS", "6")

    config = TableMatrixConfig.from_env()

    assert (config.try_times, config.num_map_tasks, config.disable_backoff_seconds) == (
        3,
        6,
        0.5,
    )


def test_config_file_rejects_unknown_keys(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """Unknown config file keys should be reported."""
    config_file = tmp_path / "tablematrix.yaml"
    config_file.write_text("tries: 3\n", encoding="utf-8")
    monkeypatch.setenv("TABLEMATRIX_CONFIG_FILE", str(config_file))

    with pytest.raises(MatrixConfigError, match="unknown keys tries"):
        TableMatrixConfig.from_env()


def test_config_file_must_exist(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """A configured but missing file is a config error."""
    monkeypatch.setenv("TABLEMATRIX_CONFIG_FILE", str(tmp_path / "missing.yaml"))

    with pytest.raises(MatrixConfigError):
        TableMatrixConfig.from_env()
