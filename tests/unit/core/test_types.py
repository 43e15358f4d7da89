"""Unit tests for shared key helpers and variant parsing."""

from __future__ import annotations

import pytest

from core.errors import MatrixArgumentError, MatrixMetadataError
from core.types import (
    column_index,
    column_qualifier,
    parse_matrix_kind,
    row_index,
    row_key,
    validate_matrix_kind,
)


def test_row_keys_sort_in_numeric_order() -> None:
    """Zero padded row keys should sort like their indices."""
    keys = [row_key(index) for index in (10, 2, 1)]

    assert sorted(keys) == [row_key(1), row_key(2), row_key(10)]


def test_row_index_ignores_non_data_rows() -> None:
    """Metadata and column index rows are not data rows."""
    assert (row_index(row_key(42)), row_index("metadata"), row_index("cIndex")) == (
        42,
        None,
        None,
    )


def test_column_index_parses_only_data_qualifiers() -> None:
    """Only ``column:<j>`` qualifiers carry a column index."""
    assert (column_index(column_qualifier(3)), column_index("attribute:string")) == (3, None)


def test_parse_matrix_kind_maps_stored_type_names() -> None:
    """Stored type names should map onto the closed variant set."""
    assert (parse_matrix_kind("DenseMatrix", "p"), parse_matrix_kind("SparseMatrix", "p")) == (
        "dense",
        "sparse",
    )


def test_parse_matrix_kind_rejects_unknown_type() -> None:
    with pytest.raises(MatrixMetadataError):
        parse_matrix_kind("BlockMatrix", "p")


def test_validate_matrix_kind_rejects_unknown_kind() -> None:
    with pytest.raises(MatrixArgumentError):
        validate_matrix_kind("diagonal")
