"""Shared typed models.

This module defines the closed matrix variant, norm and lifecycle
vocabularies plus the row and column key helpers used by every layer.
"""

from __future__ import annotations

from typing import Literal, cast

from core.constants import ATTRIBUTE_FAMILY, COLUMN_FAMILY, ROW_KEY_WIDTH
from core.errors import MatrixArgumentError, MatrixMetadataError

MatrixKind = Literal["dense", "sparse"]
NormType = Literal["one", "infinity", "max_value", "frobenius"]
MatrixState = Literal["uninitialized", "open", "closed"]

MATRIX_TYPE_NAMES: dict[MatrixKind, str] = {
    "dense": "DenseMatrix",
    "sparse": "SparseMatrix",
}
NORM_TYPES: tuple[NormType, ...] = ("one", "infinity", "max_value", "frobenius")
ALLOWED_STATE_TRANSITIONS: dict[MatrixState, tuple[MatrixState, ...]] = {
    "uninitialized": ("open", "closed"),
    "open": ("closed",),
    "closed": (),
}


def parse_matrix_kind(type_name: str, path: str) -> MatrixKind:
    """Map a stored type name onto the closed matrix variant set.

    Args:
        type_name: Value of the metadata type cell.
        path: Matrix path for error context.

    Returns:
        Matrix kind.

    Raises:
        MatrixMetadataError: If the type name is not a known variant.
    """
    for kind, known_name in MATRIX_TYPE_NAMES.items():
        if type_name == known_name:
            return kind
    allowed = ", ".join(MATRIX_TYPE_NAMES.values())
    raise MatrixMetadataError(
        f"Matrix '{path}' has unsupported type '{type_name}'. Expected one of {allowed}."
    )


def validate_matrix_kind(kind: str) -> MatrixKind:
    """Validate a caller-supplied matrix kind."""
    if kind in MATRIX_TYPE_NAMES:
        return cast(MatrixKind, kind)
    raise MatrixArgumentError(
        f"Unsupported matrix kind '{kind}'. Use one of: {', '.join(MATRIX_TYPE_NAMES)}."
    )


def validate_norm_type(norm_type: str) -> NormType:
    """Validate a caller-supplied norm type."""
    if norm_type in NORM_TYPES:
        return cast(NormType, norm_type)
    raise MatrixArgumentError(
        f"Unsupported norm type '{norm_type}'. Use one of: {', '.join(NORM_TYPES)}."
    )


def row_key(row: int) -> str:
    """Return the store row key for a zero-based matrix row index."""
    return f"{row:0{ROW_KEY_WIDTH}d}"


def row_index(key: str) -> int | None:
    """Return the matrix row index for a data row key, else ``None``."""
    if len(key) == ROW_KEY_WIDTH and key.isdigit():
        return int(key)
    return None


def column_qualifier(column: int) -> str:
    """Return the data cell qualifier for a zero-based column index."""
    return f"{COLUMN_FAMILY}:{column}"


def column_label_qualifier(column: int) -> str:
    """Return the column label qualifier stored on the column index row."""
    return f"{ATTRIBUTE_FAMILY}:{column}"


def column_index(qualifier: str) -> int | None:
    """Return the column index of a data qualifier, else ``None``."""
    family, _, suffix = qualifier.partition(":")
    if family == COLUMN_FAMILY and suffix.isdigit():
        return int(suffix)
    return None
