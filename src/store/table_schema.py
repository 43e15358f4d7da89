"""Table schema models for the column-family store.

Defines the column family layout every matrix table is created with
and the layout of the alias registry table.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.constants import (
    ADMIN_PATH_FAMILY,
    ALIAS_FAMILY,
    ATTRIBUTE_FAMILY,
    BLOCK_FAMILY,
    COLUMN_FAMILY,
    EIGEN_COLUMN_FAMILY,
    EIGENVALUE_FAMILY,
    EIGENVECTOR_FAMILY,
)


@dataclass(frozen=True)
class ColumnFamily:
    """One column family definition.

    Attributes:
        name: Family name, the part of a qualifier before ``:``.
        max_versions: Cell versions the store should retain.
    """

    name: str
    max_versions: int = 3


@dataclass(frozen=True)
class TableSchema:
    """Table name plus its column families."""

    name: str
    families: tuple[ColumnFamily, ...]

    def family_names(self) -> tuple[str, ...]:
        return tuple(family.name for family in self.families)


def matrix_table_schema(path: str) -> TableSchema:
    """Build the fixed column family layout for a matrix table.

    The ``eival``, ``eicol`` and ``eivec`` families are reserved for
    eigenvalue decomposition jobs; ``block`` holds temporary block data.

    Args:
        path: Matrix table path.

    Returns:
        Table schema.
    """
    return TableSchema(
        name=path,
        families=(
            ColumnFamily(COLUMN_FAMILY, max_versions=3),
            ColumnFamily(ATTRIBUTE_FAMILY),
            ColumnFamily(ALIAS_FAMILY),
            ColumnFamily(BLOCK_FAMILY, max_versions=1),
            ColumnFamily(EIGENVALUE_FAMILY, max_versions=1),
            ColumnFamily(EIGEN_COLUMN_FAMILY, max_versions=10),
            ColumnFamily(EIGENVECTOR_FAMILY, max_versions=10),
        ),
    )


def admin_table_schema(name: str) -> TableSchema:
    """Build the layout of the alias registry table."""
    return TableSchema(name=name, families=(ColumnFamily(ADMIN_PATH_FAMILY, max_versions=1),))


def column_family(column: str) -> str:
    """Return the family part of a ``family:qualifier`` column name."""
    return column.partition(":")[0]
