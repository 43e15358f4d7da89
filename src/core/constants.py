"""Core constants used across TableMatrix modules.

This module centralizes table layout names and runtime defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".tablematrix")
TABLES_DIR_NAME = "tables"
SCRATCH_DIR_NAME = "scratch"
TABLE_FILE_SUFFIX = ".json"

# Row keys.
METADATA_ROW = "metadata"
COLUMN_INDEX_ROW = "cIndex"
ROW_KEY_WIDTH = 10

# Column families.
COLUMN_FAMILY = "column"
ATTRIBUTE_FAMILY = "attribute"
ALIAS_FAMILY = "alias"
BLOCK_FAMILY = "block"
EIGENVALUE_FAMILY = "eival"
EIGEN_COLUMN_FAMILY = "eicol"
EIGENVECTOR_FAMILY = "eivec"
COPY_FAMILIES = (COLUMN_FAMILY, ATTRIBUTE_FAMILY, ALIAS_FAMILY, BLOCK_FAMILY)

# Metadata qualifiers.
METADATA_ROWS = "attribute:rows"
METADATA_COLUMNS = "attribute:columns"
METADATA_REFERENCE = "attribute:reference"
METADATA_TYPE = "attribute:type"
METADATA_ALIAS = "alias:name"
ROW_LABEL_COLUMN = "attribute:string"

# Alias registry table.
ADMIN_TABLE_NAME = "tablematrix.admin"
ADMIN_PATH_FAMILY = "path"
ADMIN_PATH_COLUMN = "path:"

# Naming defaults.
DEFAULT_PATH_LENGTH = 5
DEFAULT_MAX_PATH_LENGTH = 32
DEFAULT_TRY_TIMES = 10
PATH_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"

# Job defaults.
DEFAULT_MAP_TASKS = 2
DEFAULT_REDUCE_TASKS = 1
REDUCE_OUTPUT_FILE_NAME = "part-00000"
NORM_OUTPUT_KEY = "norm"

# Lifecycle defaults.
DEFAULT_DISABLE_RETRIES = 5
DEFAULT_DISABLE_BACKOFF_SECONDS = 0.1
DEFAULT_REFERENCE_RETRIES = 16
