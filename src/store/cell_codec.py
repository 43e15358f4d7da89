"""Cell value encoding helpers.

Metadata integers are stored as big-endian int32, data cells as
big-endian float64, and labels or type names as UTF-8 text.
"""

from __future__ import annotations

import struct

from core.errors import MatrixMetadataError

_INT_FORMAT = ">i"
_FLOAT_FORMAT = ">d"


def encode_int(value: int) -> bytes:
    """Encode an int32 cell value."""
    return struct.pack(_INT_FORMAT, value)


def decode_int(payload: bytes, column: str) -> int:
    """Decode an int32 cell value.

    Raises:
        MatrixMetadataError: If the payload is not four bytes long.
    """
    if len(payload) != struct.calcsize(_INT_FORMAT):
        raise MatrixMetadataError(
            f"Cell '{column}' holds {len(payload)} bytes; expected a 4-byte integer."
        )
    return int(struct.unpack(_INT_FORMAT, payload)[0])


def encode_float(value: float) -> bytes:
    """Encode a float64 cell value."""
    return struct.pack(_FLOAT_FORMAT, value)


def decode_float(payload: bytes, column: str) -> float:
    """Decode a float64 cell value.

    Raises:
        MatrixMetadataError: If the payload is not eight bytes long.
    """
    if len(payload) != struct.calcsize(_FLOAT_FORMAT):
        raise MatrixMetadataError(
            f"Cell '{column}' holds {len(payload)} bytes; expected an 8-byte float."
        )
    return float(struct.unpack(_FLOAT_FORMAT, payload)[0])


def encode_text(value: str) -> bytes:
    return value.encode("utf-8")


def decode_text(payload: bytes) -> str:
    return payload.decode("utf-8")
