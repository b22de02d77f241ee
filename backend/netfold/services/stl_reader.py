"""
Binary STL reader.

A binary STL file consists of an 80 byte opaque header, a little-endian
``uint32`` triangle count and that many fixed 50 byte records.  Each
record stores a facet normal (three ``float32``), the three corner
points in winding order (nine ``float32``) and a two byte attribute
field.  There is no padding between records.

The reader decodes the records with a NumPy structured dtype in a single
pass.  Any disagreement between the declared triangle count and the
number of bytes that follow the header is fatal: :class:`StlFormatError`
is raised before any mesh is constructed so callers never see a partial
triangle list.  ASCII STL is not supported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np

logger = logging.getLogger(__name__)

HEADER_SIZE = 80
COUNT_SIZE = 4
RECORD_SIZE = 50

# Layout of a single triangle record.  ``np.dtype`` honours the explicit
# little-endian markers and packs the fields without alignment padding,
# so ``itemsize`` must equal ``RECORD_SIZE``.
STL_RECORD_DTYPE = np.dtype(
    [
        ("normal", "<f4", (3,)),
        ("corners", "<f4", (3, 3)),
        ("attr", "<u2"),
    ]
)
assert STL_RECORD_DTYPE.itemsize == RECORD_SIZE


class StlFormatError(ValueError):
    """Raised when a binary STL payload is truncated or inconsistent."""


@dataclass
class StlData:
    """Decoded contents of a binary STL file.

    Attributes:
        header: The raw 80 byte header.
        normals: Array of shape ``(N, 3)`` with the stored facet normals.
            They are carried through for completeness but are not used
            by the mesh graph.
        triangles: Array of shape ``(N, 3, 3)``; ``triangles[i, k]`` is
            corner ``k`` of triangle ``i`` in source winding order.
        attributes: Array of shape ``(N,)`` holding the attribute words.
    """

    header: bytes
    normals: np.ndarray
    triangles: np.ndarray
    attributes: np.ndarray

    @property
    def triangle_count(self) -> int:
        return int(self.triangles.shape[0])

    @property
    def header_text(self) -> str:
        """Header decoded as latin-1 with trailing NULs and spaces removed."""
        return self.header.rstrip(b"\x00 ").decode("latin-1")


def parse_binary_stl(data: bytes) -> StlData:
    """Decode a binary STL payload.

    Args:
        data: The complete file contents.

    Returns:
        StlData: The decoded header, normals, corners and attributes.

    Raises:
        StlFormatError: If the header is short or the declared triangle
            count does not match the number of record bytes present.
    """
    prefix = HEADER_SIZE + COUNT_SIZE
    if len(data) < prefix:
        raise StlFormatError(
            f"STL data too short for header: got {len(data)} bytes, need {prefix}"
        )
    header = bytes(data[:HEADER_SIZE])
    count = int(np.frombuffer(data, dtype="<u4", count=1, offset=HEADER_SIZE)[0])
    expected = count * RECORD_SIZE
    remaining = len(data) - prefix
    if remaining != expected:
        raise StlFormatError(
            f"STL declares {count} triangles ({expected} bytes) "
            f"but {remaining} bytes follow the header"
        )
    if count == 0:
        records = np.zeros(0, dtype=STL_RECORD_DTYPE)
    else:
        records = np.frombuffer(data, dtype=STL_RECORD_DTYPE, count=count, offset=prefix)
    logger.debug("Parsed binary STL: %d triangles", count)
    return StlData(
        header=header,
        normals=records["normal"].astype(np.float32),
        triangles=records["corners"].astype(np.float32),
        attributes=records["attr"].astype(np.uint16),
    )


def read_stl_file(path: Union[str, Path]) -> StlData:
    """Read and decode a binary STL file from disk.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        StlFormatError: If the file contents are malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"STL file not found: {path}")
    return parse_binary_stl(path.read_bytes())


def encode_binary_stl(
    triangles: np.ndarray,
    header: bytes = b"",
    normals: np.ndarray | None = None,
) -> bytes:
    """Encode triangles as a binary STL payload.

    Used by the command line tooling and the test-suite to produce
    fixtures.  Normals default to zero vectors, which STL consumers
    interpret as "compute from winding".

    Args:
        triangles: Array-like of shape ``(N, 3, 3)``.
        header: Up to 80 bytes of header text; padded with NULs.
        normals: Optional ``(N, 3)`` array of facet normals.
    """
    tris = np.asarray(triangles, dtype=np.float32).reshape(-1, 3, 3)
    if len(header) > HEADER_SIZE:
        raise ValueError("STL header must not exceed 80 bytes")
    records = np.zeros(tris.shape[0], dtype=STL_RECORD_DTYPE)
    records["corners"] = tris
    if normals is not None:
        records["normal"] = np.asarray(normals, dtype=np.float32).reshape(-1, 3)
    count = np.array([tris.shape[0]], dtype="<u4")
    return header.ljust(HEADER_SIZE, b"\x00") + count.tobytes() + records.tobytes()


__all__ = [
    "StlData",
    "StlFormatError",
    "STL_RECORD_DTYPE",
    "parse_binary_stl",
    "read_stl_file",
    "encode_binary_stl",
]
