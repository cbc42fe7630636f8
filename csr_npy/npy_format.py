"""NPY array-file encoder.

Writes 1-dimensional int32 / int16 arrays in the NPY version 1.0 container so they can be
read back with `numpy.load`, without going through `numpy.save`. The layout is:

    \\x93NUMPY | major=1 | minor=0 | header length (uint16 LE) | header text | element bytes

The header text is a Python dict literal describing dtype, memory order and shape, padded
with spaces and terminated by a newline.

Padding policies
----------------
- "aligned" (default): pad so the whole preamble (magic, version, length field and header)
  is a multiple of BLOCK_SIZE, which keeps element data aligned.
- "legacy": reproduce the historical writer byte for byte. It pads by `len % BLOCK_SIZE`,
  which over-pads (up to a full extra block) and does not align the data. numpy still
  reads these files.
"""

from __future__ import annotations

import struct
from typing import Any, BinaryIO, Literal, Optional

import numpy as np

from csr_npy.core.errors import UnsupportedTypeError

PaddingPolicy = Literal["aligned", "legacy"]

MAGIC = b"\x93NUMPY"
FORMAT_VERSION = (1, 0)
BLOCK_SIZE = 16

# magic + version bytes + uint16 header length
PREAMBLE_LEN = len(MAGIC) + 2 + 2

SUPPORTED_DESCRS = ("<i4", "<i2")


def resolve_dtype(dtype: Any) -> np.dtype:
    """Map a dtype-like (name, descr string, numpy type) to a little-endian numpy dtype.

    Only 32-bit and 16-bit signed integers are accepted.
    """

    if dtype is None:
        raise UnsupportedTypeError("An element type is required")
    try:
        dt = np.dtype(dtype)
    except TypeError as e:
        raise UnsupportedTypeError(f"Unknown element type: {dtype!r}") from e

    if dt.kind != "i" or dt.itemsize not in (2, 4):
        raise UnsupportedTypeError(
            f"Don't know how to store {dt} elements; supported types are int32 and int16"
        )
    return dt.newbyteorder("<")


def header_text(descr: str, length: int) -> str:
    """Unpadded header dict, without the terminating newline."""

    return "{ 'descr': '" + descr + "', 'fortran_order': False, 'shape': (" + str(int(length)) + ",), }"


def padded_header(descr: str, length: int, *, padding: PaddingPolicy = "aligned") -> str:
    """Header text padded with spaces and terminated by a newline."""

    text = header_text(descr, length)
    hdr_len = len(text) + 1  # +1 for the terminating newline

    if padding == "aligned":
        total = hdr_len + (-(PREAMBLE_LEN + hdr_len)) % BLOCK_SIZE
    elif padding == "legacy":
        total = hdr_len + (hdr_len % BLOCK_SIZE)
    else:
        raise ValueError(f"Unknown padding policy: {padding}")

    return text + " " * (total - hdr_len) + "\n"


def encode_header(descr: str, length: int, *, padding: PaddingPolicy = "aligned") -> bytes:
    """Magic, version, header length and padded header for an array of `length` elements."""

    if descr not in SUPPORTED_DESCRS:
        raise UnsupportedTypeError(f"Unsupported descr: {descr!r}")

    header = padded_header(descr, length, padding=padding).encode("ascii")
    if len(header) > 0xFFFF:
        raise ValueError(f"Header too long for format version 1.0: {len(header)} bytes")

    return MAGIC + bytes(FORMAT_VERSION) + struct.pack("<H", len(header)) + header


def _coerce(values: Any, dt: np.dtype) -> np.ndarray:
    arr = np.asarray(values)
    if arr.ndim != 1:
        raise UnsupportedTypeError(f"Only 1-dimensional arrays are supported, got shape {arr.shape}")
    if arr.size == 0:
        return np.zeros(0, dtype=dt)
    if arr.dtype.kind not in "iu":
        raise UnsupportedTypeError(f"Cannot store {arr.dtype} elements as {dt.str}")

    info = np.iinfo(dt)
    lo, hi = int(arr.min()), int(arr.max())
    if lo < info.min or hi > info.max:
        raise ValueError(f"Values in [{lo}, {hi}] do not fit in {dt.str} [{info.min}, {info.max}]")

    return arr.astype(dt, copy=False)


def encode_array(
    values: Any, dtype: Optional[Any] = None, *, padding: PaddingPolicy = "aligned"
) -> bytes:
    """Encode a 1-D integer sequence as NPY bytes.

    If `dtype` is omitted the element type is taken from `values`, which must then be a
    numpy array. Everything is validated before any bytes are produced.
    """

    if dtype is None:
        if not isinstance(values, np.ndarray):
            raise UnsupportedTypeError("An element type is required for non-array input")
        dtype = values.dtype

    dt = resolve_dtype(dtype)
    arr = _coerce(values, dt)
    return encode_header(dt.str, arr.shape[0], padding=padding) + arr.tobytes()


def write_array(
    fh: BinaryIO, values: Any, dtype: Optional[Any] = None, *, padding: PaddingPolicy = "aligned"
) -> int:
    """Write NPY bytes to a binary handle and return the number of bytes written."""

    payload = encode_array(values, dtype, padding=padding)
    fh.write(payload)
    return len(payload)
