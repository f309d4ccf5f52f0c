"""Binary storage of vectors and forest file headers, and the importance text file."""

from __future__ import annotations

import math
import struct
from typing import BinaryIO, NamedTuple, Sequence

_SIZE = struct.Struct("<Q")
_UINT = struct.Struct("<I")


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunk = stream.read(size)
    if len(chunk) != size:
        raise EOFError("Unexpected end of file.")
    return chunk


def _read_size(stream: BinaryIO) -> int:
    return _SIZE.unpack(_read_exact(stream, _SIZE.size))[0]


def save_vector_1d(stream: BinaryIO, values: Sequence, type_code: str = "d") -> None:
    """Write a length followed by the values packed with a struct type code."""
    values = list(values)
    stream.write(_SIZE.pack(len(values)))
    if values:
        stream.write(struct.pack(f"<{len(values)}{type_code}", *values))


def read_vector_1d(stream: BinaryIO, type_code: str = "d") -> list:
    """Read a vector written by save_vector_1d."""
    length = _read_size(stream)
    if length == 0:
        return []
    fmt = f"<{length}{type_code}"
    return list(struct.unpack(fmt, _read_exact(stream, struct.calcsize(fmt))))


def save_vector_2d(stream: BinaryIO, rows: Sequence[Sequence], type_code: str = "d") -> None:
    """Write the number of rows followed by each row as a 1-D vector."""
    rows = list(rows)
    stream.write(_SIZE.pack(len(rows)))
    for row in rows:
        save_vector_1d(stream, row, type_code)


def read_vector_2d(stream: BinaryIO, type_code: str = "d") -> list[list]:
    """Read a vector of vectors written by save_vector_2d."""
    return [read_vector_1d(stream, type_code) for _ in range(_read_size(stream))]


class ForestHeader(NamedTuple):
    """Leading part of a saved forest file."""

    dependent_variable_names: list[str]
    num_trees: int
    is_ordered_variable: list[bool]


def write_forest_header(
    stream: BinaryIO,
    dependent_variable_names: Sequence[str],
    num_trees: int,
    is_ordered_variable: Sequence[bool],
) -> None:
    """Write dependent variable names, the tree count and the ordered flags."""
    if not dependent_variable_names:
        raise ValueError("Missing dependent variable name.")
    stream.write(_UINT.pack(len(dependent_variable_names)))
    for name in dependent_variable_names:
        encoded = name.encode("utf-8")
        stream.write(_SIZE.pack(len(encoded)))
        stream.write(encoded)
    stream.write(_SIZE.pack(num_trees))
    save_vector_1d(stream, [bool(flag) for flag in is_ordered_variable], "?")


def _read_names(stream: BinaryIO) -> list[str]:
    count = _UINT.unpack(_read_exact(stream, _UINT.size))[0]
    return [_read_exact(stream, _read_size(stream)).decode("utf-8") for _ in range(count)]


def read_forest_header(stream: BinaryIO) -> ForestHeader:
    """Read the header written by write_forest_header."""
    names = _read_names(stream)
    num_trees = _read_size(stream)
    is_ordered = read_vector_1d(stream, "?")
    return ForestHeader(names, num_trees, is_ordered)


def read_dependent_variable_names(filename) -> list[str]:
    """Dependent variable names stored at the start of a forest file."""
    try:
        with open(filename, "rb") as stream:
            return _read_names(stream)
    except OSError as err:
        raise OSError(f"Could not read from input file: {filename}.") from err


def _format_number(value: float) -> str:
    if math.isnan(value):
        return "nan"
    return f"{value:g}"


def write_importance_file(filename, variable_names: Sequence[str], importance: Sequence[float]) -> None:
    """Write one ``name: value`` line per variable."""
    try:
        with open(filename, "w", encoding="utf-8") as handle:
            for name, value in zip(variable_names, importance):
                handle.write(f"{name}: {_format_number(value)}\n")
    except OSError as err:
        raise OSError(f"Could not write to importance file: {filename}.") from err