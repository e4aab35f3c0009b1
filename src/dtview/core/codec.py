"""
Pack and unpack fixed-width scalars to and from sequences of byte units.

A byte unit is an ``int8`` element, so any ``int8`` reader or writer can act
as the byte source or sink. In little-endian order unit ``i`` holds bits
``[8i, 8i + 8)`` of the value; in big-endian order the units are mirrored.
Floating point kinds reinterpret the IEEE-754 bit pattern of the integer of
the same width, so no rounding happens and NaN payloads survive.

The codec does no bounds checking of its own: an out-of-range offset
surfaces as the underlying accessor's IndexOutOfRange.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, cast

import numpy as np

from dtview.core.config import default_endian, parse_endian
from dtview.core.kinds import ElementKind, parse_element_kind

if TYPE_CHECKING:
    from dtview.core.accessor import Reader, Writer
    from dtview.core.common import Endian

__all__ = [
    "BinaryReader",
    "BinaryWriter",
    "from_bytes",
    "from_reader",
    "to_bytes",
    "to_writer",
]


def _parse_codec_kind(kind: ElementKind | str) -> ElementKind:
    kind = parse_element_kind(kind)
    if not kind.has_codec:
        raise TypeError(f"No byte codec for element kind {kind.value!r}")
    return kind


def _parse_order(order: Endian | None) -> Endian:
    if order is None:
        return default_endian()
    return parse_endian(order)


def _check_byte_accessor(accessor: Reader | Writer) -> None:
    if accessor.kind is not ElementKind.int8:
        raise TypeError(f"Expected an int8 byte accessor, got kind {accessor.kind.value!r}")


def _unit_shift(i: int, width: int, order: Endian) -> int:
    if order == "little":
        return 8 * i
    return 8 * (width - 1 - i)


def _from_raw(kind: ElementKind, raw: int) -> Any:
    # the unsigned pattern of the right width, reinterpreted as the kind
    return np.array(raw, dtype=f"u{kind.width}").view(kind.dtype)[()]


def _to_raw(kind: ElementKind, value: Any) -> int:
    return int(np.array(value, dtype=kind.dtype).view(f"u{kind.width}")[()])


def _to_unit(byte: int) -> np.int8:
    return np.array(byte, dtype=np.uint8).view(np.int8)[()]


def from_bytes(
    kind: ElementKind | str, units: Sequence[Any], order: Endian | None = None
) -> Any:
    """Combine ``kind.width`` byte units into one scalar of ``kind``.

    Parameters
    ----------
    kind
        A numeric element kind.
    units
        Exactly ``kind.width`` byte values, signed or unsigned.
    order
        ``"little"`` or ``"big"``; defaults to the ``codec.endian`` config value.
    """
    kind = _parse_codec_kind(kind)
    order = _parse_order(order)
    width = cast("int", kind.width)
    if len(units) != width:
        raise ValueError(f"{kind.value} needs {width} byte units, got {len(units)}")
    raw = 0
    for i, unit in enumerate(units):
        raw |= (int(unit) & 0xFF) << _unit_shift(i, width, order)
    return _from_raw(kind, raw)


def to_bytes(kind: ElementKind | str, value: Any, order: Endian | None = None) -> list[np.int8]:
    """Split a scalar of ``kind`` into ``kind.width`` signed byte units."""
    kind = _parse_codec_kind(kind)
    order = _parse_order(order)
    width = cast("int", kind.width)
    raw = _to_raw(kind, value)
    return [_to_unit((raw >> _unit_shift(i, width, order)) & 0xFF) for i in range(width)]


def from_reader(
    kind: ElementKind | str, reader: Reader, offset: int = 0, order: Endian | None = None
) -> Any:
    """Read one scalar of ``kind`` from the byte units ``reader[offset:offset + width]``."""
    kind = _parse_codec_kind(kind)
    _check_byte_accessor(reader)
    width = cast("int", kind.width)
    units = [reader.read(offset + i) for i in range(width)]
    return from_bytes(kind, units, order)


def to_writer(
    kind: ElementKind | str,
    value: Any,
    writer: Writer,
    offset: int = 0,
    order: Endian | None = None,
) -> None:
    """Write ``value`` as ``kind.width`` byte units to ``writer[offset:offset + width]``."""
    kind = _parse_codec_kind(kind)
    _check_byte_accessor(writer)
    for i, unit in enumerate(to_bytes(kind, value, order)):
        writer.write(offset + i, unit)


class BinaryReader:
    """Typed reads at byte offsets of a byte reader, in one fixed byte order."""

    def __init__(self, reader: Reader, order: Endian | None = None) -> None:
        _check_byte_accessor(reader)
        self.reader = reader
        self.order = _parse_order(order)

    def read_bool(self, offset: int) -> np.bool_:
        return np.bool_(self.reader.read(offset) != 0)

    def read_int8(self, offset: int) -> np.int8:
        return np.int8(self.reader.read(offset))

    def read_int16(self, offset: int) -> np.int16:
        return from_reader(ElementKind.int16, self.reader, offset, self.order)

    def read_int32(self, offset: int) -> np.int32:
        return from_reader(ElementKind.int32, self.reader, offset, self.order)

    def read_int64(self, offset: int) -> np.int64:
        return from_reader(ElementKind.int64, self.reader, offset, self.order)

    def read_float32(self, offset: int) -> np.float32:
        return from_reader(ElementKind.float32, self.reader, offset, self.order)

    def read_float64(self, offset: int) -> np.float64:
        return from_reader(ElementKind.float64, self.reader, offset, self.order)


class BinaryWriter:
    """Typed writes at byte offsets of a byte writer, in one fixed byte order."""

    def __init__(self, writer: Writer, order: Endian | None = None) -> None:
        _check_byte_accessor(writer)
        self.writer = writer
        self.order = _parse_order(order)

    def write_bool(self, value: bool, offset: int) -> None:
        self.writer.write(offset, np.int8(1 if value else 0))

    def write_int8(self, value: int, offset: int) -> None:
        self.writer.write(offset, np.int8(value))

    def write_int16(self, value: int, offset: int) -> None:
        to_writer(ElementKind.int16, value, self.writer, offset, self.order)

    def write_int32(self, value: int, offset: int) -> None:
        to_writer(ElementKind.int32, value, self.writer, offset, self.order)

    def write_int64(self, value: int, offset: int) -> None:
        to_writer(ElementKind.int64, value, self.writer, offset, self.order)

    def write_float32(self, value: float, offset: int) -> None:
        to_writer(ElementKind.float32, value, self.writer, offset, self.order)

    def write_float64(self, value: float, offset: int) -> None:
        to_writer(ElementKind.float64, value, self.writer, offset, self.order)
