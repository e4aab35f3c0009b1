from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dtview.core.accessor import Reader, Writer, as_kind_array, check_indexes, check_range
from dtview.core.common import parse_index, parse_index_array
from dtview.core.indexing import IndexMapping

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy.typing as npt

    from dtview.core.common import ChunkCoords, IndexLike
    from dtview.core.kinds import ElementKind

__all__ = ["TensorReader", "TensorWriter"]

logger = logging.getLogger(__name__)


def _check_mapping(mapping: IndexMapping, accessor: Reader | Writer) -> IndexMapping:
    if not isinstance(mapping, IndexMapping):
        raise TypeError(f"Expected an IndexMapping, got {type(mapping).__name__}")
    mapping.validate(len(accessor))
    logger.debug(
        "Mapping %s logical elements of shape %s onto %r",
        mapping.size,
        mapping.max_shape,
        accessor,
    )
    return mapping


class TensorReader(Reader):
    """Reads a flat reader through an IndexMapping.

    Logical index ``i`` reads ``reader.read(mapping.forward(i))``. When the
    mapping is the identity the reader is addressed directly.

    Parameters
    ----------
    reader
        The flat reader holding the physical elements.
    mapping
        The logical-to-physical map; every offset it produces must be inside the reader.
    """

    def __init__(self, reader: Reader, mapping: IndexMapping) -> None:
        self._mapping = _check_mapping(mapping, reader)
        self._reader = reader
        self._direct = mapping.isomorphic()

    @property
    def kind(self) -> ElementKind:
        return self._reader.kind

    @property
    def mapping(self) -> IndexMapping:
        return self._mapping

    @property
    def shape(self) -> ChunkCoords:
        return self._mapping.max_shape

    def __len__(self) -> int:
        return self._mapping.size

    def read(self, idx: int) -> Any:
        if self._direct:
            return self._reader.read(self._check_index(idx))
        return self._reader.read(self._mapping.forward(idx))

    def read_coords(self, coords: Sequence[int]) -> Any:
        return self._reader.read(self._mapping.forward_coords(coords))

    def read_block(
        self, offset: int, length: int, out: npt.NDArray[Any] | None = None
    ) -> npt.NDArray[Any]:
        offset = parse_index(offset)
        length = parse_index(length)
        check_range(offset, length, len(self))
        if self._direct:
            return self._reader.read_block(offset, length, out)
        return self._reader.read_indexes(
            self._mapping.forward_many(range(offset, offset + length)), out
        )

    def read_indexes(
        self, indexes: IndexLike, out: npt.NDArray[Any] | None = None
    ) -> npt.NDArray[Any]:
        if self._direct:
            idx = parse_index_array(indexes)
            check_indexes(idx, len(self))
            return self._reader.read_indexes(idx, out)
        return self._reader.read_indexes(self._mapping.forward_many(indexes), out)

    def as_numpy_array(self) -> npt.NDArray[Any]:
        """A fresh array of the logical shape holding every element."""
        return self.read_block(0, len(self)).reshape(self.shape)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.kind.value} shape={self.shape}>"


class TensorWriter(Writer):
    """Writes a flat writer through an IndexMapping.

    Several logical indexes may share a physical offset under a broadcast
    mapping; the last write to that offset wins.
    """

    def __init__(self, writer: Writer, mapping: IndexMapping) -> None:
        self._mapping = _check_mapping(mapping, writer)
        self._writer = writer
        self._direct = mapping.isomorphic()

    @property
    def kind(self) -> ElementKind:
        return self._writer.kind

    @property
    def mapping(self) -> IndexMapping:
        return self._mapping

    @property
    def shape(self) -> ChunkCoords:
        return self._mapping.max_shape

    def __len__(self) -> int:
        return self._mapping.size

    def write(self, idx: int, value: Any) -> None:
        if self._direct:
            self._writer.write(self._check_index(idx), value)
        else:
            self._writer.write(self._mapping.forward(idx), value)

    def write_coords(self, coords: Sequence[int], value: Any) -> None:
        self._writer.write(self._mapping.forward_coords(coords), value)

    def write_block(self, offset: int, values: Any) -> None:
        offset = parse_index(offset)
        arr = as_kind_array(self.kind, values)
        check_range(offset, arr.shape[0], len(self))
        if self._direct:
            self._writer.write_block(offset, arr)
        else:
            self._writer.write_indexes(
                self._mapping.forward_many(range(offset, offset + arr.shape[0])), arr
            )

    def write_indexes(self, indexes: IndexLike, values: Any) -> None:
        if self._direct:
            idx = parse_index_array(indexes)
            check_indexes(idx, len(self))
            self._writer.write_indexes(idx, values)
        else:
            self._writer.write_indexes(self._mapping.forward_many(indexes), values)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.kind.value} shape={self.shape}>"
