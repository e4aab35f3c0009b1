from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

import numpy as np

from dtview.core.accessor import (
    Mutable,
    Reader,
    Writer,
    as_kind_array,
    as_kind_scalar,
    check_indexes,
    check_range,
    last_write_wins,
)
from dtview.core.buffer import allocate
from dtview.core.common import parse_index, parse_index_array
from dtview.core.config import growth_policy
from dtview.core.kinds import ElementKind, parse_element_kind
from dtview.core.view import ArrayView

if TYPE_CHECKING:
    import numpy.typing as npt

    from dtview.core.buffer import Buffer
    from dtview.core.common import IndexLike

__all__ = ["GrowableArray"]

logger = logging.getLogger(__name__)


class GrowableArray(Reader, Writer, Mutable):
    """A reader, writer and mutable over a buffer that is reallocated as it grows.

    Elements live in the prefix ``[0, len)`` of a fixed-capacity Buffer.
    When an insertion needs more room a larger buffer is allocated,
    following the ``mutable.initial_capacity`` and ``mutable.growth_factor``
    config values, and the live elements are copied over. Views taken with
    ``as_view`` refer to the buffer current at the time of the call.

    Parameters
    ----------
    kind
        Element kind of the sequence.
    values
        Optional initial contents.
    capacity
        Optional initial capacity, defaults to the configured initial capacity.
    """

    def __init__(
        self, kind: ElementKind | str, values: Any = None, capacity: int | None = None
    ) -> None:
        self._kind = parse_element_kind(kind)
        initial = as_kind_array(self._kind, values) if values is not None else None
        needed = 0 if initial is None else initial.shape[0]
        if capacity is None:
            capacity = max(growth_policy()[0], needed)
        capacity = parse_index(capacity)
        if capacity < needed:
            raise ValueError(f"capacity {capacity} is smaller than the {needed} initial values")
        self._buffer = allocate(self._kind, capacity)
        self._data = self._buffer.as_numpy_array()
        self._length = needed
        if initial is not None:
            self._data[:needed] = initial

    @property
    def kind(self) -> ElementKind:
        return self._kind

    @property
    def capacity(self) -> int:
        return self._buffer.capacity

    @property
    def buffer(self) -> Buffer:
        return self._buffer

    def __len__(self) -> int:
        return self._length

    def as_view(self) -> ArrayView:
        """A view over the live elements of the current buffer."""
        return ArrayView(self._buffer, 0, self._length)

    def as_numpy_array(self) -> npt.NDArray[Any]:
        return self._data[: self._length]

    def _reserve(self, needed: int) -> None:
        if needed <= self._buffer.capacity:
            return
        initial, factor = growth_policy()
        new_capacity = max(initial, self._buffer.capacity)
        while new_capacity < needed:
            new_capacity = math.ceil(new_capacity * factor)
        logger.debug(
            "Growing %s buffer from %d to %d elements",
            self._kind.value,
            self._buffer.capacity,
            new_capacity,
        )
        new_buffer = allocate(self._kind, new_capacity)
        new_data = new_buffer.as_numpy_array()
        new_data[: self._length] = self._data[: self._length]
        self._buffer = new_buffer
        self._data = new_data

    def _clear(self, start: int, stop: int) -> None:
        # release references held by the vacated object slots
        if self._kind is ElementKind.object:
            self._data[start:stop] = None

    # reader and writer

    def read(self, idx: int) -> Any:
        return self._data[self._check_index(idx)]

    def write(self, idx: int, value: Any) -> None:
        self._data[self._check_index(idx)] = value

    def read_block(
        self, offset: int, length: int, out: npt.NDArray[Any] | None = None
    ) -> npt.NDArray[Any]:
        offset = parse_index(offset)
        length = parse_index(length)
        check_range(offset, length, self._length)
        if out is None:
            return self._data[offset : offset + length].copy()
        out = self._prepare_out(out, length)
        out[:length] = self._data[offset : offset + length]
        return out

    def read_indexes(
        self, indexes: IndexLike, out: npt.NDArray[Any] | None = None
    ) -> npt.NDArray[Any]:
        idx = parse_index_array(indexes)
        check_indexes(idx, self._length)
        if out is None:
            return self._data[idx]
        out = self._prepare_out(out, idx.size)
        out[: idx.size] = self._data[idx]
        return out

    def write_block(self, offset: int, values: Any) -> None:
        offset = parse_index(offset)
        arr = as_kind_array(self._kind, values)
        check_range(offset, arr.shape[0], self._length)
        self._data[offset : offset + arr.shape[0]] = arr

    def write_indexes(self, indexes: IndexLike, values: Any) -> None:
        idx = parse_index_array(indexes)
        arr = as_kind_array(self._kind, values)
        if arr.shape[0] != idx.size:
            raise ValueError(f"got {arr.shape[0]} values for {idx.size} indexes")
        check_indexes(idx, self._length)
        unique, last = last_write_wins(idx, arr)
        self._data[unique] = last

    def write_constant(self, idx: int, value: Any, count: int) -> None:
        idx = parse_index(idx)
        count = parse_index(count)
        check_range(idx, count, self._length)
        self._data[idx : idx + count].fill(value)

    # mutable

    def insert(self, idx: int, value: Any) -> None:
        idx = parse_index(idx)
        value = as_kind_scalar(self._kind, value)
        check_range(idx, 0, self._length)
        self._reserve(self._length + 1)
        n = self._length
        self._data[idx + 1 : n + 1] = self._data[idx:n]
        self._data[idx] = value
        self._length = n + 1

    def insert_block(self, idx: int, values: Any) -> None:
        idx = parse_index(idx)
        arr = as_kind_array(self._kind, values)
        check_range(idx, 0, self._length)
        count = arr.shape[0]
        self._reserve(self._length + count)
        n = self._length
        self._data[idx + count : n + count] = self._data[idx:n]
        self._data[idx : idx + count] = arr
        self._length = n + count

    def remove_range(self, idx: int, count: int) -> None:
        idx = parse_index(idx)
        count = parse_index(count)
        check_range(idx, count, self._length)
        n = self._length
        self._data[idx : n - count] = self._data[idx + count : n]
        self._clear(n - count, n)
        self._length = n - count

    def remove_indexes(self, indexes: IndexLike) -> None:
        idx = parse_index_array(indexes)
        check_indexes(idx, self._length)
        if idx.size == 0:
            return
        n = self._length
        keep = np.delete(self._data[:n], np.unique(idx))
        self._data[: keep.shape[0]] = keep
        self._clear(keep.shape[0], n)
        self._length = keep.shape[0]

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} kind={self._kind.value} "
            f"length={self._length} capacity={self.capacity}>"
        )
