from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt

from dtview.core.common import parse_index, parse_index_array
from dtview.core.iterator import ReaderIterator
from dtview.core.kinds import ElementKind, parse_element_kind
from dtview.errors import IndexOutOfRange

if TYPE_CHECKING:
    from dtview.core.common import IndexLike
    from dtview.core.view import ArrayView

__all__ = [
    "Accessor",
    "ConstantReader",
    "FunctionReader",
    "Mutable",
    "Reader",
    "ViewAccessor",
    "Writer",
    "as_kind_array",
    "as_kind_scalar",
]


def as_kind_array(kind: ElementKind, values: Any) -> npt.NDArray[Any]:
    """Pack ``values`` into a 1-dim array of ``kind``.

    Object sequences are packed element by element so nested sequences stay
    single elements instead of becoming extra dimensions.
    """
    if kind is ElementKind.object:
        if isinstance(values, np.ndarray) and values.dtype == object and values.ndim == 1:
            return values
        items = list(values)
        arr = np.empty(len(items), dtype=object)
        for i, item in enumerate(items):
            arr[i] = item
        return arr
    arr = np.asarray(values, dtype=kind.dtype)
    if arr.ndim != 1:
        raise TypeError(f"Expected a 1-dimensional sequence of values, got {arr.ndim} dimensions")
    return arr


def as_kind_scalar(kind: ElementKind, value: Any) -> Any:
    if kind is ElementKind.object:
        return value
    return kind.dtype.type(value)


def check_range(offset: int, count: int, length: int) -> None:
    """Raise unless ``[offset, offset + count)`` lies within ``[0, length)``."""
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    if offset < 0 or offset > length or offset + count > length:
        raise IndexOutOfRange(f"range [{offset}, {offset + count}) out of range for length {length}")


def check_indexes(indexes: npt.NDArray[np.int64], length: int) -> None:
    if indexes.size and (indexes.min() < 0 or indexes.max() >= length):
        bad = indexes[(indexes < 0) | (indexes >= length)][0]
        raise IndexOutOfRange(int(bad), length)


def last_write_wins(
    indexes: npt.NDArray[np.int64], values: npt.NDArray[Any]
) -> tuple[npt.NDArray[np.int64], npt.NDArray[Any]]:
    """Collapse repeated indexes so that only the last value for each one remains."""
    reversed_idx = indexes[::-1]
    unique, first = np.unique(reversed_idx, return_index=True)
    return unique, values[::-1][first]


class Accessor(ABC):
    """Common surface of every reader, writer and mutable: a kind tag and a length."""

    @property
    @abstractmethod
    def kind(self) -> ElementKind: ...

    @abstractmethod
    def __len__(self) -> int: ...

    def lsize(self) -> int:
        return len(self)

    def _check_index(self, idx: int) -> int:
        idx = parse_index(idx)
        length = len(self)
        if idx < 0 or idx >= length:
            raise IndexOutOfRange(idx, length)
        return idx


class Reader(Accessor):
    """Read capability over a sequence of one element kind.

    Only ``read`` is required. The block and indexed operations default to
    repeated ``read`` calls after validating every position, and concrete
    readers override them with vectorized versions.
    """

    @abstractmethod
    def read(self, idx: int) -> Any:
        """Read the element at ``idx``, raising IndexOutOfRange outside ``[0, len)``."""

    def read_block(
        self, offset: int, length: int, out: npt.NDArray[Any] | None = None
    ) -> npt.NDArray[Any]:
        """Read ``length`` consecutive elements starting at ``offset``.

        Parameters
        ----------
        offset
            Index of the first element.
        length
            Number of elements to read.
        out
            Optional 1-dim array of at least ``length`` elements to read into.

        Returns
        -------
            The array holding the elements, ``out`` when it was given.
        """
        offset = parse_index(offset)
        length = parse_index(length)
        check_range(offset, length, len(self))
        out = self._prepare_out(out, length)
        for i in range(length):
            out[i] = self.read(offset + i)
        return out

    def read_indexes(
        self, indexes: IndexLike, out: npt.NDArray[Any] | None = None
    ) -> npt.NDArray[Any]:
        """Gather the elements at ``indexes``, in the order given."""
        idx = parse_index_array(indexes)
        check_indexes(idx, len(self))
        out = self._prepare_out(out, idx.size)
        for i, pos in enumerate(idx):
            out[i] = self.read(int(pos))
        return out

    def iterator(self, start: int = 0) -> ReaderIterator:
        return ReaderIterator(self, start)

    def __iter__(self) -> ReaderIterator:
        return self.iterator()

    def _prepare_out(self, out: npt.NDArray[Any] | None, length: int) -> npt.NDArray[Any]:
        if out is None:
            if self.kind is ElementKind.object:
                return np.full(length, None, dtype=object)
            return np.empty(length, dtype=self.kind.dtype)
        if out.ndim != 1 or out.shape[0] < length:
            raise ValueError(f"out must be 1-dimensional with at least {length} elements")
        return out


class Writer(Accessor):
    """Write capability over a sequence of one element kind.

    Writes never change the logical length. Multi-position writes validate
    every position before the first element is written.
    """

    @abstractmethod
    def write(self, idx: int, value: Any) -> None:
        """Write ``value`` at ``idx``, raising IndexOutOfRange outside ``[0, len)``."""

    def write_block(self, offset: int, values: Any) -> None:
        offset = parse_index(offset)
        arr = as_kind_array(self.kind, values)
        check_range(offset, arr.shape[0], len(self))
        for i in range(arr.shape[0]):
            self.write(offset + i, arr[i])

    def write_indexes(self, indexes: IndexLike, values: Any) -> None:
        """Scatter ``values`` to ``indexes``; for a repeated index the last value wins."""
        idx = parse_index_array(indexes)
        arr = as_kind_array(self.kind, values)
        if arr.shape[0] != idx.size:
            raise ValueError(f"got {arr.shape[0]} values for {idx.size} indexes")
        check_indexes(idx, len(self))
        for pos, value in zip(idx, arr, strict=True):
            self.write(int(pos), value)

    def write_constant(self, idx: int, value: Any, count: int) -> None:
        """Write ``value`` to the ``count`` consecutive positions starting at ``idx``."""
        idx = parse_index(idx)
        count = parse_index(count)
        check_range(idx, count, len(self))
        for i in range(count):
            self.write(idx + i, value)


class Mutable(Accessor):
    """Length-changing capability: insertion and removal with tail shifting.

    Concrete mutables provide ``insert`` and ``remove_range``. Every other
    operation is derived from those two after validating all positions up
    front, so a failing call leaves the sequence untouched.
    """

    @abstractmethod
    def insert(self, idx: int, value: Any) -> None:
        """Insert ``value`` before ``idx``; ``idx == len`` appends."""

    @abstractmethod
    def remove_range(self, idx: int, count: int) -> None:
        """Remove ``count`` elements starting at ``idx``, shifting the tail back."""

    def append(self, value: Any) -> None:
        self.insert(len(self), value)

    def remove(self, idx: int) -> None:
        self.remove_range(idx, 1)

    def insert_block(self, idx: int, values: Any) -> None:
        idx = parse_index(idx)
        arr = as_kind_array(self.kind, values)
        check_range(idx, 0, len(self))
        for i in range(arr.shape[0]):
            self.insert(idx + i, arr[i])

    def insert_constant(self, idx: int, value: Any, count: int) -> None:
        self.insert_block(idx, self._constant_values(value, parse_index(count)))

    def insert_indexes(self, indexes: IndexLike, values: Any) -> None:
        """Insert ``values[k]`` before ``indexes[k]``, applied in order.

        Each index is interpreted against the length reached after the
        preceding insertions, so ``indexes[k]`` may be at most ``len + k``.
        """
        idx = parse_index_array(indexes)
        arr = as_kind_array(self.kind, values)
        if arr.shape[0] != idx.size:
            raise ValueError(f"got {arr.shape[0]} values for {idx.size} indexes")
        length = len(self)
        for k, pos in enumerate(idx):
            if pos < 0 or pos > length + k:
                raise IndexOutOfRange(int(pos), length + k + 1)
        for pos, value in zip(idx, arr, strict=True):
            self.insert(int(pos), value)

    def remove_indexes(self, indexes: IndexLike) -> None:
        """Remove the elements at ``indexes``; repeated indexes are removed once."""
        idx = parse_index_array(indexes)
        check_indexes(idx, len(self))
        for pos in np.unique(idx)[::-1]:
            self.remove_range(int(pos), 1)

    def _constant_values(self, value: Any, count: int) -> npt.NDArray[Any]:
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        if self.kind is ElementKind.object:
            arr = np.empty(count, dtype=object)
            for i in range(count):
                arr[i] = value
            return arr
        return np.full(count, value, dtype=self.kind.dtype)


class ViewAccessor(Reader, Writer):
    """Reader and writer over an ArrayView.

    Logical index ``i`` addresses element ``i`` of the view's window, and
    every operation is checked against the window's length. Block, indexed
    and constant operations work directly on the backing numpy array.
    """

    def __init__(self, view: ArrayView) -> None:
        self._view = view
        self._data = view.buffer.as_numpy_array()
        self._base = view.offset
        self._length = len(view)

    @property
    def kind(self) -> ElementKind:
        return self._view.kind

    @property
    def view(self) -> ArrayView:
        return self._view

    def __len__(self) -> int:
        return self._length

    def read(self, idx: int) -> Any:
        return self._data[self._base + self._check_index(idx)]

    def write(self, idx: int, value: Any) -> None:
        self._data[self._base + self._check_index(idx)] = value

    def read_block(
        self, offset: int, length: int, out: npt.NDArray[Any] | None = None
    ) -> npt.NDArray[Any]:
        offset = parse_index(offset)
        length = parse_index(length)
        check_range(offset, length, self._length)
        start = self._base + offset
        if out is None:
            return self._data[start : start + length].copy()
        out = self._prepare_out(out, length)
        out[:length] = self._data[start : start + length]
        return out

    def read_indexes(
        self, indexes: IndexLike, out: npt.NDArray[Any] | None = None
    ) -> npt.NDArray[Any]:
        idx = parse_index_array(indexes)
        check_indexes(idx, self._length)
        if out is None:
            return self._data[self._base + idx]
        out = self._prepare_out(out, idx.size)
        out[: idx.size] = self._data[self._base + idx]
        return out

    def write_block(self, offset: int, values: Any) -> None:
        offset = parse_index(offset)
        arr = as_kind_array(self.kind, values)
        check_range(offset, arr.shape[0], self._length)
        start = self._base + offset
        self._data[start : start + arr.shape[0]] = arr

    def write_indexes(self, indexes: IndexLike, values: Any) -> None:
        idx = parse_index_array(indexes)
        arr = as_kind_array(self.kind, values)
        if arr.shape[0] != idx.size:
            raise ValueError(f"got {arr.shape[0]} values for {idx.size} indexes")
        check_indexes(idx, self._length)
        unique, last = last_write_wins(idx, arr)
        self._data[self._base + unique] = last

    def write_constant(self, idx: int, value: Any, count: int) -> None:
        idx = parse_index(idx)
        count = parse_index(count)
        check_range(idx, count, self._length)
        start = self._base + idx
        self._data[start : start + count].fill(value)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.kind.value} length={self._length}>"


class FunctionReader(Reader):
    """A computed sequence: element ``i`` is ``fn(i)`` converted to the kind's scalar type.

    Parameters
    ----------
    kind
        Element kind of the produced values.
    length
        Number of elements.
    fn
        Called with each logical index.
    """

    def __init__(self, kind: ElementKind | str, length: int, fn: Callable[[int], Any]) -> None:
        length = parse_index(length)
        if length < 0:
            raise ValueError(f"length must be non-negative, got {length}")
        self._kind = parse_element_kind(kind)
        self._length = length
        self._fn = fn

    @property
    def kind(self) -> ElementKind:
        return self._kind

    def __len__(self) -> int:
        return self._length

    def read(self, idx: int) -> Any:
        return as_kind_scalar(self._kind, self._fn(self._check_index(idx)))


class ConstantReader(Reader):
    """A sequence of ``length`` copies of one value."""

    def __init__(self, kind: ElementKind | str, length: int, value: Any) -> None:
        length = parse_index(length)
        if length < 0:
            raise ValueError(f"length must be non-negative, got {length}")
        self._kind = parse_element_kind(kind)
        self._length = length
        self._value = as_kind_scalar(self._kind, value)

    @property
    def kind(self) -> ElementKind:
        return self._kind

    def __len__(self) -> int:
        return self._length

    def read(self, idx: int) -> Any:
        self._check_index(idx)
        return self._value

    def read_block(
        self, offset: int, length: int, out: npt.NDArray[Any] | None = None
    ) -> npt.NDArray[Any]:
        offset = parse_index(offset)
        length = parse_index(length)
        check_range(offset, length, self._length)
        out = self._prepare_out(out, length)
        out[:length].fill(self._value)
        return out
