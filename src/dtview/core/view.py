from __future__ import annotations

from typing import TYPE_CHECKING, Any

from dtview.core.buffer import Buffer
from dtview.core.common import parse_index
from dtview.errors import IndexOutOfRange, InvalidRange

if TYPE_CHECKING:
    from typing import Self

    import numpy.typing as npt

    from dtview.core.kinds import ElementKind

__all__ = ["ArrayView", "view_of"]


def _truncdiv(a: Any, b: Any) -> Any:
    # integer division rounding toward zero
    q = a // b
    if q < 0 and q * b != a:
        q += 1
    return q


class ArrayView:
    """A non-owning ``(offset, length)`` window into a Buffer.

    Element access through ``get``/``set`` and the in-place operators is
    unchecked and meant for callers that have already proven their indices
    valid. ``check_index`` is the checked entry point.

    Sub-views come in two flavours:

    - ``to_view`` is relative to this view and must fit inside this view's
      window, so nested views can never escape their parent.
    - ``construct`` takes an absolute offset into the backing buffer and is
      only checked against the buffer's capacity, so it may alias memory
      outside this view.

    Parameters
    ----------
    buffer
        The backing buffer.
    offset
        Position of the first element of the view in the buffer.
    length
        Number of elements in the view, defaults to the rest of the buffer.
    """

    __slots__ = ("_buffer", "_data", "_length", "_offset")

    def __init__(self, buffer: Buffer, offset: int = 0, length: int | None = None) -> None:
        offset = parse_index(offset)
        capacity = buffer.capacity
        if length is None:
            length = capacity - offset
        length = parse_index(length)
        if offset < 0 or length < 0 or offset + length > capacity:
            raise InvalidRange(offset, offset + length, capacity)
        self._buffer = buffer
        self._data = buffer.as_numpy_array()
        self._offset = offset
        self._length = length

    @property
    def buffer(self) -> Buffer:
        return self._buffer

    @property
    def kind(self) -> ElementKind:
        return self._buffer.kind

    @property
    def offset(self) -> int:
        return self._offset

    def length(self) -> int:
        return self._length

    def __len__(self) -> int:
        return self._length

    def index(self, idx: int) -> int:
        return self._offset + idx

    def check_index(self, idx: int) -> int:
        """Return the physical position of ``idx``, checked against the buffer capacity."""
        pos = self._offset + parse_index(idx)
        if pos < 0 or pos >= self._buffer.capacity:
            raise IndexOutOfRange(pos, self._buffer.capacity)
        return pos

    def construct(self, offset: int, length: int) -> Self:
        """New view at an absolute ``offset`` into the same buffer."""
        return self.__class__(self._buffer, offset, length)

    def to_view(self, offset: int, length: int | None = None) -> Self:
        """New view relative to this one, which must fit inside this view's window."""
        offset = parse_index(offset)
        if length is None:
            length = self._length - offset
        length = parse_index(length)
        if offset < 0 or length < 0 or offset + length > self._length:
            raise InvalidRange(offset, offset + length, self._length)
        return self.__class__(self._buffer, self._offset + offset, length)

    def as_numpy_array(self) -> npt.NDArray[Any]:
        """The window as a numpy array sharing memory with the buffer."""
        return self._data[self._offset : self._offset + self._length]

    def get(self, idx: int) -> Any:
        return self._data[self._offset + idx]

    def set(self, idx: int, value: Any) -> None:
        self._data[self._offset + idx] = value

    def iadd(self, idx: int, value: Any) -> None:
        self._data[self._offset + idx] += value

    def isub(self, idx: int, value: Any) -> None:
        self._data[self._offset + idx] -= value

    def imul(self, idx: int, value: Any) -> None:
        self._data[self._offset + idx] *= value

    def idiv(self, idx: int, value: Any) -> None:
        pos = self._offset + idx
        if self._data.dtype.kind == "i":
            if value == 0:
                raise ZeroDivisionError("integer division by zero")
            self._data[pos] = _truncdiv(self._data[pos], value)
        else:
            self._data[pos] /= value

    def fill(self, value: Any) -> None:
        self._data[self._offset : self._offset + self._length].fill(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArrayView):
            return NotImplemented
        return (
            self._buffer is other._buffer
            and self._offset == other._offset
            and self._length == other._length
        )

    def __hash__(self) -> int:
        return hash((id(self._buffer), self._offset, self._length))

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} kind={self.kind.value} "
            f"offset={self._offset} length={self._length}>"
        )


def view_of(values: Any, kind: ElementKind | str | None = None) -> ArrayView:
    """Wrap ``values`` in a buffer and return a view over all of it."""
    return ArrayView(Buffer.from_array_like(values, kind=kind))
