from __future__ import annotations

from typing import TYPE_CHECKING, Any

from dtview.core.common import parse_index
from dtview.errors import IndexOutOfRange, InvalidState

if TYPE_CHECKING:
    from typing import Self

    from dtview.core.accessor import Reader
    from dtview.core.kinds import ElementKind

__all__ = ["ReaderIterator"]


class ReaderIterator:
    """A single-pass, forward-only cursor over a Reader.

    The length of the reader is captured when the iterator is created. The
    iterator yields the same values as increasing ``reader.read`` calls and
    cannot be restarted. Inserting into or removing from the underlying
    sequence while an iterator is open gives undefined results.

    Parameters
    ----------
    reader
        The reader to traverse.
    start
        Index of the first element, defaults to 0.
    """

    __slots__ = ("_idx", "_num_elems", "_reader")

    def __init__(self, reader: Reader, start: int = 0) -> None:
        start = parse_index(start)
        num_elems = len(reader)
        if start < 0 or start > num_elems:
            raise IndexOutOfRange(start, num_elems)
        self._reader = reader
        self._idx = start
        self._num_elems = num_elems

    @property
    def kind(self) -> ElementKind:
        return self._reader.kind

    def remaining(self) -> int:
        return self._num_elems - self._idx

    def has_next(self) -> bool:
        return self._idx < self._num_elems

    def next(self) -> Any:
        if self._idx >= self._num_elems:
            raise InvalidState
        value = self._reader.read(self._idx)
        self._idx += 1
        return value

    def current(self) -> Any:
        """The element under the cursor, which ``next`` would return, without advancing."""
        if self._idx >= self._num_elems:
            raise InvalidState
        return self._reader.read(self._idx)

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> Any:
        if self._idx >= self._num_elems:
            raise StopIteration
        return self.next()

    def __length_hint__(self) -> int:
        return self.remaining()
