from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt
from numcodecs.compat import ensure_contiguous_ndarray, ensure_ndarray

from dtview.core.common import parse_index
from dtview.core.kinds import ElementKind, parse_element_kind
from dtview.registry import get_buffer_class, register_buffer

if TYPE_CHECKING:
    from typing import Self

    from dtview.core.common import ChunkCoords

__all__ = ["Buffer", "allocate"]

logger = logging.getLogger(__name__)


class Buffer:
    """A flat contiguous memory block holding elements of one kind

    A Buffer is backed by a 1-dim numpy array whose dtype matches its
    element kind. Its capacity is fixed for its whole lifetime; growable
    sequences reallocate a larger Buffer instead of resizing one.

    Parameters
    ----------
    array_like
        1-dim contiguous numpy array with the dtype of one element kind.
    """

    def __init__(self, array_like: npt.NDArray[Any]) -> None:
        if array_like.ndim != 1:
            raise ValueError("array_like: only 1-dim allowed")
        if not array_like.flags.c_contiguous:
            raise ValueError("array_like: only contiguous memory allowed")
        self._kind = ElementKind.from_dtype(array_like.dtype)
        self._data = array_like

    @classmethod
    def allocate(cls, kind: ElementKind | str, capacity: int) -> Self:
        """Create a new zero filled buffer (``None`` filled for ``object``)

        Parameters
        ----------
        kind
            Element kind of the buffer.
        capacity
            Number of elements the buffer holds.

        Returns
        -------
            New buffer of the requested kind and capacity
        """
        kind = parse_element_kind(kind)
        capacity = parse_index(capacity)
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        logger.debug("Allocating %s buffer with capacity %d", kind.value, capacity)
        if kind is ElementKind.object:
            return cls(np.full(capacity, None, dtype=object))
        return cls(np.zeros(capacity, dtype=kind.dtype))

    @classmethod
    def from_array_like(cls, array_like: Any, kind: ElementKind | str | None = None) -> Self:
        """Create a new buffer over an array-like object

        The data is shared, not copied, whenever ``array_like`` is already a
        contiguous 1-dim array of the requested kind.
        """
        if kind is not None:
            kind = parse_element_kind(kind)
        if isinstance(array_like, (list, tuple)):
            dtype = None if kind is None else kind.dtype
            return cls(np.ascontiguousarray(np.asarray(array_like, dtype=dtype)).reshape(-1))
        arr = ensure_ndarray(array_like)
        if kind is not None and arr.dtype != kind.dtype:
            arr = arr.astype(kind.dtype)
        return cls(np.ascontiguousarray(arr).reshape(-1))

    @classmethod
    def from_bytes(cls, bytes_like: Any) -> Self:
        """Create a new ``int8`` buffer over a bytes-like object (host memory)

        Parameters
        ----------
        bytes_like
           bytes-like object

        Returns
        -------
            New buffer representing `bytes_like`
        """
        arr = ensure_contiguous_ndarray(bytes_like).view(np.int8).reshape(-1)
        if not arr.flags.writeable:
            # immutable sources such as bytes are copied so the buffer stays writable
            arr = arr.copy()
        return cls(arr)

    @property
    def kind(self) -> ElementKind:
        return self._kind

    @property
    def capacity(self) -> int:
        return int(self._data.shape[0])

    @property
    def shape(self) -> ChunkCoords:
        return (self.capacity,)

    def as_numpy_array(self) -> npt.NDArray[Any]:
        """Returns the underlying numpy array. This will never copy data."""
        return self._data

    def to_bytes(self) -> bytes:
        return self._data.tobytes()

    def __len__(self) -> int:
        return self.capacity

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self._kind.value} capacity={self.capacity}>"


def allocate(kind: ElementKind | str, capacity: int) -> Buffer:
    """Allocate a buffer with the buffer class selected by the ``buffer`` config key."""
    return get_buffer_class().allocate(kind, capacity)


register_buffer(Buffer)
