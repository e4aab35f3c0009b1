from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from dtview.core.buffer import Buffer
from dtview.core.kinds import ElementKind

if TYPE_CHECKING:
    import numpy.typing as npt

    from dtview.core.accessor import Reader

__all__ = ["assert_buffer_equal", "read_all", "sample_values"]


def assert_buffer_equal(b1: Buffer | bytes, b2: Buffer | bytes) -> None:
    """Help function to assert if two buffers or bytes objects hold the same bytes

    Warnings
    --------
    Always copies data, only use for testing and debugging
    """
    if isinstance(b1, Buffer):
        b1 = b1.to_bytes()
    if isinstance(b2, Buffer):
        b2 = b2.to_bytes()
    assert b1 == b2


def read_all(reader: Reader) -> npt.NDArray[Any]:
    """Every element of ``reader`` read one at a time, as a fresh array."""
    if reader.kind is ElementKind.object:
        out = np.full(len(reader), None, dtype=object)
    else:
        out = np.empty(len(reader), dtype=reader.kind.dtype)
    for i in range(len(reader)):
        out[i] = reader.read(i)
    return out


def sample_values(kind: ElementKind, n: int) -> npt.NDArray[Any]:
    """``n`` predictable values of ``kind`` for filling buffers."""
    if kind is ElementKind.object:
        arr = np.empty(n, dtype=object)
        for i in range(n):
            arr[i] = f"item-{i}"
        return arr
    if kind is ElementKind.bool:
        return (np.arange(n) % 2).astype(bool)
    return (np.arange(n) % 100).astype(kind.dtype)
