from __future__ import annotations

from enum import Enum
from typing import Any

import numpy as np

from dtview.core.common import parse_enum

__all__ = ["ElementKind", "parse_element_kind"]


class ElementKind(Enum):
    """
    The closed set of scalar kinds an accessor can carry.
    """

    bool = "bool"
    int8 = "int8"
    int16 = "int16"
    int32 = "int32"
    int64 = "int64"
    float32 = "float32"
    float64 = "float64"
    object = "object"

    @property
    def dtype(self) -> np.dtype[Any]:
        return _DTYPES[self]

    @property
    def width(self) -> int | None:
        """Width in bytes, or ``None`` for ``object``."""
        if self is ElementKind.object:
            return None
        return self.dtype.itemsize

    @property
    def is_numeric(self) -> bool:
        return self not in (ElementKind.bool, ElementKind.object)

    @property
    def is_integer(self) -> bool:
        return self.dtype.kind == "i"

    @property
    def has_codec(self) -> bool:
        """Whether the byte codec can pack and unpack this kind."""
        return self.is_numeric

    @classmethod
    def from_dtype(cls, dtype: Any) -> ElementKind:
        dtype = np.dtype(dtype)
        for kind, candidate in _DTYPES.items():
            # byte order is irrelevant to the kind
            if dtype.kind == candidate.kind and dtype.itemsize == candidate.itemsize:
                return kind
        raise ValueError(f"No element kind for dtype {dtype}")


_DTYPES: dict[ElementKind, np.dtype[Any]] = {
    ElementKind.bool: np.dtype(np.bool_),
    ElementKind.int8: np.dtype(np.int8),
    ElementKind.int16: np.dtype(np.int16),
    ElementKind.int32: np.dtype(np.int32),
    ElementKind.int64: np.dtype(np.int64),
    ElementKind.float32: np.dtype(np.float32),
    ElementKind.float64: np.dtype(np.float64),
    ElementKind.object: np.dtype(object),
}


def parse_element_kind(data: object) -> ElementKind:
    if isinstance(data, ElementKind):
        return data
    if isinstance(data, str):
        return parse_enum(data, ElementKind)
    if isinstance(data, np.dtype) or (isinstance(data, type) and issubclass(data, np.generic)):
        return ElementKind.from_dtype(data)
    raise TypeError(f"Expected an ElementKind, a kind name or a numpy dtype, got {data!r}")
