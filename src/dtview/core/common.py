from __future__ import annotations

import functools
import numbers
import operator
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any, Literal, TypeVar

import numpy as np
import numpy.typing as npt

ShapeLike = Iterable[int] | int
ChunkCoords = tuple[int, ...]
Endian = Literal["little", "big"]
IndexLike = Iterable[int] | npt.NDArray[np.integer[Any]]


def product(tup: tuple[int, ...]) -> int:
    return functools.reduce(operator.mul, tup, 1)


def c_strides(shape: tuple[int, ...]) -> tuple[int, ...]:
    """Row-major element strides for ``shape`` (last dimension fastest)."""
    strides = []
    acc = 1
    for extent in reversed(shape):
        strides.append(acc)
        acc *= extent
    return tuple(reversed(strides))


E = TypeVar("E", bound=Enum)


def enum_names(enum: type[E]) -> Iterator[str]:
    for item in enum:
        yield item.name


def parse_enum(data: object, cls: type[E]) -> E:
    if isinstance(data, cls):
        return data
    if not isinstance(data, str):
        raise TypeError(f"Expected str, got {type(data)}")
    if data in enum_names(cls):
        return cls(data)
    raise ValueError(f"Value must be one of {list(enum_names(cls))!r}. Got {data} instead.")


def parse_shapelike(data: ShapeLike) -> tuple[int, ...]:
    if isinstance(data, numbers.Integral):
        if data < 0:
            raise ValueError(f"Expected a non-negative integer. Got {data} instead")
        return (int(data),)
    try:
        data_tuple = tuple(data)
    except TypeError as e:
        msg = f"Expected an integer or an iterable of integers. Got {data} instead."
        raise TypeError(msg) from e

    if not all(isinstance(v, numbers.Integral) for v in data_tuple):
        msg = f"Expected an iterable of integers. Got {data} instead."
        raise TypeError(msg)
    if not all(v > -1 for v in data_tuple):
        msg = f"Expected all values to be non-negative. Got {data} instead."
        raise ValueError(msg)
    return tuple(int(v) for v in data_tuple)


def parse_index(data: Any) -> int:
    """Normalize a logical index to a Python int, rejecting booleans and non-integers."""
    if isinstance(data, (bool, np.bool_)) or not isinstance(data, numbers.Integral):
        raise TypeError(f"Expected an integer index, got {type(data).__name__}")
    return int(data)


def parse_index_array(data: IndexLike) -> npt.NDArray[np.int64]:
    arr = np.asarray(data)
    if arr.size == 0:
        return np.zeros(0, dtype=np.int64)
    if arr.ndim != 1:
        raise TypeError(f"Expected a 1-dimensional index sequence, got {arr.ndim} dimensions")
    if arr.dtype.kind not in "iu":
        raise TypeError(f"Expected an integer index sequence, got dtype {arr.dtype}")
    return arr.astype(np.int64, copy=False)
