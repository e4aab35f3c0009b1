from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, Any

import numpy as np

from dtview.core.common import c_strides, parse_index, parse_index_array, parse_shapelike, product
from dtview.errors import IndexOutOfRange, InvalidRange, NegativeStepError, ShapeMismatchError

if TYPE_CHECKING:
    from typing import Self

    import numpy.typing as npt

    from dtview.core.common import ChunkCoords, IndexLike, ShapeLike

__all__ = [
    "IndexMapping",
    "LocalToGlobal",
    "broadcast_offset",
]

logger = logging.getLogger(__name__)


def broadcast_offset(idx: int, shape1: int, stride0: int, max_shape_stride0: int) -> int:
    """Closed form of a two-level broadcast mapping.

    ``max_shape_stride0`` logical elements are represented per increment of
    the outer logical dimension. The quotient picks the backing row and the
    remainder picks the column, wrapping at ``shape1``.

    Parameters
    ----------
    idx
        Non-negative logical flat index.
    shape1
        Extent of the backing data's last dimension.
    stride0
        Physical stride of the backing data's first dimension.
    max_shape_stride0
        Logical stride of the broadcast first dimension.
    """
    idx = parse_index(idx)
    if idx < 0:
        raise IndexOutOfRange(f"logical index {idx} must be non-negative")
    return (idx // max_shape_stride0) * stride0 + (idx % shape1)


def normalize_integer_selection(dim_sel: int, dim_len: int) -> int:
    # normalize type to int
    dim_sel = parse_index(dim_sel)

    # handle wraparound
    if dim_sel < 0:
        dim_sel = dim_len + dim_sel

    # handle out of bounds
    if dim_sel >= dim_len or dim_sel < 0:
        raise IndexOutOfRange(dim_sel, dim_len)

    return dim_sel


def replace_ellipsis(selection: Any, ndim: int) -> tuple[Any, ...]:
    if not isinstance(selection, tuple):
        selection = (selection,)

    # count number of ellipsis present
    n_ellipsis = sum(1 for i in selection if i is Ellipsis)

    if n_ellipsis > 1:
        raise IndexError("an index can only have a single ellipsis ('...')")

    if n_ellipsis == 1:
        # replace ellipsis with as many full slices as needed
        n_items_l = selection.index(Ellipsis)
        n_items = len(selection) - 1
        fill = (slice(None),) * max(0, ndim - n_items)
        selection = selection[:n_items_l] + fill + selection[n_items_l + 1 :]

    # fill out selection if not completely specified
    if len(selection) < ndim:
        selection += (slice(None),) * (ndim - len(selection))

    if len(selection) > ndim:
        raise IndexError(f"too many indices; expected {ndim}, got {len(selection)}")

    return selection


@dataclass(frozen=True)
class IndexMapping:
    """An immutable map from logical N-dimensional coordinates to physical offsets.

    The logical space has shape ``max_shape`` and is traversed in row-major
    order, last dimension fastest. Along dimension ``d`` a logical coordinate
    ``c`` reads backing coordinate ``(c + offsets[d]) % shape[d]``, so a
    logical extent larger than the backing extent repeats the backing data,
    and a zero stride repeats a single element. The physical offset is
    ``base_offset`` plus the sum of backing coordinates times ``strides``.

    Attributes
    ----------
    shape
        Extent of the backing data along each dimension.
    strides
        Physical element stride of each dimension, 0 for broadcast dimensions.
    offsets
        Per-dimension rotation of the backing coordinate, in ``[0, shape[d])``.
    max_shape
        Logical extent of each dimension, a multiple of ``shape[d]``.
    base_offset
        Physical offset of backing coordinate zero.
    """

    shape: ChunkCoords
    strides: ChunkCoords
    offsets: ChunkCoords
    max_shape: ChunkCoords
    base_offset: int = 0

    def __post_init__(self) -> None:
        shape = parse_shapelike(self.shape)
        max_shape = parse_shapelike(self.max_shape)
        strides = tuple(parse_index(s) for s in self.strides)
        offsets = tuple(parse_index(o) for o in self.offsets)
        base_offset = parse_index(self.base_offset)
        ndim = len(shape)
        if not (len(strides) == len(offsets) == len(max_shape) == ndim):
            raise ShapeMismatchError(
                f"shape, strides, offsets and max_shape must have the same length, got "
                f"{len(shape)}, {len(strides)}, {len(offsets)} and {len(max_shape)}"
            )
        if any(s < 0 for s in strides):
            raise ShapeMismatchError(f"strides must be non-negative, got {strides}")
        if base_offset < 0:
            raise ShapeMismatchError(f"base_offset must be non-negative, got {base_offset}")
        for extent, max_extent in zip(shape, max_shape, strict=True):
            if extent == 0 and max_extent != 0:
                raise ShapeMismatchError(shape, max_shape)
            if extent and max_extent % extent:
                raise ShapeMismatchError(
                    f"max_shape {max_shape} is not a whole multiple of shape {shape}"
                )
        offsets = tuple(o % e if e else 0 for o, e in zip(offsets, shape, strict=True))
        object.__setattr__(self, "shape", shape)
        object.__setattr__(self, "strides", strides)
        object.__setattr__(self, "offsets", offsets)
        object.__setattr__(self, "max_shape", max_shape)
        object.__setattr__(self, "base_offset", base_offset)
        logger.debug(
            "Built index mapping of shape %s over backing shape %s", max_shape, shape
        )

    @classmethod
    def from_shape(cls, shape: ShapeLike, base_offset: int = 0) -> Self:
        """The dense row-major mapping of ``shape``."""
        shape = parse_shapelike(shape)
        return cls(
            shape=shape,
            strides=c_strides(shape),
            offsets=(0,) * len(shape),
            max_shape=shape,
            base_offset=base_offset,
        )

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @cached_property
    def size(self) -> int:
        """Total number of logical elements."""
        return product(self.max_shape)

    @cached_property
    def max_strides(self) -> ChunkCoords:
        """Number of logical elements per increment of each logical dimension."""
        return c_strides(self.max_shape)

    @cached_property
    def _dense(self) -> bool:
        return (
            self.shape == self.max_shape
            and not any(self.offsets)
            and all(
                stride == expected
                for extent, stride, expected in zip(
                    self.shape, self.strides, c_strides(self.shape), strict=True
                )
                if extent > 1
            )
        )

    @cached_property
    def _identity(self) -> bool:
        return self.size == 0 or (self.base_offset == 0 and self._dense)

    def isomorphic(self) -> bool:
        """Whether forward mapping is the identity, allowing a mapping-free fast path."""
        return self._identity

    def is_dense(self) -> bool:
        """Whether the mapping is row-major contiguous apart from its base offset."""
        return self.size == 0 or self._dense

    def physical_extent(self) -> int:
        """One past the largest physical offset the mapping can produce, 0 when empty."""
        if self.size == 0:
            return 0
        return self.base_offset + 1 + sum(
            (extent - 1) * stride for extent, stride in zip(self.shape, self.strides, strict=True)
        )

    def validate(self, capacity: int) -> Self:
        """Check that every produced offset lies in ``[0, capacity)``."""
        extent = self.physical_extent()
        if extent > capacity:
            raise InvalidRange(self.base_offset, extent, capacity)
        return self

    # forward

    def coords(self, idx: int) -> ChunkCoords:
        """The logical coordinate of logical flat index ``idx``."""
        idx = self._check_logical(idx)
        return tuple(
            (idx // max_stride) % max_extent
            for max_stride, max_extent in zip(self.max_strides, self.max_shape, strict=True)
        )

    def forward(self, idx: int) -> int:
        """Physical offset of logical flat index ``idx``."""
        idx = self._check_logical(idx)
        if self._identity:
            return idx
        offset = self.base_offset
        for extent, stride, rot, max_extent, max_stride in zip(
            self.shape, self.strides, self.offsets, self.max_shape, self.max_strides, strict=True
        ):
            c = (idx // max_stride) % max_extent
            offset += ((c + rot) % extent) * stride
        return offset

    def forward_coords(self, coords: Sequence[int]) -> int:
        """Physical offset of the logical coordinate ``coords``."""
        coords = tuple(coords)
        if len(coords) != self.ndim:
            raise IndexError(f"expected {self.ndim} coordinates, got {len(coords)}")
        offset = self.base_offset
        for c, extent, stride, rot, max_extent in zip(
            coords, self.shape, self.strides, self.offsets, self.max_shape, strict=True
        ):
            c = parse_index(c)
            if c < 0 or c >= max_extent:
                raise IndexOutOfRange(c, max_extent)
            offset += ((c + rot) % extent) * stride
        return offset

    def forward_many(self, indexes: IndexLike) -> npt.NDArray[np.int64]:
        """Vectorized ``forward`` over a sequence of logical flat indexes."""
        idx = parse_index_array(indexes)
        if idx.size and (idx.min() < 0 or idx.max() >= self.size):
            bad = idx[(idx < 0) | (idx >= self.size)][0]
            raise IndexOutOfRange(int(bad), self.size)
        if self._identity:
            return idx.copy()
        offset = np.full(idx.shape, self.base_offset, dtype=np.int64)
        for extent, stride, rot, max_extent, max_stride in zip(
            self.shape, self.strides, self.offsets, self.max_shape, self.max_strides, strict=True
        ):
            c = (idx // max_stride) % max_extent
            offset += ((c + rot) % extent) * stride
        return offset

    def _check_logical(self, idx: int) -> int:
        idx = parse_index(idx)
        if idx < 0 or idx >= self.size:
            raise IndexOutOfRange(idx, self.size)
        return idx

    # backward

    def backward(self, offset: int) -> LocalToGlobal:
        """All logical flat indexes that map to physical ``offset``, lazily and in ascending order.

        The result is empty when no logical index reaches ``offset``.
        """
        return LocalToGlobal(self, parse_index(offset))

    def _iter_backward(self, offset: int) -> Iterator[int]:
        if self.size == 0:
            return
        if self._identity:
            if 0 <= offset < self.size:
                yield offset
            return
        rel = offset - self.base_offset
        if rel < 0:
            return
        moving = [d for d in range(self.ndim) if self.strides[d] > 0 and self.shape[d] > 1]
        moving.sort(key=lambda d: self.strides[d], reverse=True)
        streams = [
            self._logical_indexes(backing)
            for backing in self._solve_backing(rel, moving)
        ]
        yield from heapq.merge(*streams)

    def _solve_backing(self, rel: int, dims: list[int]) -> Iterator[dict[int, int]]:
        """Backing coordinates along ``dims`` whose weighted sum with the strides is ``rel``."""
        # reach[k] is the largest sum the dims from position k onwards can contribute
        reach = [0] * (len(dims) + 1)
        for k in range(len(dims) - 1, -1, -1):
            d = dims[k]
            reach[k] = reach[k + 1] + (self.shape[d] - 1) * self.strides[d]

        def search(k: int, remaining: int, found: dict[int, int]) -> Iterator[dict[int, int]]:
            if k == len(dims):
                if remaining == 0:
                    yield dict(found)
                return
            d = dims[k]
            stride = self.strides[d]
            low = max(0, -((reach[k + 1] - remaining) // stride))
            high = min(self.shape[d] - 1, remaining // stride)
            for b in range(low, high + 1):
                found[d] = b
                yield from search(k + 1, remaining - b * stride, found)
            found.pop(d, None)

        if rel > reach[0]:
            return
        yield from search(0, rel, {})

    def _logical_indexes(self, backing: dict[int, int]) -> Iterator[int]:
        candidates = []
        for d in range(self.ndim):
            if d in backing:
                first = (backing[d] - self.offsets[d]) % self.shape[d]
                candidates.append(range(first, self.max_shape[d], self.shape[d]))
            elif self.strides[d] == 0 or self.shape[d] == 1:
                # every logical coordinate lands on the same physical position
                candidates.append(range(self.max_shape[d]))
            else:
                candidates.append(range(0))
        max_strides = self.max_strides
        for coords in itertools.product(*candidates):
            yield sum(c * s for c, s in zip(coords, max_strides, strict=True))

    # builders

    def broadcast(self, max_shape: ShapeLike) -> Self:
        """Repeat the mapping's data to fill the larger logical shape ``max_shape``.

        Leading dimensions are added as needed, as in numpy broadcasting, and
        every existing logical extent must divide the new one.
        """
        max_shape = parse_shapelike(max_shape)
        extra = len(max_shape) - self.ndim
        if extra < 0:
            raise ShapeMismatchError(self.max_shape, max_shape)
        shape = (1,) * extra + self.shape
        strides = (0,) * extra + self.strides
        offsets = (0,) * extra + self.offsets
        current = (1,) * extra + self.max_shape
        for old, new in zip(current, max_shape, strict=True):
            if (old == 0) != (new == 0) or (old and new % old):
                raise ShapeMismatchError(self.max_shape, max_shape)
        strides = tuple(
            0 if extent == 1 else stride for extent, stride in zip(shape, strides, strict=True)
        )
        return self.__class__(shape, strides, offsets, max_shape, self.base_offset)

    def transpose(self, axes: Iterable[int] | None = None) -> Self:
        """Permute the dimensions; ``axes`` defaults to reversing them."""
        if axes is None:
            order = tuple(range(self.ndim))[::-1]
        else:
            order = tuple(parse_index(a) for a in axes)
        if sorted(order) != list(range(self.ndim)):
            raise ValueError(
                f"axes must be a permutation of the {self.ndim} dimensions, got {order}"
            )
        return self.__class__(
            tuple(self.shape[a] for a in order),
            tuple(self.strides[a] for a in order),
            tuple(self.offsets[a] for a in order),
            tuple(self.max_shape[a] for a in order),
            self.base_offset,
        )

    def reshape(self, shape: ShapeLike) -> Self:
        """Reinterpret a dense mapping with a new shape of the same size.

        One extent may be ``-1`` and is inferred from the others.
        """
        if isinstance(shape, int):
            shape = (shape,)
        requested = tuple(parse_index(s) for s in shape)
        if requested.count(-1) > 1:
            raise ValueError("can only specify one unknown dimension")
        if -1 in requested:
            known = product(tuple(s for s in requested if s != -1))
            if known == 0 or self.size % known:
                raise ShapeMismatchError(self.max_shape, requested)
            requested = tuple(self.size // known if s == -1 else s for s in requested)
        new_shape = parse_shapelike(requested)
        if product(new_shape) != self.size:
            raise ShapeMismatchError(self.max_shape, new_shape)
        if not self.is_dense():
            raise ShapeMismatchError(
                f"cannot reshape a strided, rotated or broadcast mapping of shape {self.max_shape}"
            )
        return self.from_shape(new_shape, base_offset=self.base_offset)

    def rotate(self, shifts: Iterable[int]) -> Self:
        """Shift each dimension so that logical coordinate ``c`` reads what ``c + shift`` did."""
        shifts = tuple(parse_index(s) for s in shifts)
        if len(shifts) != self.ndim:
            raise ShapeMismatchError(f"expected {self.ndim} shifts, got {len(shifts)}")
        offsets = tuple(o + s for o, s in zip(self.offsets, shifts, strict=True))
        return self.__class__(self.shape, self.strides, offsets, self.max_shape, self.base_offset)

    def select(self, selection: Any) -> Self:
        """Select with integers and slices per dimension; integers drop their dimension.

        Slices with a step below 1 are not supported, and only full slices may
        be applied to broadcast or rotated dimensions.
        """
        selection = replace_ellipsis(selection, self.ndim)
        shape: list[int] = []
        strides: list[int] = []
        offsets: list[int] = []
        max_shape: list[int] = []
        base_offset = self.base_offset
        for d, dim_sel in enumerate(selection):
            extent, stride = self.shape[d], self.strides[d]
            rot, max_extent = self.offsets[d], self.max_shape[d]
            if isinstance(dim_sel, slice):
                start, stop, step = dim_sel.indices(max_extent)
                if step < 1:
                    raise NegativeStepError
                if (start, stop, step) == (0, max_extent, 1):
                    shape.append(extent)
                    strides.append(stride)
                    offsets.append(rot)
                    max_shape.append(max_extent)
                    continue
                if extent != max_extent or rot:
                    raise ShapeMismatchError(
                        f"cannot slice broadcast or rotated dimension {d} of {self.max_shape}"
                    )
                n = len(range(start, stop, step))
                base_offset += start * stride if n else 0
                shape.append(n)
                strides.append(stride * step)
                offsets.append(0)
                max_shape.append(n)
            else:
                c = normalize_integer_selection(dim_sel, max_extent)
                base_offset += ((c + rot) % extent) * stride
        return self.__class__(
            tuple(shape), tuple(strides), tuple(offsets), tuple(max_shape), base_offset
        )


@dataclass(frozen=True)
class LocalToGlobal:
    """Restartable, lazy sequence of the logical indexes mapping to one physical offset."""

    mapping: IndexMapping
    offset: int

    def __iter__(self) -> Iterator[int]:
        return self.mapping._iter_backward(self.offset)

    def __bool__(self) -> bool:
        return next(iter(self), None) is not None
