from __future__ import annotations

from typing import Any

import numpy as np
import pytest

from dtview.core.indexing import IndexMapping, broadcast_offset
from dtview.errors import IndexOutOfRange, InvalidRange, NegativeStepError, ShapeMismatchError


def offsets_of(mapping: IndexMapping) -> list[int]:
    return [mapping.forward(i) for i in range(mapping.size)]


def test_from_shape_is_identity() -> None:
    mapping = IndexMapping.from_shape((2, 3, 4))
    assert mapping.strides == (12, 4, 1)
    assert mapping.offsets == (0, 0, 0)
    assert mapping.max_shape == (2, 3, 4)
    assert mapping.size == 24
    assert mapping.ndim == 3
    assert mapping.isomorphic()
    assert offsets_of(mapping) == list(range(24))


def test_base_offset_is_not_isomorphic() -> None:
    mapping = IndexMapping.from_shape((4,), base_offset=3)
    assert not mapping.isomorphic()
    assert mapping.is_dense()
    assert offsets_of(mapping) == [3, 4, 5, 6]


def test_unit_dimensions_ignore_stride() -> None:
    mapping = IndexMapping((1, 3), (99, 1), (0, 0), (1, 3))
    assert mapping.isomorphic()


@pytest.mark.parametrize(
    ("args", "match"),
    [
        (((2, 3), (3,), (0, 0), (2, 3)), "same length"),
        (((2, 3), (3, 1), (0, 0), (2, 4)), "whole multiple"),
        (((2,), (-1,), (0,), (2,)), "non-negative"),
        (((0,), (1,), (0,), (2,)), "incompatible"),
    ],
)
def test_invalid_mapping(args: tuple[Any, ...], match: str) -> None:
    with pytest.raises(ShapeMismatchError, match=match):
        IndexMapping(*args)


def test_offsets_are_normalized() -> None:
    mapping = IndexMapping((4,), (1,), (-1,), (4,))
    assert mapping.offsets == (3,)
    assert mapping == IndexMapping((4,), (1,), (7,), (4,))


def test_forward_out_of_range() -> None:
    mapping = IndexMapping.from_shape((2, 2)).broadcast((4, 2))
    with pytest.raises(IndexOutOfRange):
        mapping.forward(8)
    with pytest.raises(IndexOutOfRange):
        mapping.forward(-1)
    with pytest.raises(IndexOutOfRange):
        IndexMapping.from_shape((0,)).forward(0)


def test_forward_coords() -> None:
    mapping = IndexMapping.from_shape((2, 3)).transpose()
    assert mapping.max_shape == (3, 2)
    assert mapping.forward_coords((2, 1)) == 5
    assert mapping.forward_coords((0, 1)) == 3
    assert mapping.coords(5) == (2, 1)
    with pytest.raises(IndexOutOfRange):
        mapping.forward_coords((3, 0))
    with pytest.raises(IndexError, match="expected 2 coordinates"):
        mapping.forward_coords((1,))


def test_forward_many_matches_forward() -> None:
    mapping = IndexMapping.from_shape((2, 3)).rotate((1, 2)).broadcast((2, 4, 6))
    indexes = np.arange(mapping.size)[::-1]
    np.testing.assert_array_equal(
        mapping.forward_many(indexes), [mapping.forward(int(i)) for i in indexes]
    )
    with pytest.raises(IndexOutOfRange):
        mapping.forward_many([0, mapping.size])


def test_broadcast_row() -> None:
    mapping = IndexMapping.from_shape((1, 4)).broadcast((3, 4))
    assert mapping.strides == (0, 1)
    assert offsets_of(mapping) == [0, 1, 2, 3] * 3


def test_broadcast_tiles() -> None:
    mapping = IndexMapping.from_shape((2, 2)).broadcast((4, 4))
    expected = np.tile(np.arange(4).reshape(2, 2), (2, 2)).ravel().tolist()
    assert offsets_of(mapping) == expected


def test_broadcast_adds_leading_dimensions() -> None:
    mapping = IndexMapping.from_shape((3,)).broadcast((2, 3))
    assert mapping.shape == (1, 3)
    assert mapping.strides == (0, 1)
    assert offsets_of(mapping) == [0, 1, 2, 0, 1, 2]


@pytest.mark.parametrize("max_shape", [(3, 5), (4,), (0, 4), (2, 0)])
def test_broadcast_incompatible(max_shape: tuple[int, ...]) -> None:
    with pytest.raises(ShapeMismatchError):
        IndexMapping.from_shape((2, 4)).broadcast(max_shape)


def test_broadcast_offset_identity_law() -> None:
    # backing 3 x 4, dense, no tiling: the closed form is the identity
    assert [broadcast_offset(i, 4, 4, 4) for i in range(12)] == list(range(12))


def test_broadcast_offset_rejects_negative_index() -> None:
    with pytest.raises(IndexOutOfRange):
        broadcast_offset(-1, 4, 4, 4)


def test_broadcast_offset_repeats_columns() -> None:
    # backing 3 x 2 with row stride 2, logical 3 x 4
    mapping = IndexMapping.from_shape((3, 2)).broadcast((3, 4))
    assert offsets_of(mapping) == [broadcast_offset(i, 2, 2, 4) for i in range(12)]


def test_rotate() -> None:
    mapping = IndexMapping.from_shape((4,)).rotate((1,))
    assert offsets_of(mapping) == [1, 2, 3, 0]
    assert offsets_of(mapping.rotate((-2,))) == [3, 0, 1, 2]
    with pytest.raises(ShapeMismatchError, match="expected 1 shifts"):
        mapping.rotate((1, 1))


def test_transpose() -> None:
    mapping = IndexMapping.from_shape((2, 3, 4))
    expected = np.transpose(np.arange(24).reshape(2, 3, 4), (2, 0, 1)).ravel().tolist()
    assert offsets_of(mapping.transpose((2, 0, 1))) == expected
    assert mapping.transpose().transpose() == mapping
    with pytest.raises(ValueError, match="permutation"):
        mapping.transpose((0, 0, 1))


def test_reshape() -> None:
    mapping = IndexMapping.from_shape((2, 6), base_offset=2)
    reshaped = mapping.reshape((3, -1))
    assert reshaped.max_shape == (3, 4)
    assert reshaped.base_offset == 2
    assert offsets_of(reshaped) == offsets_of(mapping)
    assert mapping.reshape(12).max_shape == (12,)
    with pytest.raises(ShapeMismatchError):
        mapping.reshape((5, 2))
    with pytest.raises(ValueError, match="one unknown"):
        mapping.reshape((-1, -1))


@pytest.mark.parametrize(
    "mapping",
    [
        IndexMapping.from_shape((2, 3)).transpose(),
        IndexMapping.from_shape((1, 3)).broadcast((2, 3)),
        IndexMapping.from_shape((2, 3)).rotate((1, 0)),
    ],
)
def test_reshape_requires_dense(mapping: IndexMapping) -> None:
    with pytest.raises(ShapeMismatchError, match="cannot reshape"):
        mapping.reshape((-1,))


def test_select() -> None:
    mapping = IndexMapping.from_shape((4, 5))
    data = np.arange(20).reshape(4, 5)
    for selection in [
        (1,),
        (slice(1, 3),),
        (slice(None), 2),
        (Ellipsis, slice(0, 5, 2)),
        (-1, slice(1, None, 3)),
        (slice(3, 1),),
    ]:
        selected = mapping.select(selection)
        assert selected.max_shape == data[selection].shape
        assert offsets_of(selected) == data[selection].ravel().tolist()


def test_select_errors() -> None:
    mapping = IndexMapping.from_shape((4, 5))
    with pytest.raises(NegativeStepError):
        mapping.select(slice(None, None, -1))
    with pytest.raises(IndexOutOfRange):
        mapping.select((4,))
    with pytest.raises(IndexError, match="too many indices"):
        mapping.select((0, 0, 0))
    with pytest.raises(IndexError, match="single ellipsis"):
        mapping.select((Ellipsis, Ellipsis))


def test_select_broadcast_dimension() -> None:
    mapping = IndexMapping.from_shape((1, 3)).broadcast((4, 3))
    # integers and full slices are fine on a broadcast dimension
    assert offsets_of(mapping.select((2,))) == [0, 1, 2]
    assert mapping.select((slice(None), 1)).max_shape == (4,)
    with pytest.raises(ShapeMismatchError, match="cannot slice"):
        mapping.select(slice(0, 2))


def test_validate() -> None:
    mapping = IndexMapping.from_shape((2, 3), base_offset=4)
    assert mapping.physical_extent() == 10
    assert mapping.validate(10) is mapping
    with pytest.raises(InvalidRange):
        mapping.validate(9)
    assert IndexMapping.from_shape((0, 3)).validate(0).size == 0


def test_backward_identity() -> None:
    mapping = IndexMapping.from_shape((3, 2))
    assert list(mapping.backward(4)) == [4]
    assert list(mapping.backward(6)) == []
    assert list(mapping.backward(-1)) == []


def test_backward_broadcast() -> None:
    mapping = IndexMapping.from_shape((1, 4)).broadcast((3, 4))
    assert list(mapping.backward(2)) == [2, 6, 10]
    assert list(mapping.backward(4)) == []


def test_backward_is_restartable() -> None:
    mapping = IndexMapping.from_shape((2,)).broadcast((3, 4))
    result = mapping.backward(1)
    assert list(result) == [1, 3, 5, 7, 9, 11]
    assert list(result) == [1, 3, 5, 7, 9, 11]
    assert result
    assert not mapping.backward(2)


def test_backward_below_base_offset() -> None:
    mapping = IndexMapping.from_shape((2, 2), base_offset=5).rotate((1, 1))
    assert list(mapping.backward(4)) == []
    assert list(mapping.backward(5)) == [3]


def test_backward_overlapping_strides() -> None:
    # a sliding window: several backing coordinates share a physical offset
    mapping = IndexMapping((3, 2), (1, 1), (0, 0), (3, 2))
    assert offsets_of(mapping) == [0, 1, 1, 2, 2, 3]
    assert list(mapping.backward(1)) == [1, 2]
    assert list(mapping.backward(2)) == [3, 4]


def test_backward_empty_mapping() -> None:
    assert list(IndexMapping.from_shape((0,)).backward(0)) == []
