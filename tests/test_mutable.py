from typing import Any

import numpy as np
import pytest

from dtview.core.accessor import Mutable, Reader, as_kind_scalar
from dtview.core.config import config
from dtview.core.kinds import ElementKind
from dtview.core.mutable import GrowableArray
from dtview.errors import IndexOutOfRange
from dtview.testing import read_all, sample_values


class ListMutable(Reader, Mutable):
    """Minimal mutable relying on the operations derived from insert and remove_range."""

    def __init__(self, kind: ElementKind, values: list[Any]) -> None:
        self._kind = kind
        self.values = list(values)

    @property
    def kind(self) -> ElementKind:
        return self._kind

    def __len__(self) -> int:
        return len(self.values)

    def read(self, idx: int) -> Any:
        return self.values[self._check_index(idx)]

    def insert(self, idx: int, value: Any) -> None:
        if idx < 0 or idx > len(self.values):
            raise IndexOutOfRange(idx, len(self.values))
        value = as_kind_scalar(self._kind, value)
        self.values.insert(idx, value)

    def remove_range(self, idx: int, count: int) -> None:
        if idx < 0 or count < 0 or idx + count > len(self.values):
            raise IndexOutOfRange(idx, len(self.values))
        del self.values[idx : idx + count]


@pytest.fixture(params=["growable", "list"])
def mutable(request: pytest.FixtureRequest) -> Any:
    if request.param == "growable":
        return GrowableArray("int64", [0, 1, 2, 3, 4])
    return ListMutable(ElementKind.int64, [0, 1, 2, 3, 4])


def contents(m: Any) -> list[int]:
    return [int(v) for v in read_all(m)]


def test_insert(mutable: Any) -> None:
    mutable.insert(0, -1)
    mutable.insert(3, 99)
    mutable.insert(len(mutable), 100)
    assert contents(mutable) == [-1, 0, 1, 99, 2, 3, 4, 100]
    with pytest.raises(IndexOutOfRange):
        mutable.insert(len(mutable) + 1, 0)


def test_append_remove_round_trip(mutable: Any) -> None:
    before = contents(mutable)
    mutable.append(42)
    assert len(mutable) == 6
    assert mutable.read(5) == 42
    mutable.remove(len(mutable) - 1)
    assert contents(mutable) == before


def test_remove_range(mutable: Any) -> None:
    mutable.remove_range(1, 3)
    assert contents(mutable) == [0, 4]
    mutable.remove_range(2, 0)
    assert contents(mutable) == [0, 4]
    with pytest.raises(IndexOutOfRange):
        mutable.remove_range(1, 2)


def test_insert_block(mutable: Any) -> None:
    mutable.insert_block(2, [7, 8, 9])
    assert contents(mutable) == [0, 1, 7, 8, 9, 2, 3, 4]
    mutable.insert_block(0, [])
    assert len(mutable) == 8


def test_insert_constant(mutable: Any) -> None:
    mutable.insert_constant(5, 6, 3)
    assert contents(mutable) == [0, 1, 2, 3, 4, 6, 6, 6]
    with pytest.raises(ValueError, match="non-negative"):
        mutable.insert_constant(0, 6, -1)


@pytest.mark.parametrize("value", ["abc", None])
def test_insert_unconvertible_value_leaves_contents(mutable: Any, value: Any) -> None:
    with pytest.raises((ValueError, TypeError)):
        mutable.insert(1, value)
    assert len(mutable) == 5
    assert contents(mutable) == [0, 1, 2, 3, 4]


def test_growable_insert_failure_before_growth() -> None:
    arr = GrowableArray("int32", [0, 1, 2], capacity=3)
    with pytest.raises(ValueError):
        arr.insert(0, "abc")
    assert arr.capacity == 3
    assert contents(arr) == [0, 1, 2]


def test_insert_indexes_sequential(mutable: Any) -> None:
    # each index refers to the sequence as it is after the earlier insertions
    mutable.insert_indexes([0, 6, 2], [10, 11, 12])
    assert contents(mutable) == [10, 0, 12, 1, 2, 3, 4, 11]


def test_insert_indexes_validates_first(mutable: Any) -> None:
    with pytest.raises(IndexOutOfRange):
        mutable.insert_indexes([0, 7], [1, 2])
    assert contents(mutable) == [0, 1, 2, 3, 4]
    with pytest.raises(ValueError, match="got 1 values for 2 indexes"):
        mutable.insert_indexes([0, 1], [1])


def test_remove_indexes(mutable: Any) -> None:
    mutable.remove_indexes([4, 0, 2, 0])
    assert contents(mutable) == [1, 3]
    with pytest.raises(IndexOutOfRange):
        mutable.remove_indexes([0, 2])
    assert contents(mutable) == [1, 3]
    mutable.remove_indexes([])
    assert contents(mutable) == [1, 3]


def test_growable_grows_and_keeps_contents() -> None:
    with config.set({"mutable.initial_capacity": 1, "mutable.growth_factor": 2}):
        arr = GrowableArray("float32")
        for i in range(9):
            arr.append(i)
        assert arr.capacity == 16
        np.testing.assert_array_equal(arr.as_numpy_array(), np.arange(9, dtype=np.float32))


def test_growable_initial_capacity() -> None:
    arr = GrowableArray("int8", capacity=3)
    assert len(arr) == 0
    assert arr.capacity == 3
    with pytest.raises(ValueError, match="smaller than"):
        GrowableArray("int8", [1, 2, 3], capacity=2)


def test_growable_views_see_current_buffer() -> None:
    arr = GrowableArray("int32", [1, 2, 3])
    view = arr.as_view()
    assert len(view) == 3
    view.set(0, 10)
    assert arr.read(0) == 10


def test_growable_vectorized_ops() -> None:
    arr = GrowableArray("int16", np.arange(6))
    np.testing.assert_array_equal(arr.read_block(2, 3), [2, 3, 4])
    np.testing.assert_array_equal(arr.read_indexes([5, 5, 0]), [5, 5, 0])
    arr.write_indexes([1, 1], [7, 8])
    assert arr.read(1) == 8
    arr.write_constant(3, -1, 3)
    np.testing.assert_array_equal(arr.as_numpy_array(), [0, 8, 2, -1, -1, -1])
    with pytest.raises(IndexOutOfRange):
        arr.read_block(4, 3)


def test_growable_all_kinds(kind: ElementKind) -> None:
    values = sample_values(kind, 5)
    arr = GrowableArray(kind, values)
    arr.insert(2, values[4])
    arr.remove_range(0, 1)
    expected = [values[1], values[4], values[2], values[3], values[4]]
    assert list(arr.as_numpy_array()) == expected


def test_growable_releases_object_slots() -> None:
    arr = GrowableArray("object", ["a", "b", "c"])
    arr.remove_range(0, 2)
    assert arr.buffer.as_numpy_array()[1] is None
    assert arr.buffer.as_numpy_array()[2] is None
    assert list(arr.as_numpy_array()) == ["c"]
