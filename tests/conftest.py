from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pytest
from hypothesis import HealthCheck, Verbosity, settings

from dtview import config
from dtview.core.buffer import Buffer
from dtview.core.kinds import ElementKind

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def reset_config() -> Generator[None, None, None]:
    config.reset()
    yield
    config.reset()


@pytest.fixture(params=[kind for kind in ElementKind if kind.is_numeric], ids=lambda k: k.value)
def numeric_kind(request: pytest.FixtureRequest) -> ElementKind:
    return request.param


@pytest.fixture(params=list(ElementKind), ids=lambda k: k.value)
def kind(request: pytest.FixtureRequest) -> ElementKind:
    return request.param


@pytest.fixture
def int_buffer() -> Buffer:
    return Buffer.from_array_like(np.arange(10, dtype=np.int32))


settings.register_profile(
    "default",
    parent=settings.get_profile("default"),
    max_examples=200,
    suppress_health_check=[HealthCheck.filter_too_much, HealthCheck.too_slow],
    deadline=None,
    verbosity=Verbosity.normal,
)
settings.register_profile(
    "ci",
    parent=settings.get_profile("ci"),
    max_examples=300,
    derandomize=True,  # more like regression testing
    deadline=None,
    suppress_health_check=[HealthCheck.filter_too_much, HealthCheck.too_slow],
)
