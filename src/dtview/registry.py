from __future__ import annotations

from importlib.metadata import entry_points as get_entry_points
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from dtview.core.config import BadConfigError, config

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint

    from dtview.core.buffer import Buffer

__all__ = [
    "Registry",
    "get_buffer_class",
    "register_buffer",
]

T = TypeVar("T")


class Registry(dict[str, type[T]], Generic[T]):
    def __init__(self) -> None:
        super().__init__()
        self.lazy_load_list: list[EntryPoint] = []

    def lazy_load(self) -> None:
        for e in self.lazy_load_list:
            self.register(e.load())

        self.lazy_load_list.clear()

    def register(self, cls: type[T], qualname: str | None = None) -> None:
        if qualname is None:
            qualname = fully_qualified_name(cls)
        self[qualname] = cls


__buffer_registry: Registry[Buffer] = Registry()

"""
The registry module is responsible for managing buffer implementations and
collecting them from entrypoints. The implementation used by ``allocate`` is
determined by the ``buffer`` config key.
"""


def _collect_entrypoints() -> list[Registry[Any]]:
    """
    Collects buffer classes from entrypoints.

    Allowed syntax for entry_points.txt is e.g.

        [dtview.buffer]
        xyz = package:MyBuffer
    """
    entry_points = get_entry_points()
    __buffer_registry.lazy_load_list.extend(entry_points.select(group="dtview.buffer"))
    __buffer_registry.lazy_load_list.extend(entry_points.select(group="dtview", name="buffer"))
    return [__buffer_registry]


def _reload_config() -> None:
    config.refresh()


def fully_qualified_name(cls: type) -> str:
    module = cls.__module__
    return module + "." + cls.__qualname__


def register_buffer(cls: type[Buffer], qualname: str | None = None) -> None:
    __buffer_registry.register(cls, qualname)


def get_buffer_class(reload_config: bool = False) -> type[Buffer]:
    if reload_config:
        _reload_config()
    __buffer_registry.lazy_load()

    path = config.get("buffer")
    buffer_class = __buffer_registry.get(path)
    if buffer_class:
        return buffer_class
    raise BadConfigError(
        f"Config entry 'buffer' is {path!r}. Available buffer classes are: {list(__buffer_registry)}"
    )


_collect_entrypoints()
