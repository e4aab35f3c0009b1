"""
The config module is responsible for managing the configuration of dtview and is based on the Donfig python library.

Example:
    The default byte order used by the byte codec can be changed programmatically

    ```python
    from dtview.core.config import config

    config.set({"codec.endian": "big"})
    ```

    or with the environment variable ``DTVIEW_CODEC__ENDIAN``. The double underscore ``__`` is used to
    indicate nested access.

    ```bash
    export DTVIEW_CODEC__ENDIAN="big"
    ```

For more information, see the Donfig documentation at https://github.com/pytroll/donfig.
"""

from __future__ import annotations

from typing import Any, Literal, cast

from donfig import Config as DConfig


class BadConfigError(ValueError):
    _msg = "bad Config: %r"


class Config(DConfig):  # type: ignore[misc]
    """The Config will collect configuration from config files and environment variables

    Example environment variables:
    Grabs environment variables of the form "DTVIEW_FOO__BAR_BAZ=123" and
    turns these into config variables of the form ``{"foo": {"bar-baz": 123}}``
    It transforms the key and value in the following way:

    -  Lower-cases the key text
    -  Treats ``__`` (double-underscore) as nested access
    -  Calls ``ast.literal_eval`` on the value

    """

    def reset(self) -> None:
        self.clear()
        self.refresh()


# The default configuration for dtview
config = Config(
    "dtview",
    defaults=[
        {
            "codec": {"endian": "little"},
            "mutable": {"initial_capacity": 16, "growth_factor": 2},
            "buffer": "dtview.core.buffer.Buffer",
        }
    ],
)


def parse_endian(data: Any) -> Literal["little", "big"]:
    if data in ("little", "big"):
        return cast("Literal['little', 'big']", data)
    msg = f"Expected one of ('little', 'big'), got {data} instead."
    raise ValueError(msg)


def default_endian() -> Literal["little", "big"]:
    return parse_endian(config.get("codec.endian"))


def growth_policy() -> tuple[int, float]:
    """Return the configured ``(initial_capacity, growth_factor)`` for growable arrays."""
    initial = config.get("mutable.initial_capacity")
    factor = config.get("mutable.growth_factor")
    if not isinstance(initial, int) or initial < 1:
        raise BadConfigError(f"mutable.initial_capacity must be a positive integer, got {initial!r}")
    if not isinstance(factor, (int, float)) or factor <= 1:
        raise BadConfigError(f"mutable.growth_factor must be a number > 1, got {factor!r}")
    return initial, factor
