__all__ = [
    "BaseDtviewError",
    "BaseDtviewIndexError",
    "IndexOutOfRange",
    "InvalidRange",
    "InvalidState",
    "NegativeStepError",
    "ShapeMismatchError",
]


class BaseDtviewError(ValueError):
    """
    Base error which all dtview value errors are sub-classed from.
    """

    _msg: str = "{}"

    def __init__(self, *args: object) -> None:
        """
        If a single argument is passed, treat it as a pre-formatted message.

        If multiple arguments are passed, they are used as arguments for a template string class
        variable.
        """
        if len(args) == 1:
            super().__init__(args[0])
        else:
            super().__init__(self._msg.format(*args))


class BaseDtviewIndexError(IndexError):
    """
    Base error for every failure that addresses a position outside a valid range.
    """

    _msg: str = "{}"

    def __init__(self, *args: object) -> None:
        if len(args) == 1:
            super().__init__(args[0])
        else:
            super().__init__(self._msg.format(*args))


class IndexOutOfRange(BaseDtviewIndexError):
    """
    Raised when an accessor or mapping operation addresses a position outside its valid range.
    """

    _msg = "index {!r} out of range for length {}"


class InvalidRange(BaseDtviewError):
    """
    Raised when a view is constructed with bounds that exceed the backing capacity.
    """

    _msg = "range [{}, {}) exceeds capacity {}"


class ShapeMismatchError(BaseDtviewError):
    """Raised when shapes, strides or offsets of an index mapping are incompatible."""

    _msg = "shape {!r} is incompatible with {!r}"


class InvalidState(RuntimeError):
    """
    Raised when an iterator is advanced or inspected after exhaustion.
    """

    def __init__(self, msg: str = "iterator is exhausted") -> None:
        super().__init__(msg)


class NegativeStepError(IndexError):
    def __init__(self) -> None:
        super().__init__("only slices with step >= 1 are supported")
