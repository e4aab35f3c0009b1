from dtview._version import version as __version__
from dtview.core.accessor import (
    ConstantReader,
    FunctionReader,
    Mutable,
    Reader,
    ViewAccessor,
    Writer,
)
from dtview.core.buffer import Buffer, allocate
from dtview.core.codec import (
    BinaryReader,
    BinaryWriter,
    from_bytes,
    from_reader,
    to_bytes,
    to_writer,
)
from dtview.core.config import config
from dtview.core.indexing import IndexMapping, broadcast_offset
from dtview.core.iterator import ReaderIterator
from dtview.core.kinds import ElementKind
from dtview.core.mutable import GrowableArray
from dtview.core.tensor import TensorReader, TensorWriter
from dtview.core.view import ArrayView, view_of


def print_debug_info() -> None:
    """
    Print version info for use in bug reports.
    """
    import platform
    from importlib.metadata import PackageNotFoundError, version

    def print_packages(packages: list[str]) -> None:
        not_installed = []
        for package in packages:
            try:
                print(f"{package}: {version(package)}")
            except PackageNotFoundError:
                not_installed.append(package)
        if not_installed:
            print("\n**Not Installed:**")
            for package in not_installed:
                print(package)

    required = [
        "numpy",
        "numcodecs",
        "donfig",
    ]
    optional = [
        "hypothesis",
        "pytest",
    ]

    print(f"platform: {platform.platform()}")
    print(f"python: {platform.python_version()}")
    print(f"dtview: {__version__}\n")
    print("**Required dependencies:**")
    print_packages(required)
    print("\n**Optional dependencies:**")
    print_packages(optional)


__all__ = [
    "ArrayView",
    "BinaryReader",
    "BinaryWriter",
    "Buffer",
    "ConstantReader",
    "ElementKind",
    "FunctionReader",
    "GrowableArray",
    "IndexMapping",
    "Mutable",
    "Reader",
    "ReaderIterator",
    "TensorReader",
    "TensorWriter",
    "ViewAccessor",
    "Writer",
    "__version__",
    "allocate",
    "broadcast_offset",
    "config",
    "from_bytes",
    "from_reader",
    "print_debug_info",
    "to_bytes",
    "to_writer",
    "view_of",
]
