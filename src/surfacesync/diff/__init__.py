"""Override application and export.

Exports
-------
DiffEngine
    Applies effective overrides to markup or a render target, and builds
    diffs, exports, and media queries from them.
build_document
    Wrap markup in a standalone single-file HTML document.
"""

from .document import build_document
from .engine import DiffEngine

__all__ = [
    "DiffEngine",
    "build_document",
]
