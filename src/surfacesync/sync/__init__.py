"""Surface synchronization.

Exports
-------
SyncEngine
    Per-surface state machine: override log, geometry sync, restore and
    recovery.
selector_for_node
    Generate a selector for a node of a render target.
"""

from .engine import SyncEngine
from .selector import selector_for_node

__all__ = [
    "SyncEngine",
    "selector_for_node",
]
