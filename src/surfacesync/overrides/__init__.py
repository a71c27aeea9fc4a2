"""Override log storage and merging.

Exports
-------
OverrideStore
    Per-selector, append-only override buckets.
merge_overrides
    Fold one selector's bucket into an effective override.
merge_override_list
    Group a flat list by selector and fold each group.
dumps_overrides / loads_overrides
    JSON persisted form of an override log.
"""

from .merge import merge_override_list, merge_overrides
from .persist import dump_records, dumps_overrides, load_records, loads_overrides
from .store import OverrideStore

__all__ = [
    "OverrideStore",
    "dump_records",
    "dumps_overrides",
    "load_records",
    "loads_overrides",
    "merge_override_list",
    "merge_overrides",
]
