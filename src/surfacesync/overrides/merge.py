"""Fold a selector's override log into one effective override.

The fold runs in application order.  Timestamps are caller supplied and
may be non-monotonic relative to call order; they never decide which
value wins.  Per field:

* ``text``, ``html``, ``position``, ``size`` -- the last entry that
  defines the field wins outright.
* ``styles``, ``attributes`` -- key-wise union; a later entry overwrites
  only the keys it sets.
* ``timestamp`` -- the timestamp of the last entry.
* ``ai_generated`` -- true if any entry is AI generated.
* ``original`` -- per field, the snapshot from the earliest entry that
  both changed the field and recorded an original for it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from surfacesync.models import OVERRIDE_FIELDS, ElementOverride, OverrideOriginal

_MAP_FIELDS = frozenset({"attributes", "styles"})


def merge_overrides(entries: Sequence[ElementOverride]) -> ElementOverride | None:
    """Merge the entries of one selector bucket.

    Parameters
    ----------
    entries:
        Overrides for a single selector, in application order.

    Returns
    -------
    ElementOverride | None
        The effective override, or ``None`` for an empty sequence.
    """
    if not entries:
        return None

    values: dict[str, Any] = {}
    originals: dict[str, Any] = {}

    for entry in entries:
        for name in OVERRIDE_FIELDS:
            value = getattr(entry, name)
            if value is None:
                continue
            if name in _MAP_FIELDS:
                values[name] = {**values.get(name, {}), **value}
            else:
                values[name] = value
            if name not in originals and entry.original is not None:
                baseline = getattr(entry.original, name)
                if baseline is not None:
                    originals[name] = baseline

    last = entries[-1]
    return ElementOverride(
        selector=last.selector,
        timestamp=last.timestamp,
        ai_generated=any(entry.ai_generated for entry in entries),
        original=OverrideOriginal(**originals) if originals else None,
        **values,
    )


def merge_override_list(overrides: Iterable[ElementOverride]) -> list[ElementOverride]:
    """Group a flat override list by selector and merge each group.

    Groups are returned in order of each selector's first appearance;
    within a group the list order is the application order.
    """
    groups: dict[str, list[ElementOverride]] = {}
    for override in overrides:
        groups.setdefault(override.selector, []).append(override)
    merged: list[ElementOverride] = []
    for bucket in groups.values():
        result = merge_overrides(bucket)
        if result is not None:
            merged.append(result)
    return merged
