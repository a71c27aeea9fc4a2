"""Per-selector, append-only override log."""

from __future__ import annotations

from surfacesync.models import ElementOverride

from .merge import merge_overrides


class OverrideStore:
    """Stores overrides in one bucket per selector.

    Buckets keep application order, which is the order merging relies
    on.  :meth:`get_all_overrides` offers a separate, timestamp-sorted
    view for presentation.
    """

    def __init__(self) -> None:
        self._buckets: dict[str, list[ElementOverride]] = {}

    def add_override(self, override: ElementOverride) -> ElementOverride:
        """Append *override* to its selector's bucket and return it."""
        self._buckets.setdefault(override.selector, []).append(override)
        return override

    def get_overrides_by_selector(self, selector: str) -> list[ElementOverride]:
        """Return the bucket for *selector* in insertion order (a copy)."""
        return list(self._buckets.get(selector, ()))

    def merge_overrides(self, selector: str) -> ElementOverride | None:
        """Return the effective override for *selector*, or ``None``."""
        bucket = self._buckets.get(selector)
        if not bucket:
            return None
        return merge_overrides(bucket)

    def merge_all(self) -> list[ElementOverride]:
        """Return one effective override per selector, in selector order."""
        return [merge_overrides(bucket) for bucket in self._buckets.values() if bucket]  # type: ignore[misc]

    def remove_override(self, selector: str, timestamp: int) -> bool:
        """Remove the first entry of *selector* carrying *timestamp*.

        The bucket is dropped once it becomes empty.

        Returns
        -------
        bool
            Whether a matching entry was found.
        """
        bucket = self._buckets.get(selector)
        if bucket is None:
            return False
        for index, override in enumerate(bucket):
            if override.timestamp == timestamp:
                del bucket[index]
                if not bucket:
                    del self._buckets[selector]
                return True
        return False

    def get_all_overrides(self) -> list[ElementOverride]:
        """Return every stored override sorted ascending by timestamp.

        The sort is stable, so equal timestamps keep bucket order.
        """
        flat = [override for bucket in self._buckets.values() for override in bucket]
        return sorted(flat, key=lambda o: o.timestamp)

    def clear_overrides(self) -> None:
        self._buckets.clear()

    def get_override_count(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())

    def get_selectors(self) -> list[str]:
        return list(self._buckets)

    def has_overrides(self, selector: str) -> bool:
        return bool(self._buckets.get(selector))

    def __len__(self) -> int:
        return self.get_override_count()

    def __repr__(self) -> str:
        return f"OverrideStore(selectors={len(self._buckets)}, overrides={self.get_override_count()})"
