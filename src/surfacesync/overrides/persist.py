"""JSON persisted form of the override log.

The log is stored as a JSON array of :meth:`ElementOverride.to_dict`
records.  There is no envelope or version field; hosts embed the array
wherever they keep shape props.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

from surfacesync.errors import SurfaceSyncValidationError
from surfacesync.models import ElementOverride


def dump_records(overrides: Iterable[ElementOverride]) -> list[dict]:
    """Return the persisted dict form of *overrides*, preserving order."""
    return [override.to_dict() for override in overrides]


def load_records(records: Iterable[dict]) -> list[ElementOverride]:
    """Rebuild overrides from persisted dicts.

    Raises
    ------
    SurfaceSyncValidationError
        If any record is malformed.  The error context carries the
        offending ``index``.
    """
    overrides: list[ElementOverride] = []
    for index, record in enumerate(records):
        try:
            overrides.append(ElementOverride.from_dict(record))
        except SurfaceSyncValidationError as exc:
            raise SurfaceSyncValidationError(
                f"override record {index} is invalid: {exc.message}",
                context={**exc.context, "index": index},
                cause=exc,
            ) from exc
    return overrides


def dumps_overrides(overrides: Iterable[ElementOverride], *, indent: int | None = None) -> str:
    """Serialise *overrides* to a JSON array string."""
    return json.dumps(dump_records(overrides), ensure_ascii=False, indent=indent)


def loads_overrides(text: str) -> list[ElementOverride]:
    """Parse a JSON array produced by :func:`dumps_overrides`."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SurfaceSyncValidationError(
            f"override log is not valid JSON: {exc.msg}",
            context={"position": exc.pos},
            cause=exc,
        ) from exc
    if not isinstance(data, list):
        raise SurfaceSyncValidationError(
            "override log must be a JSON array",
            context={"value_type": type(data).__name__},
        )
    return load_records(data)
