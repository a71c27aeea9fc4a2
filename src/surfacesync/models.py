"""Public data models for surfacesync.

This module contains the override record, the per-surface sync state,
the host shape mirror, and every result type returned by the engines.
Override records are frozen dataclasses with read-only mapping
fields; their persisted form is a plain JSON-compatible dict produced
by :meth:`ElementOverride.to_dict`.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from surfacesync.errors import (
    ErrorCode,
    SurfaceSyncError,
    SurfaceSyncRenderError,
    SurfaceSyncSelectorError,
    SurfaceSyncSelectorNotFoundError,
    SurfaceSyncValidationError,
)

if TYPE_CHECKING:
    from surfacesync.overrides.store import OverrideStore


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class SyncStatus(str, Enum):
    """Lifecycle states of a surface tracked by the sync engine."""

    IDLE = "idle"
    """Initialised; no render target bound yet."""

    SYNCING = "syncing"
    """Transient: a sync call is writing to the render target."""

    SYNCED = "synced"
    """Render target and override log are consistent."""

    ERROR = "error"
    """A sync failed or was forced to fail.  Cleared only by
    ``recover_sync``."""


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SurfaceSyncValidationError(
            f"{name} must be a number, got {type(value).__name__}",
            context={"field": name, "value": value},
        )
    if not math.isfinite(value):
        raise SurfaceSyncValidationError(
            f"{name} must be a finite number, got {value!r}",
            context={"field": name, "value": value},
        )
    return value


@dataclass(frozen=True)
class Point:
    """An ``(x, y)`` position in canvas units."""

    x: float
    y: float

    def __post_init__(self) -> None:
        _number(self.x, "x")
        _number(self.y, "y")

    @classmethod
    def coerce(cls, value: Any, name: str = "position") -> Point:
        if isinstance(value, Point):
            return value
        if not isinstance(value, Mapping) or "x" not in value or "y" not in value:
            raise SurfaceSyncValidationError(
                f"{name} must be a mapping with 'x' and 'y'",
                context={"field": name, "value": value},
            )
        return cls(x=_number(value["x"], f"{name}.x"), y=_number(value["y"], f"{name}.y"))

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Size:
    """A ``width`` x ``height`` extent in canvas units."""

    width: float
    height: float

    def __post_init__(self) -> None:
        _number(self.width, "width")
        _number(self.height, "height")

    @classmethod
    def coerce(cls, value: Any, name: str = "size") -> Size:
        if isinstance(value, Size):
            return value
        if not isinstance(value, Mapping) or "width" not in value or "height" not in value:
            raise SurfaceSyncValidationError(
                f"{name} must be a mapping with 'width' and 'height'",
                context={"field": name, "value": value},
            )
        return cls(
            width=_number(value["width"], f"{name}.width"),
            height=_number(value["height"], f"{name}.height"),
        )

    def to_dict(self) -> dict[str, float]:
        return {"width": self.width, "height": self.height}


def _string_map(value: Any, name: str) -> Mapping[str, str] | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise SurfaceSyncValidationError(
            f"{name} must be a mapping of strings",
            context={"field": name, "value": value},
        )
    return MappingProxyType({str(k): str(v) for k, v in value.items()})


def _optional_str(value: Any, name: str) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise SurfaceSyncValidationError(
        f"{name} must be a string",
        context={"field": name, "value": value},
    )


# ---------------------------------------------------------------------------
# Override records
# ---------------------------------------------------------------------------

# Field names shared by ElementOverride and OverrideOriginal, in the
# order they appear in the persisted form.
OVERRIDE_FIELDS: tuple[str, ...] = ("text", "html", "attributes", "styles", "position", "size")


@dataclass(frozen=True)
class OverrideOriginal:
    """Pre-override snapshot of the fields an override changed.

    Kept for audit and undo display only; merge logic carries it through
    but never reads it.
    """

    text: str | None = None
    html: str | None = None
    attributes: Mapping[str, str] | None = None
    styles: Mapping[str, str] | None = None
    position: Point | None = None
    size: Size | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "text", _optional_str(self.text, "original.text"))
        object.__setattr__(self, "html", _optional_str(self.html, "original.html"))
        object.__setattr__(self, "attributes", _string_map(self.attributes, "original.attributes"))
        object.__setattr__(self, "styles", _string_map(self.styles, "original.styles"))
        if self.position is not None:
            object.__setattr__(self, "position", Point.coerce(self.position, "original.position"))
        if self.size is not None:
            object.__setattr__(self, "size", Size.coerce(self.size, "original.size"))

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in OVERRIDE_FIELDS)

    def to_dict(self) -> dict[str, Any]:
        return _fields_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OverrideOriginal:
        if not isinstance(data, Mapping):
            raise SurfaceSyncValidationError(
                "original must be a mapping",
                context={"field": "original", "value": data},
            )
        return cls(**{name: data.get(name) for name in OVERRIDE_FIELDS})


@dataclass(frozen=True)
class ElementOverride:
    """One patch issued against an element of a rendered surface.

    Attributes
    ----------
    selector:
        CSS-like selector identifying the target element(s).  Required
        and non-blank.
    timestamp:
        Caller-supplied integer.  Used for restore filtering and the
        global presentation order; merge order is application order.
    text:
        Replacement text content.
    html:
        Replacement inner HTML.  Supersedes ``text`` when both are set.
    attributes:
        Attributes to set, keyed by attribute name.
    styles:
        Inline style properties to set (camelCase names are accepted and
        normalised when written).
    position, size:
        Geometry patches.  Carried through merge; never written by the
        diff engine.
    ai_generated:
        Whether an AI assistant issued the patch.
    original:
        Snapshot of the values this patch replaced.
    """

    selector: str
    timestamp: int
    text: str | None = None
    html: str | None = None
    attributes: Mapping[str, str] | None = None
    styles: Mapping[str, str] | None = None
    position: Point | None = None
    size: Size | None = None
    ai_generated: bool = False
    original: OverrideOriginal | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.selector, str) or not self.selector.strip():
            raise SurfaceSyncValidationError(
                "selector must be a non-empty string",
                context={"field": "selector", "value": self.selector},
            )
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise SurfaceSyncValidationError(
                "timestamp must be an integer",
                context={"field": "timestamp", "value": self.timestamp},
            )
        object.__setattr__(self, "text", _optional_str(self.text, "text"))
        object.__setattr__(self, "html", _optional_str(self.html, "html"))
        object.__setattr__(self, "attributes", _string_map(self.attributes, "attributes"))
        object.__setattr__(self, "styles", _string_map(self.styles, "styles"))
        if self.position is not None:
            object.__setattr__(self, "position", Point.coerce(self.position))
        if self.size is not None:
            object.__setattr__(self, "size", Size.coerce(self.size))
        if isinstance(self.original, Mapping):
            object.__setattr__(self, "original", OverrideOriginal.from_dict(self.original))
        object.__setattr__(self, "ai_generated", bool(self.ai_generated))

    def has_content(self) -> bool:
        """True when the override carries selector-addressed content."""
        return any(
            getattr(self, name) is not None for name in ("text", "html", "attributes", "styles")
        )

    def has_geometry(self) -> bool:
        return self.position is not None or self.size is not None

    def to_dict(self) -> dict[str, Any]:
        """Return the persisted form: a JSON-compatible dict.

        Unset optional fields are omitted; keys follow the host's
        camelCase convention (``aiGenerated``).
        """
        data: dict[str, Any] = {"selector": self.selector}
        data.update(_fields_to_dict(self))
        data["timestamp"] = self.timestamp
        data["aiGenerated"] = self.ai_generated
        if self.original is not None:
            data["original"] = self.original.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ElementOverride:
        """Build an override from its persisted form.

        Raises
        ------
        SurfaceSyncValidationError
            If the record is not a mapping, lacks a selector or an
            integer timestamp, or has malformed fields.
        """
        if not isinstance(data, Mapping):
            raise SurfaceSyncValidationError(
                "override record must be a mapping",
                context={"value": data},
            )
        if "timestamp" not in data:
            raise SurfaceSyncValidationError(
                "override record is missing 'timestamp'",
                context={"field": "timestamp", "selector": data.get("selector")},
            )
        timestamp = data["timestamp"]
        if isinstance(timestamp, float) and timestamp.is_integer():
            timestamp = int(timestamp)
        ai_generated = data.get("aiGenerated", data.get("ai_generated", False))
        original = data.get("original")
        return cls(
            selector=data.get("selector"),  # type: ignore[arg-type]
            timestamp=timestamp,
            text=data.get("text"),
            html=data.get("html"),
            attributes=data.get("attributes"),
            styles=data.get("styles"),
            position=data.get("position"),
            size=data.get("size"),
            ai_generated=ai_generated,
            original=OverrideOriginal.from_dict(original) if original is not None else None,
        )


def _fields_to_dict(record: ElementOverride | OverrideOriginal) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for name in OVERRIDE_FIELDS:
        value = getattr(record, name)
        if value is None:
            continue
        if isinstance(value, (Point, Size)):
            data[name] = value.to_dict()
        elif isinstance(value, Mapping):
            data[name] = dict(value)
        else:
            data[name] = value
    return data


@dataclass
class HistoryEntry:
    """One entry of a surface's modification history.

    ``history[i].override`` is the same object as ``overrides[i]``.
    ``tag`` labels where the entry came from (``"capture"`` for edits
    captured from the render target); ``note`` is free text.
    """

    override: ElementOverride
    timestamp: int
    tag: str | None = None
    note: str | None = None


# ---------------------------------------------------------------------------
# Host shape mirror
# ---------------------------------------------------------------------------

@dataclass
class ShapeProps:
    """Geometry and content of a host canvas shape.

    Attributes
    ----------
    id:
        Host shape identifier.
    x, y, width, height:
        Shape geometry in canvas units.
    props:
        Host-owned content (``html``, ``css``, ``js``, ``overrides``,
        ...).  The engine only refreshes ``props["overrides"]``.
    """

    id: str
    x: float
    y: float
    width: float
    height: float
    props: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("x", "y", "width", "height"):
            _number(getattr(self, name), name)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ShapeProps:
        if not isinstance(data, Mapping):
            raise SurfaceSyncValidationError("shape must be a mapping", context={"value": data})
        missing = [k for k in ("x", "y", "width", "height") if k not in data]
        if missing:
            raise SurfaceSyncValidationError(
                f"shape is missing geometry fields: {', '.join(missing)}",
                context={"field": missing[0], "shape_id": data.get("id")},
            )
        return cls(
            id=str(data.get("id", "")),
            x=_number(data["x"], "x"),
            y=_number(data["y"], "y"),
            width=_number(data["width"], "width"),
            height=_number(data["height"], "height"),
            props=dict(data.get("props") or {}),
        )


# ---------------------------------------------------------------------------
# Sync state
# ---------------------------------------------------------------------------

def _new_store() -> OverrideStore:
    from surfacesync.overrides.store import OverrideStore

    return OverrideStore()


@dataclass
class SyncState:
    """Per-surface state owned by a :class:`~surfacesync.sync.SyncEngine`.

    Attributes
    ----------
    surface_id:
        The id passed to ``init_sync``.
    parse_result:
        Opaque handle from the HTML parsing collaborator.
    status:
        Current :class:`SyncStatus`.
    overrides:
        Override log in application order.
    history:
        Append log kept identical in length and order to ``overrides``.
    dom_root:
        Bound :class:`~surfacesync.dom.RenderTarget`, if any.
    shape_ref:
        Last shape whose geometry was fully written onto the bound root.
    pending_shape:
        Shape received by ``sync_shape_to_dom`` but not yet written:
        no target was bound, or the target rejected the write.  Written
        by the next ``set_dom_root``.
    store:
        The surface's selector-bucketed :class:`OverrideStore`.
    last_sync:
        Monotonic milliseconds of the last state change.
    last_error:
        Reason recorded by the last forced or failed sync.
    """

    surface_id: str
    parse_result: Any = None
    status: SyncStatus = SyncStatus.IDLE
    overrides: list[ElementOverride] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    dom_root: Any | None = None
    shape_ref: ShapeProps | None = None
    pending_shape: ShapeProps | None = None
    store: OverrideStore = field(default_factory=_new_store)
    last_sync: float = 0.0
    last_error: str | None = None


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class ApplyWarning:
    """A non-fatal problem met while applying overrides.

    Attributes
    ----------
    code:
        An :class:`~surfacesync.errors.ErrorCode` value such as
        ``"SELECTOR_NOT_FOUND"``.
    message:
        Human-readable description.
    context:
        Structured diagnostics (always includes ``selector``).
    """

    code: str
    message: str
    context: dict = field(default_factory=dict)

    def to_error(self) -> SurfaceSyncError:
        """Return the exception a host raises to escalate this warning."""
        cls = _WARNING_ERRORS.get(self.code)
        if cls is None:
            return SurfaceSyncError(self.code, self.message, dict(self.context))
        return cls(self.message, context=dict(self.context))


_WARNING_ERRORS: dict[str, type] = {
    ErrorCode.SELECTOR_NOT_FOUND.value: SurfaceSyncSelectorNotFoundError,
    ErrorCode.INVALID_SELECTOR.value: SurfaceSyncSelectorError,
    ErrorCode.RENDER_FAILED.value: SurfaceSyncRenderError,
}


@dataclass
class ApplyReport:
    """Outcome of one diff-engine batch.

    Attributes
    ----------
    applied:
        Number of merged overrides that matched at least one node.
    nodes_patched:
        Total number of nodes written to.
    warnings:
        One entry per skipped override.
    """

    applied: int = 0
    nodes_patched: int = 0
    warnings: list[ApplyWarning] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.warnings)


@dataclass
class ModifiedElement:
    """An element of the parsed tree touched by a merged override."""

    selector: str
    changes: ElementOverride


@dataclass
class HtmlDiff:
    """Difference between a parsed document and its overridden state.

    Overrides never create or delete elements, so ``added`` and
    ``removed`` stay empty; they exist for hosts that diff whole trees.
    """

    added: list[Any] = field(default_factory=list)
    modified: list[ModifiedElement] = field(default_factory=list)
    removed: list[Any] = field(default_factory=list)


@dataclass
class ExportResult:
    """Exported content.  ``css``/``js`` are set only for the
    ``"separate"`` format."""

    html: str
    css: str | None = None
    js: str | None = None


@dataclass(frozen=True)
class ViewportConfig:
    """A viewport used for media-query generation."""

    width: int
    height: int
    name: str | None = None


VIEWPORT_PRESETS: dict[str, ViewportConfig] = {
    "desktop": ViewportConfig(1920, 1080, "desktop"),
    "tablet": ViewportConfig(768, 1024, "tablet"),
    "mobile": ViewportConfig(375, 667, "mobile"),
}
