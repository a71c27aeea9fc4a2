"""surfacesync - override log and DOM synchronization for canvas surfaces.

Public re-exports
-----------------

* **Engines:** :class:`SyncEngine`, :class:`DiffEngine`
* **Configuration:** :class:`SyncConfig`
* **Errors:** Every :class:`SurfaceSyncError` subclass and :class:`ErrorCode`
* **Models:** The override record, sync state, and result dataclasses
* **Content:** :class:`HtmlDocument`, :func:`parse_html`, :class:`RenderTarget`,
  :class:`CaptureTarget`

Usage::

    from surfacesync import ElementOverride, HtmlDocument, SyncEngine, parse_html

    engine = SyncEngine()
    engine.init_sync("s1", parse_html('<h1 id="t">Title</h1>'))
    engine.set_dom_root("s1", HtmlDocument('<h1 id="t">Title</h1>'))
    engine.apply_override("s1", ElementOverride(selector="#t", text="Hello", timestamp=1))
"""

from __future__ import annotations

# ── Configuration ───────────────────────────────────────────────────────
from surfacesync.config import DEFAULT_DRIFT_TOLERANCE, SyncConfig

# ── Engines ─────────────────────────────────────────────────────────────
from surfacesync.diff import DiffEngine

# ── Content ─────────────────────────────────────────────────────────────
from surfacesync.dom import CaptureTarget, HtmlDocument, HtmlParseResult, RenderTarget, parse_html

# ── Errors ──────────────────────────────────────────────────────────────
from surfacesync.errors import (
    ErrorCode,
    SurfaceSyncDriftError,
    SurfaceSyncError,
    SurfaceSyncRenderError,
    SurfaceSyncSelectorError,
    SurfaceSyncSelectorNotFoundError,
    SurfaceSyncStaleStatusError,
    SurfaceSyncStateError,
    SurfaceSyncValidationError,
)

# ── Models ──────────────────────────────────────────────────────────────
from surfacesync.models import (
    VIEWPORT_PRESETS,
    ApplyReport,
    ApplyWarning,
    ElementOverride,
    ExportResult,
    HistoryEntry,
    HtmlDiff,
    ModifiedElement,
    OverrideOriginal,
    Point,
    ShapeProps,
    Size,
    SyncState,
    SyncStatus,
    ViewportConfig,
)

# ── Overrides ───────────────────────────────────────────────────────────
from surfacesync.overrides import (
    OverrideStore,
    dumps_overrides,
    loads_overrides,
    merge_override_list,
    merge_overrides,
)
from surfacesync.sync import SyncEngine

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Engines
    "SyncEngine",
    "DiffEngine",
    # Configuration
    "SyncConfig",
    "DEFAULT_DRIFT_TOLERANCE",
    # Error base + code enum
    "SurfaceSyncError",
    "ErrorCode",
    # Data errors
    "SurfaceSyncValidationError",
    "SurfaceSyncSelectorError",
    "SurfaceSyncSelectorNotFoundError",
    "SurfaceSyncRenderError",
    # State errors
    "SurfaceSyncStateError",
    "SurfaceSyncDriftError",
    "SurfaceSyncStaleStatusError",
    # Models - overrides
    "ElementOverride",
    "OverrideOriginal",
    "HistoryEntry",
    "Point",
    "Size",
    # Models - state
    "SyncState",
    "SyncStatus",
    "ShapeProps",
    # Models - results
    "ApplyReport",
    "ApplyWarning",
    "HtmlDiff",
    "ModifiedElement",
    "ExportResult",
    "ViewportConfig",
    "VIEWPORT_PRESETS",
    # Overrides
    "OverrideStore",
    "merge_overrides",
    "merge_override_list",
    "dumps_overrides",
    "loads_overrides",
    # Content
    "HtmlDocument",
    "HtmlParseResult",
    "CaptureTarget",
    "RenderTarget",
    "parse_html",
]
