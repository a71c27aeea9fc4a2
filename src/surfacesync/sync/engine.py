"""Per-surface synchronization state machine.

A :class:`SyncEngine` owns one :class:`~surfacesync.models.SyncState`
per surface id.  It records every override in the surface's log before
touching content, hands merged overrides to the :class:`DiffEngine`,
writes shape geometry onto the bound render target's root, and
implements restore-to-timestamp and error recovery.

Status transitions::

    idle --> syncing --> synced --> error --(recover_sync)--> synced

``error`` is sticky: only :meth:`SyncEngine.recover_sync` clears it.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from surfacesync.config import SyncConfig
from surfacesync.diff.engine import DiffEngine
from surfacesync.dom.styles import format_px, parse_px, style_diff
from surfacesync.dom.target import CaptureTarget, RenderTarget
from surfacesync.errors import (
    SurfaceSyncDriftError,
    SurfaceSyncRenderError,
    SurfaceSyncStaleStatusError,
    SurfaceSyncStateError,
    SurfaceSyncValidationError,
)
from surfacesync.models import (
    ApplyReport,
    ElementOverride,
    HistoryEntry,
    ShapeProps,
    SyncState,
    SyncStatus,
)
from surfacesync.observability import fields, get_logger, resolve_metrics
from surfacesync.overrides.persist import dump_records

from .selector import selector_for_node

log = get_logger("surfacesync.sync")

# (style property, ShapeProps attribute) pairs written onto the root.
_GEOMETRY = (("left", "x"), ("top", "y"), ("width", "width"), ("height", "height"))


def _now_ms() -> float:
    return time.monotonic() * 1000


class SyncEngine:
    """Registry of synchronized surfaces.

    Parameters
    ----------
    config:
        Engine configuration.  Defaults to ``SyncConfig()``.
    diff_engine:
        Diff engine used to write overrides.  Defaults to one built from
        *config*.

    Notes
    -----
    Operations on an id that was never initialised are no-ops (logged at
    debug level) unless ``config.unknown_surface == "raise"``, in which
    case they raise :class:`SurfaceSyncStateError`.
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        diff_engine: DiffEngine | None = None,
    ) -> None:
        self._config = config if config is not None else SyncConfig()
        self._metrics = resolve_metrics(self._config.metrics)
        self._diff = diff_engine if diff_engine is not None else DiffEngine(self._config)
        self._states: dict[str, SyncState] = {}

    @property
    def config(self) -> SyncConfig:
        return self._config

    # ── Lifecycle ──────────────────────────────────────────────────────

    def init_sync(self, surface_id: str, parse_result: Any = None) -> SyncState:
        """Create the state for *surface_id*, discarding any previous one.

        The new state is ``idle`` with empty logs and a fresh store;
        *parse_result* is stored as-is.
        """
        state = SyncState(surface_id=surface_id, parse_result=parse_result, last_sync=_now_ms())
        replaced = surface_id in self._states
        self._states[surface_id] = state
        self._metrics.gauge("surfacesync.surfaces_active", len(self._states))
        log.debug("surface initialised", extra=fields(surface_id=surface_id, reset=replaced))
        return state

    def set_dom_root(self, surface_id: str, target: RenderTarget) -> ApplyReport | None:
        """Bind *target* as the surface's render target.

        With ``config.replay_on_bind`` the merged override of every
        selector is applied to the new target.  The pending shape, or
        else the last synced one, has its geometry written onto the root.

        Returns
        -------
        ApplyReport | None
            The replay report, or ``None`` when nothing was replayed or
            the id is unknown.
        """
        state = self._lookup(surface_id, "set_dom_root")
        if state is None:
            return None
        if not isinstance(target, RenderTarget):
            raise SurfaceSyncValidationError(
                f"render target must implement RenderTarget, got {type(target).__name__}",
                context={"field": "target", "surface_id": surface_id},
            )

        state.dom_root = target
        self._begin(state)
        report: ApplyReport | None = None
        if self._config.replay_on_bind and state.store.get_override_count():
            report = self._diff.apply_to_target(target, state.store.merge_all())
        shape = state.pending_shape if state.pending_shape is not None else state.shape_ref
        if shape is not None and not self._write_geometry(state, shape):
            return report
        self._settle(state)
        return report

    def clear_all_sync_states(self) -> None:
        """Drop every tracked surface."""
        count = len(self._states)
        self._states.clear()
        self._metrics.gauge("surfacesync.surfaces_active", 0)
        log.debug("all surfaces cleared", extra=fields(count=count))

    # ── Geometry ───────────────────────────────────────────────────────

    def sync_shape_to_dom(self, surface_id: str, shape: ShapeProps | Mapping[str, Any]) -> None:
        """Record *shape* and write its geometry onto the bound root.

        The root receives ``position: absolute`` plus ``left``, ``top``,
        ``width`` and ``height`` in px.  Without a bound target only the
        shape is kept as pending.  A write rejected by the target puts the
        surface in ``error`` and leaves no synced shape: the root may hold
        part of the new geometry, so it matches neither shape.
        """
        state = self._lookup(surface_id, "sync_shape_to_dom")
        if state is None:
            return
        if not isinstance(shape, ShapeProps):
            shape = ShapeProps.from_dict(shape)

        if state.dom_root is None:
            state.pending_shape = shape
            state.last_sync = _now_ms()
            return

        self._begin(state)
        if self._write_geometry(state, shape):
            self._settle(state)

    def _write_geometry(self, state: SyncState, shape: ShapeProps) -> bool:
        target = state.dom_root
        try:
            root = target.root
            target.set_style(root, "position", "absolute")
            for prop, attr in _GEOMETRY:
                target.set_style(root, prop, format_px(getattr(shape, attr)))
        except SurfaceSyncRenderError as exc:
            self._metrics.increment("surfacesync.geometry_syncs_total", tags={"result": "error"})
            state.shape_ref, state.pending_shape = None, shape
            self._fail(state, f"geometry sync failed: {exc.message}", op="sync_shape_to_dom")
            return False
        state.shape_ref, state.pending_shape = shape, None
        self._metrics.increment("surfacesync.geometry_syncs_total", tags={"result": "ok"})
        return True

    # ── Overrides ──────────────────────────────────────────────────────

    def apply_override(
        self,
        surface_id: str,
        override: ElementOverride | Mapping[str, Any],
        *,
        tag: str | None = None,
        note: str | None = None,
    ) -> ApplyReport | None:
        """Append *override* to the surface's log and apply it.

        The override is appended to ``overrides``, ``history`` and the
        store before any content is written.  If a render target is
        bound, the merged override of the affected selector is applied.
        The synced and pending shapes get their ``props["overrides"]``
        refreshed with the persisted log.
        *tag* and *note* are stored on the history entry.

        Returns
        -------
        ApplyReport | None
            The diff engine's report, or ``None`` when no target is bound
            or the id is unknown.
        """
        state = self._lookup(surface_id, "apply_override")
        if state is None:
            return None
        if not isinstance(override, ElementOverride):
            override = ElementOverride.from_dict(override)

        state.overrides.append(override)
        state.history.append(
            HistoryEntry(override=override, timestamp=override.timestamp, tag=tag, note=note),
        )
        state.store.add_override(override)
        self._refresh_shape_overrides(state)

        if state.dom_root is None:
            state.last_sync = _now_ms()
            return None

        self._begin(state)
        merged = state.store.merge_overrides(override.selector)
        report = self._diff.apply_to_target(state.dom_root, [merged] if merged else [])
        self._settle(state)
        return report

    def capture_override(
        self,
        surface_id: str,
        node: Any,
        *,
        timestamp: int | None = None,
        ai_generated: bool = False,
        baseline: Mapping[str, str] | None = None,
        note: str | None = None,
    ) -> ElementOverride | None:
        """Record a node's current text and inline styles as an override.

        This is the DOM-to-shape direction: after the host edits *node*
        in place, the edit is captured and appended to the log like any
        other override, with history tag ``"capture"``.

        Parameters
        ----------
        baseline:
            Inline styles of the node before the edit.  When given, only
            the properties that changed or were added are captured.
        note:
            Free-form note stored on the history entry.

        Raises
        ------
        SurfaceSyncStateError
            If no render target is bound to the surface, or the bound
            target is not a :class:`CaptureTarget`.
        """
        state = self._lookup(surface_id, "capture_override")
        if state is None:
            return None
        target = state.dom_root
        if target is None:
            raise SurfaceSyncStateError(
                "cannot capture an override before a render target is bound",
                context={"surface_id": surface_id, "operation": "capture_override"},
            )
        if not isinstance(target, CaptureTarget):
            raise SurfaceSyncStateError(
                f"bound target {type(target).__name__} cannot be read back for capture",
                context={"surface_id": surface_id, "operation": "capture_override"},
            )

        text = target.get_text(node)
        styles = target.get_styles(node)
        if baseline is not None:
            styles = style_diff(dict(baseline), styles)
        override = ElementOverride(
            selector=selector_for_node(target, node),
            timestamp=timestamp if timestamp is not None else time.time_ns() // 1_000_000,
            text=text or None,
            styles=styles or None,
            ai_generated=ai_generated,
        )
        self.apply_override(surface_id, override, tag="capture", note=note)
        return override

    def restore_to_version(self, surface_id: str, timestamp: int) -> int:
        """Keep only the overrides with ``timestamp <= timestamp``.

        This is a value filter over the whole log, not a truncation of
        the most recent entries.  The store is rebuilt and the remaining
        merged overrides are re-applied to a bound target.  There is no
        redo.

        Returns
        -------
        int
            Number of entries dropped.
        """
        state = self._lookup(surface_id, "restore_to_version")
        if state is None:
            return 0

        before = len(state.overrides)
        state.overrides[:] = [o for o in state.overrides if o.timestamp <= timestamp]
        state.history[:] = [h for h in state.history if h.override.timestamp <= timestamp]
        state.store.clear_overrides()
        for override in state.overrides:
            state.store.add_override(override)
        dropped = before - len(state.overrides)

        self._metrics.increment("surfacesync.restore_dropped_total", dropped)
        self._refresh_shape_overrides(state)
        log.info(
            "restored to version",
            extra=fields(surface_id=surface_id, timestamp=timestamp, dropped=dropped),
        )

        if state.dom_root is None:
            state.last_sync = _now_ms()
            return dropped
        self._begin(state)
        self._diff.apply_to_target(state.dom_root, state.store.merge_all())
        self._settle(state)
        return dropped

    def _refresh_shape_overrides(self, state: SyncState) -> None:
        for shape in (state.shape_ref, state.pending_shape):
            if shape is not None:
                shape.props["overrides"] = dump_records(state.overrides)

    # ── Validation & recovery ──────────────────────────────────────────

    def validate_sync(self, surface_id: str, *, strict: bool = False) -> bool:
        """Check that the surface is consistent.

        A surface is consistent when its status is not ``error`` and the
        bound root's geometry is within ``config.drift_tolerance`` of the
        last synced shape on every axis.  Without a synced shape or a
        bound target the geometry check passes.  This method never
        changes state.

        Parameters
        ----------
        surface_id:
            Surface to check.  Unknown ids are never consistent.
        strict:
            Raise instead of returning ``False``.

        Raises
        ------
        SurfaceSyncStateError
            *strict* and the id is unknown.
        SurfaceSyncStaleStatusError
            *strict* and the surface is in ``error``.
        SurfaceSyncDriftError
            *strict* and an axis drifted beyond the tolerance.
        """
        state = self._states.get(surface_id)
        if state is None:
            if strict:
                raise SurfaceSyncStateError(
                    f"unknown surface {surface_id!r}",
                    context={"surface_id": surface_id, "operation": "validate_sync"},
                )
            return False

        if state.status is SyncStatus.ERROR:
            if strict:
                raise SurfaceSyncStaleStatusError(
                    f"surface {surface_id!r} is in error status",
                    context={"surface_id": surface_id, "last_error": state.last_error},
                )
            return False

        shape, target = state.shape_ref, state.dom_root
        if shape is None or target is None:
            return True

        tolerance = self._config.drift_tolerance
        root = target.root
        for prop, attr in _GEOMETRY:
            expected = getattr(shape, attr)
            actual = parse_px(target.get_style(root, prop)) or 0.0
            if abs(expected - actual) > tolerance:
                if strict:
                    raise SurfaceSyncDriftError(
                        f"surface {surface_id!r} drifted on {prop}",
                        context={
                            "surface_id": surface_id,
                            "axis": prop,
                            "expected": expected,
                            "actual": actual,
                            "tolerance": tolerance,
                        },
                    )
                return False
        return True

    def recover_sync(self, surface_id: str) -> None:
        """Mark the surface ``synced`` regardless of its current status.

        Optimistic: nothing is replayed or re-validated.  Idempotent.
        """
        state = self._lookup(surface_id, "recover_sync")
        if state is None:
            return
        previous = state.status
        state.status = SyncStatus.SYNCED
        state.last_error = None
        state.last_sync = _now_ms()
        self._metrics.increment("surfacesync.recoveries_total")
        log.info(
            "sync recovered",
            extra=fields(surface_id=surface_id, previous_status=previous.value),
        )

    def mark_error(self, surface_id: str, reason: str) -> None:
        """Force the surface into ``error`` after a host-side failure."""
        state = self._lookup(surface_id, "mark_error")
        if state is None:
            return
        self._fail(state, reason, op="mark_error")

    # ── Accessors ──────────────────────────────────────────────────────

    def get_sync_state(self, surface_id: str) -> SyncState | None:
        return self._states.get(surface_id)

    def get_all_sync_states(self) -> dict[str, SyncState]:
        """Return a shallow copy of the id -> state registry."""
        return dict(self._states)

    def surface_count(self) -> int:
        return len(self._states)

    # ── Internals ──────────────────────────────────────────────────────

    def _lookup(self, surface_id: str, operation: str) -> SyncState | None:
        state = self._states.get(surface_id)
        if state is not None:
            return state
        if self._config.unknown_surface == "raise":
            raise SurfaceSyncStateError(
                f"{operation} called for unknown surface {surface_id!r}",
                context={"surface_id": surface_id, "operation": operation},
            )
        log.debug("unknown surface ignored", extra=fields(op=operation, surface_id=surface_id))
        return None

    @staticmethod
    def _begin(state: SyncState) -> None:
        if state.status is not SyncStatus.ERROR:
            state.status = SyncStatus.SYNCING

    @staticmethod
    def _settle(state: SyncState) -> None:
        if state.status is not SyncStatus.ERROR:
            state.status = SyncStatus.SYNCED
        state.last_sync = _now_ms()

    @staticmethod
    def _fail(state: SyncState, reason: str, *, op: str) -> None:
        state.status = SyncStatus.ERROR
        state.last_error = reason
        state.last_sync = _now_ms()
        log.warning(reason, extra=fields(op=op, surface_id=state.surface_id))
