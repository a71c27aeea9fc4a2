"""Engine configuration for surfacesync.

:class:`SyncConfig` is a plain dataclass that captures every tuneable
knob of the :class:`~surfacesync.sync.SyncEngine` and
:class:`~surfacesync.diff.DiffEngine`.  One instance is shared by an
engine and the diff engine it owns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

DEFAULT_DRIFT_TOLERANCE: float = 2.0
"""Maximum difference (in CSS px) between a shape's geometry and the
root's written geometry that still counts as synchronized."""


@dataclass
class SyncConfig:
    """Complete configuration for a sync engine.

    Every parameter has a sensible default, so ``SyncConfig()`` is a
    valid configuration.

    Parameters
    ----------
    drift_tolerance:
        Allowed rounding drift, per axis, between the last synced shape
        geometry and the bound root's inline geometry.
    unknown_surface:
        Behaviour when an operation names a surface id that was never
        initialised (or was cleared).

        * ``"ignore"``: safe no-op, logged at debug level.  Canvas
          surfaces may be deleted while host callbacks are in flight.
        * ``"raise"``: raise :class:`SurfaceSyncStateError`.
    replay_on_bind:
        Apply the merged overrides of every selector to a render target
        as soon as it is bound with ``set_dom_root``.
    metrics:
        Optional :class:`~surfacesync.observability.MetricsHook`
        implementation.  ``None`` selects the no-op hook.
    debug_dump_merge:
        Write every merged override handed to the diff engine to
        *stderr* as JSON.
    """

    # ── Geometry ────────────────────────────────────────────────────────
    drift_tolerance: float = DEFAULT_DRIFT_TOLERANCE

    # ── Failure policy ──────────────────────────────────────────────────
    unknown_surface: Literal["ignore", "raise"] = "ignore"

    # ── Rendering ───────────────────────────────────────────────────────
    replay_on_bind: bool = True

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_merge: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.drift_tolerance < 0:
            raise ValueError(f"drift_tolerance must be >= 0, got {self.drift_tolerance}")
        if self.unknown_surface not in ("ignore", "raise"):
            raise ValueError(
                f"unknown_surface must be 'ignore' or 'raise', got {self.unknown_surface!r}"
            )
