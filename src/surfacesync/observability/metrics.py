"""Metrics hook protocol and no-op default implementation.

The engines emit counters, timings and gauges at the points where the
override log changes or content is written.  By default a
:class:`NoopMetricsHook` is used; any object satisfying
:class:`MetricsHook` can be passed as ``SyncConfig(metrics=...)`` to
route data points to StatsD, Prometheus, or a test recorder.

Emitted metric names:

* ``surfacesync.overrides_applied_total``  -- counter, tag ``source``
* ``surfacesync.selector_misses_total``    -- counter, tag ``reason``
* ``surfacesync.apply_duration_ms``        -- timing
* ``surfacesync.geometry_syncs_total``     -- counter, tag ``result``
* ``surfacesync.restore_dropped_total``    -- counter
* ``surfacesync.recoveries_total``         -- counter
* ``surfacesync.surfaces_active``          -- gauge
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    *tags* keys and values are strings; backends translate them into
    their own labelling scheme.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric by *value*."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge to an absolute value."""
        ...


class NoopMetricsHook:
    """Metrics implementation that discards every data point."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass


def resolve_metrics(hook: object | None) -> MetricsHook:
    """Return *hook*, or a shared :class:`NoopMetricsHook` when ``None``."""
    return hook if hook is not None else _NOOP  # type: ignore[return-value]


_NOOP = NoopMetricsHook()
