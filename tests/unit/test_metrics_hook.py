"""Tests for the MetricsHook protocol and its wiring through the engines."""

from __future__ import annotations

import pytest

from surfacesync.config import SyncConfig
from surfacesync.diff import DiffEngine
from surfacesync.dom import HtmlDocument
from surfacesync.models import ElementOverride, ShapeProps
from surfacesync.observability.metrics import MetricsHook, NoopMetricsHook, resolve_metrics
from surfacesync.sync import SyncEngine


class TestMetricsHookProtocol:
    def test_noop_is_instance_of_protocol(self):
        assert isinstance(NoopMetricsHook(), MetricsHook)

    def test_recording_hook_is_instance_of_protocol(self, metrics):
        assert isinstance(metrics, MetricsHook)

    def test_class_missing_gauge_is_not_instance(self):
        class Partial:
            def increment(self, name, value=1, tags=None):
                pass

            def timing(self, name, ms, tags=None):
                pass

        assert not isinstance(Partial(), MetricsHook)

    def test_noop_accepts_every_call(self):
        hook = NoopMetricsHook()
        assert hook.increment("a") is None
        assert hook.increment("a", 5, tags={"k": "v"}) is None
        assert hook.timing("b", 1.5) is None
        assert hook.gauge("c", 3.0, tags={}) is None

    def test_noop_has_no_instance_dict(self):
        assert not hasattr(NoopMetricsHook(), "__dict__")


class TestResolveMetrics:
    def test_none_gives_shared_noop(self):
        assert resolve_metrics(None) is resolve_metrics(None)
        assert isinstance(resolve_metrics(None), NoopMetricsHook)

    def test_hook_passed_through(self, metrics):
        assert resolve_metrics(metrics) is metrics


class TestDiffMetrics:
    def test_applied_and_misses_emitted(self, metrics):
        engine = DiffEngine(SyncConfig(metrics=metrics))
        doc = HtmlDocument('<p id="a">x</p>')
        engine.apply_to_target(doc, [
            ElementOverride(selector="#a", timestamp=1, text="y"),
            ElementOverride(selector="#missing", timestamp=2, text="z"),
            ElementOverride(selector="p::before", timestamp=3, text="z"),
        ])
        applied = [c for c in metrics.increments if c["name"] == "surfacesync.overrides_applied_total"]
        assert applied == [{"name": "surfacesync.overrides_applied_total", "value": 1,
                            "tags": {"source": "diff"}}]
        misses = {
            c["tags"]["reason"]: c["value"]
            for c in metrics.increments if c["name"] == "surfacesync.selector_misses_total"
        }
        assert misses == {"SELECTOR_NOT_FOUND": 1, "INVALID_SELECTOR": 1}
        assert [t["name"] for t in metrics.timings] == ["surfacesync.apply_duration_ms"]
        assert metrics.timings[0]["ms"] >= 0


class TestSyncMetrics:
    @pytest.fixture
    def sync(self, metrics) -> SyncEngine:
        return SyncEngine(SyncConfig(metrics=metrics))

    def test_surfaces_active_gauge(self, sync, metrics):
        sync.init_sync("a")
        sync.init_sync("b")
        sync.clear_all_sync_states()
        assert [g["value"] for g in metrics.gauges] == [1, 2, 0]
        assert {g["name"] for g in metrics.gauges} == {"surfacesync.surfaces_active"}

    def test_geometry_sync_counted(self, sync, metrics):
        sync.init_sync("a")
        sync.set_dom_root("a", HtmlDocument("<p>x</p>"))
        sync.sync_shape_to_dom("a", ShapeProps("a", 1, 2, 3, 4))
        calls = [c for c in metrics.increments if c["name"] == "surfacesync.geometry_syncs_total"]
        assert calls == [{"name": "surfacesync.geometry_syncs_total", "value": 1,
                          "tags": {"result": "ok"}}]

    def test_geometry_failure_counted(self, sync, metrics):
        sync.init_sync("a")
        sync.set_dom_root("a", HtmlDocument.from_fragment("<p>x</p>"))
        sync.sync_shape_to_dom("a", ShapeProps("a", 1, 2, 3, 4))
        calls = [c for c in metrics.increments if c["name"] == "surfacesync.geometry_syncs_total"]
        assert calls[-1]["tags"] == {"result": "error"}

    def test_restore_and_recovery_counted(self, sync, metrics):
        sync.init_sync("a")
        for ts in (1, 2, 3):
            sync.apply_override("a", ElementOverride(selector="#x", timestamp=ts, text=str(ts)))
        sync.restore_to_version("a", 1)
        sync.recover_sync("a")
        names = metrics.names()
        assert "surfacesync.recoveries_total" in names
        dropped = [c for c in metrics.increments if c["name"] == "surfacesync.restore_dropped_total"]
        assert dropped[0]["value"] == 2
