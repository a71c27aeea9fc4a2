"""Tests for SyncEngine lifecycle, override log, and restore."""

from __future__ import annotations

import pytest

from surfacesync.config import SyncConfig
from surfacesync.dom import HtmlDocument, parse_html
from surfacesync.errors import SurfaceSyncStateError, SurfaceSyncValidationError
from surfacesync.models import ElementOverride, ShapeProps, SyncStatus
from surfacesync.sync import SyncEngine

HTML = '<h1 id="t">Title</h1><p id="body">Body</p>'


def _o(selector: str, ts: int, **kwargs) -> ElementOverride:
    return ElementOverride(selector=selector, timestamp=ts, **kwargs)


@pytest.fixture
def bound(engine):
    """Engine with surface ``s1`` initialised and bound to a document."""
    engine.init_sync("s1", parse_html(HTML))
    doc = HtmlDocument(HTML)
    engine.set_dom_root("s1", doc)
    return engine, doc


class TestLifecycle:
    def test_init_sync_is_idle(self, engine):
        parsed = parse_html(HTML)
        state = engine.init_sync("s1", parsed)
        assert state is engine.get_sync_state("s1")
        assert state.status is SyncStatus.IDLE
        assert state.parse_result is parsed
        assert state.overrides == [] and state.history == []

    def test_init_sync_hard_resets(self, engine):
        engine.init_sync("s1")
        engine.apply_override("s1", _o("#t", 1, text="x"))
        engine.init_sync("s1")
        state = engine.get_sync_state("s1")
        assert state.overrides == []
        assert state.history == []
        assert state.store.get_override_count() == 0
        assert state.status is SyncStatus.IDLE

    def test_set_dom_root_marks_synced(self, bound):
        engine, doc = bound
        state = engine.get_sync_state("s1")
        assert state.dom_root is doc
        assert state.status is SyncStatus.SYNCED

    def test_set_dom_root_rejects_non_targets(self, engine):
        engine.init_sync("s1")
        with pytest.raises(SurfaceSyncValidationError):
            engine.set_dom_root("s1", object())  # type: ignore[arg-type]

    def test_accessors(self, engine):
        engine.init_sync("a")
        engine.init_sync("b")
        states = engine.get_all_sync_states()
        assert set(states) == {"a", "b"}
        states.clear()
        assert engine.surface_count() == 2
        assert engine.get_sync_state("zzz") is None

    def test_clear_all(self, engine):
        engine.init_sync("a")
        engine.clear_all_sync_states()
        assert engine.surface_count() == 0
        assert engine.get_sync_state("a") is None


class TestApplyOverride:
    def test_logs_and_history_aligned(self, engine):
        engine.init_sync("s1")
        a, b = _o("#t", 2, text="a"), _o("#t", 1, text="b")
        engine.apply_override("s1", a)
        engine.apply_override("s1", b)
        state = engine.get_sync_state("s1")
        assert state.overrides == [a, b]
        assert [h.override for h in state.history] == [a, b]
        assert all(h.override is o for h, o in zip(state.history, state.overrides))
        assert [h.timestamp for h in state.history] == [2, 1]
        assert state.store.get_overrides_by_selector("#t") == [a, b]

    def test_without_root_returns_none(self, engine):
        engine.init_sync("s1")
        assert engine.apply_override("s1", _o("#t", 1, text="x")) is None
        assert engine.get_sync_state("s1").status is SyncStatus.IDLE

    def test_applies_merged_selector_to_root(self, bound):
        engine, doc = bound
        engine.apply_override("s1", _o("#t", 1, text="first"))
        report = engine.apply_override("s1", _o("#t", 2, styles={"color": "red"}))
        assert report.applied == 1
        title = doc.query_selector("#t")
        assert doc.get_text(title) == "first"
        assert doc.get_style(title, "color") == "red"
        assert engine.get_sync_state("s1").status is SyncStatus.SYNCED

    def test_accepts_persisted_dict(self, bound):
        engine, doc = bound
        engine.apply_override("s1", {"selector": "#body", "text": "dict", "timestamp": 3})
        assert doc.get_text(doc.query_selector("#body")) == "dict"

    def test_missing_selector_reported_not_raised(self, bound):
        engine, _ = bound
        report = engine.apply_override("s1", _o("#ghost", 1, text="x"))
        assert report.applied == 0
        assert report.skipped == 1
        assert len(engine.get_sync_state("s1").overrides) == 1

    def test_refreshes_shape_overrides(self, engine):
        engine.init_sync("s1")
        shape = ShapeProps("s1", 0, 0, 10, 10, props={"html": HTML})
        engine.sync_shape_to_dom("s1", shape)
        engine.apply_override("s1", _o("#t", 5, text="x"))
        assert shape.props["overrides"] == [
            {"selector": "#t", "text": "x", "timestamp": 5, "aiGenerated": False},
        ]
        assert shape.props["html"] == HTML

    def test_other_surfaces_untouched(self, engine):
        engine.init_sync("s1")
        engine.init_sync("s2")
        engine.apply_override("s1", _o("#t", 1, text="x"))
        other = engine.get_sync_state("s2")
        assert other.overrides == [] and other.history == []
        assert other.store.get_override_count() == 0

    def test_error_status_is_sticky(self, bound):
        engine, _ = bound
        engine.mark_error("s1", "host crashed")
        engine.apply_override("s1", _o("#t", 1, text="x"))
        assert engine.get_sync_state("s1").status is SyncStatus.ERROR

    def test_reentrant_apply_sees_logged_entry(self, engine):
        seen = []

        class ObservedDocument(HtmlDocument):
            def set_text(self, node, text):
                state = engine.get_sync_state("s1")
                seen.append((len(state.overrides), len(state.history)))
                if text == "outer":
                    engine.apply_override("s1", _o("#body", 2, text="inner"))
                super().set_text(node, text)

        engine.init_sync("s1")
        doc = ObservedDocument(HTML)
        engine.set_dom_root("s1", doc)
        engine.apply_override("s1", _o("#t", 1, text="outer"))
        assert seen[0] == (1, 1)
        assert seen[1] == (2, 2)
        assert doc.get_text(doc.query_selector("#body")) == "inner"


class TestReplayOnBind:
    def test_existing_overrides_replayed(self, engine):
        engine.init_sync("s1")
        engine.apply_override("s1", _o("#t", 1, text="replayed"))
        doc = HtmlDocument(HTML)
        report = engine.set_dom_root("s1", doc)
        assert report.applied == 1
        assert doc.get_text(doc.query_selector("#t")) == "replayed"

    def test_replay_disabled(self):
        engine = SyncEngine(SyncConfig(replay_on_bind=False))
        engine.init_sync("s1")
        engine.apply_override("s1", _o("#t", 1, text="replayed"))
        doc = HtmlDocument(HTML)
        assert engine.set_dom_root("s1", doc) is None
        assert doc.get_text(doc.query_selector("#t")) == "Title"


class TestRestoreToVersion:
    def test_value_filter_not_truncation(self, engine):
        engine.init_sync("s1")
        for ts in (5, 1, 7, 3):
            engine.apply_override("s1", _o("#t", ts, text=str(ts)))
        dropped = engine.restore_to_version("s1", 4)
        state = engine.get_sync_state("s1")
        assert dropped == 2
        assert [o.timestamp for o in state.overrides] == [1, 3]
        assert [h.timestamp for h in state.history] == [1, 3]

    def test_inclusive_bound(self, engine):
        engine.init_sync("s1")
        engine.apply_override("s1", _o("#t", 4, text="x"))
        assert engine.restore_to_version("s1", 4) == 0

    def test_lists_filtered_in_place(self, engine):
        engine.init_sync("s1")
        state = engine.get_sync_state("s1")
        overrides, history = state.overrides, state.history
        engine.apply_override("s1", _o("#t", 9, text="x"))
        engine.restore_to_version("s1", 0)
        assert state.overrides is overrides and overrides == []
        assert state.history is history and history == []

    def test_store_rebuilt(self, engine):
        engine.init_sync("s1")
        engine.apply_override("s1", _o("#t", 1, text="old"))
        engine.apply_override("s1", _o("#t", 2, text="new"))
        engine.apply_override("s1", _o("#body", 3, text="gone"))
        engine.restore_to_version("s1", 1)
        store = engine.get_sync_state("s1").store
        assert store.get_selectors() == ["#t"]
        assert store.merge_overrides("#t").text == "old"

    def test_remaining_overrides_reapplied(self, bound):
        engine, doc = bound
        engine.apply_override("s1", _o("#t", 1, text="v1"))
        engine.apply_override("s1", _o("#t", 2, text="v2"))
        engine.restore_to_version("s1", 1)
        assert doc.get_text(doc.query_selector("#t")) == "v1"

    def test_shape_overrides_refreshed(self, engine):
        engine.init_sync("s1")
        shape = ShapeProps("s1", 0, 0, 1, 1)
        engine.sync_shape_to_dom("s1", shape)
        engine.apply_override("s1", _o("#t", 1, text="a"))
        engine.apply_override("s1", _o("#t", 2, text="b"))
        engine.restore_to_version("s1", 1)
        assert [r["timestamp"] for r in shape.props["overrides"]] == [1]


class TestUnknownSurface:
    def test_ignored_by_default(self, engine, log_records):
        assert engine.apply_override("ghost", _o("#t", 1, text="x")) is None
        assert engine.set_dom_root("ghost", HtmlDocument(HTML)) is None
        engine.sync_shape_to_dom("ghost", ShapeProps("ghost", 0, 0, 1, 1))
        assert engine.restore_to_version("ghost", 1) == 0
        engine.recover_sync("ghost")
        engine.mark_error("ghost", "x")
        assert engine.capture_override("ghost", object()) is None
        assert engine.surface_count() == 0
        assert any(r.getMessage() == "unknown surface ignored" for r in log_records)

    @pytest.mark.parametrize("call", [
        lambda e: e.apply_override("ghost", _o("#t", 1, text="x")),
        lambda e: e.set_dom_root("ghost", HtmlDocument(HTML)),
        lambda e: e.sync_shape_to_dom("ghost", ShapeProps("ghost", 0, 0, 1, 1)),
        lambda e: e.restore_to_version("ghost", 1),
        lambda e: e.recover_sync("ghost"),
        lambda e: e.mark_error("ghost", "x"),
    ])
    def test_raise_policy(self, call):
        engine = SyncEngine(SyncConfig(unknown_surface="raise"))
        with pytest.raises(SurfaceSyncStateError) as exc_info:
            call(engine)
        assert exc_info.value.context["surface_id"] == "ghost"
