"""Tests for DOM-to-shape capture and node selector generation."""

from __future__ import annotations

import pytest

from surfacesync.dom import HtmlDocument
from surfacesync.errors import SurfaceSyncStateError, SurfaceSyncValidationError
from surfacesync.models import ElementOverride, ShapeProps
from surfacesync.sync import selector_for_node

HTML = (
    '<header id="top">T</header>'
    '<div><span data-uuid="u-9">uuid</span><em>a</em><em>b</em></div>'
    "<footer><small>c</small></footer>"
)


class WriteOnlyBridge:
    """Render target exposing only the write primitives and ``get_style``."""

    def __init__(self, doc: HtmlDocument) -> None:
        self._doc = doc

    @property
    def root(self):
        return self._doc.root

    def query_selector_all(self, selector, scope=None):
        return self._doc.query_selector_all(selector, scope)

    def set_text(self, node, text):
        self._doc.set_text(node, text)

    def set_attribute(self, node, name, value):
        self._doc.set_attribute(node, name, value)

    def set_style(self, node, prop, value):
        self._doc.set_style(node, prop, value)

    def replace_content(self, node, html):
        self._doc.replace_content(node, html)

    def get_style(self, node, prop):
        return self._doc.get_style(node, prop)


@pytest.fixture
def doc() -> HtmlDocument:
    return HtmlDocument(HTML)


class TestSelectorForNode:
    def test_id(self, doc):
        assert selector_for_node(doc, doc.query_selector("header")) == "#top"

    def test_data_uuid(self, doc):
        assert selector_for_node(doc, doc.query_selector("span")) == '[data-uuid="u-9"]'

    def test_path_with_nth_child(self, doc):
        second = doc.query_selector_all("em")[1]
        selector = selector_for_node(doc, second)
        assert selector == "div:nth-child(2) > em:nth-child(3)"
        assert doc.query_selector_all(selector) == [second]

    def test_only_child_has_no_index(self, doc):
        small = doc.query_selector("small")
        assert selector_for_node(doc, small) == "footer:nth-child(3) > small"

    def test_root_gives_empty_path(self, doc):
        assert selector_for_node(doc, doc.root) == ""


class TestCaptureOverride:
    def test_captures_text_and_styles(self, engine, doc):
        engine.init_sync("s1")
        engine.set_dom_root("s1", doc)
        em = doc.query_selector_all("em")[0]
        doc.set_text(em, "edited")
        doc.set_style(em, "color", "green")

        override = engine.capture_override("s1", em, timestamp=42)

        assert override.selector == "div:nth-child(2) > em:nth-child(2)"
        assert override.text == "edited"
        assert override.styles == {"color": "green"}
        assert override.timestamp == 42
        assert override.ai_generated is False
        assert engine.get_sync_state("s1").overrides == [override]

    def test_empty_text_and_styles_omitted(self, engine):
        doc = HtmlDocument('<p id="e"></p>')
        engine.init_sync("s1")
        engine.set_dom_root("s1", doc)
        override = engine.capture_override("s1", doc.query_selector("#e"), timestamp=1)
        assert override.text is None
        assert override.styles is None

    def test_default_timestamp_is_wall_clock_ms(self, engine, doc):
        engine.init_sync("s1")
        engine.set_dom_root("s1", doc)
        override = engine.capture_override("s1", doc.query_selector("#top"))
        assert override.timestamp > 1_600_000_000_000

    def test_ai_generated_flag(self, engine, doc):
        engine.init_sync("s1")
        engine.set_dom_root("s1", doc)
        override = engine.capture_override("s1", doc.query_selector("#top"), timestamp=1, ai_generated=True)
        assert override.ai_generated is True

    def test_refreshes_shape_props(self, engine, doc):
        engine.init_sync("s1")
        engine.set_dom_root("s1", doc)
        shape = ShapeProps("s1", 0, 0, 100, 100)
        engine.sync_shape_to_dom("s1", shape)
        engine.capture_override("s1", doc.query_selector("#top"), timestamp=3)
        assert shape.props["overrides"][0]["selector"] == "#top"

    def test_requires_bound_root(self, engine):
        engine.init_sync("s1")
        with pytest.raises(SurfaceSyncStateError) as exc_info:
            engine.capture_override("s1", object())
        assert exc_info.value.context["operation"] == "capture_override"

    def test_capturing_root_rejected(self, engine, doc):
        engine.init_sync("s1")
        engine.set_dom_root("s1", doc)
        with pytest.raises(SurfaceSyncValidationError):
            engine.capture_override("s1", doc.root, timestamp=1)

    def test_history_entry_tagged_as_capture(self, engine, doc):
        engine.init_sync("s1")
        engine.set_dom_root("s1", doc)
        engine.apply_override("s1", ElementOverride(selector="#top", text="x", timestamp=1))
        engine.capture_override("s1", doc.query_selector("#top"), timestamp=2, note="inline edit")
        history = engine.get_sync_state("s1").history
        assert [(h.tag, h.note) for h in history] == [(None, None), ("capture", "inline edit")]

    def test_baseline_keeps_only_changed_styles(self, engine):
        doc = HtmlDocument('<p id="p" style="color: red; margin: 0">x</p>')
        engine.init_sync("s1")
        engine.set_dom_root("s1", doc)
        node = doc.query_selector("#p")
        baseline = doc.get_styles(node)
        doc.set_style(node, "color", "blue")
        doc.set_style(node, "padding", "4px")

        override = engine.capture_override("s1", node, timestamp=1, baseline=baseline)

        assert override.styles == {"color": "blue", "padding": "4px"}

    def test_unchanged_baseline_captures_no_styles(self, engine):
        doc = HtmlDocument('<p id="p" style="color: red">x</p>')
        engine.init_sync("s1")
        engine.set_dom_root("s1", doc)
        node = doc.query_selector("#p")
        override = engine.capture_override("s1", node, timestamp=1, baseline={"color": "red"})
        assert override.styles is None
        assert override.text == "x"

    def test_write_only_target_cannot_capture(self, engine, doc):
        engine.init_sync("s1")
        engine.set_dom_root("s1", WriteOnlyBridge(doc))
        with pytest.raises(SurfaceSyncStateError) as exc_info:
            engine.capture_override("s1", doc.query_selector("#top"), timestamp=1)
        assert exc_info.value.context["operation"] == "capture_override"
        assert engine.get_sync_state("s1").overrides == []
