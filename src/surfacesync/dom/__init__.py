"""Headless DOM layer: node tree, selectors, render target, parsing.

Exports
-------
RenderTarget
    Protocol of the primitives the engines need from a render surface.
CaptureTarget
    RenderTarget plus the read accessors needed to capture edits.
HtmlDocument
    In-memory render target over a parsed node tree.
HtmlParseResult / parse_html
    Parsing collaborator handle and its constructor.
"""

from .parse import HtmlParseResult, parse_html
from .selectors import build_selector, matches, parse_selector, select_all, select_one
from .styles import camel_to_kebab, format_px, parse_px, parse_style, serialize_style, style_diff
from .target import CaptureTarget, HtmlDocument, RenderTarget
from .tree import Element, Fragment, Text, parse_fragment, serialize

__all__ = [
    "CaptureTarget",
    "Element",
    "Fragment",
    "HtmlDocument",
    "HtmlParseResult",
    "RenderTarget",
    "Text",
    "build_selector",
    "camel_to_kebab",
    "format_px",
    "matches",
    "parse_fragment",
    "parse_html",
    "parse_px",
    "parse_selector",
    "parse_style",
    "select_all",
    "select_one",
    "serialize",
    "serialize_style",
    "style_diff",
]
