"""Headless HTML parsing collaborator.

:func:`parse_html` produces the :class:`HtmlParseResult` handle that
hosts pass to ``SyncEngine.init_sync``.  It extracts ``<style>`` and
inline ``<script>`` bodies and lists external resources, and indexes
every element by identifier (``id``, then ``data-uuid``, then a
generated ``<tag>-<n>`` key).  The markup itself is never modified.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .selectors import build_selector, select_all
from .tree import Element, Fragment, ParentNode, inner_html, parse_fragment, serialize


@dataclass
class HtmlParseResult:
    """Parsed content handle.

    Attributes
    ----------
    root:
        The content root: the ``<body>`` element when the input is a full
        document, otherwise a :class:`Fragment` holding the markup.
    element_map:
        Every element under *root*, keyed by identifier.
    styles:
        Concatenated text of all ``<style>`` elements.
    scripts:
        Concatenated text of all inline ``<script>`` elements.
    external_resources:
        ``stylesheets``, ``scripts`` and ``images`` URLs, in document
        order.
    """

    root: ParentNode
    element_map: dict[str, Element] = field(default_factory=dict)
    styles: str = ""
    scripts: str = ""
    external_resources: dict[str, list[str]] = field(
        default_factory=lambda: {"stylesheets": [], "scripts": [], "images": []},
    )

    def find(self, selector: str) -> Element | None:
        """Return the first element under *root* matching *selector*."""
        found = select_all(self.root, selector)
        return found[0] if found else None

    def selector_for(self, element: Element) -> str:
        return build_selector(element, self.root)

    def to_html(self) -> str:
        """Reconstruct the content markup (without extracted styles/scripts)."""
        if isinstance(self.root, Element):
            return inner_html(self.root)
        return serialize(self.root)


def _detach(element: Element) -> None:
    parent = element.parent
    if parent is not None:
        parent.children.remove(element)
        element.parent = None


def parse_html(html: str) -> HtmlParseResult:
    """Parse *html* into an :class:`HtmlParseResult`."""
    fragment: Fragment = parse_fragment(html)
    styles: list[str] = []
    scripts: list[str] = []
    resources: dict[str, list[str]] = {"stylesheets": [], "scripts": [], "images": []}

    for element in list(fragment.iter_elements()):
        if element.tag == "style":
            styles.append(element.text_content.strip())
            _detach(element)
        elif element.tag == "script":
            src = element.attrs.get("src")
            if src:
                resources["scripts"].append(src)
            else:
                scripts.append(element.text_content.strip())
                _detach(element)
        elif element.tag == "link" and "stylesheet" in element.attrs.get("rel", "").split():
            href = element.attrs.get("href")
            if href:
                resources["stylesheets"].append(href)
        elif element.tag == "img":
            src = element.attrs.get("src")
            if src:
                resources["images"].append(src)

    body = next((el for el in fragment.iter_elements() if el.tag == "body"), None)
    root: ParentNode = body if body is not None else fragment

    element_map: dict[str, Element] = {}
    counter = 0
    for element in root.iter_elements():
        identifier = element.attrs.get("id") or element.attrs.get("data-uuid")
        if not identifier or identifier in element_map:
            counter += 1
            identifier = f"{element.tag}-{counter}"
            while identifier in element_map:
                counter += 1
                identifier = f"{element.tag}-{counter}"
        element_map[identifier] = element

    return HtmlParseResult(
        root=root,
        element_map=element_map,
        styles="\n\n".join(s for s in styles if s),
        scripts="\n\n".join(s for s in scripts if s),
        external_resources=resources,
    )
