"""Render target capability and its in-memory implementation.

The engines never touch a browser DOM directly.  They talk to a
:class:`RenderTarget`: a host-supplied object exposing a handful of
query and write primitives over opaque node handles.  Capturing edits
back from the surface additionally needs the read accessors of
:class:`CaptureTarget`.  A browser bridge
implements it over real elements; :class:`HtmlDocument` implements it
over the :mod:`surfacesync.dom.tree` node tree for headless hosts and
tests.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from surfacesync.errors import SurfaceSyncRenderError

from .selectors import select_all
from .styles import camel_to_kebab, parse_style, serialize_style
from .tree import Element, Fragment, ParentNode, Text, parse_fragment, serialize


@runtime_checkable
class RenderTarget(Protocol):
    """Primitives the engines need from a render surface.

    Node handles are opaque to the engines; they are only ever passed
    back into the same target.  Implementations raise
    :class:`~surfacesync.errors.SurfaceSyncRenderError` when a write is
    rejected and :class:`~surfacesync.errors.SurfaceSyncSelectorError`
    for selectors they cannot parse.
    """

    @property
    def root(self) -> Any:
        """Handle of the node that receives shape geometry."""
        ...

    def query_selector_all(self, selector: str, scope: Any | None = None) -> list[Any]:
        """Return every node under *scope* (default: the root) matching
        *selector*, in document order."""
        ...

    def set_text(self, node: Any, text: str) -> None:
        ...

    def set_attribute(self, node: Any, name: str, value: str) -> None:
        ...

    def set_style(self, node: Any, prop: str, value: str) -> None:
        """Set one inline style property (empty *value* removes it)."""
        ...

    def replace_content(self, node: Any, html: str) -> None:
        """Replace the node's children with parsed *html*."""
        ...

    def get_style(self, node: Any, prop: str) -> str | None:
        ...


@runtime_checkable
class CaptureTarget(RenderTarget, Protocol):
    """A :class:`RenderTarget` that can also be read back node by node.

    Only ``SyncEngine.capture_override`` needs these accessors; a bridge
    that never captures edits can implement :class:`RenderTarget` alone.
    """

    def get_styles(self, node: Any) -> dict[str, str]:
        ...

    def get_text(self, node: Any) -> str:
        ...

    def get_attribute(self, node: Any, name: str) -> str | None:
        ...

    def parent_of(self, node: Any) -> Any | None:
        ...

    def children_of(self, node: Any) -> list[Any]:
        """Return the element children of *node*."""
        ...

    def tag_of(self, node: Any) -> str:
        ...


class HtmlDocument:
    """In-memory :class:`CaptureTarget` backed by a parsed node tree.

    Parameters
    ----------
    html:
        Markup to load.  The content becomes the children of a container
        element (``<div>`` by default) which acts as the geometry root,
        mirroring the wrapper element a canvas host mounts content in.
    container_tag:
        Tag of the synthetic root element.
    """

    def __init__(self, html: str = "", *, container_tag: str = "div") -> None:
        self._fragment = Fragment()
        self._root = Element(container_tag)
        self._fragment.append(self._root)
        self._root.replace_children(list(parse_fragment(html).children))

    @classmethod
    def from_fragment(cls, html: str) -> HtmlDocument:
        """Load *html* without a synthetic container.

        The root is the fragment itself; serialising returns exactly the
        patched markup.  Geometry writes are not supported on such a
        document.
        """
        doc = cls.__new__(cls)
        doc._fragment = parse_fragment(html)
        doc._root = doc._fragment
        return doc

    # ── RenderTarget ───────────────────────────────────────────────────

    @property
    def root(self) -> ParentNode:
        return self._root

    def query_selector_all(self, selector: str, scope: ParentNode | None = None) -> list[Element]:
        return select_all(scope if scope is not None else self._root, selector)

    def query_selector(self, selector: str) -> Element | None:
        found = select_all(self._root, selector)
        return found[0] if found else None

    def set_text(self, node: Element, text: str) -> None:
        node.replace_children([Text(text)] if text else [])

    def set_attribute(self, node: Element, name: str, value: str) -> None:
        _require_element(node, "set_attribute").attrs[name.lower()] = value

    def set_style(self, node: Element, prop: str, value: str) -> None:
        node = _require_element(node, "set_style")
        name = camel_to_kebab(prop)
        styles = parse_style(node.attrs.get("style"))
        if value == "":
            if styles.pop(name, None) is None:
                return
        else:
            styles[name] = value
        if styles:
            node.attrs["style"] = serialize_style(styles)
        else:
            node.attrs.pop("style", None)

    def replace_content(self, node: Element, html: str) -> None:
        node.replace_children(list(parse_fragment(html).children))

    def get_style(self, node: Element, prop: str) -> str | None:
        return self.get_styles(node).get(camel_to_kebab(prop))

    def get_styles(self, node: Element) -> dict[str, str]:
        if not isinstance(node, Element):
            return {}
        return parse_style(node.attrs.get("style"))

    def get_text(self, node: ParentNode) -> str:
        return node.text_content

    def get_attribute(self, node: Element, name: str) -> str | None:
        if not isinstance(node, Element):
            return None
        return node.attrs.get(name.lower())

    def parent_of(self, node: Element) -> ParentNode | None:
        return node.parent

    def children_of(self, node: ParentNode) -> list[Element]:
        if not isinstance(node, ParentNode):
            return []
        return node.element_children()

    def tag_of(self, node: Element) -> str:
        return node.tag if isinstance(node, Element) else ""

    # ── Serialisation ──────────────────────────────────────────────────

    def to_html(self) -> str:
        """Serialise the content (children of the root)."""
        if isinstance(self._root, Element):
            return "".join(serialize(child) for child in self._root.children)
        return serialize(self._root)

    def outer_html(self) -> str:
        """Serialise the root element itself, including its geometry."""
        return serialize(self._fragment)

    def __repr__(self) -> str:
        return f"HtmlDocument(root={self._root!r})"


def _require_element(node: Any, operation: str) -> Element:
    if not isinstance(node, Element):
        raise SurfaceSyncRenderError(
            f"{operation} requires an element node, got {type(node).__name__}",
            context={"operation": operation},
        )
    return node
