"""Minimal mutable HTML node tree.

The tree is built with the standard library :class:`html.parser.HTMLParser`
and serialised back deterministically.  It does not validate or repair
markup: unknown end tags are ignored and unclosed elements are closed at
the end of input.

Serialisation is stable under re-parsing (``serialize(parse(serialize(t)))
== serialize(t)``), which is what makes override application idempotent
on HTML strings.
"""

from __future__ import annotations

from collections.abc import Iterator
from html import escape
from html.parser import HTMLParser

VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

RAW_TEXT_ELEMENTS = frozenset({"script", "style"})


class Node:
    """Base class for every tree node."""

    __slots__ = ("parent",)

    def __init__(self) -> None:
        self.parent: ParentNode | None = None


class Text(Node):
    __slots__ = ("data",)

    def __init__(self, data: str) -> None:
        super().__init__()
        self.data = data

    def __repr__(self) -> str:
        return f"Text({self.data!r})"


class Comment(Node):
    __slots__ = ("data",)

    def __init__(self, data: str) -> None:
        super().__init__()
        self.data = data


class Declaration(Node):
    """A ``<!DOCTYPE ...>`` or other markup declaration."""

    __slots__ = ("data",)

    def __init__(self, data: str) -> None:
        super().__init__()
        self.data = data


class ParentNode(Node):
    __slots__ = ("children",)

    def __init__(self) -> None:
        super().__init__()
        self.children: list[Node] = []

    def append(self, node: Node) -> Node:
        node.parent = self
        self.children.append(node)
        return node

    def replace_children(self, nodes: list[Node]) -> None:
        for child in self.children:
            child.parent = None
        self.children = []
        for node in nodes:
            self.append(node)

    def element_children(self) -> list[Element]:
        return [child for child in self.children if isinstance(child, Element)]

    def iter_elements(self) -> Iterator[Element]:
        """Yield descendant elements in document order (excluding self)."""
        for child in self.children:
            if isinstance(child, Element):
                yield child
                yield from child.iter_elements()

    @property
    def text_content(self) -> str:
        parts: list[str] = []
        for child in self.children:
            if isinstance(child, Text):
                parts.append(child.data)
            elif isinstance(child, ParentNode):
                parts.append(child.text_content)
        return "".join(parts)


class Fragment(ParentNode):
    """Root container for parsed content; never serialised itself."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Fragment(children={len(self.children)})"


class Element(ParentNode):
    __slots__ = ("attrs", "tag")

    def __init__(self, tag: str, attrs: dict[str, str] | None = None) -> None:
        super().__init__()
        self.tag = tag.lower()
        self.attrs: dict[str, str] = dict(attrs or {})

    @property
    def id(self) -> str | None:
        return self.attrs.get("id") or None

    @property
    def classes(self) -> list[str]:
        return self.attrs.get("class", "").split()

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id else ""
        return f"Element(<{self.tag}{ident}>)"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class _TreeBuilder(HTMLParser):
    """Feed HTML and collect it into a :class:`Fragment`."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root = Fragment()
        self._stack: list[ParentNode] = [self.root]

    @property
    def _current(self) -> ParentNode:
        return self._stack[-1]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = Element(tag, {name: value or "" for name, value in attrs})
        self._current.append(element)
        if element.tag not in VOID_ELEMENTS:
            self._stack.append(element)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._current.append(Element(tag, {name: value or "" for name, value in attrs}))

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        for depth in range(len(self._stack) - 1, 0, -1):
            node = self._stack[depth]
            if isinstance(node, Element) and node.tag == tag:
                del self._stack[depth:]
                return

    def handle_data(self, data: str) -> None:
        if not data:
            return
        children = self._current.children
        if children and isinstance(children[-1], Text):
            children[-1].data += data
        else:
            self._current.append(Text(data))

    def handle_comment(self, data: str) -> None:
        self._current.append(Comment(data))

    def handle_decl(self, decl: str) -> None:
        self._current.append(Declaration(decl))


def parse_fragment(html: str) -> Fragment:
    """Parse *html* into a detached :class:`Fragment`."""
    builder = _TreeBuilder()
    builder.feed(html or "")
    builder.close()
    return builder.root


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def _serialize_into(node: Node, out: list[str], raw: bool = False) -> None:
    if isinstance(node, Text):
        out.append(node.data if raw else escape(node.data, quote=False))
    elif isinstance(node, Comment):
        out.append(f"<!--{node.data}-->")
    elif isinstance(node, Declaration):
        out.append(f"<!{node.data}>")
    elif isinstance(node, Element):
        out.append(f"<{node.tag}")
        for name, value in node.attrs.items():
            out.append(f' {name}="{escape(value, quote=True)}"')
        out.append(">")
        if node.tag in VOID_ELEMENTS:
            return
        child_raw = node.tag in RAW_TEXT_ELEMENTS
        for child in node.children:
            _serialize_into(child, out, child_raw)
        out.append(f"</{node.tag}>")
    elif isinstance(node, ParentNode):
        for child in node.children:
            _serialize_into(child, out)


def serialize(node: Node) -> str:
    """Serialise *node* (a fragment serialises its children only)."""
    out: list[str] = []
    _serialize_into(node, out)
    return "".join(out)


def inner_html(node: ParentNode) -> str:
    out: list[str] = []
    raw = isinstance(node, Element) and node.tag in RAW_TEXT_ELEMENTS
    for child in node.children:
        _serialize_into(child, out, raw)
    return "".join(out)
