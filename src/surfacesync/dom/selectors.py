"""CSS selector subset: parsing, matching, and generation.

Supported syntax
----------------
* ``*``, type (``div``), ``#id``, ``.class``
* attributes: ``[attr]``, ``[attr=v]``, ``[attr="v"]``, ``~=``, ``^=``,
  ``$=``, ``*=``, ``|=``
* pseudo-classes: ``:nth-child(an+b | odd | even)``, ``:first-child``,
  ``:last-child``
* combinators: descendant (whitespace), ``>``, ``+``, ``~``
* comma-separated selector groups

Anything else raises :class:`SurfaceSyncSelectorError`.  Parsed
selectors are cached, so resolving the same selector repeatedly is
cheap.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from surfacesync.errors import SurfaceSyncSelectorError

from .tree import Element, ParentNode

_NTH = re.compile(r"^([+-]?\d*)n(?:([+-])(\d+))?$")


# ---------------------------------------------------------------------------
# Parsed form
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AttrTest:
    name: str
    op: str | None = None
    value: str = ""


@dataclass(frozen=True)
class Compound:
    tag: str | None = None
    ids: tuple[str, ...] = ()
    classes: tuple[str, ...] = ()
    attrs: tuple[AttrTest, ...] = ()
    nth: tuple[tuple[int, int], ...] = ()
    last_child: bool = False


# A complex selector is a tuple of (combinator, compound) pairs read left
# to right; the first combinator is always "".
Complex = tuple[tuple[str, Compound], ...]


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, message: str) -> SurfaceSyncSelectorError:
        return SurfaceSyncSelectorError(
            f"{message} in selector {self.text!r}",
            context={"selector": self.text, "position": self.pos},
        )

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_ws(self) -> bool:
        start = self.pos
        while self.peek() and self.peek().isspace():
            self.pos += 1
        return self.pos > start

    def ident(self) -> str:
        out: list[str] = []
        while True:
            ch = self.peek()
            if ch == "\\" and self.pos + 1 < len(self.text):
                out.append(self.text[self.pos + 1])
                self.pos += 2
            elif ch and (ch.isalnum() or ch in "-_" or ord(ch) > 0x7F):
                out.append(ch)
                self.pos += 1
            else:
                break
        if not out:
            raise self.error("expected identifier")
        return "".join(out)

    def parse(self) -> tuple[Complex, ...]:
        groups: list[Complex] = []
        while True:
            self.skip_ws()
            groups.append(self.complex())
            self.skip_ws()
            if not self.peek():
                return tuple(groups)
            if self.peek() != ",":
                raise self.error(f"unexpected {self.peek()!r}")
            self.pos += 1

    def complex(self) -> Complex:
        parts: list[tuple[str, Compound]] = [("", self.compound())]
        while True:
            had_ws = self.skip_ws()
            ch = self.peek()
            if ch in (">", "+", "~"):
                self.pos += 1
                self.skip_ws()
                parts.append((ch, self.compound()))
            elif had_ws and ch and ch != ",":
                parts.append((" ", self.compound()))
            else:
                return tuple(parts)

    def compound(self) -> Compound:
        tag: str | None = None
        ids: list[str] = []
        classes: list[str] = []
        attrs: list[AttrTest] = []
        nth: list[tuple[int, int]] = []
        last_child = False
        start = self.pos

        if self.peek() == "*":
            self.pos += 1
        elif self.peek() and (self.peek().isalpha() or self.peek() in "_\\"):
            tag = self.ident().lower()

        while True:
            ch = self.peek()
            if ch == "#":
                self.pos += 1
                ids.append(self.ident())
            elif ch == ".":
                self.pos += 1
                classes.append(self.ident())
            elif ch == "[":
                self.pos += 1
                attrs.append(self.attribute())
            elif ch == ":":
                self.pos += 1
                name = self.ident().lower()
                if name == "first-child":
                    nth.append((0, 1))
                elif name == "last-child":
                    last_child = True
                elif name == "nth-child":
                    nth.append(self.nth_argument())
                else:
                    raise self.error(f"unsupported pseudo-class ':{name}'")
            else:
                break

        if self.pos == start:
            raise self.error("expected selector")
        return Compound(tag, tuple(ids), tuple(classes), tuple(attrs), tuple(nth), last_child)

    def attribute(self) -> AttrTest:
        self.skip_ws()
        name = self.ident().lower()
        self.skip_ws()
        op: str | None = None
        value = ""
        if self.peek() == "=":
            op = "="
            self.pos += 1
        elif self.text[self.pos:self.pos + 2] in ("~=", "^=", "$=", "*=", "|="):
            op = self.text[self.pos:self.pos + 2]
            self.pos += 2
        if op is not None:
            self.skip_ws()
            quote = self.peek()
            if quote in ("'", '"'):
                end = self.text.find(quote, self.pos + 1)
                if end == -1:
                    raise self.error("unterminated string")
                value = self.text[self.pos + 1:end]
                self.pos = end + 1
            else:
                value = self.ident()
            self.skip_ws()
        if self.peek() != "]":
            raise self.error("expected ']'")
        self.pos += 1
        return AttrTest(name, op, value)

    def nth_argument(self) -> tuple[int, int]:
        if self.peek() != "(":
            raise self.error("expected '(' after :nth-child")
        end = self.text.find(")", self.pos)
        if end == -1:
            raise self.error("unterminated :nth-child")
        arg = "".join(self.text[self.pos + 1:end].split()).lower()
        self.pos = end + 1
        if arg == "odd":
            return (2, 1)
        if arg == "even":
            return (2, 0)
        if re.fullmatch(r"[+-]?\d+", arg):
            return (0, int(arg))
        match = _NTH.match(arg)
        if not match:
            raise self.error(f"invalid :nth-child argument {arg!r}")
        coeff, sign, offset = match.groups()
        a = -1 if coeff == "-" else 1 if coeff in ("", "+") else int(coeff)
        b = int(offset) * (-1 if sign == "-" else 1) if offset else 0
        return (a, b)


@lru_cache(maxsize=512)
def parse_selector(selector: str) -> tuple[Complex, ...]:
    """Parse *selector* into selector groups.

    Raises
    ------
    SurfaceSyncSelectorError
        If the selector is empty or uses unsupported syntax.
    """
    if not selector or not selector.strip():
        raise SurfaceSyncSelectorError("empty selector", context={"selector": selector})
    return _Parser(selector.strip()).parse()


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def _position(element: Element) -> tuple[int, int]:
    """Return ``(1-based index, sibling count)`` among element siblings."""
    parent = element.parent
    if parent is None:
        return (1, 1)
    siblings = parent.element_children()
    return (siblings.index(element) + 1, len(siblings))


def _nth_matches(a: int, b: int, index: int) -> bool:
    if a == 0:
        return index == b
    n, rem = divmod(index - b, a)
    return rem == 0 and n >= 0


def _attr_matches(test: AttrTest, element: Element) -> bool:
    if test.name not in element.attrs:
        return False
    actual = element.attrs[test.name]
    if test.op is None:
        return True
    if test.op == "=":
        return actual == test.value
    if test.op == "~=":
        return test.value in actual.split()
    if test.op == "|=":
        return actual == test.value or actual.startswith(test.value + "-")
    if not test.value:
        return False
    if test.op == "^=":
        return actual.startswith(test.value)
    if test.op == "$=":
        return actual.endswith(test.value)
    return test.value in actual


def _compound_matches(compound: Compound, element: Element) -> bool:
    if compound.tag is not None and element.tag != compound.tag:
        return False
    if compound.ids and any(element.attrs.get("id") != ident for ident in compound.ids):
        return False
    if compound.classes:
        classes = element.classes
        if any(cls not in classes for cls in compound.classes):
            return False
    if any(not _attr_matches(test, element) for test in compound.attrs):
        return False
    if compound.nth or compound.last_child:
        index, count = _position(element)
        if any(not _nth_matches(a, b, index) for a, b in compound.nth):
            return False
        if compound.last_child and index != count:
            return False
    return True


def _previous_elements(element: Element) -> list[Element]:
    parent = element.parent
    if parent is None:
        return []
    siblings = parent.element_children()
    return siblings[:siblings.index(element)]


def _complex_matches(parts: Complex, index: int, element: Element) -> bool:
    combinator, compound = parts[index]
    if not _compound_matches(compound, element):
        return False
    if index == 0:
        return True
    if combinator == ">":
        parent = element.parent
        return isinstance(parent, Element) and _complex_matches(parts, index - 1, parent)
    if combinator == " ":
        ancestor = element.parent
        while isinstance(ancestor, Element):
            if _complex_matches(parts, index - 1, ancestor):
                return True
            ancestor = ancestor.parent
        return False
    previous = _previous_elements(element)
    if combinator == "+":
        return bool(previous) and _complex_matches(parts, index - 1, previous[-1])
    return any(_complex_matches(parts, index - 1, sibling) for sibling in previous)


def matches(element: Element, selector: str) -> bool:
    """Return whether *element* matches *selector*."""
    return any(
        _complex_matches(group, len(group) - 1, element) for group in parse_selector(selector)
    )


def select_all(scope: ParentNode, selector: str) -> list[Element]:
    """Return descendants of *scope* matching *selector*, in document order."""
    groups = parse_selector(selector)
    return [
        element for element in scope.iter_elements()
        if any(_complex_matches(group, len(group) - 1, element) for group in groups)
    ]


def select_one(scope: ParentNode, selector: str) -> Element | None:
    groups = parse_selector(selector)
    for element in scope.iter_elements():
        if any(_complex_matches(group, len(group) - 1, element) for group in groups):
            return element
    return None


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

_SIMPLE_IDENT = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")


def escape_ident(value: str) -> str:
    if _SIMPLE_IDENT.match(value):
        return value
    return "".join(ch if ch.isalnum() or ch in "-_" else "\\" + ch for ch in value)


def build_selector(element: Element, root: ParentNode | None = None) -> str:
    """Generate a selector that addresses *element*.

    Preference order: ``#id``, ``[data-uuid="..."]``, then a child-path
    of ``tag:nth-child(n)`` steps up to (excluding) *root*.
    """
    if element.id:
        return f"#{escape_ident(element.id)}"
    uuid = element.attrs.get("data-uuid")
    if uuid:
        return f'[data-uuid="{uuid}"]'

    steps: list[str] = []
    current: ParentNode | None = element
    while isinstance(current, Element) and current is not root:
        step = current.tag
        if current.parent is not None and len(current.parent.element_children()) > 1:
            index, _ = _position(current)
            step += f":nth-child({index})"
        steps.append(step)
        current = current.parent
    return " > ".join(reversed(steps))
