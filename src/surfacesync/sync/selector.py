"""Selector generation for nodes captured from a render target."""

from __future__ import annotations

from typing import Any

from surfacesync.dom.selectors import escape_ident
from surfacesync.dom.target import CaptureTarget


def selector_for_node(target: CaptureTarget, node: Any) -> str:
    """Return a selector addressing *node* inside *target*.

    Uses ``#id`` when the node has one, then ``[data-uuid="..."]``, then
    a ``tag:nth-child(n)`` path from the target root down to the node.
    ``:nth-child`` is added only where the node has element siblings.
    """
    ident = target.get_attribute(node, "id")
    if ident:
        return f"#{escape_ident(ident)}"
    uuid = target.get_attribute(node, "data-uuid")
    if uuid:
        return f'[data-uuid="{uuid}"]'

    root = target.root
    steps: list[str] = []
    current = node
    while current is not None and current is not root:
        tag = target.tag_of(current)
        if not tag:
            break
        parent = target.parent_of(current)
        if parent is not None:
            siblings = target.children_of(parent)
            if len(siblings) > 1:
                index = next(i for i, sibling in enumerate(siblings) if sibling is current)
                tag += f":nth-child({index + 1})"
        steps.append(tag)
        current = parent
    return " > ".join(reversed(steps))
