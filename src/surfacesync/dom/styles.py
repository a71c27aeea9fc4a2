"""Inline style string helpers.

Declarations are kept in an insertion-ordered dict so that rewriting a
property in place never reorders the ``style`` attribute; this keeps
repeated application of the same overrides byte-for-byte stable.
"""

from __future__ import annotations

import re

_UPPER = re.compile(r"[A-Z]")
_PX = re.compile(r"^\s*(-?(?:\d+\.?\d*|\.\d+))(?:px)?\s*$")


def camel_to_kebab(name: str) -> str:
    """Convert a camelCase style property to its CSS kebab-case name.

    Custom properties (``--brand-color``) and names that are already
    kebab-case pass through unchanged.

    >>> camel_to_kebab("backgroundColor")
    'background-color'
    >>> camel_to_kebab("WebkitTransform")
    '-webkit-transform'
    """
    if name.startswith("--"):
        return name
    return _UPPER.sub(lambda m: "-" + m.group(0).lower(), name)


def _split_declarations(css: str) -> list[str]:
    """Split on ``;`` outside of quotes and parentheses."""
    parts: list[str] = []
    buf: list[str] = []
    depth = 0
    quote: str | None = None
    for ch in css:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")" and depth:
            depth -= 1
        elif ch == ";" and depth == 0:
            parts.append("".join(buf))
            buf = []
            continue
        buf.append(ch)
    parts.append("".join(buf))
    return parts


def parse_style(css: str | None) -> dict[str, str]:
    """Parse an inline ``style`` attribute into ``{property: value}``.

    Declarations without a colon, or with an empty name or value, are
    dropped.  Later duplicates replace earlier ones in place.
    """
    styles: dict[str, str] = {}
    if not css:
        return styles
    for declaration in _split_declarations(css):
        name, sep, value = declaration.partition(":")
        name, value = name.strip(), value.strip()
        if sep and name and value:
            styles[name.lower() if not name.startswith("--") else name] = value
    return styles


def serialize_style(styles: dict[str, str]) -> str:
    """Render ``{property: value}`` as ``"a: 1; b: 2"``."""
    return "; ".join(f"{name}: {value}" for name, value in styles.items())


def style_diff(initial: dict[str, str], current: dict[str, str]) -> dict[str, str]:
    """Return the entries of *current* whose values differ from *initial*."""
    return {key: value for key, value in current.items() if initial.get(key) != value}


def format_px(value: float) -> str:
    """Format a canvas coordinate as a CSS pixel length."""
    number = float(value)
    if number.is_integer():
        return f"{int(number)}px"
    return f"{round(number, 3)}px"


def parse_px(value: str | None) -> float | None:
    """Parse ``"12px"`` / ``"12.5"`` into a float, or ``None``."""
    if not value:
        return None
    match = _PX.match(value)
    return float(match.group(1)) if match else None
