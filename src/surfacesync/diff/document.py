"""Single-file HTML document assembly for exports."""

from __future__ import annotations

_HEAD = (
    "<!DOCTYPE html>\n"
    '<html lang="en">\n'
    "<head>\n"
    '  <meta charset="UTF-8">\n'
    '  <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
    "  <title>Generated Page</title>\n"
)


def indent_text(text: str, spaces: int) -> str:
    """Prefix every non-blank line of *text* with *spaces* spaces."""
    pad = " " * spaces
    return "\n".join(pad + line if line.strip() else line for line in text.split("\n"))


def build_document(html: str, css: str = "", js: str = "") -> str:
    """Wrap *html* in a standalone document with inline *css* and *js*."""
    parts = [_HEAD]
    if css:
        parts.append("  <style>\n" + indent_text(css, 4) + "\n  </style>\n")
    parts.append("</head>\n<body>\n")
    parts.append(indent_text(html, 2) + "\n")
    if js:
        parts.append("  <script>\n" + indent_text(js, 4) + "\n  </script>\n")
    parts.append("</body>\n</html>")
    return "".join(parts)
