"""Diff engine: write effective overrides onto HTML content.

Takes effective (merged) overrides and applies them, one selector at a
time, to an HTML string or to any :class:`~surfacesync.dom.RenderTarget`.
Geometry fields are never written here; the sync engine owns the root's
geometry.
"""

from __future__ import annotations

import json
import sys
import time
from collections.abc import Iterable, Sequence
from typing import Any

from surfacesync.config import SyncConfig
from surfacesync.dom.parse import HtmlParseResult
from surfacesync.dom.styles import camel_to_kebab
from surfacesync.dom.target import HtmlDocument, RenderTarget
from surfacesync.errors import (
    ErrorCode,
    SurfaceSyncRenderError,
    SurfaceSyncSelectorError,
    SurfaceSyncValidationError,
)
from surfacesync.models import (
    VIEWPORT_PRESETS,
    ApplyReport,
    ApplyWarning,
    ElementOverride,
    ExportResult,
    HtmlDiff,
    ModifiedElement,
    ViewportConfig,
)
from surfacesync.observability import fields, get_logger, resolve_metrics
from surfacesync.overrides.merge import merge_override_list

from .document import build_document

log = get_logger("surfacesync.diff")


class DiffEngine:
    """Applies effective overrides to content.

    Parameters
    ----------
    config:
        Engine configuration (metrics hook and debug flags).  Defaults to
        ``SyncConfig()``.
    """

    def __init__(self, config: SyncConfig | None = None) -> None:
        self._config = config if config is not None else SyncConfig()
        self._metrics = resolve_metrics(self._config.metrics)

    # ── Application ────────────────────────────────────────────────────

    def apply_overrides(self, html: str, overrides: Sequence[ElementOverride]) -> str:
        """Apply *overrides* to an HTML string and return the patched markup.

        The overrides are merged per selector first, so passing either
        effective overrides or a raw log gives the same result.
        Re-applying the same overrides to the returned markup returns it
        unchanged.

        Parameters
        ----------
        html:
            Markup fragment or document.
        overrides:
            Overrides to apply.

        Returns
        -------
        str
            The patched markup.  Unmatched selectors are skipped and
            logged.
        """
        if not html or not overrides:
            return html
        document = HtmlDocument.from_fragment(html)
        self.apply_to_target(document, overrides)
        return document.to_html()

    def apply_to_target(
        self, target: RenderTarget, overrides: Iterable[ElementOverride],
    ) -> ApplyReport:
        """Apply *overrides* to a render target.

        For every matched node the writes happen in a fixed order:
        attributes, styles, then content.  ``html`` replaces the node's
        children and supersedes ``text``.  An override whose selector is
        invalid or matches nothing, or whose write the target rejects,
        is skipped with a warning; the rest of the batch still applies.

        Returns
        -------
        ApplyReport
            Applied and skipped counts with one warning per skip.
        """
        started = time.perf_counter()
        merged = merge_override_list(overrides)
        if self._config.debug_dump_merge:
            _dump_merged(merged)

        report = ApplyReport()
        for override in merged:
            self._apply_one(target, override, report)

        self._metrics.timing(
            "surfacesync.apply_duration_ms", (time.perf_counter() - started) * 1000,
        )
        _emit_apply_metrics(self._metrics, report)
        return report

    def _apply_one(
        self, target: RenderTarget, override: ElementOverride, report: ApplyReport,
    ) -> None:
        selector = override.selector
        try:
            nodes = target.query_selector_all(selector)
        except SurfaceSyncSelectorError as exc:
            _skip(report, ErrorCode.INVALID_SELECTOR, f"invalid selector: {exc.message}", selector)
            return
        if not nodes:
            _skip(report, ErrorCode.SELECTOR_NOT_FOUND, "selector matched no element", selector)
            return

        try:
            for node in nodes:
                _patch_node(target, node, override)
        except SurfaceSyncRenderError as exc:
            _skip(report, ErrorCode.RENDER_FAILED, f"render target rejected write: {exc.message}", selector)
            return

        report.applied += 1
        report.nodes_patched += len(nodes)

    # ── Inspection & export ────────────────────────────────────────────

    def calculate_diff(
        self, original: HtmlParseResult, overrides: Sequence[ElementOverride],
    ) -> HtmlDiff:
        """List the parsed elements that *overrides* modify.

        Overrides whose selector matches nothing in *original* are left
        out of ``modified``.
        """
        diff = HtmlDiff()
        for override in merge_override_list(overrides):
            try:
                element = original.find(override.selector)
            except SurfaceSyncSelectorError:
                log.warning(
                    "invalid selector ignored in diff",
                    extra=fields(op="calculate_diff", selector=override.selector),
                )
                continue
            if element is not None:
                diff.modified.append(ModifiedElement(selector=override.selector, changes=override))
        return diff

    def generate_export(
        self,
        original: HtmlParseResult,
        overrides: Sequence[ElementOverride],
        fmt: str = "single",
    ) -> ExportResult:
        """Render the overridden content for export.

        Parameters
        ----------
        original:
            Parsed source content.
        overrides:
            Override log to apply.
        fmt:
            ``"single"`` -- one HTML document embedding styles and
            scripts.  ``"separate"`` -- markup, CSS and JS returned
            separately.
        """
        if fmt not in ("single", "separate"):
            raise SurfaceSyncValidationError(
                f"unknown export format {fmt!r}",
                context={"field": "fmt", "value": fmt},
            )
        html = self.apply_overrides(original.to_html(), overrides)
        if fmt == "single":
            return ExportResult(html=build_document(html, original.styles, original.scripts))
        return ExportResult(html=html, css=original.styles, js=original.scripts)

    def generate_media_queries(
        self,
        overrides: Sequence[ElementOverride],
        viewports: Sequence[ViewportConfig | str],
    ) -> str:
        """Emit one ``@media (max-width: ...)`` block per viewport.

        Each block holds a rule for every selector whose effective
        override sets styles.  Viewports are :class:`ViewportConfig`
        instances or preset names (``desktop``, ``tablet``, ``mobile``).
        """
        rules: list[str] = []
        for override in merge_override_list(overrides):
            if not override.styles:
                continue
            declarations = " ".join(
                f"{camel_to_kebab(name)}: {value};" for name, value in override.styles.items()
            )
            rules.append(f"  {override.selector} {{ {declarations} }}")
        if not rules:
            return ""

        blocks = [
            f"@media (max-width: {_viewport_width(viewport)}px) {{\n" + "\n".join(rules) + "\n}"
            for viewport in viewports
        ]
        return "\n\n".join(blocks)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _patch_node(target: RenderTarget, node: Any, override: ElementOverride) -> None:
    """Write one override onto one node: attributes, styles, content."""
    if override.attributes:
        for name, value in override.attributes.items():
            target.set_attribute(node, name, value)
    if override.styles:
        for prop, value in override.styles.items():
            target.set_style(node, camel_to_kebab(prop), value)
    if override.html is not None:
        target.replace_content(node, override.html)
    elif override.text is not None:
        target.set_text(node, override.text)


def _skip(report: ApplyReport, code: ErrorCode, message: str, selector: str) -> None:
    log.warning(message, extra=fields(op="apply_overrides", code=code.value, selector=selector))
    report.warnings.append(ApplyWarning(code=code.value, message=message, context={"selector": selector}))


def _viewport_width(viewport: ViewportConfig | str) -> int:
    if isinstance(viewport, ViewportConfig):
        return viewport.width
    preset = VIEWPORT_PRESETS.get(viewport)
    if preset is None:
        log.warning(
            "unknown viewport preset, using desktop width",
            extra=fields(op="generate_media_queries", viewport=viewport),
        )
        preset = VIEWPORT_PRESETS["desktop"]
    return preset.width


def _dump_merged(merged: list[ElementOverride]) -> None:
    """Write the merged overrides to stderr for debugging."""
    print(
        json.dumps([override.to_dict() for override in merged], indent=2, ensure_ascii=False),
        file=sys.stderr,
    )


def _emit_apply_metrics(metrics: Any, report: ApplyReport) -> None:
    """Emit applied / skipped counters for one batch."""
    if report.applied:
        metrics.increment("surfacesync.overrides_applied_total", report.applied, tags={"source": "diff"})
    reasons: dict[str, int] = {}
    for warning in report.warnings:
        reasons[warning.code] = reasons.get(warning.code, 0) + 1
    for reason, count in reasons.items():
        metrics.increment("surfacesync.selector_misses_total", count, tags={"reason": reason})
