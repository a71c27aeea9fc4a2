"""Shared test fixtures for the surfacesync test suite."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from surfacesync.config import SyncConfig
from surfacesync.diff import DiffEngine
from surfacesync.dom import HtmlDocument
from surfacesync.sync import SyncEngine

PAGE_HTML = (
    '<section id="hero"><h1 id="title">Welcome</h1>'
    '<p class="lead">Intro text</p></section>'
    '<ul><li>One</li><li>Two</li><li data-uuid="u-3">Three</li></ul>'
)


class RecordingMetricsHook:
    """A metrics backend that records all calls for assertion."""

    def __init__(self) -> None:
        self.increments: list[dict[str, Any]] = []
        self.timings: list[dict[str, Any]] = []
        self.gauges: list[dict[str, Any]] = []

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        self.increments.append({"name": name, "value": value, "tags": tags})

    def timing(self, name: str, ms: float, tags: dict[str, str] | None = None) -> None:
        self.timings.append({"name": name, "ms": ms, "tags": tags})

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self.gauges.append({"name": name, "value": value, "tags": tags})

    def names(self) -> list[str]:
        return [call["name"] for call in self.increments]


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def config() -> SyncConfig:
    """Default engine configuration."""
    return SyncConfig()


@pytest.fixture
def metrics() -> RecordingMetricsHook:
    return RecordingMetricsHook()


@pytest.fixture
def diff_engine(config: SyncConfig) -> DiffEngine:
    return DiffEngine(config)


@pytest.fixture
def engine(config: SyncConfig) -> SyncEngine:
    return SyncEngine(config)


@pytest.fixture
def doc() -> HtmlDocument:
    """In-memory render target loaded with PAGE_HTML."""
    return HtmlDocument(PAGE_HTML)


@pytest.fixture
def log_records():
    """Collect records emitted under the ``surfacesync`` logger tree.

    The package root logger does not propagate, so a handler is attached
    to it directly.
    """
    logger = logging.getLogger("surfacesync")
    handler = _ListHandler()
    previous = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        yield handler.records
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous)
