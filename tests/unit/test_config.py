"""Tests for SyncConfig validation."""

from __future__ import annotations

import pytest

from surfacesync.config import DEFAULT_DRIFT_TOLERANCE, SyncConfig


class TestSyncConfig:
    def test_defaults(self):
        config = SyncConfig()
        assert config.drift_tolerance == DEFAULT_DRIFT_TOLERANCE == 2.0
        assert config.unknown_surface == "ignore"
        assert config.replay_on_bind is True
        assert config.metrics is None
        assert config.debug_dump_merge is False

    def test_zero_tolerance_allowed(self):
        assert SyncConfig(drift_tolerance=0).drift_tolerance == 0

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError, match="drift_tolerance"):
            SyncConfig(drift_tolerance=-1)

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError, match="unknown_surface"):
            SyncConfig(unknown_surface="explode")  # type: ignore[arg-type]

    def test_raise_policy_accepted(self):
        assert SyncConfig(unknown_surface="raise").unknown_surface == "raise"
