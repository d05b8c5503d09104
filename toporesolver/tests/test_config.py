"""
Tests for environment-driven settings.
"""

from __future__ import annotations

from toporesolver.config import EvaluationConfig, ResolverConfig, Settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.resolver.mixing_constant > 0
        assert settings.evaluation.signature_window > 0

    def test_random_seed_from_env(self, monkeypatch):
        monkeypatch.setenv("TR_RANDOM_SEED", "5")
        assert ResolverConfig().random_seed == 5

    def test_random_seed_unset(self, monkeypatch):
        monkeypatch.delenv("TR_RANDOM_SEED", raising=False)
        assert ResolverConfig().random_seed is None

    def test_stoplist_from_env(self, monkeypatch):
        monkeypatch.setenv("TR_STOPLIST", "/tmp/stop.txt")
        assert ResolverConfig().stoplist_path == "/tmp/stop.txt"

    def test_errors_path_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("TR_ERRORS_PATH", "")
        assert EvaluationConfig().errors_path is None
