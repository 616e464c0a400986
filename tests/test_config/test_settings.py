"""Tests for environment-driven engine settings."""

import pydantic
import pytest

from config.settings import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("CACHE_TTL_SECONDS", "DEFAULT_DECLINING_RATE", "FRACTIONAL_LIFE_POLICY", "STRICT_BOOK_VALUES"):
            monkeypatch.delenv(name, raising=False)
        s = Settings(_env_file=None)
        assert s.cache_ttl_seconds == 300
        assert s.default_declining_rate == 20.0
        assert s.fractional_life_policy == "reject"
        assert s.strict_book_values is False

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CACHE_TTL_SECONDS", "60")
        monkeypatch.setenv("STRICT_BOOK_VALUES", "true")
        monkeypatch.setenv("FRACTIONAL_LIFE_POLICY", "round")
        s = Settings(_env_file=None)
        assert s.cache_ttl_seconds == 60
        assert s.strict_book_values is True
        assert s.fractional_life_policy == "round"

    @pytest.mark.parametrize("policy", ["rounds", "ROUND", "truncate", ""])
    def test_unknown_fractional_policy_rejected(self, monkeypatch, policy):
        monkeypatch.setenv("FRACTIONAL_LIFE_POLICY", policy)
        with pytest.raises(pydantic.ValidationError, match="fractional_life_policy"):
            Settings(_env_file=None)
