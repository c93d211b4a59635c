"""
Tests for HealthRegistry - per-provider circuit breaker with cooldown.
"""

import pytest

from app.ml.failover import HealthRegistry


class TestHealthRegistry:
    """Test suite for HealthRegistry."""

    @pytest.fixture
    def registry(self, clock):
        return HealthRegistry(cooldown_seconds=300, clock=clock)

    def test_unknown_provider_is_available(self, registry):
        assert registry.is_available("google-vision")
        assert registry.list_excluded() == set()

    def test_failed_provider_excluded_immediately(self, registry):
        registry.mark_failed("google-vision")

        assert not registry.is_available("google-vision")
        assert registry.list_excluded() == {"google-vision"}

    def test_available_again_after_cooldown(self, registry, clock):
        registry.mark_failed("google-vision")

        clock.advance(299.9)
        assert not registry.is_available("google-vision")

        clock.advance(0.1)
        assert registry.is_available("google-vision")
        assert registry.list_excluded() == set()

    def test_reset_clears_exclusions(self, registry):
        registry.mark_failed("google-vision")
        registry.mark_failed("inaturalist")

        registry.reset()

        assert registry.is_available("google-vision")
        assert registry.is_available("inaturalist")

    def test_repeated_failure_restarts_cooldown(self, registry, clock):
        registry.mark_failed("inaturalist")
        clock.advance(200)
        registry.mark_failed("inaturalist")
        clock.advance(200)

        assert not registry.is_available("inaturalist")
        assert registry.cooldown_remaining("inaturalist") == pytest.approx(100)

    def test_filter_available_preserves_order(self, registry):
        registry.mark_failed("b")

        assert registry.filter_available(["c", "b", "a"]) == ["c", "a"]

    def test_cooldown_remaining_none_when_available(self, registry, clock):
        assert registry.cooldown_remaining("a") is None

        registry.mark_failed("a")
        clock.advance(300)
        assert registry.cooldown_remaining("a") is None

    def test_negative_cooldown_rejected(self):
        with pytest.raises(ValueError):
            HealthRegistry(cooldown_seconds=-1)
