"""
Tests for FailoverOrchestrator - sequential failover with ensemble fallback.

Tests cover:
- Short-circuit ordering
- Failure recording and exclusion
- Ensemble and single-outcome paths
- Emergency fallback when everything fails
- Timeouts, cancellation and malformed provider output
- Configuration validation
"""

import asyncio
import math

import pytest

from app.ml.failover import (
    ClassificationOutcome,
    ConfigurationError,
    FailoverOrchestrator,
    HealthRegistry,
    ImagePayload,
    MetricsRecorder,
    ProviderDescriptor,
)
from conftest import FakeProvider, descriptors_for, failing


FOUR_PROVIDERS = descriptors_for(
    ("google-vision", 1, 0.75, 0.35),
    ("aws-rekognition", 2, 0.70, 0.30),
    ("inaturalist", 3, 0.65, 0.25),
    ("huggingface", 4, 0.60, 0.10),
)


def build(descriptors, providers, clock=None, **kwargs):
    return FailoverOrchestrator(
        descriptors=descriptors,
        providers={p.name: p for p in providers},
        health=HealthRegistry(cooldown_seconds=300, clock=clock),
        metrics=MetricsRecorder(),
        **kwargs,
    )


class TestShortCircuit:
    """Confident providers stop the chain."""

    @pytest.mark.asyncio
    async def test_first_confident_provider_wins(self, image, clock):
        """Lower-priority providers are never invoked once a result is confident."""
        first = FakeProvider("a", label="Tiger", confidence=0.9)
        second = FakeProvider("b", label="Lion", confidence=0.99)
        third = FakeProvider("c", label="Bear", confidence=0.99)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.4), ("b", 2, 0.7, 0.3), ("c", 3, 0.7, 0.3)),
            [first, second, third],
            clock,
        )

        result = await orchestrator.classify(image)

        assert result.label == "Tiger"
        assert result.source == "a"
        assert result.confidence == pytest.approx(0.9)
        assert second.calls == 0
        assert third.calls == 0
        assert result.attempted_providers == ["a"]

    @pytest.mark.asyncio
    async def test_priority_order_not_registration_order(self, image, clock):
        """Descriptors are sorted by priority before the loop runs."""
        low = FakeProvider("low", confidence=0.9)
        high = FakeProvider("high", label="Wolf", confidence=0.9)
        orchestrator = build(
            descriptors_for(("low", 5, 0.5, 0.2), ("high", 1, 0.5, 0.2)),
            [low, high],
            clock,
        )

        result = await orchestrator.classify(image)

        assert result.source == "high"
        assert low.calls == 0

    @pytest.mark.asyncio
    async def test_threshold_is_inclusive(self, image, clock):
        """Confidence equal to min_confidence short-circuits."""
        first = FakeProvider("a", confidence=0.7)
        second = FakeProvider("b", confidence=0.9)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.5), ("b", 2, 0.7, 0.5)),
            [first, second],
            clock,
        )

        result = await orchestrator.classify(image)

        assert result.source == "a"
        assert second.calls == 0


class TestFailureHandling:
    """Failed providers are recorded, excluded and skipped."""

    @pytest.mark.asyncio
    async def test_failure_falls_through_to_next_provider(self, image, clock):
        """A failing provider never surfaces; the next provider answers."""
        broken = failing("a")
        backup = FakeProvider("b", label="Lion", confidence=0.8)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.5), ("b", 2, 0.7, 0.5)),
            [broken, backup],
            clock,
        )

        result = await orchestrator.classify(image)

        assert result.label == "Lion"
        assert result.attempted_providers == ["a", "b"]
        assert orchestrator.get_failed_apis() == ["a"]
        assert orchestrator.get_available_apis() == ["b"]

    @pytest.mark.asyncio
    async def test_failure_recorded_in_metrics(self, image, clock):
        broken = failing("a")
        backup = FakeProvider("b", confidence=0.8)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.5), ("b", 2, 0.7, 0.5)),
            [broken, backup],
            clock,
        )

        await orchestrator.classify(image)
        metrics = orchestrator.get_metrics()

        assert metrics["a"]["calls"] == 1
        assert metrics["a"]["successRate"] == 0.0
        assert metrics["a"]["status"] == "excluded"
        assert metrics["b"]["successRate"] == 100.0
        assert metrics["b"]["status"] == "active"

    @pytest.mark.asyncio
    async def test_excluded_provider_skipped_until_cooldown(self, image, clock):
        """An excluded provider is not called again until the cooldown elapses."""
        broken = failing("a")
        backup = FakeProvider("b", confidence=0.8)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.5), ("b", 2, 0.7, 0.5)),
            [broken, backup],
            clock,
        )

        await orchestrator.classify(image)
        await orchestrator.classify(image)
        assert broken.calls == 1

        clock.advance(300)
        await orchestrator.classify(image)
        assert broken.calls == 2

    @pytest.mark.asyncio
    async def test_reset_makes_provider_available(self, image, clock):
        broken = failing("a")
        backup = FakeProvider("b", confidence=0.8)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.5), ("b", 2, 0.7, 0.5)),
            [broken, backup],
            clock,
        )

        await orchestrator.classify(image)
        orchestrator.reset_failed_apis()

        assert orchestrator.get_available_apis() == ["a", "b"]
        assert orchestrator.get_failed_apis() == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_counts_as_failure(self, image, clock):
        broken = FakeProvider("a", error=RuntimeError("boom"))
        backup = FakeProvider("b", confidence=0.8)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.5), ("b", 2, 0.7, 0.5)),
            [broken, backup],
            clock,
        )

        result = await orchestrator.classify(image)

        assert result.source == "b"
        assert orchestrator.get_failed_apis() == ["a"]

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self, image, clock):
        slow = FakeProvider("slow", confidence=0.99, delay=1.0)
        fast = FakeProvider("fast", label="Fox", confidence=0.8)
        orchestrator = build(
            descriptors_for(("slow", 1, 0.7, 0.5), ("fast", 2, 0.7, 0.5)),
            [slow, fast],
            clock,
            provider_timeout=0.01,
        )

        result = await orchestrator.classify(image)

        assert result.label == "Fox"
        assert orchestrator.get_failed_apis() == ["slow"]
        assert orchestrator.get_metrics()["slow"]["successRate"] == 0.0

    @pytest.mark.asyncio
    async def test_nan_confidence_counts_as_failure(self, image, clock):
        broken = FakeProvider("a", confidence=math.nan)
        backup = FakeProvider("b", confidence=0.8)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.5), ("b", 2, 0.7, 0.5)),
            [broken, backup],
            clock,
        )

        result = await orchestrator.classify(image)

        assert result.source == "b"
        assert orchestrator.get_failed_apis() == ["a"]

    @pytest.mark.asyncio
    async def test_wrong_return_type_counts_as_failure(self, image, clock):
        broken = FakeProvider("a", outcome={"label": "Tiger", "confidence": 0.9})
        backup = FakeProvider("b", confidence=0.8)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.5), ("b", 2, 0.7, 0.5)),
            [broken, backup],
            clock,
        )

        result = await orchestrator.classify(image)

        assert result.source == "b"
        assert "a" in orchestrator.get_failed_apis()


class TestAggregation:
    """Paths taken when no provider is confident."""

    @pytest.mark.asyncio
    async def test_single_outcome_returned_as_is(self, image, clock):
        """One unconfident outcome plus failures: no ensemble, no bonus."""
        weak = FakeProvider("a", label="Deer", confidence=0.4)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.5), ("b", 2, 0.7, 0.5)),
            [weak, failing("b")],
            clock,
        )

        result = await orchestrator.classify(image)

        assert result.label == "Deer"
        assert result.source == "a"
        assert result.confidence == pytest.approx(0.4)
        assert not result.is_ensemble

    @pytest.mark.asyncio
    async def test_similar_labels_merge_and_win(self, image, clock):
        """'Tiger' and 'tiger' form one group that outweighs a lone 'Lion'."""
        providers = [
            FakeProvider("a", label="Tiger", confidence=0.5),
            FakeProvider("b", label="tiger", confidence=0.55),
            FakeProvider("c", label="Lion", confidence=0.9),
        ]
        orchestrator = build(
            descriptors_for(("a", 1, 0.8, 0.3), ("b", 2, 0.8, 0.3), ("c", 3, 0.95, 0.1)),
            providers,
            clock,
        )

        result = await orchestrator.classify(image)

        assert result.source == "ensemble"
        assert result.is_ensemble
        assert result.label == "tiger"
        assert result.confidence == pytest.approx((0.5 + 0.55) / 2 * 1.1)
        assert result.attempted_providers == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_zero_confidence_outcomes_use_fallback(self, image, clock):
        """No group scores above zero, so the emergency fallback answers."""
        providers = [
            FakeProvider("a", label="Tiger", confidence=0.0),
            FakeProvider("b", label="Lion", confidence=0.0),
        ]
        orchestrator = build(
            descriptors_for(("a", 1, 0.9, 0.5), ("b", 2, 0.9, 0.5)),
            providers,
            clock,
        )

        result = await orchestrator.classify(image)

        assert result.is_fallback
        assert result.source == "emergency-fallback"

    @pytest.mark.asyncio
    async def test_four_provider_scenario(self, clock, image_bytes):
        """Google fails, Rekognition is unsure, iNaturalist agrees weakly."""
        providers = [
            failing("google-vision", "quota exceeded"),
            FakeProvider("aws-rekognition", label="Tiger", confidence=0.6),
            FakeProvider("inaturalist", label="Bengal Tiger", confidence=0.7),
            FakeProvider("huggingface", label="tiger cat", confidence=0.5),
        ]
        orchestrator = build(FOUR_PROVIDERS, providers, clock)

        result = await orchestrator.classify(ImagePayload(data=image_bytes, filename="photo.jpg"))

        # inaturalist meets 0.65 and short-circuits before the local model
        assert result.source == "inaturalist"
        assert result.label == "Bengal Tiger"
        assert providers[3].calls == 0
        assert orchestrator.get_failed_apis() == ["google-vision"]
        assert result.attempted_providers == ["google-vision", "aws-rekognition", "inaturalist"]


class TestEmergencyFallbackPath:
    """Total exhaustion still yields a result."""

    @pytest.mark.asyncio
    async def test_all_fail_with_keyword_filename(self, clock, image_bytes):
        orchestrator = build(
            FOUR_PROVIDERS,
            [failing(d.name) for d in FOUR_PROVIDERS],
            clock,
        )

        result = await orchestrator.classify(ImagePayload(data=image_bytes, filename="my_tiger_photo.jpg"))

        assert result.label == "Tiger"
        assert result.confidence == pytest.approx(0.65)
        assert result.is_fallback
        assert result.scientific_name == "Panthera tigris"
        assert set(orchestrator.get_failed_apis()) == {d.name for d in FOUR_PROVIDERS}

    @pytest.mark.asyncio
    async def test_all_fail_without_keyword(self, clock, image_bytes):
        orchestrator = build(
            FOUR_PROVIDERS,
            [failing(d.name) for d in FOUR_PROVIDERS],
            clock,
        )

        result = await orchestrator.classify(ImagePayload(data=image_bytes, filename="IMG_0001.jpg"))

        assert result.label == "Unknown Wildlife"
        assert result.confidence == pytest.approx(0.45)
        assert result.is_fallback

    @pytest.mark.asyncio
    async def test_all_excluded_goes_straight_to_fallback(self, image, clock):
        """With every provider excluded nothing is attempted."""
        provider = FakeProvider("a", confidence=0.9)
        orchestrator = build(descriptors_for(("a", 1, 0.5, 0.5)), [provider], clock)
        orchestrator.health.mark_failed("a")

        result = await orchestrator.classify(image)

        assert provider.calls == 0
        assert result.is_fallback
        assert result.attempted_providers == []


class TestCancellation:
    """Caller cancellation is not a provider failure."""

    @pytest.mark.asyncio
    async def test_cancelled_request_propagates_without_penalty(self, image, clock):
        slow = FakeProvider("slow", confidence=0.9, delay=5.0)
        backup = FakeProvider("backup", confidence=0.9)
        orchestrator = build(
            descriptors_for(("slow", 1, 0.5, 0.5), ("backup", 2, 0.5, 0.5)),
            [slow, backup],
            clock,
        )

        task = asyncio.create_task(orchestrator.classify(image))
        await asyncio.sleep(0.01)
        assert slow.calls == 1
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert backup.calls == 0
        assert orchestrator.get_failed_apis() == []
        assert orchestrator.get_metrics()["slow"]["calls"] == 0


class TestEnrichment:
    """Shape of the caller-facing result."""

    @pytest.mark.asyncio
    async def test_confidence_clamped_and_source_stamped(self, image, clock):
        provider = FakeProvider(
            "a",
            outcome=ClassificationOutcome(label="Tiger", confidence=1.7, source="someone-else"),
        )
        orchestrator = build(descriptors_for(("a", 1, 0.5, 0.5)), [provider], clock)

        result = await orchestrator.classify(image)

        assert result.confidence == 1.0
        assert result.source == "a"

    @pytest.mark.asyncio
    async def test_missing_scientific_name_gets_placeholder(self, image, clock):
        provider = FakeProvider("a", label="Okapi", confidence=0.9)
        orchestrator = build(descriptors_for(("a", 1, 0.5, 0.5)), [provider], clock)

        result = await orchestrator.classify(image)

        assert result.scientific_name == "Okapi species (inferred)"
        assert result.taxonomy is None

    @pytest.mark.asyncio
    async def test_empty_label_becomes_unidentified(self, image, clock):
        provider = FakeProvider("a", label="   ", confidence=0.9)
        orchestrator = build(descriptors_for(("a", 1, 0.5, 0.5)), [provider], clock)

        result = await orchestrator.classify(image)

        assert result.label == "unidentified"

    @pytest.mark.asyncio
    async def test_taxonomy_copied_from_metadata(self, image, clock):
        taxonomy = {
            "kingdom": "Animalia", "phylum": "Chordata", "class": "Mammalia",
            "order": "Carnivora", "family": "Felidae", "genus": "Panthera",
            "species": "P. tigris", "tribe": "ignored",
        }
        provider = FakeProvider("a", confidence=0.9, metadata={"taxonomy": taxonomy})
        orchestrator = build(descriptors_for(("a", 1, 0.5, 0.5)), [provider], clock)

        result = await orchestrator.classify(image)

        assert result.taxonomy["class"] == "Mammalia"
        assert "tribe" not in result.taxonomy
        assert result.taxonomy["genus"] == "Panthera"

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_state(self, image, clock):
        """Independent requests run concurrently against the same registry."""
        broken = failing("a")
        backup = FakeProvider("b", confidence=0.8, delay=0.01)
        orchestrator = build(
            descriptors_for(("a", 1, 0.7, 0.5), ("b", 2, 0.7, 0.5)),
            [broken, backup],
            clock,
        )

        results = await asyncio.gather(*(orchestrator.classify(image) for _ in range(5)))

        assert all(r.source == "b" for r in results)
        assert orchestrator.get_metrics()["b"]["calls"] == 5


class TestConfiguration:
    """Invalid configuration is rejected at construction time."""

    def test_empty_descriptors(self):
        with pytest.raises(ConfigurationError):
            FailoverOrchestrator(descriptors=[], providers={})

    def test_duplicate_names(self):
        provider = FakeProvider("a")
        with pytest.raises(ConfigurationError, match="Duplicate"):
            FailoverOrchestrator(
                descriptors=descriptors_for(("a", 1, 0.5, 0.5), ("a", 2, 0.5, 0.5)),
                providers={"a": provider},
            )

    def test_min_confidence_out_of_range(self):
        with pytest.raises(ConfigurationError, match="min_confidence"):
            FailoverOrchestrator(
                descriptors=[ProviderDescriptor("a", 1, 1.5, 0.5)],
                providers={"a": FakeProvider("a")},
            )

    def test_negative_weight(self):
        with pytest.raises(ConfigurationError, match="weight"):
            FailoverOrchestrator(
                descriptors=[ProviderDescriptor("a", 1, 0.5, -0.1)],
                providers={"a": FakeProvider("a")},
            )

    def test_zero_weight(self):
        """A zero-weight provider could never contribute to an ensemble vote."""
        with pytest.raises(ConfigurationError, match="weight must be positive"):
            FailoverOrchestrator(
                descriptors=[ProviderDescriptor("a", 1, 0.5, 0.0)],
                providers={"a": FakeProvider("a")},
            )

    def test_missing_provider_instance(self):
        with pytest.raises(ConfigurationError, match="No provider instance"):
            FailoverOrchestrator(
                descriptors=[ProviderDescriptor("a", 1, 0.5, 0.5)],
                providers={},
            )

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError):
            FailoverOrchestrator(
                descriptors=[ProviderDescriptor("a", 1, 0.5, 0.5)],
                providers={"a": FakeProvider("a")},
                provider_timeout=0,
            )
