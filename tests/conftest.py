"""
Shared fixtures for the wildlife classification tests.
"""

import asyncio
import base64
import io
from typing import List, Optional

import pytest
from PIL import Image

from app.ml.failover.base import (
    ClassificationOutcome,
    ClassificationProvider,
    ImagePayload,
    ProviderDescriptor,
    ProviderError,
)


class FakeClock:
    """Manually advanced clock for cooldown tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(ClassificationProvider):
    """Scripted provider that records how often it was called."""

    def __init__(
        self,
        name: str,
        label: str = "Tiger",
        confidence: float = 0.9,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        outcome: Optional[object] = None,
        metadata: Optional[dict] = None,
    ):
        self._name = name
        self.label = label
        self.confidence = confidence
        self.error = error
        self.delay = delay
        self.outcome = outcome
        self.metadata = metadata
        self.calls = 0
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    async def classify(self, image: ImagePayload) -> ClassificationOutcome:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.outcome is not None:
            return self.outcome
        return ClassificationOutcome(
            label=self.label,
            confidence=self.confidence,
            source=self.name,
            metadata=self.metadata,
        )

    async def close(self) -> None:
        self.closed = True


def failing(name: str, message: str = "service unavailable") -> FakeProvider:
    return FakeProvider(name, error=ProviderError(name, message))


def descriptors_for(*specs) -> List[ProviderDescriptor]:
    """Build descriptors from (name, priority, min_confidence, weight) tuples."""
    return [ProviderDescriptor(*spec) for spec in specs]


def make_image_bytes(fmt: str = "JPEG", color=(120, 90, 40)) -> bytes:
    img = Image.new("RGB", (64, 64), color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def make_huge_png() -> bytes:
    """Tiny PNG whose pixel count exceeds Pillow's decompression bomb limit."""
    img = Image.new("1", (15000, 15000))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def clock():
    """Controllable monotonic clock."""
    return FakeClock()


@pytest.fixture
def image_bytes():
    """Small valid JPEG image."""
    return make_image_bytes()


@pytest.fixture
def image(image_bytes):
    """Validated-looking payload with an uninformative filename."""
    return ImagePayload(data=image_bytes, filename="upload.jpg", content_type="image/jpeg")


@pytest.fixture
def image_base64(image_bytes):
    """Sample image as base64."""
    return base64.b64encode(image_bytes).decode("utf-8")
