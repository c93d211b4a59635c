"""
AWS Rekognition provider (rekognition-style).

Calls `detect_labels` through boto3 in a worker thread and maps wildlife
labels onto the local taxonomy table. Rekognition reports confidence as
a percentage; it is scaled to [0, 1] here.
"""

import asyncio
import logging
from typing import Optional, Any

from app.ml.failover.base import (
    ClassificationOutcome,
    ClassificationProvider,
    ImagePayload,
    ProviderError,
)
from app.ml.failover.providers.common import best_wildlife_match, wildlife_candidates
from app.ml.failover.taxonomy import WildlifeTaxonomyResolver, get_wildlife_taxonomy_resolver

logger = logging.getLogger(__name__)


class RekognitionProvider(ClassificationProvider):
    """Label detection through AWS Rekognition."""

    MAX_LABELS = 20
    MIN_CONFIDENCE = 50

    def __init__(
        self,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region: str = "us-east-1",
        client: Optional[Any] = None,
        resolver: Optional[WildlifeTaxonomyResolver] = None,
        provider_name: str = "aws-rekognition",
    ):
        """
        Initialize provider.

        Args:
            access_key_id: AWS access key (default credential chain if omitted)
            secret_access_key: AWS secret key
            region: AWS region
            client: Pre-built boto3 Rekognition client
            resolver: Wildlife taxonomy table
            provider_name: Name matching the provider descriptor
        """
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.region = region
        self._client = client
        self.resolver = resolver or get_wildlife_taxonomy_resolver()
        self._name = provider_name

    @property
    def name(self) -> str:
        return self._name

    def _load_client(self):
        """Lazy load the boto3 client."""
        if self._client is None:
            try:
                import boto3
            except ImportError as e:
                raise ProviderError(self.name, f"boto3 not installed: {e}")

            self._client = boto3.client(
                "rekognition",
                region_name=self.region,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
            logger.info(f"Rekognition client created for region {self.region}")
        return self._client

    async def classify(self, image: ImagePayload) -> ClassificationOutcome:
        client = self._load_client()

        # boto3 is blocking; run in thread pool to not block the event loop
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(
                None,
                lambda: client.detect_labels(
                    Image={"Bytes": image.data},
                    MaxLabels=self.MAX_LABELS,
                    MinConfidence=self.MIN_CONFIDENCE,
                ),
            )
        except Exception as e:
            # botocore raises ClientError, NoCredentialsError, EndpointConnectionError, ...
            raise ProviderError(self.name, f"Rekognition call failed: {e}")

        labels = [
            (item.get("Name", ""), float(item.get("Confidence", 0.0)) / 100)
            for item in response.get("Labels") or []
        ]
        if not labels:
            raise ProviderError(self.name, "No labels detected in image")

        match = best_wildlife_match(self.name, wildlife_candidates(labels), self.resolver)
        if match is None:
            raise ProviderError(self.name, "No wildlife detected with sufficient confidence")
        return match
