"""
Image input validation.

Rejects unusable input before any provider is contacted:
- Empty or oversized payloads
- Malformed base64
- Bytes Pillow cannot identify as an image
"""

import base64
import binascii
import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from app.ml.failover.base import ImagePayload, InvalidInputError

logger = logging.getLogger(__name__)


DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024


class ImageValidator:
    """
    Validates uploads and turns them into ImagePayload objects.

    Usage:
        validator = ImageValidator(max_bytes=10 * 1024 * 1024)
        payload = validator.from_base64(request.image, filename="tiger.jpg")
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES):
        self.max_bytes = max_bytes

    def from_base64(
        self,
        base64_string: str,
        filename: Optional[str] = None,
    ) -> ImagePayload:
        """
        Decode and validate a base64 image.

        Args:
            base64_string: Base64 data, optionally with a data URL prefix
            filename: Original filename, if known

        Returns:
            Validated ImagePayload

        Raises:
            InvalidInputError: If the data is not a usable image
        """
        if not base64_string:
            raise InvalidInputError("No image data provided")

        # Remove data URL prefix if present
        if "," in base64_string:
            base64_string = base64_string.split(",", 1)[1]

        try:
            data = base64.b64decode(base64_string, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidInputError(f"Invalid base64 image data: {e}")

        return self.validate(ImagePayload(data=data, filename=filename))

    def validate(self, payload: ImagePayload) -> ImagePayload:
        """
        Validate raw image bytes.

        Returns:
            The payload, with content_type filled in from the detected format
        """
        if payload.size_bytes == 0:
            raise InvalidInputError("Image data is empty")

        if payload.size_bytes > self.max_bytes:
            limit_mb = self.max_bytes / (1024 * 1024)
            raise InvalidInputError(f"Image exceeds {limit_mb:.0f}MB limit")

        try:
            with Image.open(io.BytesIO(payload.data)) as image:
                image_format = image.format
                image.verify()
        except Image.DecompressionBombError as e:
            raise InvalidInputError(f"Image dimensions too large: {e}")
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise InvalidInputError(f"Data is not a valid image: {e}")

        content_type = payload.content_type
        if content_type is None and image_format:
            content_type = Image.MIME.get(image_format)

        logger.debug(
            f"Validated {image_format} image ({payload.size_bytes} bytes, "
            f"filename={payload.filename})"
        )

        return ImagePayload(
            data=payload.data,
            filename=payload.filename,
            content_type=content_type,
        )
