"""
Thumbnail Service
=================

Turns a sighting into a tiny JPEG thumbnail the companion app can embed
directly in a JSON payload.

Pipeline:
    read <sightings_dir>/<species>_<uuid>.jpg
      -> decode (OpenCV)
      -> resize to 24x16 with area interpolation
      -> re-encode as JPEG (quality 60)
      -> base64 data URI

Design Rules:
    - One filesystem read per request, done in a worker thread
    - Never called while the sightings store lock is held
    - Missing or corrupt photos yield the empty image, never an exception
"""

import asyncio
import base64
import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from ornithology_pi.errors import ThumbnailError
from ornithology_pi.models.sighting import Sighting


logger = logging.getLogger(__name__)


DATA_URI_PREFIX = "data:image/jpeg;base64,"

# Explicit absent-image marker
EMPTY_IMAGE = ""


class ThumbnailService:
    """
    Loads, downsizes and encodes sighting photos.

    Attributes:
        sightings_dir: Directory containing the stored photos
        width: Thumbnail width in pixels
        height: Thumbnail height in pixels
        jpeg_quality: JPEG quality of the re-encoded thumbnail (1-100)

    Example:
        service = ThumbnailService("sightings")
        data_uri = await service.thumbnail(sighting)
    """

    def __init__(
        self,
        sightings_dir: Union[str, Path] = "sightings",
        width: int = 24,
        height: int = 16,
        jpeg_quality: int = 60,
    ) -> None:
        if width < 1 or height < 1:
            raise ValueError("thumbnail dimensions must be positive")
        if not 1 <= jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be in [1, 100]")

        self.sightings_dir = Path(sightings_dir)
        self.width = width
        self.height = height
        self.jpeg_quality = jpeg_quality

    def photo_path(self, sighting: Sighting) -> Path:
        """Location of the stored photo for a sighting."""
        return self.sightings_dir / sighting.photo_filename

    def render(self, sighting: Sighting) -> bytes:
        """
        Produce the JPEG thumbnail bytes for a sighting.

        Blocking: reads the photo from disk.

        Raises:
            ThumbnailError: If the photo is missing, unreadable or corrupt
        """
        path = self.photo_path(sighting)
        try:
            image_bytes = path.read_bytes()
        except OSError as e:
            raise ThumbnailError(f"Cannot read photo {path}: {e}") from e

        if not image_bytes:
            raise ThumbnailError(f"Photo {path} is empty")

        try:
            bgr = cv2.imdecode(np.frombuffer(image_bytes, np.uint8), cv2.IMREAD_COLOR)
            if bgr is None:
                raise ThumbnailError(f"Cannot decode photo {path}")

            small = cv2.resize(
                bgr,
                (self.width, self.height),
                interpolation=cv2.INTER_AREA,
            )

            ok, encoded = cv2.imencode(
                ".jpg",
                small,
                [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality],
            )
        except cv2.error as e:
            raise ThumbnailError(f"OpenCV failed on photo {path}: {e}") from e

        if not ok:
            raise ThumbnailError(f"Cannot encode thumbnail for {path}")

        return encoded.tobytes()

    async def thumbnail(self, sighting: Sighting) -> str:
        """
        Thumbnail of a sighting as a base64 data URI.

        Returns:
            ``data:image/jpeg;base64,...`` or EMPTY_IMAGE when the photo
            cannot be produced
        """
        try:
            jpeg = await asyncio.to_thread(self.render, sighting)
        except ThumbnailError as e:
            logger.warning(f"No thumbnail for sighting {sighting.uuid!r}: {e}")
            return EMPTY_IMAGE

        return DATA_URI_PREFIX + base64.b64encode(jpeg).decode("ascii")
