"""
Thumbnail Service Tests
=======================
"""

import asyncio
import base64

import cv2
import numpy as np
import pytest

from ornithology_pi.errors import ThumbnailError
from ornithology_pi.models import Sighting
from ornithology_pi.sightings import DATA_URI_PREFIX, EMPTY_IMAGE, ThumbnailService


class TestThumbnailService:

    def test_photo_path(self, thumbnails, sightings_dir):
        sighting = Sighting(uuid="abc", species="crow")
        assert thumbnails.photo_path(sighting) == sightings_dir / "crow_abc.jpg"

    def test_render_downsizes_to_thumbnail(self, thumbnails, write_photo):
        sighting = Sighting(uuid="abc", species="crow")
        write_photo(sighting)

        jpeg = thumbnails.render(sighting)

        assert jpeg[:2] == b"\xff\xd8"
        decoded = cv2.imdecode(np.frombuffer(jpeg, np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (16, 24, 3)

    def test_render_missing_photo_raises(self, thumbnails):
        with pytest.raises(ThumbnailError):
            thumbnails.render(Sighting(uuid="nope", species="crow"))

    def test_render_corrupt_photo_raises(self, thumbnails, sightings_dir):
        sighting = Sighting(uuid="bad", species="crow")
        (sightings_dir / sighting.photo_filename).write_bytes(b"not a jpeg")

        with pytest.raises(ThumbnailError):
            thumbnails.render(sighting)

    def test_render_empty_photo_raises(self, thumbnails, sightings_dir):
        sighting = Sighting(uuid="e", species="wren")
        (sightings_dir / sighting.photo_filename).write_bytes(b"")

        with pytest.raises(ThumbnailError):
            thumbnails.render(sighting)

    def test_thumbnail_empty_photo_is_empty(self, thumbnails, sightings_dir):
        sighting = Sighting(uuid="e", species="wren")
        (sightings_dir / sighting.photo_filename).write_bytes(b"")

        assert asyncio.run(thumbnails.thumbnail(sighting)) == EMPTY_IMAGE

    def test_thumbnail_is_data_uri(self, thumbnails, write_photo):
        sighting = Sighting(uuid="abc", species="crow")
        write_photo(sighting)

        data_uri = asyncio.run(thumbnails.thumbnail(sighting))

        assert data_uri.startswith(DATA_URI_PREFIX)
        payload = base64.b64decode(data_uri[len(DATA_URI_PREFIX):])
        assert payload == thumbnails.render(sighting)

    def test_thumbnail_missing_photo_is_empty(self, thumbnails):
        data_uri = asyncio.run(thumbnails.thumbnail(Sighting.empty()))
        assert data_uri == EMPTY_IMAGE

    def test_custom_dimensions(self, sightings_dir, write_photo):
        service = ThumbnailService(sightings_dir, width=32, height=8)
        sighting = Sighting(uuid="abc", species="crow")
        write_photo(sighting)

        decoded = cv2.imdecode(
            np.frombuffer(service.render(sighting), np.uint8), cv2.IMREAD_COLOR
        )
        assert decoded.shape == (8, 32, 3)

    @pytest.mark.parametrize(
        "kwargs",
        [{"width": 0}, {"height": -1}, {"jpeg_quality": 0}, {"jpeg_quality": 101}],
    )
    def test_invalid_parameters(self, sightings_dir, kwargs):
        with pytest.raises(ValueError):
            ThumbnailService(sightings_dir, **kwargs)
