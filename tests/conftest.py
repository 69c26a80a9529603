"""
Test Configuration
==================

Pytest fixtures and test configuration for Ornithology Pi.
"""

import cv2
import numpy as np
import pytest

from ornithology_pi.models import Sighting
from ornithology_pi.sightings import ThumbnailService


@pytest.fixture
def sample_sightings():
    """Sightings with a duplicated identifier, oldest first."""
    return [
        Sighting(uuid="a", species="crow"),
        Sighting(uuid="b", species="crow"),
        Sighting(uuid="a", species="finch"),
    ]


@pytest.fixture
def sightings_dir(tmp_path):
    """Empty photo directory."""
    directory = tmp_path / "sightings"
    directory.mkdir()
    return directory


@pytest.fixture
def write_photo(sightings_dir):
    """Write a synthetic 640x480 JPEG photo for a sighting."""

    def _write(sighting: Sighting, width: int = 640, height: int = 480):
        image = np.zeros((height, width, 3), dtype=np.uint8)
        image[:, : width // 2] = (40, 160, 220)
        image[: height // 3, :] = (200, 90, 30)
        path = sightings_dir / sighting.photo_filename
        assert cv2.imwrite(str(path), image)
        return path

    return _write


@pytest.fixture
def thumbnails(sightings_dir):
    """ThumbnailService reading from the temporary photo directory."""
    return ThumbnailService(sightings_dir=sightings_dir)
