"""
Sightings Module
================

Shared sightings log and photo thumbnails.

Components:
    - SightingsStore: Lock-guarded append-only log
    - ThumbnailService: Photo -> 24x16 JPEG data URI
"""

from ornithology_pi.sightings.store import SightingsStore
from ornithology_pi.sightings.thumbnail import (
    DATA_URI_PREFIX,
    EMPTY_IMAGE,
    ThumbnailService,
)


__all__ = [
    "SightingsStore",
    "ThumbnailService",
    "DATA_URI_PREFIX",
    "EMPTY_IMAGE",
]
