"""
Ornithology Pi
==============

Device-side Bluetooth service for the ornithology-pi bird monitoring device.

A paired companion app connects over RFCOMM and queries the shared log of
detected sightings: how many there are, which one came last, and a tiny
JPEG thumbnail of any of them.

Components:
    - models: Sighting record and the wire Message variants
    - protocol: Message codec and the per-connection handler
    - sightings: Shared sightings log and thumbnail generation
    - bluetooth: BlueZ adapter, advertisement and RFCOMM profile (dbus-fast)
    - server: Advertise -> accept -> serve lifecycle

Example:
    import asyncio
    from ornithology_pi.config import settings
    from ornithology_pi.main import serve
    from ornithology_pi.sightings import SightingsStore

    store = SightingsStore()
    asyncio.run(serve(store, settings))
"""

__version__ = "0.1.0"
__author__ = "Ornithology Pi Project"

__all__ = [
    "__version__",
]
