"""
Ornithology Pi Main Application
===============================

Process entry point: wires the BlueZ capabilities, the thumbnail service
and the server loop around a sightings store, and runs until SIGINT or
SIGTERM.

The camera pipeline that fills the store is started by whoever embeds
serve(); the console script starts with an empty store.

Usage:
    ornithology-pi
    ornithology-pi --config /etc/ornithology-pi/config.yaml
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from ornithology_pi import config
from ornithology_pi.bluetooth import (
    BluezAdapter,
    BluezBroadcaster,
    BluezProfileRegistrar,
    BluezSession,
)
from ornithology_pi.config import Settings, load_config, setup_logging
from ornithology_pi.errors import AdapterError
from ornithology_pi.server import ServerLoop
from ornithology_pi.sightings import SightingsStore, ThumbnailService


logger = logging.getLogger(__name__)


def create_server(
    session: BluezSession,
    store: SightingsStore,
    settings: Settings,
) -> ServerLoop:
    """Build a ServerLoop backed by BlueZ from settings."""
    adapter = BluezAdapter(session, settings.bluetooth.adapter)
    broadcaster = BluezBroadcaster(session, adapter)
    registrar = BluezProfileRegistrar(
        session,
        service_uuid=settings.service.uuid,
        name=settings.service.name,
        channel=settings.service.channel,
    )
    thumbnails = ThumbnailService(
        sightings_dir=settings.thumbnail.sightings_dir,
        width=settings.thumbnail.width,
        height=settings.thumbnail.height,
        jpeg_quality=settings.thumbnail.jpeg_quality,
    )

    return ServerLoop(
        adapter,
        broadcaster,
        registrar,
        store,
        thumbnails,
        service_name=settings.service.name,
        service_uuid=settings.service.uuid,
        max_frame_size=settings.protocol.max_frame_size,
        idle_timeout=settings.protocol.idle_timeout_seconds,
        discoverable_timeout=settings.bluetooth.discoverable_timeout,
        teardown_grace=settings.bluetooth.teardown_grace_seconds,
    )


async def serve(store: SightingsStore, settings: Settings) -> None:
    """
    Run the Bluetooth service until shutdown.

    Raises:
        AdapterError: If the adapter cannot be brought up
    """
    session = BluezSession()
    try:
        await session.connect()
    except Exception as e:
        raise AdapterError(f"Cannot connect to BlueZ: {e}") from e

    server = create_server(session, store, settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, server.stop)

    logger.info(f"Starting {settings.service.name} on channel {settings.service.channel}")
    try:
        await server.run()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        session.disconnect()
        logger.info("Shutdown complete")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Bluetooth companion-app service for ornithology-pi",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: search working directory and /etc)",
    )
    args = parser.parse_args(argv)

    settings = load_config(args.config) if args.config else config.settings
    setup_logging(settings)

    store = SightingsStore()
    try:
        asyncio.run(serve(store, settings))
    except AdapterError as e:
        logger.error(f"Bluetooth startup failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
