#!/usr/bin/env python3
"""
Device Probe Script
===================

Companion-side probe for a running ornithology-pi device.

This script:
    1. Connects to the device over RFCOMM
    2. Prints the greeting (sighting count)
    3. Sends Ping, CountRequest, LastRequest and optionally ImageRequest
    4. Prints every response frame

Prerequisites:
    - Linux with Bluetooth sockets (AF_BLUETOOTH)
    - The device must be discoverable and the service running
    - Install the package: pip install -e .

Usage:
    python scripts/probe_device.py AA:BB:CC:DD:EE:FF
    python scripts/probe_device.py AA:BB:CC:DD:EE:FF --image <uuid>
"""

import argparse
import logging
import socket
import sys

from ornithology_pi.bluetooth.profile import CHANNEL
from ornithology_pi.models import (
    CountRequest,
    ImageRequest,
    LastRequest,
    Ping,
    WireMessage,
)
from ornithology_pi.protocol import RECORD_TERMINATOR, decode_message, encode_message


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


MAX_FRAME_SIZE = 8192


def exchange(sock: socket.socket, message: WireMessage, frames: int) -> None:
    """Send one message and print the expected number of response frames."""
    sock.sendall(encode_message(message))
    logger.info(f"-> {message!r}")

    received = 0
    while received < frames:
        raw = sock.recv(MAX_FRAME_SIZE)
        if not raw:
            raise ConnectionError("Device closed the connection")
        received += 1

        if raw == RECORD_TERMINATOR:
            logger.info("<- (record terminator)")
            continue

        # Response and terminator coalesced into one read
        if raw.endswith(RECORD_TERMINATOR) and received < frames:
            raw = raw[:-len(RECORD_TERMINATOR)]
            received += 1
        logger.info(f"<- {decode_message(raw)!r}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Probe an ornithology-pi device")
    parser.add_argument("address", help="Bluetooth address of the device")
    parser.add_argument("--channel", type=int, default=CHANNEL, help="RFCOMM channel")
    parser.add_argument("--image", default=None, help="Sighting uuid to fetch a thumbnail for")
    parser.add_argument("--timeout", type=float, default=10.0, help="Socket timeout (s)")
    args = parser.parse_args()

    sock = socket.socket(socket.AF_BLUETOOTH, socket.SOCK_STREAM, socket.BTPROTO_RFCOMM)
    sock.settimeout(args.timeout)

    try:
        sock.connect((args.address, args.channel))
        logger.info(f"Connected to {args.address} channel {args.channel}")

        greeting = sock.recv(MAX_FRAME_SIZE)
        logger.info(f"Greeting: {greeting.decode('ascii', errors='replace')} sightings")

        exchange(sock, Ping(), frames=1)
        exchange(sock, CountRequest(), frames=1)
        # LastResponse and ImageResponse are followed by a terminator frame
        exchange(sock, LastRequest(), frames=2)
        if args.image:
            exchange(sock, ImageRequest(uuid=args.image), frames=2)
    except OSError as e:
        logger.error(f"Probe failed: {e}")
        return 1
    finally:
        sock.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
