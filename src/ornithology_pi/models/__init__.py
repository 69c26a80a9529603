"""
Data Models
===========

Pydantic models shared by the protocol, the store and the server.

Models:
    - Sighting: One detected bird with a stored photo
    - Ping / Pong, CountRequest / CountResponse, LastRequest / LastResponse,
      ImageRequest / ImageResponse: wire messages
    - Unrecognized: Decode outcome for anything else
"""

from ornithology_pi.models.sighting import Sighting
from ornithology_pi.models.message import (
    MESSAGE_TYPES,
    CountRequest,
    CountResponse,
    ImageRequest,
    ImageResponse,
    LastRequest,
    LastResponse,
    Message,
    Ping,
    Pong,
    Unrecognized,
    WireMessage,
)

__all__ = [
    "Sighting",
    "Ping",
    "Pong",
    "CountRequest",
    "CountResponse",
    "LastRequest",
    "LastResponse",
    "ImageRequest",
    "ImageResponse",
    "Unrecognized",
    "Message",
    "WireMessage",
    "MESSAGE_TYPES",
]
