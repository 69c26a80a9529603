"""
Protocol Messages
=================

The closed set of messages exchanged with the companion app, one per frame.

Variants:
    Request  -> Response
    Ping            -> Pong
    CountRequest    -> CountResponse{count}
    LastRequest     -> LastResponse{last}
    ImageRequest{uuid} -> ImageResponse{base64}

Unrecognized is not a wire variant. It is what decoding yields for any frame
that is not one of the above, so dispatch can treat the echo fallback as an
ordinary case instead of a caught exception.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Type, Union

from pydantic import BaseModel, Field

from ornithology_pi.models.sighting import Sighting


class _WireMessage(BaseModel):
    class Config:
        frozen = True


class Ping(_WireMessage):
    """Liveness probe."""


class Pong(_WireMessage):
    """Reply to Ping."""


class CountRequest(_WireMessage):
    """Ask for the number of stored sightings."""


class CountResponse(_WireMessage):
    count: int = Field(..., ge=0, description="Number of stored sightings")


class LastRequest(_WireMessage):
    """Ask for the most recent sighting."""


class LastResponse(_WireMessage):
    """
    Most recent sighting.

    ``last`` is None when the log is empty; this is the not-found outcome
    and is still a regular response.
    """

    last: Optional[Sighting] = Field(
        default=None,
        description="Most recently appended sighting, or null",
    )


class ImageRequest(_WireMessage):
    uuid: str = Field(..., description="Identifier of the requested sighting")


class ImageResponse(_WireMessage):
    """
    Thumbnail of a sighting.

    ``base64`` is a ``data:image/jpeg;base64,...`` URI, or an empty string
    when no image could be produced.
    """

    base64: str = Field(
        default="",
        description="JPEG thumbnail as data URI, empty when absent",
    )


@dataclass(frozen=True, slots=True)
class Unrecognized:
    """
    Frame that did not decode to any known message.

    Attributes:
        raw: Received bytes, untouched
        reason: Why decoding failed (for logs)
    """

    raw: bytes
    reason: str = ""

    def __repr__(self) -> str:
        return f"Unrecognized({len(self.raw)} bytes, reason={self.reason!r})"


WireMessage = Union[
    Ping,
    Pong,
    CountRequest,
    CountResponse,
    LastRequest,
    LastResponse,
    ImageRequest,
    ImageResponse,
]

Message = Union[WireMessage, Unrecognized]

# Tag used on the wire -> model
MESSAGE_TYPES: Dict[str, Type[_WireMessage]] = {
    model.__name__: model
    for model in (
        Ping,
        Pong,
        CountRequest,
        CountResponse,
        LastRequest,
        LastResponse,
        ImageRequest,
        ImageResponse,
    )
}
