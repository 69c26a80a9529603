"""
Message Codec
=============

JSON framing of Messages in the externally tagged form the companion app
speaks:

    "Ping"                              payload-less variants
    {"CountResponse":{"count":3}}       variants with fields
    {"ImageRequest":{"uuid":"a1"}}

Design Rules:
    - parse_message is strict and raises ProtocolError
    - decode_message never raises; failures become Unrecognized
    - Output is compact JSON, one document per frame
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from ornithology_pi.errors import ProtocolError
from ornithology_pi.models.message import (
    MESSAGE_TYPES,
    Message,
    Unrecognized,
    WireMessage,
)


logger = logging.getLogger(__name__)


# Written after LastResponse and ImageResponse: the JSON encoding of "\n"
RECORD_TERMINATOR = json.dumps("\n").encode("utf-8")


def encode_message(message: WireMessage) -> bytes:
    """
    Serialize a wire message to one frame.

    Raises:
        TypeError: If message is not a wire variant (e.g. Unrecognized)
    """
    tag = type(message).__name__
    if MESSAGE_TYPES.get(tag) is not type(message):
        raise TypeError(f"Not a wire message: {message!r}")

    document: Any
    if type(message).model_fields:
        document = {tag: message.model_dump(mode="json")}
    else:
        document = tag

    return json.dumps(document, separators=(",", ":")).encode("utf-8")


def parse_message(raw: bytes) -> WireMessage:
    """
    Parse one frame into a wire message.

    Args:
        raw: Frame bytes as read from the stream

    Returns:
        The decoded message

    Raises:
        ProtocolError: If the frame is not a known, well-formed message
    """
    try:
        document = json.loads(raw)
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise ProtocolError(f"Frame is not a JSON document: {e}") from e
    except RecursionError as e:
        raise ProtocolError("Frame nests too deeply") from e

    if isinstance(document, str):
        tag, body = document, None
    elif isinstance(document, dict) and len(document) == 1:
        (tag, body), = document.items()
    else:
        raise ProtocolError("Frame is not a tagged message")

    model = MESSAGE_TYPES.get(tag)
    if model is None:
        raise ProtocolError(f"Unknown message tag: {tag!r}")

    if not model.model_fields:
        if body is not None:
            raise ProtocolError(f"{tag} takes no payload")
        return model()

    if not isinstance(body, dict):
        raise ProtocolError(f"{tag} payload must be an object")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise ProtocolError(f"Invalid {tag} payload: {e}") from e


def decode_message(raw: bytes) -> Message:
    """
    Decode one frame, mapping any failure to Unrecognized.

    Args:
        raw: Frame bytes as read from the stream

    Returns:
        A wire message, or Unrecognized carrying the raw bytes
    """
    try:
        return parse_message(raw)
    except ProtocolError as e:
        logger.debug(f"Frame of {len(raw)} bytes not recognized: {e}")
        return Unrecognized(raw=bytes(raw), reason=str(e))
