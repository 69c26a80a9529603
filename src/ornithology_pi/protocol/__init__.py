"""
Protocol Module
===============

Request/response protocol spoken over each RFCOMM connection.

Components:
    - encode_message / decode_message: JSON framing of Messages
    - ConnectionHandler: Greeting + read -> dispatch -> write loop
"""

from ornithology_pi.protocol.codec import (
    RECORD_TERMINATOR,
    decode_message,
    encode_message,
    parse_message,
)
from ornithology_pi.protocol.handler import ConnectionHandler


__all__ = [
    "RECORD_TERMINATOR",
    "encode_message",
    "decode_message",
    "parse_message",
    "ConnectionHandler",
]
