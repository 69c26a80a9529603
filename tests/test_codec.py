"""
Message Codec Tests
===================
"""

import json

import pytest

from ornithology_pi.errors import ProtocolError
from ornithology_pi.models import (
    CountRequest,
    CountResponse,
    ImageRequest,
    ImageResponse,
    LastRequest,
    LastResponse,
    Ping,
    Pong,
    Sighting,
    Unrecognized,
)
from ornithology_pi.protocol import (
    RECORD_TERMINATOR,
    decode_message,
    encode_message,
    parse_message,
)


class TestWireFormat:
    """Messages use the externally tagged JSON form."""

    def test_unit_variants_are_bare_strings(self):
        assert encode_message(Ping()) == b'"Ping"'
        assert encode_message(Pong()) == b'"Pong"'
        assert encode_message(CountRequest()) == b'"CountRequest"'
        assert encode_message(LastRequest()) == b'"LastRequest"'

    def test_variants_with_fields_are_single_key_objects(self):
        assert encode_message(CountResponse(count=3)) == b'{"CountResponse":{"count":3}}'
        assert encode_message(ImageRequest(uuid="a1")) == b'{"ImageRequest":{"uuid":"a1"}}'

    def test_last_response_carries_sighting(self):
        raw = encode_message(LastResponse(last=Sighting(uuid="a", species="finch")))
        assert json.loads(raw) == {
            "LastResponse": {"last": {"uuid": "a", "species": "finch"}}
        }

    def test_empty_last_response_is_null(self):
        assert encode_message(LastResponse()) == b'{"LastResponse":{"last":null}}'

    def test_record_terminator_is_json_newline(self):
        assert RECORD_TERMINATOR == b'"\\n"'
        assert json.loads(RECORD_TERMINATOR) == "\n"

    def test_unrecognized_cannot_be_encoded(self):
        with pytest.raises(TypeError):
            encode_message(Unrecognized(raw=b"hello"))


@pytest.mark.parametrize(
    "message",
    [
        Ping(),
        Pong(),
        CountRequest(),
        CountResponse(count=42),
        LastRequest(),
        LastResponse(last=Sighting(uuid="0b6c", species="Eurasian Blue Tit")),
        LastResponse(),
        ImageRequest(uuid="0b6c"),
        ImageResponse(base64="data:image/jpeg;base64,/9j/4AAQ"),
        ImageResponse(),
    ],
)
def test_decode_inverts_encode(message):
    assert decode_message(encode_message(message)) == message


class TestDecodeFallback:
    """Anything that is not a message decodes to Unrecognized."""

    @pytest.mark.parametrize(
        "raw",
        [
            b"hello",
            b"\xff\xfe\x00",
            b"",
            b'"Hello"',
            b"[1, 2]",
            b'{"CountResponse":{"count":-1}}',
            b'{"ImageRequest":{}}',
            b'{"ImageRequest":"a"}',
            b'{"Ping":{"extra":1}}',
            b'{"Ping":null,"Pong":null}',
        ],
    )
    def test_invalid_frames_are_unrecognized(self, raw):
        message = decode_message(raw)
        assert isinstance(message, Unrecognized)
        assert message.raw == raw
        assert message.reason

    def test_parse_message_raises_protocol_error(self):
        with pytest.raises(ProtocolError):
            parse_message(b"not json")

    def test_unit_variant_with_null_payload(self):
        assert decode_message(b'{"Ping":null}') == Ping()

    def test_extra_sighting_fields_are_ignored(self):
        raw = b'{"LastResponse":{"last":{"uuid":"a","species":"robin","seen":1}}}'
        assert decode_message(raw) == LastResponse(last=Sighting(uuid="a", species="robin"))

    def test_deeply_nested_frame_is_unrecognized(self):
        raw = b"[" * 5000
        message = decode_message(raw)
        assert isinstance(message, Unrecognized)
        assert message.raw == raw
