"""
Tests for the incremental decoder.

Chunks arrive split at arbitrary points; only the whole buffer is ever
parsed.
"""

import pytest

from brisk_insights.chat.decoder import DecodeBuffer, IncrementalDecoder
from brisk_insights.chat.errors import DecodeError, ServerError


class TestDecodeBuffer:
    """Tests for the append-only buffer."""

    def test_appends_in_order(self):
        buffer = DecodeBuffer()
        buffer.append('{"out')
        buffer.append('put":"x"}')
        assert buffer.text == '{"output":"x"}'
        assert len(buffer) == len('{"output":"x"}')

    def test_reset_empties_buffer(self):
        buffer = DecodeBuffer()
        buffer.append("abc")
        buffer.reset()
        assert buffer.text == ""
        assert len(buffer) == 0


class TestIncrementalDecoder:
    """Tests for chunk-by-chunk decoding."""

    def test_partial_payloads_are_silent(self):
        """Unparseable prefixes yield nothing and raise nothing."""
        decoder = IncrementalDecoder()
        assert decoder.feed(b'{"out') is None
        assert decoder.feed(b'put":"Gas') is None
        assert decoder.latest is None

    def test_emits_once_buffer_parses(self):
        """Chunks that only form valid JSON together decode to the full reply."""
        decoder = IncrementalDecoder()
        decoder.feed(b'{"out')
        decoder.feed(b'put":"Gas')
        assert decoder.feed(b'taste $100"}') == "Gastaste $100"
        assert decoder.finish() == "Gastaste $100"
        assert decoder.emission_count == 1
        assert decoder.chunk_count == 3

    def test_every_successful_parse_emits_full_value(self):
        """Each emission carries the full reply, it is not a delta."""
        decoder = IncrementalDecoder()
        assert decoder.feed('{"output":"Hola"}') == "Hola"
        assert decoder.feed("\n") == "Hola"
        assert decoder.emission_count == 2
        assert decoder.finish() == "Hola"

    def test_text_chunks_are_accepted(self):
        decoder = IncrementalDecoder()
        decoder.feed('{"output":')
        assert decoder.feed('"hola"}') == "hola"

    def test_multibyte_character_split_across_chunks(self):
        """A UTF-8 character cut in half is joined before parsing."""
        payload = '{"output":"¿Cuánto gasté?"}'.encode("utf-8")
        split = payload.index("á".encode("utf-8")) + 1

        decoder = IncrementalDecoder()
        assert decoder.feed(payload[:split]) is None
        assert decoder.feed(payload[split:]) == "¿Cuánto gasté?"

    def test_single_byte_chunks(self):
        payload = '{"output":"Gastaste $100"}'.encode("utf-8")
        decoder = IncrementalDecoder()
        results = [decoder.feed(payload[i:i + 1]) for i in range(len(payload))]

        assert results[-1] == "Gastaste $100"
        assert all(r is None for r in results[:-1])

    def test_replay_is_idempotent(self):
        """The same byte stream always decodes to the same final reply."""
        chunks = [b'{"out', b'put":"Gas', b'taste $100"}']

        finals = []
        for _ in range(2):
            decoder = IncrementalDecoder()
            for chunk in chunks:
                decoder.feed(chunk)
            finals.append(decoder.finish())

        assert finals[0] == finals[1] == "Gastaste $100"

    def test_ignores_payload_without_output_field(self):
        decoder = IncrementalDecoder()
        assert decoder.feed(b'{"reply":"hola"}') is None
        assert decoder.latest is None

    def test_ignores_non_string_output(self):
        decoder = IncrementalDecoder()
        assert decoder.feed(b'{"output": 42}') is None

    def test_custom_output_field(self):
        decoder = IncrementalDecoder(output_field="text")
        assert decoder.feed(b'{"text":"ok"}') == "ok"

    def test_finish_without_emission_raises_decode_error(self):
        """A stream that never parsed is an error, reported like a server error."""
        decoder = IncrementalDecoder()
        decoder.feed(b'{"out')

        with pytest.raises(DecodeError) as exc_info:
            decoder.finish()

        assert isinstance(exc_info.value, ServerError)
        assert exc_info.value.received_bytes == 5

    def test_reset_clears_previous_stream(self):
        decoder = IncrementalDecoder()
        decoder.feed(b'{"output":"viejo"}')
        decoder.reset()

        assert decoder.latest is None
        assert len(decoder.buffer) == 0
        with pytest.raises(DecodeError):
            decoder.finish()
