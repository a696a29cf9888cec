"""
Incremental Decoder for Streamed Assistant Replies

The chat endpoint streams one JSON document, {"output": "..."}, in
arbitrary pieces. At any point the accumulated text either parses as the
complete document or it does not yet.

DESIGN DECISION: After every chunk we re-parse the WHOLE buffer instead
of parsing chunks on their own. Chunk boundaries can fall anywhere, even
inside a multi-byte character, so only the full buffer is meaningful.
A failed parse just means "not enough data yet" and is never an error.

Each successful parse carries the full reply so far. Emissions replace
the previous value, they are never appended to it.
"""

import codecs
import json
from typing import Optional, Union

from brisk_insights.chat.errors import DecodeError


class DecodeBuffer:
    """
    Raw text of the in-flight response.

    Append-only until reset. A new request starts with an empty buffer.
    """

    def __init__(self):
        self._parts: list[str] = []
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def append(self, text: str) -> None:
        if text:
            self._parts.append(text)
            self._size += len(text)

    @property
    def text(self) -> str:
        if len(self._parts) > 1:
            self._parts = ["".join(self._parts)]
        return self._parts[0] if self._parts else ""

    def reset(self) -> None:
        self._parts = []
        self._size = 0


class IncrementalDecoder:
    """
    Turns a sequence of response chunks into successive reply snapshots.

    Usage:
        decoder = IncrementalDecoder()
        for chunk in chunks:
            text = decoder.feed(chunk)
            if text is not None:
                render(text)
        final = decoder.finish()
    """

    def __init__(self, output_field: str = "output"):
        self._output_field = output_field
        self._buffer = DecodeBuffer()
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._latest: Optional[str] = None
        self._emissions = 0
        self._chunks = 0
        self._received_bytes = 0

    @property
    def latest(self) -> Optional[str]:
        """Last successfully decoded reply, or None if nothing parsed yet."""
        return self._latest

    @property
    def emission_count(self) -> int:
        return self._emissions

    @property
    def chunk_count(self) -> int:
        return self._chunks

    @property
    def buffer(self) -> DecodeBuffer:
        return self._buffer

    def reset(self) -> None:
        """Forget everything. Called when a new request begins."""
        self._buffer.reset()
        self._utf8.reset()
        self._latest = None
        self._emissions = 0
        self._chunks = 0
        self._received_bytes = 0

    def feed(self, chunk: Union[bytes, str]) -> Optional[str]:
        """
        Consume one chunk.

        Returns:
            The full reply decoded from the buffer so far, or None if the
            buffer does not parse yet.
        """
        self._chunks += 1
        if isinstance(chunk, bytes):
            self._received_bytes += len(chunk)
            text = self._utf8.decode(chunk)
        else:
            self._received_bytes += len(chunk.encode("utf-8"))
            text = chunk

        if not text:
            return None

        self._buffer.append(text)
        return self._try_parse()

    def finish(self) -> str:
        """
        Close the stream and return the final reply.

        Raises:
            DecodeError: If no chunk ever produced a parseable payload
        """
        tail = self._utf8.decode(b"", final=True)
        if tail:
            self._buffer.append(tail)
            self._try_parse()

        if self._latest is None:
            raise DecodeError(received_bytes=self._received_bytes)
        return self._latest

    def _try_parse(self) -> Optional[str]:
        try:
            payload = json.loads(self._buffer.text)
        except json.JSONDecodeError:
            return None

        if not isinstance(payload, dict):
            return None
        value = payload.get(self._output_field)
        if not isinstance(value, str):
            return None

        self._latest = value
        self._emissions += 1
        return value
