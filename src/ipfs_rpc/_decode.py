"""
Newline-delimited JSON decoding for streaming API responses.

Streaming endpoints answer with one JSON document per line. When the server
announces `Trailer: X-Stream-Error`, a line that isn't JSON may instead carry
an error in the form `X-Stream-Error: <message>`.

- `split_line` / `LineDecoder` cut complete lines out of a growing buffer
- `JsonLineDecoder` turns each line into a value or a terminal error
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any, Generic, TypeVar

from ipfs_rpc._errors import MalformedJsonError, StreamError
from ipfs_rpc._types import X_STREAM_ERROR
from ipfs_rpc.models import json_decoder

T = TypeVar("T")

_logger = logging.getLogger("ipfs_rpc.decode")


def split_line(buffer: bytearray) -> bytes | None:
    """
    Remove the first complete line from a buffer.

    The line and its `\\n` terminator are removed from the buffer; the
    returned line excludes the terminator. Bytes after the terminator stay in
    the buffer for the next call.

    Args:
        buffer: Bytes received so far and not yet split

    Returns:
        The first line, or None if the buffer holds no complete line yet
    """
    pos = buffer.find(b"\n")
    if pos < 0:
        return None
    line = bytes(buffer[:pos])
    del buffer[: pos + 1]
    return line


class LineDecoder:
    """
    Incremental line splitter.

    Accumulates chunks and hands out complete lines one at a time.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def feed(self, chunk: bytes) -> None:
        """Append a chunk to the buffer."""
        self._buffer += chunk

    def decode(self) -> bytes | None:
        """Return the next complete line, or None if more data is needed."""
        return split_line(self._buffer)

    def lines(self) -> Iterator[bytes]:
        """Drain every complete line currently in the buffer."""
        while True:
            line = self.decode()
            if line is None:
                return
            yield line

    @property
    def pending(self) -> bytes:
        """Bytes received after the last complete line."""
        return bytes(self._buffer)


class JsonLineDecoder(Generic[T]):
    """
    A decoder for a response where each line is a full JSON document.

    Args:
        parse_stream_error: Set when the response announced the
            X-Stream-Error trailer; undecodable lines are then checked for
            an in-band error before being reported as malformed
        model: Optional decode target (pydantic model, TypeAdapter or
            callable applied to the parsed JSON value)
    """

    def __init__(self, parse_stream_error: bool = False, model: Any = None) -> None:
        self._parse_stream_error = parse_stream_error
        self._decode = json_decoder(model)
        self._lines = LineDecoder()

    @property
    def parse_stream_error(self) -> bool:
        return self._parse_stream_error

    @property
    def pending(self) -> bytes:
        """Bytes of an incomplete trailing line."""
        return self._lines.pending

    def decode_item(self, line: bytes) -> T:
        """
        Decode one line.

        Raises:
            StreamError: The line is an in-band stream error
            MalformedJsonError: The line couldn't be decoded
        """
        try:
            return self._decode(line)
        except ValueError as e:
            if self._parse_stream_error:
                colon = line.find(b":")
                if colon >= 0 and line[:colon] == X_STREAM_ERROR:
                    message = line[colon + 2 :].decode("utf-8", errors="replace")
                    _logger.debug("Stream error trailer received: %s", message)
                    raise StreamError(message) from None
            raise MalformedJsonError(e, line) from e

    def decode_chunk(self, chunk: bytes) -> Iterator[T]:
        """
        Feed a chunk and yield a value for every line it completes.

        Values are yielded in order; an error is raised when its line is
        reached, after every value before it.
        """
        self._lines.feed(chunk)
        for line in self._lines.lines():
            if _logger.isEnabledFor(logging.DEBUG):
                _logger.debug("Found new line delimiter in buffer (%d bytes)", len(line))
            yield self.decode_item(line)
