"""
Readers presenting an iterator of body chunks as a byte source.

The transport hands out a response body as chunks of whatever size the
network produced. The readers copy them out in caller-sized pieces, holding
at most one partially consumed chunk between reads.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator

import httpx

from ipfs_rpc._errors import TransportError

# Exceptions from a chunk source that mean the connection failed
_TRANSPORT_ERRORS = (httpx.TransportError, OSError)


class StreamReader:
    """
    Synchronous reader over an iterable of byte chunks.

    States: empty (no chunk held) or holding a chunk plus the offset already
    consumed from it.
    """

    def __init__(self, chunks: Iterable[bytes], *, url: str | None = None) -> None:
        self._chunks: Iterator[bytes] = iter(chunks)
        self._url = url
        self._chunk: bytes | None = None
        self._offset = 0
        self._eof = False

    def _next_chunk(self) -> bytes | None:
        """Pull the next non-empty chunk, or None at end of stream."""
        while not self._eof:
            try:
                chunk = next(self._chunks)
            except StopIteration:
                self._eof = True
                return None
            except _TRANSPORT_ERRORS as e:
                raise TransportError(
                    f"error reading response body: {e}", url=self._url, cause=e
                ) from e
            if chunk:
                return chunk
        return None

    def read(self, size: int) -> bytes:
        """
        Read up to `size` bytes.

        Returns:
            The bytes read; b"" only at end of stream

        Raises:
            TransportError: The chunk source failed
        """
        if size <= 0:
            return b""

        if self._chunk is None:
            chunk = self._next_chunk()
            if chunk is None:
                return b""
            self._chunk = chunk
            self._offset = 0

        start = self._offset
        end = min(start + size, len(self._chunk))
        data = self._chunk[start:end]

        if end >= len(self._chunk):
            self._chunk = None
            self._offset = 0
        else:
            self._offset = end
        return data

    def read_all(self) -> bytes:
        """Read everything up to end of stream."""
        parts: list[bytes] = []
        if self._chunk is not None:
            parts.append(self._chunk[self._offset :])
            self._chunk = None
            self._offset = 0
        while True:
            chunk = self._next_chunk()
            if chunk is None:
                return b"".join(parts)
            parts.append(chunk)


class AsyncStreamReader:
    """Asynchronous reader over an async iterable of byte chunks."""

    def __init__(
        self, chunks: AsyncIterable[bytes], *, url: str | None = None
    ) -> None:
        self._chunks: AsyncIterator[bytes] = chunks.__aiter__()
        self._url = url
        self._chunk: bytes | None = None
        self._offset = 0
        self._eof = False

    async def _next_chunk(self) -> bytes | None:
        while not self._eof:
            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                self._eof = True
                return None
            except _TRANSPORT_ERRORS as e:
                raise TransportError(
                    f"error reading response body: {e}", url=self._url, cause=e
                ) from e
            if chunk:
                return chunk
        return None

    async def read(self, size: int) -> bytes:
        """Read up to `size` bytes; b"" only at end of stream."""
        if size <= 0:
            return b""

        if self._chunk is None:
            chunk = await self._next_chunk()
            if chunk is None:
                return b""
            self._chunk = chunk
            self._offset = 0

        start = self._offset
        end = min(start + size, len(self._chunk))
        data = self._chunk[start:end]

        if end >= len(self._chunk):
            self._chunk = None
            self._offset = 0
        else:
            self._offset = end
        return data

    async def read_all(self) -> bytes:
        """Read everything up to end of stream."""
        parts: list[bytes] = []
        if self._chunk is not None:
            parts.append(self._chunk[self._offset :])
            self._chunk = None
            self._offset = 0
        while True:
            chunk = await self._next_chunk()
            if chunk is None:
                return b"".join(parts)
            parts.append(chunk)
