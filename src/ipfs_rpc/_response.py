"""
Response dispatch: turning raw HTTP responses into values or errors.

A response is routed exactly once, on its status code:

- success: the body is decoded lazily (NDJSON values, raw chunks or lines)
- failure: the whole body is buffered and classified into one error

StreamResponse and AsyncStreamResponse wrap a raw response as one-shot
objects that release the connection when consumption ends.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable, Iterator, Mapping
from typing import Any, Generic, TypeVar

from ipfs_rpc._decode import JsonLineDecoder, LineDecoder
from ipfs_rpc._errors import (
    MalformedJsonError,
    StreamConsumedError,
    TextDecodeError,
    UnrecognizedTrailerError,
    error_from_body,
)
from ipfs_rpc._reader import AsyncStreamReader, StreamReader
from ipfs_rpc._types import (
    READ_CHUNK_SIZE,
    TRAILER_HEADER,
    X_STREAM_ERROR_KEY,
    AsyncRawResponse,
    RawResponse,
    StreamMode,
)
from ipfs_rpc.models import json_decoder

T = TypeVar("T")

_logger = logging.getLogger("ipfs_rpc.response")


def is_success(status: int) -> bool:
    return 200 <= status < 300


def stream_error_flag(headers: Mapping[str, str]) -> bool:
    """
    Decide whether a streaming body may carry X-Stream-Error lines.

    Args:
        headers: Response headers

    Returns:
        False without a Trailer header, True for `Trailer: X-Stream-Error`

    Raises:
        UnrecognizedTrailerError: The Trailer header has any other value
    """
    # Headers may have different casing, so normalize to lowercase for lookup
    lower_headers = {k.lower(): v for k, v in headers.items()}
    trailer = lower_headers.get(TRAILER_HEADER.lower())
    if trailer is None:
        return False
    if trailer.strip() == X_STREAM_ERROR_KEY:
        return True
    raise UnrecognizedTrailerError(trailer)


def _log_dispatch(status: int, url: str | None) -> None:
    if _logger.isEnabledFor(logging.DEBUG):
        _logger.debug("Dispatching response status=%d url=%s", status, url)


def _log_leftover(pending: bytes) -> None:
    if pending:
        _logger.debug(
            "Discarding %d trailing bytes without a line delimiter", len(pending)
        )


# === Synchronous dispatch ===


def iter_json_response(
    status: int,
    headers: Mapping[str, str],
    chunks: Iterable[bytes],
    model: Any = None,
    *,
    url: str | None = None,
) -> Iterator[Any]:
    """
    Decode a streaming NDJSON response.

    Nothing is read until the first value is requested. An unrecognized
    Trailer header fails before the body is touched.

    Args:
        status: HTTP status code
        headers: Response headers
        chunks: Body chunks
        model: Optional decode target for each value
        url: Requested URL, for error messages

    Yields:
        Decoded values in body order

    Raises:
        IpfsError: Exactly one terminal error, after which nothing is yielded
        TransportError: The body could not be read
    """
    _log_dispatch(status, url)
    if not is_success(status):
        body = StreamReader(chunks, url=url).read_all()
        raise error_from_body(body, status)

    decoder: JsonLineDecoder[Any] = JsonLineDecoder(stream_error_flag(headers), model)
    reader = StreamReader(chunks, url=url)
    while True:
        data = reader.read(READ_CHUNK_SIZE)
        if not data:
            break
        yield from decoder.decode_chunk(data)
    _log_leftover(decoder.pending)


def iter_bytes_response(
    status: int,
    headers: Mapping[str, str],  # noqa: ARG001 - same signature as the other dispatchers
    chunks: Iterable[bytes],
    *,
    url: str | None = None,
) -> Iterator[bytes]:
    """Yield the raw body chunks of a successful response."""
    _log_dispatch(status, url)
    reader = StreamReader(chunks, url=url)
    if not is_success(status):
        raise error_from_body(reader.read_all(), status)

    while True:
        data = reader.read(READ_CHUNK_SIZE)
        if not data:
            return
        yield data


def iter_lines_response(
    status: int,
    headers: Mapping[str, str],  # noqa: ARG001
    chunks: Iterable[bytes],
    *,
    url: str | None = None,
) -> Iterator[str]:
    """Yield the body of a successful response line by line, as text."""
    _log_dispatch(status, url)
    reader = StreamReader(chunks, url=url)
    if not is_success(status):
        raise error_from_body(reader.read_all(), status)

    lines = LineDecoder()
    while True:
        data = reader.read(READ_CHUNK_SIZE)
        if not data:
            break
        lines.feed(data)
        for line in lines.lines():
            yield line.decode("utf-8", errors="replace")
    _log_leftover(lines.pending)


# === Asynchronous dispatch ===


async def aiter_json_response(
    status: int,
    headers: Mapping[str, str],
    chunks: AsyncIterator[bytes],
    model: Any = None,
    *,
    url: str | None = None,
) -> AsyncIterator[Any]:
    """Async version of iter_json_response."""
    _log_dispatch(status, url)
    if not is_success(status):
        body = await AsyncStreamReader(chunks, url=url).read_all()
        raise error_from_body(body, status)

    decoder: JsonLineDecoder[Any] = JsonLineDecoder(stream_error_flag(headers), model)
    reader = AsyncStreamReader(chunks, url=url)
    while True:
        data = await reader.read(READ_CHUNK_SIZE)
        if not data:
            break
        for item in decoder.decode_chunk(data):
            yield item
    _log_leftover(decoder.pending)


async def aiter_bytes_response(
    status: int,
    headers: Mapping[str, str],  # noqa: ARG001
    chunks: AsyncIterator[bytes],
    *,
    url: str | None = None,
) -> AsyncIterator[bytes]:
    """Async version of iter_bytes_response."""
    _log_dispatch(status, url)
    reader = AsyncStreamReader(chunks, url=url)
    if not is_success(status):
        raise error_from_body(await reader.read_all(), status)

    while True:
        data = await reader.read(READ_CHUNK_SIZE)
        if not data:
            return
        yield data


async def aiter_lines_response(
    status: int,
    headers: Mapping[str, str],  # noqa: ARG001
    chunks: AsyncIterator[bytes],
    *,
    url: str | None = None,
) -> AsyncIterator[str]:
    """Async version of iter_lines_response."""
    _log_dispatch(status, url)
    reader = AsyncStreamReader(chunks, url=url)
    if not is_success(status):
        raise error_from_body(await reader.read_all(), status)

    lines = LineDecoder()
    while True:
        data = await reader.read(READ_CHUNK_SIZE)
        if not data:
            break
        lines.feed(data)
        for line in lines.lines():
            yield line.decode("utf-8", errors="replace")
    _log_leftover(lines.pending)


# === Buffered (non-streaming) responses ===


def process_json_response(status: int, body: bytes, model: Any = None) -> Any:
    """
    Decode a fully buffered JSON response, or raise the error it carries.

    Raises:
        MalformedJsonError: A success body that isn't valid JSON for `model`
        IpfsError: The classified error of an error-status body
    """
    if not is_success(status):
        raise error_from_body(body, status)
    try:
        return json_decoder(model)(body)
    except ValueError as e:
        raise MalformedJsonError(e, body) from e


def process_empty_response(status: int, body: bytes) -> None:
    """Check a response whose body is ignored on success."""
    if not is_success(status):
        raise error_from_body(body, status)


def process_string_response(status: int, body: bytes) -> str:
    """Decode a fully buffered text response."""
    if not is_success(status):
        raise error_from_body(body, status)
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TextDecodeError(e, status=status) from e


# === Response objects ===


class StreamResponse(Generic[T]):
    """
    Synchronous streaming response.

    This is a one-shot response - you can consume it in exactly one mode.
    Attempting to consume it again raises StreamConsumedError.

    Usage as a context manager is recommended:

        with client.pubsub_sub("topic") as res:
            for message in res:
                process(message)

    Consumption modes (choose ONE):
    - Iteration: `for item in res` uses the endpoint's default mode
    - `iter_json()`: yields decoded NDJSON values
    - `iter_bytes()`: yields raw body chunks
    - `iter_lines()`: yields text lines
    - `read_json()`, `read_bytes()`, `read_text()`: collect everything
    """

    def __init__(
        self,
        raw: RawResponse,
        *,
        mode: StreamMode = "json",
        model: Any = None,
    ) -> None:
        self._raw = raw
        self._mode = mode
        self._model = model
        self._consumed_by: str | None = None
        self._closed = False

    def _ensure_not_consumed(self, method: str) -> None:
        """Raise if already consumed."""
        if self._consumed_by is not None:
            raise StreamConsumedError(
                attempted_method=method,
                consumed_by=self._consumed_by,
            )
        self._consumed_by = method

    @property
    def url(self) -> str | None:
        return self._raw.url

    @property
    def status(self) -> int:
        """HTTP status code of the response."""
        return self._raw.status

    @property
    def headers(self) -> Mapping[str, str]:
        """HTTP response headers."""
        return self._raw.headers

    @property
    def ok(self) -> bool:
        """Whether the response status was successful (200-299)."""
        return is_success(self._raw.status)

    @property
    def mode(self) -> StreamMode:
        return self._mode

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close the response and release the connection."""
        if not self._closed:
            self._closed = True
            self._raw.close()

    def __enter__(self) -> StreamResponse[T]:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _guarded(self, items: Iterator[Any]) -> Iterator[Any]:
        """Close the response once iteration ends, fails, or is abandoned."""
        try:
            yield from items
        finally:
            self.close()

    def __iter__(self) -> Iterator[T]:
        if self._mode == "bytes":
            return self.iter_bytes()  # type: ignore[return-value]
        if self._mode == "lines":
            return self.iter_lines()  # type: ignore[return-value]
        return self.iter_json()

    def iter_json(self, model: Any = None) -> Iterator[T]:
        """
        Iterate over decoded NDJSON values.

        Args:
            model: Decode target overriding the endpoint's default
        """
        self._ensure_not_consumed("iter_json")
        raw = self._raw
        return self._guarded(
            iter_json_response(
                raw.status,
                raw.headers,
                raw.chunks,
                model if model is not None else self._model,
                url=raw.url,
            )
        )

    def iter_bytes(self) -> Iterator[bytes]:
        """Iterate over raw body chunks."""
        self._ensure_not_consumed("iter_bytes")
        raw = self._raw
        return self._guarded(
            iter_bytes_response(raw.status, raw.headers, raw.chunks, url=raw.url)
        )

    def iter_lines(self) -> Iterator[str]:
        """Iterate over body lines decoded as UTF-8."""
        self._ensure_not_consumed("iter_lines")
        raw = self._raw
        return self._guarded(
            iter_lines_response(raw.status, raw.headers, raw.chunks, url=raw.url)
        )

    def read_json(self, model: Any = None) -> list[T]:
        """Collect every decoded value."""
        return list(self.iter_json(model))

    def read_bytes(self) -> bytes:
        """Collect the whole body."""
        return b"".join(self.iter_bytes())

    def read_text(self, encoding: str = "utf-8") -> str:
        """Collect the whole body as text."""
        data = self.read_bytes()
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as e:
            raise TextDecodeError(e, status=self.status) from e


class AsyncStreamResponse(Generic[T]):
    """
    Asynchronous streaming response.

    This is a one-shot response - you can consume it in exactly one mode.

    Usage as an async context manager is recommended:

        async with await client.pubsub_sub("topic") as res:
            async for message in res:
                process(message)
    """

    def __init__(
        self,
        raw: AsyncRawResponse,
        *,
        mode: StreamMode = "json",
        model: Any = None,
    ) -> None:
        self._raw = raw
        self._mode = mode
        self._model = model
        self._consumed_by: str | None = None
        self._closed = False

    def _ensure_not_consumed(self, method: str) -> None:
        """Raise if already consumed."""
        if self._consumed_by is not None:
            raise StreamConsumedError(
                attempted_method=method,
                consumed_by=self._consumed_by,
            )
        self._consumed_by = method

    @property
    def url(self) -> str | None:
        return self._raw.url

    @property
    def status(self) -> int:
        return self._raw.status

    @property
    def headers(self) -> Mapping[str, str]:
        return self._raw.headers

    @property
    def ok(self) -> bool:
        return is_success(self._raw.status)

    @property
    def mode(self) -> StreamMode:
        return self._mode

    @property
    def closed(self) -> bool:
        return self._closed

    async def aclose(self) -> None:
        """Close the response and release the connection."""
        if not self._closed:
            self._closed = True
            await self._raw.close()

    async def __aenter__(self) -> AsyncStreamResponse[T]:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def _guarded(self, items: AsyncIterator[Any]) -> AsyncIterator[Any]:
        try:
            async for item in items:
                yield item
        finally:
            await self.aclose()

    def __aiter__(self) -> AsyncIterator[T]:
        if self._mode == "bytes":
            return self.iter_bytes()  # type: ignore[return-value]
        if self._mode == "lines":
            return self.iter_lines()  # type: ignore[return-value]
        return self.iter_json()

    def iter_json(self, model: Any = None) -> AsyncIterator[T]:
        """Iterate over decoded NDJSON values."""
        self._ensure_not_consumed("iter_json")
        raw = self._raw
        return self._guarded(
            aiter_json_response(
                raw.status,
                raw.headers,
                raw.chunks,
                model if model is not None else self._model,
                url=raw.url,
            )
        )

    def iter_bytes(self) -> AsyncIterator[bytes]:
        """Iterate over raw body chunks."""
        self._ensure_not_consumed("iter_bytes")
        raw = self._raw
        return self._guarded(
            aiter_bytes_response(raw.status, raw.headers, raw.chunks, url=raw.url)
        )

    def iter_lines(self) -> AsyncIterator[str]:
        """Iterate over body lines decoded as UTF-8."""
        self._ensure_not_consumed("iter_lines")
        raw = self._raw
        return self._guarded(
            aiter_lines_response(raw.status, raw.headers, raw.chunks, url=raw.url)
        )

    async def read_json(self, model: Any = None) -> list[T]:
        """Collect every decoded value."""
        return [item async for item in self.iter_json(model)]

    async def read_bytes(self) -> bytes:
        """Collect the whole body."""
        return b"".join([chunk async for chunk in self.iter_bytes()])

    async def read_text(self, encoding: str = "utf-8") -> str:
        """Collect the whole body as text."""
        data = await self.read_bytes()
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as e:
            raise TextDecodeError(e, status=self.status) from e
