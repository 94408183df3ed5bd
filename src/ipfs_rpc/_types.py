"""
Core types for the IPFS RPC client.

This module defines the fundamental types and protocol constants used
throughout the library.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Literal

# How a response body is consumed
ResponseKind = Literal[
    "json",
    "empty",
    "string",
    "json_stream",
    "bytes_stream",
    "line_stream",
]

# Consumption modes of a streaming response
StreamMode = Literal["json", "bytes", "lines"]

# Query parameters as ordered pairs - IPFS repeats the `arg` key
QueryParams = list[tuple[str, str]]

# Type for headers - can be static strings or callables
HeadersLike = dict[str, str | Callable[[], str]]


# Protocol constants
API_VERSION_PATH = "/api/v0"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5001
DEFAULT_TIMEOUT = 30.0

ARG_QUERY_PARAM = "arg"

TRAILER_HEADER = "Trailer"

# Canonical marker for the in-band streaming error convention. Kubo announces
# it with `Trailer: X-Stream-Error` and writes `X-Stream-Error: <message>` in
# place of a data line when a stream fails midway.
X_STREAM_ERROR_KEY = "X-Stream-Error"
X_STREAM_ERROR = X_STREAM_ERROR_KEY.encode("ascii")

# Read size used when pulling bytes from a response body
READ_CHUNK_SIZE = 8192


@dataclass(frozen=True, slots=True)
class ApiRequest:
    """
    A fully built RPC request, independent of any HTTP library.

    Attributes:
        path: Endpoint path relative to the API base (e.g. "pin/ls")
        params: Query parameters as ordered pairs
        files: Optional multipart files, in the form httpx accepts
    """

    path: str
    params: QueryParams = field(default_factory=list)
    files: Any = None

    def with_params(self, extra: QueryParams) -> ApiRequest:
        """Return a copy with extra query parameters prepended."""
        return ApiRequest(path=self.path, params=[*extra, *self.params], files=self.files)


@dataclass(frozen=True, slots=True)
class RawResponse:
    """
    A response whose body has not been read yet.

    This is the boundary between a transport backend and the decode core:
    the core only ever sees a status, headers and an iterator of byte chunks.

    Attributes:
        status: HTTP status code
        headers: Response headers (case-insensitive mapping preferred)
        chunks: Iterator over body chunks; not polled until consumed
        close: Releases the underlying connection
        url: The requested URL, for error messages
    """

    status: int
    headers: Mapping[str, str]
    chunks: Iterator[bytes]
    close: Callable[[], None]
    url: str | None = None


@dataclass(frozen=True, slots=True)
class AsyncRawResponse:
    """Asynchronous twin of RawResponse."""

    status: int
    headers: Mapping[str, str]
    chunks: AsyncIterator[bytes]
    close: Callable[[], Awaitable[None]]
    url: str | None = None


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """
    Options valid on any IPFS API request.

    Merged into every request by BackendWithGlobalOptions.

    Attributes:
        offline: Run the command offline
        timeout: Server-side timeout for the command
    """

    offline: bool | None = None
    timeout: timedelta | float | None = None

    def to_params(self) -> QueryParams:
        """Serialize the set options as query parameters."""
        params: QueryParams = []
        if self.offline is not None:
            params.append(("offline", "true" if self.offline else "false"))
        if self.timeout is not None:
            params.append(("timeout", format_duration(self.timeout)))
        return params


def format_duration(value: timedelta | float) -> str:
    """
    Format a duration the way the IPFS API expects it.

    Durations are sent as whole seconds plus the sub-second remainder in
    nanoseconds, e.g. 1.5 seconds becomes "1s500000000ns".
    """
    if isinstance(value, timedelta):
        total_ns = (
            (value.days * 86_400 + value.seconds) * 1_000_000_000
            + value.microseconds * 1_000
        )
    else:
        total_ns = round(value * 1_000_000_000)
    if total_ns < 0:
        raise ValueError(f"Duration must not be negative: {value!r}")
    secs, nanos = divmod(total_ns, 1_000_000_000)
    return f"{secs}s{nanos}ns"
