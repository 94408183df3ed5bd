"""
IPFS RPC Python Client

A Python client library for the IPFS (Kubo) HTTP RPC API.

This package provides both synchronous and asynchronous clients. Streaming
endpoints return one-shot responses that decode newline-delimited JSON
lazily, and report errors sent in the middle of a stream.

Example usage:
    >>> from ipfs_rpc import IpfsClient
    >>>
    >>> with IpfsClient("http://127.0.0.1:5001") as ipfs:
    ...     print(ipfs.version().version)
    ...     with ipfs.ping("12D3KooW...", count=3) as res:
    ...         for pong in res:
    ...             print(pong.text)
"""

from importlib.metadata import PackageNotFoundError, version

from ipfs_rpc._backend import (
    AsyncBackend,
    AsyncHttpxBackend,
    Backend,
    BackendWithGlobalOptions,
    HttpxBackend,
)
from ipfs_rpc._endpoints import ENDPOINTS, Endpoint, build_request, get_endpoint
from ipfs_rpc._errors import (
    ApiError,
    InvalidUriError,
    IpfsError,
    MalformedJsonError,
    StreamConsumedError,
    StreamError,
    TextDecodeError,
    TransportError,
    UnknownEndpointError,
    UnrecognizedApiError,
    UnrecognizedTrailerError,
)
from ipfs_rpc._response import AsyncStreamResponse, StreamResponse
from ipfs_rpc._types import (
    ApiRequest,
    AsyncRawResponse,
    GlobalOptions,
    HeadersLike,
    RawResponse,
)
from ipfs_rpc.aclient import AsyncIpfsClient
from ipfs_rpc.client import IpfsClient

__all__ = [
    # Types
    "ApiRequest",
    "RawResponse",
    "AsyncRawResponse",
    "GlobalOptions",
    "HeadersLike",
    "Endpoint",
    "ENDPOINTS",
    # Errors
    "IpfsError",
    "TransportError",
    "ApiError",
    "StreamError",
    "UnrecognizedTrailerError",
    "UnrecognizedApiError",
    "MalformedJsonError",
    "TextDecodeError",
    "StreamConsumedError",
    "InvalidUriError",
    "UnknownEndpointError",
    # Responses
    "StreamResponse",
    "AsyncStreamResponse",
    # Backends
    "Backend",
    "AsyncBackend",
    "HttpxBackend",
    "AsyncHttpxBackend",
    "BackendWithGlobalOptions",
    # Request building
    "build_request",
    "get_endpoint",
    # Clients
    "IpfsClient",
    "AsyncIpfsClient",
]

# Use importlib.metadata for version (works with installed package)
# Fall back to hard-coded version for editable installs
try:
    __version__ = version("ipfs-rpc")
except PackageNotFoundError:
    __version__ = "0.1.0"
