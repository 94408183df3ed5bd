"""
Transport backends.

A backend turns an ApiRequest into a RawResponse: status, headers and a
not-yet-read body. The decode core depends only on that shape, so any HTTP
library can stand behind it. The httpx backends are the defaults.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Protocol

import httpx

from ipfs_rpc._errors import TransportError
from ipfs_rpc._reader import AsyncStreamReader, StreamReader
from ipfs_rpc._types import (
    DEFAULT_TIMEOUT,
    ApiRequest,
    AsyncRawResponse,
    GlobalOptions,
    HeadersLike,
    RawResponse,
)
from ipfs_rpc._uri import default_base_url
from ipfs_rpc._util import resolve_headers_async, resolve_headers_sync

_logger = logging.getLogger("ipfs_rpc.backend")


class Backend(Protocol):
    """The capability every synchronous transport provides."""

    @property
    def base_url(self) -> str: ...

    def with_credentials(self, username: str, password: str) -> Any: ...

    def send(self, request: ApiRequest) -> RawResponse: ...

    def request_raw(self, request: ApiRequest) -> tuple[int, bytes]: ...

    def close(self) -> None: ...


class AsyncBackend(Protocol):
    """The capability every asynchronous transport provides."""

    @property
    def base_url(self) -> str: ...

    def with_credentials(self, username: str, password: str) -> Any: ...

    async def send(self, request: ApiRequest) -> AsyncRawResponse: ...

    async def request_raw(self, request: ApiRequest) -> tuple[int, bytes]: ...

    async def aclose(self) -> None: ...


def _join_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class HttpxBackend:
    """
    Synchronous backend on top of httpx.Client.

    Args:
        base_url: API base URL (e.g. http://127.0.0.1:5001/api/v0); defaults
            to the local node's api file, then localhost:5001
        client: Optional httpx.Client to use (will not be closed)
        timeout: Request timeout
        headers: HTTP headers (static strings or callables)
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float | httpx.Timeout | None = None,
        headers: HeadersLike | None = None,
    ) -> None:
        self._base_url = base_url or default_base_url()
        self._timeout = timeout or DEFAULT_TIMEOUT
        self._headers = headers
        self._auth: httpx.BasicAuth | None = None

        # Client management
        self._own_client = client is None
        self._client = client or httpx.Client(timeout=self._timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    def with_credentials(self, username: str, password: str) -> HttpxBackend:
        """
        Return a backend that uses basic authentication on every request.

        This backend is left unchanged. The new one shares its httpx client
        and never closes it.
        """
        backend = copy.copy(self)
        backend._auth = httpx.BasicAuth(username, password)
        backend._own_client = False
        return backend

    def close(self) -> None:
        """Close the client if we created it."""
        if self._own_client:
            self._client.close()

    def send(self, request: ApiRequest) -> RawResponse:
        """
        Issue the request and return as soon as the headers arrive.

        Raises:
            TransportError: The request could not be sent
        """
        url = _join_url(self._base_url, request.path)
        http_request = self._client.build_request(
            "POST",
            url,
            params=request.params,
            headers=resolve_headers_sync(self._headers),
            files=request.files,
            timeout=self._timeout,
        )
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("POST %s params=%s", url, request.params)
        try:
            response = self._client.send(
                http_request, stream=True, auth=self._auth or httpx.USE_CLIENT_DEFAULT
            )
        except httpx.TransportError as e:
            raise TransportError(f"request failed: {e}", url=url, cause=e) from e

        return RawResponse(
            status=response.status_code,
            headers=response.headers,
            chunks=response.iter_bytes(),
            close=response.close,
            url=url,
        )

    def request_raw(self, request: ApiRequest) -> tuple[int, bytes]:
        """Issue the request and buffer the whole body."""
        raw = self.send(request)
        try:
            body = StreamReader(raw.chunks, url=raw.url).read_all()
        finally:
            raw.close()
        return raw.status, body


class AsyncHttpxBackend:
    """Asynchronous backend on top of httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | httpx.Timeout | None = None,
        headers: HeadersLike | None = None,
    ) -> None:
        self._base_url = base_url or default_base_url()
        self._timeout = timeout or DEFAULT_TIMEOUT
        self._headers = headers
        self._auth: httpx.BasicAuth | None = None

        self._own_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    def with_credentials(self, username: str, password: str) -> AsyncHttpxBackend:
        """Return a backend sharing this one's client, with basic authentication."""
        backend = copy.copy(self)
        backend._auth = httpx.BasicAuth(username, password)
        backend._own_client = False
        return backend

    async def aclose(self) -> None:
        """Close the client if we created it."""
        if self._own_client:
            await self._client.aclose()

    async def send(self, request: ApiRequest) -> AsyncRawResponse:
        """Issue the request and return as soon as the headers arrive."""
        url = _join_url(self._base_url, request.path)
        http_request = self._client.build_request(
            "POST",
            url,
            params=request.params,
            headers=await resolve_headers_async(self._headers),
            files=request.files,
            timeout=self._timeout,
        )
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("POST %s params=%s", url, request.params)
        try:
            response = await self._client.send(
                http_request, stream=True, auth=self._auth or httpx.USE_CLIENT_DEFAULT
            )
        except httpx.TransportError as e:
            raise TransportError(f"request failed: {e}", url=url, cause=e) from e

        return AsyncRawResponse(
            status=response.status_code,
            headers=response.headers,
            chunks=response.aiter_bytes(),
            close=response.aclose,
            url=url,
        )

    async def request_raw(self, request: ApiRequest) -> tuple[int, bytes]:
        """Issue the request and buffer the whole body."""
        raw = await self.send(request)
        try:
            body = await AsyncStreamReader(raw.chunks, url=raw.url).read_all()
        finally:
            await raw.close()
        return raw.status, body


class BackendWithGlobalOptions:
    """
    A backend wrapper that adds global options to every request.

    Works for sync and async backends alike: calls are forwarded and their
    results (values or awaitables) returned unchanged.

    While possible, it is not recommended to wrap a backend twice.
    """

    def __init__(self, backend: Any, options: GlobalOptions) -> None:
        self._backend = backend
        self._options = options

    @property
    def options(self) -> GlobalOptions:
        return self._options

    def into_inner(self) -> Any:
        """Return the wrapped backend."""
        return self._backend

    @property
    def base_url(self) -> str:
        return self._backend.base_url

    def _combine(self, request: ApiRequest) -> ApiRequest:
        return request.with_params(self._options.to_params())

    def with_credentials(self, username: str, password: str) -> BackendWithGlobalOptions:
        return BackendWithGlobalOptions(
            self._backend.with_credentials(username, password), self._options
        )

    def send(self, request: ApiRequest) -> Any:
        return self._backend.send(self._combine(request))

    def request_raw(self, request: ApiRequest) -> Any:
        return self._backend.request_raw(self._combine(request))

    def close(self) -> None:
        self._backend.close()

    def aclose(self) -> Any:
        return self._backend.aclose()
