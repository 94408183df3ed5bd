"""
AsyncIpfsClient - Asynchronous handle to an IPFS node's RPC API.

This mirrors IpfsClient; streaming calls return an AsyncStreamResponse.
"""

from __future__ import annotations

from typing import Any

import httpx

from ipfs_rpc._backend import AsyncBackend, AsyncHttpxBackend, BackendWithGlobalOptions
from ipfs_rpc._endpoints import Endpoint, build_request, get_endpoint
from ipfs_rpc._errors import IpfsError
from ipfs_rpc._response import (
    AsyncStreamResponse,
    process_empty_response,
    process_json_response,
    process_string_response,
)
from ipfs_rpc._types import ApiRequest, GlobalOptions, HeadersLike
from ipfs_rpc._uri import (
    from_host_and_port,
    from_ipfs_config,
    from_multiaddr_str,
    from_str,
)
from ipfs_rpc._util import encode_config_value, file_part, multibase_encode
from ipfs_rpc.models import (
    AddResponse,
    IdResponse,
    KeyListResponse,
    PingResponse,
    PubsubMessage,
    RefsResponse,
    VersionResponse,
)


class AsyncIpfsClient:
    """
    An asynchronous client for the IPFS HTTP RPC API.

    Example:
        >>> async with AsyncIpfsClient() as ipfs:
        ...     version = await ipfs.version()
        ...     async with await ipfs.pubsub_sub("chat") as res:
        ...         async for message in res:
        ...             print(message.payload)
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | httpx.Timeout | None = None,
        headers: HeadersLike | None = None,
        global_options: GlobalOptions | None = None,
        backend: AsyncBackend | None = None,
    ) -> None:
        """
        Create a client.

        No network IO is performed by the constructor.

        Args:
            base_url: API base URL; defaults to the local node's api file,
                then http://localhost:5001/api/v0
            client: Optional httpx.AsyncClient to use (will not be closed)
            timeout: Request timeout
            headers: HTTP headers (static strings, sync or async callables)
            global_options: Options added to every request
            backend: Transport to use instead of the httpx default
        """
        if backend is None:
            backend = AsyncHttpxBackend(
                base_url, client=client, timeout=timeout, headers=headers
            )
        if global_options is not None:
            backend = BackendWithGlobalOptions(backend, global_options)
        self._backend = backend

    @property
    def backend(self) -> AsyncBackend:
        return self._backend

    @property
    def base_url(self) -> str:
        return self._backend.base_url

    def with_credentials(self, username: str, password: str) -> AsyncIpfsClient:
        """Return a client sharing this one's connection pool, with basic authentication."""
        return AsyncIpfsClient(backend=self._backend.with_credentials(username, password))

    async def aclose(self) -> None:
        """Close the handle and release resources."""
        await self._backend.aclose()

    async def __aenter__(self) -> AsyncIpfsClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    # === Factory methods ===

    @classmethod
    def from_str(cls, uri: str, **kwargs: Any) -> AsyncIpfsClient:
        return cls(from_str(uri), **kwargs)

    @classmethod
    def from_host_and_port(
        cls, scheme: str, host: str, port: int, **kwargs: Any
    ) -> AsyncIpfsClient:
        return cls(from_host_and_port(scheme, host, port), **kwargs)

    @classmethod
    def from_multiaddr_str(cls, addr: str, **kwargs: Any) -> AsyncIpfsClient:
        return cls(from_multiaddr_str(addr), **kwargs)

    @classmethod
    def from_ipfs_config(cls, **kwargs: Any) -> AsyncIpfsClient | None:
        """Connect to the locally running node, or return None."""
        base_url = from_ipfs_config()
        if base_url is None:
            return None
        return cls(base_url, **kwargs)

    # === Generic requests ===

    async def request(self, request: ApiRequest, model: Any = None) -> Any:
        status, body = await self._backend.request_raw(request)
        return process_json_response(status, body, model)

    async def request_empty(self, request: ApiRequest) -> None:
        status, body = await self._backend.request_raw(request)
        process_empty_response(status, body)

    async def request_string(self, request: ApiRequest) -> str:
        status, body = await self._backend.request_raw(request)
        return process_string_response(status, body)

    async def request_stream_json(
        self, request: ApiRequest, model: Any = None
    ) -> AsyncStreamResponse[Any]:
        raw = await self._backend.send(request)
        return AsyncStreamResponse(raw, mode="json", model=model)

    async def request_stream_bytes(self, request: ApiRequest) -> AsyncStreamResponse[bytes]:
        return AsyncStreamResponse(await self._backend.send(request), mode="bytes")

    async def request_stream_lines(self, request: ApiRequest) -> AsyncStreamResponse[str]:
        return AsyncStreamResponse(await self._backend.send(request), mode="lines")

    async def call(
        self,
        name: str,
        *args: Any,
        files: Any = None,
        model: Any = None,
        **options: Any,
    ) -> Any:
        """
        Call any endpoint by name.

        See IpfsClient.call; streaming endpoints return an
        AsyncStreamResponse.
        """
        endpoint = get_endpoint(name)
        request = build_request(endpoint, *args, files=files, options=options)
        return await self._dispatch(endpoint, request, model)

    async def _dispatch(self, endpoint: Endpoint, request: ApiRequest, model: Any) -> Any:
        target = model if model is not None else endpoint.model
        kind = endpoint.kind
        if kind == "json":
            return await self.request(request, target)
        if kind == "empty":
            return await self.request_empty(request)
        if kind == "string":
            return await self.request_string(request)
        if kind == "json_stream":
            return await self.request_stream_json(request, target)
        if kind == "bytes_stream":
            return await self.request_stream_bytes(request)
        return await self.request_stream_lines(request)

    # === Convenience methods ===

    async def version(self) -> VersionResponse:
        return await self.call("version")

    async def id(self, peer: str | None = None, **options: Any) -> IdResponse:
        args = () if peer is None else (peer,)
        return await self.call("id", *args, **options)

    async def add(
        self, data: Any, *, filename: str = "file", **options: Any
    ) -> AddResponse:
        """Add a file to IPFS and return the entry of the added root."""
        res = await self.call("add", files=file_part("file", data, filename), **options)
        async with res:
            entries = await res.read_json()
        if not entries:
            raise IpfsError("add returned no entries")
        return entries[-1]

    async def cat(self, path: str, **options: Any) -> AsyncStreamResponse[bytes]:
        return await self.call("cat", path, **options)

    async def get(self, path: str, **options: Any) -> AsyncStreamResponse[bytes]:
        return await self.call("get", path, **options)

    async def block_get(self, hash_: str) -> AsyncStreamResponse[bytes]:
        return await self.call("block_get", hash_)

    async def block_put(self, data: Any, **options: Any) -> Any:
        return await self.call("block_put", files=file_part("data", data), **options)

    async def block_stat(self, hash_: str) -> Any:
        return await self.call("block_stat", hash_)

    async def commands(self) -> Any:
        return await self.call("commands")

    async def config_get(self, key: str) -> Any:
        return await self.call("config", key)

    async def config_set(self, key: str, value: Any) -> Any:
        arg, flags = encode_config_value(value)
        return await self.call("config", key, arg, **flags)

    async def dag_get(self, path: str, **options: Any) -> AsyncStreamResponse[bytes]:
        return await self.call("dag_get", path, **options)

    async def dht_findprovs(self, key: str, **options: Any) -> AsyncStreamResponse[Any]:
        return await self.call("dht_findprovs", key, **options)

    async def files_ls(self, path: str | None = None, **options: Any) -> Any:
        args = () if path is None else (path,)
        return await self.call("files_ls", *args, **options)

    async def files_read(self, path: str, **options: Any) -> AsyncStreamResponse[bytes]:
        return await self.call("files_read", path, **options)

    async def files_write(self, path: str, data: Any, **options: Any) -> None:
        await self.call("files_write", path, files=file_part("data", data), **options)

    async def key_list(self) -> KeyListResponse:
        return await self.call("key_list")

    async def log_tail(self) -> AsyncStreamResponse[str]:
        return await self.call("log_tail")

    async def ls(self, path: str, **options: Any) -> AsyncStreamResponse[Any]:
        return await self.call("ls", path, **options)

    async def name_resolve(self, name: str | None = None, **options: Any) -> Any:
        args = () if name is None else (name,)
        return await self.call("name_resolve", *args, **options)

    async def pin_add(self, key: str, **options: Any) -> Any:
        return await self.call("pin_add", key, **options)

    async def pin_ls(self, key: str | None = None, **options: Any) -> Any:
        args = () if key is None else (key,)
        return await self.call("pin_ls", *args, **options)

    async def pin_rm(self, key: str, **options: Any) -> Any:
        return await self.call("pin_rm", key, **options)

    async def ping(self, peer: str, **options: Any) -> AsyncStreamResponse[PingResponse]:
        return await self.call("ping", peer, **options)

    async def pubsub_ls(self) -> Any:
        return await self.call("pubsub_ls")

    async def pubsub_pub(self, topic: str, data: Any) -> None:
        await self.call(
            "pubsub_pub", multibase_encode(topic), files=file_part("data", data)
        )

    async def pubsub_sub(
        self, topic: str, **options: Any
    ) -> AsyncStreamResponse[PubsubMessage]:
        return await self.call("pubsub_sub", multibase_encode(topic), **options)

    async def refs_local(self) -> AsyncStreamResponse[RefsResponse]:
        return await self.call("refs_local")

    async def shutdown(self) -> None:
        await self.call("shutdown")

    async def stats_bw(self, **options: Any) -> Any:
        return await self.call("stats_bw", **options)

    async def swarm_peers(self, **options: Any) -> Any:
        return await self.call("swarm_peers", **options)
