"""
IpfsClient - Synchronous handle to an IPFS node's RPC API.

Every call is a POST to `<base>/api/v0/<path>`. Buffered calls return a
decoded value; streaming calls return a one-shot StreamResponse that reads
the body lazily.
"""

from __future__ import annotations

from typing import Any

import httpx

from ipfs_rpc._backend import Backend, BackendWithGlobalOptions, HttpxBackend
from ipfs_rpc._endpoints import Endpoint, build_request, get_endpoint
from ipfs_rpc._errors import IpfsError
from ipfs_rpc._response import (
    StreamResponse,
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


class IpfsClient:
    """
    A synchronous client for the IPFS HTTP RPC API.

    This is a lightweight handle - no network IO is performed by the
    constructor.

    Example:
        >>> with IpfsClient() as ipfs:
        ...     print(ipfs.version().version)
        ...     with ipfs.pubsub_sub("chat") as res:
        ...         for message in res:
        ...             print(message.payload)
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float | httpx.Timeout | None = None,
        headers: HeadersLike | None = None,
        global_options: GlobalOptions | None = None,
        backend: Backend | None = None,
    ) -> None:
        """
        Create a client.

        Args:
            base_url: API base URL; defaults to the local node's api file,
                then http://localhost:5001/api/v0
            client: Optional httpx.Client to use (will not be closed)
            timeout: Request timeout
            headers: HTTP headers (static strings or callables)
            global_options: Options added to every request
            backend: Transport to use instead of the httpx default
        """
        if backend is None:
            backend = HttpxBackend(
                base_url, client=client, timeout=timeout, headers=headers
            )
        if global_options is not None:
            backend = BackendWithGlobalOptions(backend, global_options)
        self._backend = backend

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def base_url(self) -> str:
        """The API base URL requests are sent to."""
        return self._backend.base_url

    def with_credentials(self, username: str, password: str) -> IpfsClient:
        """
        Return a client that uses HTTP basic authentication on every request.

        This client is left unchanged and still owns the connection pool, so
        close it after the new one is done.
        """
        return IpfsClient(backend=self._backend.with_credentials(username, password))

    def close(self) -> None:
        """Close the handle and release resources."""
        self._backend.close()

    def __enter__(self) -> IpfsClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # === Factory methods ===

    @classmethod
    def from_str(cls, uri: str, **kwargs: Any) -> IpfsClient:
        """Connect to the node at a URL; any path is replaced by /api/v0."""
        return cls(from_str(uri), **kwargs)

    @classmethod
    def from_host_and_port(
        cls, scheme: str, host: str, port: int, **kwargs: Any
    ) -> IpfsClient:
        return cls(from_host_and_port(scheme, host, port), **kwargs)

    @classmethod
    def from_multiaddr_str(cls, addr: str, **kwargs: Any) -> IpfsClient:
        """Connect to the node at a multiaddr (or URL)."""
        return cls(from_multiaddr_str(addr), **kwargs)

    @classmethod
    def from_ipfs_config(cls, **kwargs: Any) -> IpfsClient | None:
        """
        Connect to the locally running node, as advertised by its api file.

        Returns:
            A client, or None if no usable api file exists
        """
        base_url = from_ipfs_config()
        if base_url is None:
            return None
        return cls(base_url, **kwargs)

    # === Generic requests ===

    def request(self, request: ApiRequest, model: Any = None) -> Any:
        """Send a request and decode its JSON body."""
        status, body = self._backend.request_raw(request)
        return process_json_response(status, body, model)

    def request_empty(self, request: ApiRequest) -> None:
        """Send a request whose success body is ignored."""
        status, body = self._backend.request_raw(request)
        process_empty_response(status, body)

    def request_string(self, request: ApiRequest) -> str:
        """Send a request and return its body as text."""
        status, body = self._backend.request_raw(request)
        return process_string_response(status, body)

    def request_stream_json(
        self, request: ApiRequest, model: Any = None
    ) -> StreamResponse[Any]:
        """Send a request and stream its NDJSON body."""
        return StreamResponse(self._backend.send(request), mode="json", model=model)

    def request_stream_bytes(self, request: ApiRequest) -> StreamResponse[bytes]:
        """Send a request and stream its raw body."""
        return StreamResponse(self._backend.send(request), mode="bytes")

    def request_stream_lines(self, request: ApiRequest) -> StreamResponse[str]:
        """Send a request and stream its body line by line."""
        return StreamResponse(self._backend.send(request), mode="lines")

    def call(
        self,
        name: str,
        *args: Any,
        files: Any = None,
        model: Any = None,
        **options: Any,
    ) -> Any:
        """
        Call any endpoint by name.

        Args:
            name: Endpoint name ("pin_ls") or path ("pin/ls")
            *args: Positional arguments
            files: Multipart upload for endpoints that take data
            model: Decode target overriding the endpoint's default
            **options: Endpoint options; snake_case names are sent kebab-case

        Returns:
            A decoded value, text, None, or a StreamResponse depending on
            the endpoint

        Raises:
            UnknownEndpointError: No such endpoint
            TypeError: Wrong number of positional arguments
        """
        endpoint = get_endpoint(name)
        request = build_request(endpoint, *args, files=files, options=options)
        return self._dispatch(endpoint, request, model)

    def _dispatch(self, endpoint: Endpoint, request: ApiRequest, model: Any) -> Any:
        target = model if model is not None else endpoint.model
        kind = endpoint.kind
        if kind == "json":
            return self.request(request, target)
        if kind == "empty":
            return self.request_empty(request)
        if kind == "string":
            return self.request_string(request)
        if kind == "json_stream":
            return self.request_stream_json(request, target)
        if kind == "bytes_stream":
            return self.request_stream_bytes(request)
        return self.request_stream_lines(request)

    # === Convenience methods ===

    def version(self) -> VersionResponse:
        return self.call("version")

    def id(self, peer: str | None = None, **options: Any) -> IdResponse:
        """Show identity information of this node, or of another peer."""
        args = () if peer is None else (peer,)
        return self.call("id", *args, **options)

    def add(self, data: Any, *, filename: str = "file", **options: Any) -> AddResponse:
        """
        Add a file to IPFS.

        Args:
            data: bytes, text, or a readable file object
            filename: Name recorded for the upload
            **options: add options, e.g. pin=False, cid_version=1

        Returns:
            The entry of the added root
        """
        with self.call("add", files=file_part("file", data, filename), **options) as res:
            entries = res.read_json()
        if not entries:
            raise IpfsError("add returned no entries")
        return entries[-1]

    def cat(self, path: str, **options: Any) -> StreamResponse[bytes]:
        """Stream the contents of a file."""
        return self.call("cat", path, **options)

    def get(self, path: str, **options: Any) -> StreamResponse[bytes]:
        """Stream a path as a tar archive."""
        return self.call("get", path, **options)

    def block_get(self, hash_: str) -> StreamResponse[bytes]:
        return self.call("block_get", hash_)

    def block_put(self, data: Any, **options: Any) -> Any:
        return self.call("block_put", files=file_part("data", data), **options)

    def block_stat(self, hash_: str) -> Any:
        return self.call("block_stat", hash_)

    def commands(self) -> Any:
        """List all available commands."""
        return self.call("commands")

    def config_get(self, key: str) -> Any:
        return self.call("config", key)

    def config_set(self, key: str, value: Any) -> Any:
        """
        Set a config value.

        Strings are stored as-is, booleans as booleans, and everything else
        as JSON.
        """
        arg, flags = encode_config_value(value)
        return self.call("config", key, arg, **flags)

    def dag_get(self, path: str, **options: Any) -> StreamResponse[bytes]:
        return self.call("dag_get", path, **options)

    def dht_findprovs(self, key: str, **options: Any) -> StreamResponse[Any]:
        """Stream the routing events of a provider lookup."""
        return self.call("dht_findprovs", key, **options)

    def files_ls(self, path: str | None = None, **options: Any) -> Any:
        args = () if path is None else (path,)
        return self.call("files_ls", *args, **options)

    def files_read(self, path: str, **options: Any) -> StreamResponse[bytes]:
        return self.call("files_read", path, **options)

    def files_write(self, path: str, data: Any, **options: Any) -> None:
        """Write to a file in MFS, e.g. files_write("/a", b"x", create=True)."""
        self.call("files_write", path, files=file_part("data", data), **options)

    def key_list(self) -> KeyListResponse:
        return self.call("key_list")

    def log_tail(self) -> StreamResponse[str]:
        """Stream the event log, one line at a time."""
        return self.call("log_tail")

    def ls(self, path: str, **options: Any) -> StreamResponse[Any]:
        return self.call("ls", path, **options)

    def name_resolve(self, name: str | None = None, **options: Any) -> Any:
        args = () if name is None else (name,)
        return self.call("name_resolve", *args, **options)

    def pin_add(self, key: str, **options: Any) -> Any:
        return self.call("pin_add", key, **options)

    def pin_ls(self, key: str | None = None, **options: Any) -> Any:
        args = () if key is None else (key,)
        return self.call("pin_ls", *args, **options)

    def pin_rm(self, key: str, **options: Any) -> Any:
        return self.call("pin_rm", key, **options)

    def ping(self, peer: str, **options: Any) -> StreamResponse[PingResponse]:
        """Ping a peer, e.g. ping(peer_id, count=3)."""
        return self.call("ping", peer, **options)

    def pubsub_ls(self) -> Any:
        return self.call("pubsub_ls")

    def pubsub_pub(self, topic: str, data: Any) -> None:
        """Publish a message to a topic."""
        self.call("pubsub_pub", multibase_encode(topic), files=file_part("data", data))

    def pubsub_sub(self, topic: str, **options: Any) -> StreamResponse[PubsubMessage]:
        """Subscribe to a topic; the stream runs until closed."""
        return self.call("pubsub_sub", multibase_encode(topic), **options)

    def refs_local(self) -> StreamResponse[RefsResponse]:
        return self.call("refs_local")

    def shutdown(self) -> None:
        """Shut the node down."""
        self.call("shutdown")

    def stats_bw(self, **options: Any) -> Any:
        return self.call("stats_bw", **options)

    def swarm_peers(self, **options: Any) -> Any:
        return self.call("swarm_peers", **options)
