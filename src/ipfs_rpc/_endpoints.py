"""
The table of API endpoints and the generic request builder.

Every RPC has the same shape: a path, positional arguments sent as repeated
`arg` query parameters, keyword options sent as kebab-case parameters, and a
response that is consumed one of a handful of ways. The table records the
path and response kind of each endpoint; build_request does the rest.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ipfs_rpc._errors import UnknownEndpointError
from ipfs_rpc._types import ARG_QUERY_PARAM, ApiRequest, QueryParams, ResponseKind
from ipfs_rpc._util import encode_options, encode_query_value
from ipfs_rpc.models import (
    AddResponse,
    IdResponse,
    KeyListResponse,
    PingResponse,
    PubsubMessage,
    RefsResponse,
    VersionResponse,
)


@dataclass(frozen=True, slots=True)
class Endpoint:
    """
    One API endpoint.

    Attributes:
        path: Path below /api/v0
        kind: How the response body is consumed
        args: Names of the positional arguments, in order
        optional_args: How many trailing args may be omitted
        model: Default decode target for JSON values
        multipart: Whether the request carries a multipart body
    """

    path: str
    kind: ResponseKind
    args: tuple[str, ...] = ()
    optional_args: int = 0
    model: Any = None
    multipart: bool = False

    @property
    def streaming(self) -> bool:
        return self.kind.endswith("_stream")


def _e(path: str, kind: ResponseKind, *args: str, **kwargs: Any) -> Endpoint:
    return Endpoint(path, kind, args, **kwargs)


ENDPOINTS: dict[str, Endpoint] = {
    "add": _e("add", "json_stream", model=AddResponse, multipart=True),
    "bitswap_ledger": _e("bitswap/ledger", "json", "peer"),
    "bitswap_reprovide": _e("bitswap/reprovide", "empty"),
    "bitswap_stat": _e("bitswap/stat", "json"),
    "bitswap_unwant": _e("bitswap/unwant", "empty", "key"),
    "bitswap_wantlist": _e("bitswap/wantlist", "json"),
    "block_get": _e("block/get", "bytes_stream", "hash"),
    "block_put": _e("block/put", "json", multipart=True),
    "block_rm": _e("block/rm", "json", "hash"),
    "block_stat": _e("block/stat", "json", "hash"),
    "bootstrap_add_default": _e("bootstrap/add/default", "json"),
    "bootstrap_list": _e("bootstrap/list", "json"),
    "bootstrap_rm_all": _e("bootstrap/rm/all", "json"),
    "cat": _e("cat", "bytes_stream", "path"),
    "commands": _e("commands", "json"),
    "config": _e("config", "json", "key", "value", optional_args=1),
    "config_replace": _e("config/replace", "empty", multipart=True),
    "config_show": _e("config/show", "string"),
    "dag_get": _e("dag/get", "bytes_stream", "path"),
    "dag_put": _e("dag/put", "json", multipart=True),
    "dht_findpeer": _e("dht/findpeer", "json_stream", "peer"),
    "dht_findprovs": _e("dht/findprovs", "json_stream", "key"),
    "dht_get": _e("dht/get", "json_stream", "key"),
    "dht_provide": _e("dht/provide", "json_stream", "key"),
    "dht_put": _e("dht/put", "json_stream", "key", "value"),
    "dht_query": _e("dht/query", "json_stream", "peer"),
    "diag_cmds_clear": _e("diag/cmds/clear", "empty"),
    "diag_cmds_set_time": _e("diag/cmds/set-time", "empty", "time"),
    "diag_sys": _e("diag/sys", "string"),
    "dns": _e("dns", "json", "link"),
    "file_ls": _e("file/ls", "json", "path"),
    "files_chcid": _e("files/chcid", "empty", "path"),
    "files_cp": _e("files/cp", "empty", "source", "dest"),
    "files_flush": _e("files/flush", "empty", "path", optional_args=1),
    "files_ls": _e("files/ls", "json", "path", optional_args=1),
    "files_mkdir": _e("files/mkdir", "empty", "path"),
    "files_mv": _e("files/mv", "empty", "source", "dest"),
    "files_read": _e("files/read", "bytes_stream", "path"),
    "files_rm": _e("files/rm", "empty", "path"),
    "files_stat": _e("files/stat", "json", "path"),
    "files_write": _e("files/write", "empty", "path", multipart=True),
    "filestore_dups": _e("filestore/dups", "json_stream"),
    "filestore_ls": _e("filestore/ls", "json_stream", "cid", optional_args=1),
    "filestore_verify": _e("filestore/verify", "json_stream", "cid", optional_args=1),
    "get": _e("get", "bytes_stream", "path"),
    "id": _e("id", "json", "peer", optional_args=1, model=IdResponse),
    "key_gen": _e("key/gen", "json", "name"),
    "key_list": _e("key/list", "json", model=KeyListResponse),
    "key_rename": _e("key/rename", "json", "name", "new"),
    "key_rm": _e("key/rm", "json", "name"),
    "log_level": _e("log/level", "json", "logger", "level"),
    "log_ls": _e("log/ls", "json"),
    "log_tail": _e("log/tail", "line_stream"),
    "ls": _e("ls", "json_stream", "path"),
    "name_publish": _e("name/publish", "json", "path"),
    "name_resolve": _e("name/resolve", "json", "name", optional_args=1),
    "object_data": _e("object/data", "bytes_stream", "key"),
    "object_diff": _e("object/diff", "json", "key0", "key1"),
    "object_get": _e("object/get", "json", "key"),
    "object_links": _e("object/links", "json", "key"),
    "object_new": _e("object/new", "json", "template", optional_args=1),
    "object_patch_add_link": _e(
        "object/patch/add-link", "json", "folder", "name", "key"
    ),
    "object_stat": _e("object/stat", "json", "key"),
    "pin_add": _e("pin/add", "json", "key"),
    "pin_ls": _e("pin/ls", "json", "key", optional_args=1),
    "pin_rm": _e("pin/rm", "json", "key"),
    "ping": _e("ping", "json_stream", "peer", model=PingResponse),
    "pubsub_ls": _e("pubsub/ls", "json"),
    "pubsub_peers": _e("pubsub/peers", "json", "topic", optional_args=1),
    "pubsub_pub": _e("pubsub/pub", "empty", "topic", multipart=True),
    "pubsub_sub": _e("pubsub/sub", "json_stream", "topic", model=PubsubMessage),
    "refs": _e("refs", "json_stream", "path", model=RefsResponse),
    "refs_local": _e("refs/local", "json_stream", model=RefsResponse),
    "repo_gc": _e("repo/gc", "json_stream"),
    "repo_stat": _e("repo/stat", "json"),
    "repo_verify": _e("repo/verify", "json_stream"),
    "repo_version": _e("repo/version", "json"),
    "resolve": _e("resolve", "json", "path"),
    "shutdown": _e("shutdown", "empty"),
    "stats_bitswap": _e("stats/bitswap", "json"),
    "stats_bw": _e("stats/bw", "json"),
    "stats_repo": _e("stats/repo", "json"),
    "swarm_addrs_local": _e("swarm/addrs/local", "json"),
    "swarm_connect": _e("swarm/connect", "json", "peer"),
    "swarm_disconnect": _e("swarm/disconnect", "json", "peer"),
    "swarm_peers": _e("swarm/peers", "json"),
    "tar_add": _e("tar/add", "json", multipart=True),
    "tar_cat": _e("tar/cat", "bytes_stream", "path"),
    "version": _e("version", "json", model=VersionResponse),
}


def get_endpoint(name: str) -> Endpoint:
    """
    Look up an endpoint by name.

    Both the Python name ("pin_ls") and the API path ("pin/ls") are accepted.

    Raises:
        UnknownEndpointError: No such endpoint
    """
    key = name.strip("/").replace("/", "_").replace("-", "_")
    try:
        return ENDPOINTS[key]
    except KeyError:
        raise UnknownEndpointError(name) from None


def build_request(
    endpoint: Endpoint,
    *args: Any,
    files: Any = None,
    options: Mapping[str, Any] | None = None,
) -> ApiRequest:
    """
    Build the request for one endpoint call.

    Args:
        endpoint: The endpoint to call
        *args: Positional arguments, sent as `arg` parameters
        files: Multipart files for endpoints that upload data
        options: Keyword options, sent as kebab-case parameters

    Raises:
        TypeError: Wrong number of positional arguments, or an upload for an
            endpoint that takes none
    """
    required = len(endpoint.args) - endpoint.optional_args
    if not required <= len(args) <= len(endpoint.args):
        expected = (
            str(len(endpoint.args))
            if endpoint.optional_args == 0
            else f"{required} to {len(endpoint.args)}"
        )
        raise TypeError(
            f"{endpoint.path} takes {expected} positional arguments "
            f"({', '.join(endpoint.args) or 'none'}) but {len(args)} were given"
        )

    if files is not None and not endpoint.multipart:
        raise TypeError(f"{endpoint.path} does not take an upload")

    params: QueryParams = [
        (ARG_QUERY_PARAM, encode_query_value(arg)) for arg in args if arg is not None
    ]
    params.extend(encode_options(options or {}))
    return ApiRequest(path=endpoint.path, params=params, files=files)
