"""
Building the API base URL from the ways an IPFS node address is written.

The node address may come as a URL, a host and port, a multiaddr such as
`/ip4/127.0.0.1/tcp/5001`, or the `api` file a running node writes into its
repository. Every form resolves to `<scheme>://<host>:<port>/api/v0`.
"""

from __future__ import annotations

import ipaddress
import logging
import os
from pathlib import Path
from urllib.parse import urlparse, urlunparse

from ipfs_rpc._errors import InvalidUriError
from ipfs_rpc._types import API_VERSION_PATH, DEFAULT_HOST, DEFAULT_PORT

_logger = logging.getLogger("ipfs_rpc.uri")

_SCHEMES = ("http", "https")


def from_str(uri: str) -> str:
    """
    Build the base URL from a URL string.

    Any path or query in the URL is replaced by the API path.

    Raises:
        InvalidUriError: The string is not an http(s) URL with a host
    """
    parsed = urlparse(uri.strip())
    if parsed.scheme not in _SCHEMES or not parsed.netloc:
        raise InvalidUriError(f"Invalid API URL: {uri!r}", uri=uri)
    return urlunparse((parsed.scheme, parsed.netloc, API_VERSION_PATH, "", "", ""))


def from_host_and_port(scheme: str, host: str, port: int) -> str:
    """Build the base URL from a scheme, host name (or IP) and port."""
    if scheme not in _SCHEMES:
        raise InvalidUriError(f"Unsupported scheme: {scheme!r}")
    if not 0 < port < 65536:
        raise InvalidUriError(f"Invalid port: {port}")
    try:
        addr = ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        addr = None
    if addr is not None and addr.version == 6:
        host = f"[{addr.compressed}]"
    return f"{scheme}://{host}:{port}{API_VERSION_PATH}"


def from_multiaddr(multiaddr: str) -> str:
    """
    Build the base URL from a textual multiaddr.

    Supports /ip4, /ip6, /dns, /dns4 and /dns6 hosts with a /tcp port and an
    optional /http or /https suffix (http is assumed).

    Raises:
        InvalidUriError: The multiaddr has no usable host or TCP port
    """
    if not multiaddr.strip().startswith("/"):
        raise InvalidUriError(f"Invalid multiaddr: {multiaddr!r}", uri=multiaddr)
    parts = [p for p in multiaddr.strip().split("/") if p]

    scheme = "http"
    host: str | None = None
    port: int | None = None

    i = 0
    while i < len(parts):
        proto = parts[i]
        if proto in _SCHEMES:
            scheme = proto
            i += 1
            continue
        if i + 1 >= len(parts):
            raise InvalidUriError(f"Invalid multiaddr: {multiaddr!r}", uri=multiaddr)
        value = parts[i + 1]
        if proto in ("ip4", "ip6", "dns", "dns4", "dns6"):
            if host is not None:
                raise InvalidUriError(f"Invalid multiaddr: {multiaddr!r}", uri=multiaddr)
            if proto in ("ip4", "ip6"):
                try:
                    ipaddress.ip_address(value)
                except ValueError as e:
                    raise InvalidUriError(
                        f"Invalid address in multiaddr: {value!r}", uri=multiaddr
                    ) from e
            host = value
        elif proto == "tcp":
            try:
                port = int(value)
            except ValueError as e:
                raise InvalidUriError(
                    f"Invalid port in multiaddr: {value!r}", uri=multiaddr
                ) from e
        else:
            raise InvalidUriError(
                f"Unsupported multiaddr protocol: {proto!r}", uri=multiaddr
            )
        i += 2

    if host is None or port is None:
        raise InvalidUriError(f"Invalid multiaddr: {multiaddr!r}", uri=multiaddr)
    return from_host_and_port(scheme, host, port)


def from_multiaddr_str(value: str) -> str:
    """Build the base URL from either a URL or a multiaddr."""
    if value.strip().startswith("/"):
        return from_multiaddr(value)
    return from_str(value)


def ipfs_api_file() -> Path:
    """The `api` file of the local IPFS repository ($IPFS_PATH or ~/.ipfs)."""
    repo = os.environ.get("IPFS_PATH")
    if repo:
        return Path(repo).expanduser() / "api"
    return Path.home() / ".ipfs" / "api"


def from_ipfs_config() -> str | None:
    """
    Build the base URL of the locally running node.

    Returns:
        The base URL, or None if the api file is missing or unreadable
    """
    path = ipfs_api_file()
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        return None
    try:
        return from_multiaddr_str(content)
    except InvalidUriError:
        _logger.debug("Ignoring unusable api file %s", path)
        return None


def default_base_url() -> str:
    """The local node from the api file, else localhost:5001."""
    return from_ipfs_config() or from_host_and_port("http", DEFAULT_HOST, DEFAULT_PORT)
