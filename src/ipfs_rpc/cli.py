"""Command-line interface for the IPFS HTTP RPC API.

Provides a few common commands plus ``call`` for invoking any endpoint.

Usage::

    ipfs-rpc version
    ipfs-rpc --api /ip4/127.0.0.1/tcp/5001 cat QmHash > out.bin
    ipfs-rpc pubsub-sub chat
    ipfs-rpc call pin/ls --opt type=recursive

"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import BaseModel

from ipfs_rpc._errors import IpfsError, TransportError
from ipfs_rpc._response import StreamResponse
from ipfs_rpc._types import GlobalOptions
from ipfs_rpc._uri import from_multiaddr_str
from ipfs_rpc._util import file_part
from ipfs_rpc.client import IpfsClient

_logger = logging.getLogger("ipfs_rpc.cli")


@dataclass
class _CliConfig:
    """Holds resolved CLI options."""

    api: str | None = None
    timeout: float | None = None
    offline: bool = False
    verbose: bool = False


app = typer.Typer(
    name="ipfs-rpc",
    help="CLI client for the IPFS HTTP RPC API.",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def _main(
    ctx: typer.Context,
    api: Annotated[
        str | None,
        typer.Option("--api", "-a", envvar="IPFS_API", help="API URL or multiaddr"),
    ] = None,
    timeout: Annotated[
        float | None, typer.Option("--timeout", "-t", help="Server-side timeout in seconds")
    ] = None,
    offline: Annotated[bool, typer.Option("--offline", help="Run commands offline")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging on stderr")] = False,
) -> None:
    """Configure the node address and global options."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )
    ctx.obj = _CliConfig(api=api, timeout=timeout, offline=offline, verbose=verbose)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_client(config: _CliConfig) -> IpfsClient:
    """Build the client for the configured node."""
    base_url = from_multiaddr_str(config.api) if config.api else None
    global_options = None
    if config.offline or config.timeout is not None:
        global_options = GlobalOptions(
            offline=True if config.offline else None, timeout=config.timeout
        )
    _logger.debug("Using API %s", base_url or "from local config")
    return IpfsClient(base_url, global_options=global_options)


@contextmanager
def _client(ctx: typer.Context) -> Iterator[IpfsClient]:
    """Open a client and turn API failures into a message and exit code 1."""
    try:
        with _make_client(ctx.obj) as client:
            yield client
    except (IpfsError, TransportError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _jsonable(value: Any) -> Any:
    # Only the fields the node sent, under their wire names.
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_unset=True)
    return value


def _print_json(data: Any) -> None:
    """Print one JSON value per line."""
    typer.echo(json.dumps(_jsonable(data), default=str))


def _write_bytes(chunks: Iterator[bytes]) -> None:
    out = typer.get_binary_stream("stdout")
    for chunk in chunks:
        out.write(chunk)
    out.flush()


def _print_result(result: Any) -> None:
    """Print whatever an endpoint call returned."""
    if result is None:
        return
    if isinstance(result, StreamResponse):
        with result:
            if result.mode == "bytes":
                _write_bytes(result.iter_bytes())
            elif result.mode == "lines":
                for line in result.iter_lines():
                    typer.echo(line)
            else:
                for item in result.iter_json():
                    _print_json(item)
        return
    if isinstance(result, str):
        typer.echo(result, nl=not result.endswith("\n"))
        return
    _print_json(result)


def _parse_options(pairs: list[str]) -> dict[str, Any]:
    """Parse repeated ``key=value`` options; repeated keys become lists."""
    options: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--opt")
        if key in options:
            previous = options[key]
            options[key] = [*previous, value] if isinstance(previous, list) else [previous, value]
        else:
            options[key] = value
    return options


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def version(ctx: typer.Context) -> None:
    """Show the node's version."""
    with _client(ctx) as client:
        _print_json(client.version())


@app.command("id")
def id_(
    ctx: typer.Context,
    peer: Annotated[str | None, typer.Argument(help="Peer ID (defaults to this node)")] = None,
) -> None:
    """Show identity information of a node."""
    with _client(ctx) as client:
        _print_json(client.id(peer))


@app.command()
def add(
    ctx: typer.Context,
    path: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="File to add")
    ],
    pin: Annotated[bool, typer.Option("--pin/--no-pin", help="Pin the added file")] = True,
    cid_version: Annotated[int | None, typer.Option("--cid-version", help="CID version")] = None,
) -> None:
    """Add a file and print its entry."""
    with _client(ctx) as client, path.open("rb") as f:
        _print_json(client.add(f, filename=path.name, pin=pin, cid_version=cid_version))


@app.command()
def cat(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="IPFS path of the file")],
) -> None:
    """Write a file's contents to stdout."""
    with _client(ctx) as client, client.cat(path) as res:
        _write_bytes(res.iter_bytes())


@app.command()
def commands(ctx: typer.Context) -> None:
    """List the commands the node supports."""
    with _client(ctx) as client:
        _print_json(client.commands())


@app.command("log-tail")
def log_tail(ctx: typer.Context) -> None:
    """Follow the node's event log."""
    with _client(ctx) as client, client.log_tail() as res:
        for line in res:
            typer.echo(line)


@app.command()
def ping(
    ctx: typer.Context,
    peer: Annotated[str, typer.Argument(help="Peer ID to ping")],
    count: Annotated[int, typer.Option("--count", "-n", help="Number of pings")] = 10,
) -> None:
    """Ping a peer."""
    with _client(ctx) as client, client.ping(peer, count=count) as res:
        for pong in res:
            typer.echo(pong.text or f"Pong in {pong.time / 1_000_000:.2f}ms")


@app.command("pubsub-sub")
def pubsub_sub(
    ctx: typer.Context,
    topic: Annotated[str, typer.Argument(help="Topic to subscribe to")],
) -> None:
    """Print messages published to a topic."""
    with _client(ctx) as client, client.pubsub_sub(topic) as res:
        for message in res:
            _print_json(
                {
                    "from": message.from_,
                    "seqno": message.seqno,
                    "data": message.payload.decode("utf-8", errors="replace"),
                }
            )


@app.command()
def shutdown(ctx: typer.Context) -> None:
    """Shut the node down."""
    with _client(ctx) as client:
        client.shutdown()


@app.command()
def call(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="Endpoint name or path, e.g. pin/ls")],
    args: Annotated[list[str] | None, typer.Argument(help="Positional arguments")] = None,
    opt: Annotated[
        list[str] | None, typer.Option("--opt", "-o", help="Endpoint option as key=value")
    ] = None,
    upload: Annotated[
        Path | None,
        typer.Option("--file", "-f", exists=True, dir_okay=False, help="File to upload"),
    ] = None,
) -> None:
    """Call any endpoint and print its result."""
    options = _parse_options(opt or [])
    with _client(ctx) as client:
        files = file_part("file", upload.read_bytes(), upload.name) if upload else None
        try:
            result = client.call(endpoint, *(args or []), files=files, **options)
        except TypeError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from None
        _print_result(result)
