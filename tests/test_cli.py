"""Tests for the ipfs-rpc CLI tool."""

from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest
from typer.testing import CliRunner

from ipfs_rpc import cli
from ipfs_rpc.cli import _CliConfig, _make_client, _parse_options, app
from ipfs_rpc.client import IpfsClient

runner = CliRunner()

BASE_URL = "http://127.0.0.1:5001/api/v0"


@pytest.fixture
def node(monkeypatch):
    """Route the CLI's client to a mock node; returns the recorded requests."""
    routes: dict[str, httpx.Response] = {}
    requests: list[httpx.Request] = []
    configs: list[_CliConfig] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path.removeprefix("/api/v0/")
        return routes.get(path, httpx.Response(404, text="404 page not found"))

    def fake_make_client(config: _CliConfig) -> IpfsClient:
        configs.append(config)
        http = httpx.Client(transport=httpx.MockTransport(handler))
        return IpfsClient(BASE_URL, client=http)

    monkeypatch.setattr(cli, "_make_client", fake_make_client)

    return SimpleNamespace(routes=routes, requests=requests, configs=configs)


class TestCommands:
    """Test the named commands."""

    def test_version(self, node):
        node.routes["version"] = httpx.Response(200, json={"Version": "0.30.0", "Commit": ""})
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["Version"] == "0.30.0"

    def test_cat_writes_bytes(self, node):
        node.routes["cat"] = httpx.Response(200, content=b"file contents")
        result = runner.invoke(app, ["cat", "QmA"])
        assert result.exit_code == 0
        assert result.stdout_bytes == b"file contents"
        assert node.requests[-1].url.params["arg"] == "QmA"

    def test_add(self, node, tmp_path):
        node.routes["add"] = httpx.Response(
            200, content=b'{"Name":"a.txt","Hash":"QmA","Size":"9"}\n'
        )
        path = tmp_path / "a.txt"
        path.write_bytes(b"some text")
        result = runner.invoke(app, ["add", str(path), "--no-pin"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["Hash"] == "QmA"
        assert node.requests[-1].url.params["pin"] == "false"

    def test_ping(self, node):
        node.routes["ping"] = httpx.Response(
            200,
            content=b'{"Success":true,"Time":0,"Text":"PING 12D3"}\n'
            b'{"Success":true,"Time":2500000,"Text":""}\n',
        )
        result = runner.invoke(app, ["ping", "12D3", "-n", "1"])
        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["PING 12D3", "Pong in 2.50ms"]
        assert node.requests[-1].url.params["count"] == "1"

    def test_pubsub_sub(self, node):
        node.routes["pubsub/sub"] = httpx.Response(
            200, content=b'{"from":"12D3","data":"uaGk","seqno":"uAQ","topicIDs":["udGVzdA"]}\n'
        )
        result = runner.invoke(app, ["pubsub-sub", "test"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"from": "12D3", "seqno": "uAQ", "data": "hi"}

    def test_log_tail(self, node):
        node.routes["log/tail"] = httpx.Response(200, content=b"line one\nline two\n")
        result = runner.invoke(app, ["log-tail"])
        assert result.stdout.splitlines() == ["line one", "line two"]

    def test_shutdown(self, node):
        node.routes["shutdown"] = httpx.Response(200)
        result = runner.invoke(app, ["shutdown"])
        assert result.exit_code == 0
        assert result.stdout == ""


class TestCall:
    """Test the generic call command."""

    def test_json_endpoint(self, node):
        node.routes["pin/ls"] = httpx.Response(200, json={"Keys": {"QmA": {"Type": "recursive"}}})
        result = runner.invoke(app, ["call", "pin/ls", "--opt", "type=recursive"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"Keys": {"QmA": {"Type": "recursive"}}}
        assert node.requests[-1].url.params["type"] == "recursive"

    def test_streaming_endpoint(self, node):
        node.routes["refs/local"] = httpx.Response(200, content=b'{"Ref":"QmA"}\n{"Ref":"QmB"}\n')
        result = runner.invoke(app, ["call", "refs_local"])
        refs = [json.loads(line)["Ref"] for line in result.stdout.splitlines()]
        assert refs == ["QmA", "QmB"]

    def test_model_output_keeps_only_sent_fields(self, node):
        node.routes["refs/local"] = httpx.Response(
            200, content=b'{"Ref":"QmA"}\n{"Ref":"QmB","Err":"not found"}\n'
        )
        result = runner.invoke(app, ["call", "refs/local"])
        assert result.exit_code == 0, result.output
        assert [json.loads(line) for line in result.stdout.splitlines()] == [
            {"Ref": "QmA"},
            {"Ref": "QmB", "Err": "not found"},
        ]

    def test_positional_args(self, node):
        node.routes["files/cp"] = httpx.Response(200)
        result = runner.invoke(app, ["call", "files/cp", "/a", "/b"])
        assert result.exit_code == 0
        assert node.requests[-1].url.params.get_list("arg") == ["/a", "/b"]

    def test_wrong_arg_count(self, node):
        result = runner.invoke(app, ["call", "files/cp", "/a"])
        assert result.exit_code == 1
        assert "positional arguments" in result.output

    def test_unknown_endpoint(self, node):
        result = runner.invoke(app, ["call", "no/such/thing"])
        assert result.exit_code == 1
        assert "Unknown endpoint" in result.output

    def test_stream_error_exits_nonzero(self, node):
        node.routes["refs/local"] = httpx.Response(
            200,
            headers={"Trailer": "X-Stream-Error"},
            content=b'{"Ref":"QmA"}\nX-Stream-Error: interrupted\n',
        )
        result = runner.invoke(app, ["call", "refs/local"])
        assert result.exit_code == 1
        assert json.loads(result.stdout.splitlines()[0]) == {"Ref": "QmA"}
        assert "interrupted" in result.output

    def test_api_error_exits_nonzero(self, node):
        result = runner.invoke(app, ["call", "version"])
        assert result.exit_code == 1
        assert "404 page not found" in result.output

    def test_bad_option(self, node):
        result = runner.invoke(app, ["call", "version", "--opt", "novalue"])
        assert result.exit_code == 2


class TestGlobalFlags:
    """Test the top-level options."""

    def test_flags_reach_config(self, node):
        node.routes["version"] = httpx.Response(200, json={"Version": "1"})
        result = runner.invoke(
            app,
            ["--api", "/ip4/10.0.0.1/tcp/5001", "--offline", "--timeout", "3", "version"],
        )
        assert result.exit_code == 0
        config = node.configs[-1]
        assert config.api == "/ip4/10.0.0.1/tcp/5001"
        assert config.offline is True
        assert config.timeout == 3.0

    def test_api_from_environment(self, node):
        node.routes["version"] = httpx.Response(200, json={"Version": "1"})
        runner.invoke(app, ["version"], env={"IPFS_API": "http://node:5001"})
        assert node.configs[-1].api == "http://node:5001"


class TestHelpers:
    def test_make_client_with_global_options(self):
        client = _make_client(_CliConfig(api="/ip4/10.0.0.1/tcp/5001", offline=True))
        assert client.base_url == "http://10.0.0.1:5001/api/v0"
        assert client.backend.options.to_params() == [("offline", "true")]
        client.close()

    def test_parse_options_repeats(self):
        assert _parse_options(["peer=a", "peer=b", "peer=c", "x=1"]) == {
            "peer": ["a", "b", "c"],
            "x": "1",
        }
