"""Tests for request encoding helpers."""

from datetime import timedelta

import pytest

from ipfs_rpc._types import ApiRequest, GlobalOptions, format_duration
from ipfs_rpc._util import (
    encode_config_value,
    encode_options,
    file_part,
    multibase_decode,
    multibase_encode,
    option_name,
    resolve_headers_sync,
)


class TestOptionEncoding:
    def test_option_name(self):
        assert option_name("cid_version") == "cid-version"
        assert option_name("hash_") == "hash"

    def test_encode_options(self):
        params = encode_options(
            {"recursive": True, "quiet": False, "count": 3, "skip": None}
        )
        assert params == [("recursive", "true"), ("quiet", "false"), ("count", "3")]

    def test_list_values_repeat(self):
        assert encode_options({"peer": ["a", "b"]}) == [("peer", "a"), ("peer", "b")]

    def test_config_values(self):
        assert encode_config_value("x") == ("x", {})
        assert encode_config_value(True) == ("true", {"bool": True})
        assert encode_config_value(["a"]) == ('["a"]', {"json": True})


class TestDuration:
    def test_float_seconds(self):
        assert format_duration(1.5) == "1s500000000ns"

    def test_timedelta(self):
        assert format_duration(timedelta(minutes=2, microseconds=7)) == "120s7000ns"

    def test_zero(self):
        assert format_duration(0) == "0s0ns"

    def test_negative(self):
        with pytest.raises(ValueError):
            format_duration(-1)


class TestGlobalOptions:
    def test_empty(self):
        assert GlobalOptions().to_params() == []

    def test_all_set(self):
        options = GlobalOptions(offline=True, timeout=timedelta(seconds=5))
        assert options.to_params() == [("offline", "true"), ("timeout", "5s0ns")]

    def test_prepended_to_request(self):
        request = ApiRequest("pin/ls", [("arg", "Qm")])
        combined = request.with_params(GlobalOptions(offline=False).to_params())
        assert combined.params == [("offline", "false"), ("arg", "Qm")]
        assert request.params == [("arg", "Qm")]


class TestMultibase:
    def test_encode(self):
        assert multibase_encode("test") == "udGVzdA"

    def test_decode(self):
        assert multibase_decode("udGVzdA") == b"test"

    def test_unsupported_prefix(self):
        with pytest.raises(ValueError):
            multibase_decode("mdGVzdA")


class TestMisc:
    def test_file_part_from_bytes(self):
        assert file_part("data", "hi") == [
            ("data", ("data", b"hi", "application/octet-stream"))
        ]

    def test_resolve_headers(self):
        headers = resolve_headers_sync({"A": "1", "B": lambda: "2"})
        assert headers == {"A": "1", "B": "2"}
