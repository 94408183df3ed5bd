"""Tests for line splitting and NDJSON decoding."""

import pytest
from pydantic import TypeAdapter

from ipfs_rpc._decode import JsonLineDecoder, LineDecoder, split_line
from ipfs_rpc._errors import MalformedJsonError, StreamError
from ipfs_rpc.models import PingResponse

LINES = [b'{"a":1}', b'{"b":[1,2,3]}', b"", b'"text with spaces"', b"42"]
BODY = b"".join(line + b"\n" for line in LINES)


def decode_in_chunks(chunks: list[bytes]) -> list[bytes]:
    decoder = LineDecoder()
    out: list[bytes] = []
    for chunk in chunks:
        decoder.feed(chunk)
        out.extend(decoder.lines())
    return out


class TestSplitLine:
    """Test the buffer splitting primitive."""

    def test_no_delimiter_leaves_buffer_alone(self):
        buffer = bytearray(b"partial")
        assert split_line(buffer) is None
        assert buffer == b"partial"

    def test_removes_line_and_delimiter(self):
        buffer = bytearray(b"one\ntwo")
        assert split_line(buffer) == b"one"
        assert buffer == b"two"

    def test_empty_line(self):
        buffer = bytearray(b"\nrest")
        assert split_line(buffer) == b""
        assert buffer == b"rest"

    def test_consecutive_lines(self):
        buffer = bytearray(b"a\nb\nc\n")
        assert split_line(buffer) == b"a"
        assert split_line(buffer) == b"b"
        assert split_line(buffer) == b"c"
        assert split_line(buffer) is None
        assert buffer == b""


class TestLineDecoderFragmentation:
    """Lines come out intact and in order however the body is chunked."""

    def test_single_chunk(self):
        assert decode_in_chunks([BODY]) == LINES

    def test_one_byte_at_a_time(self):
        chunks = [BODY[i : i + 1] for i in range(len(BODY))]
        assert decode_in_chunks(chunks) == LINES

    def test_every_split_point(self):
        for i in range(len(BODY) + 1):
            assert decode_in_chunks([BODY[:i], BODY[i:]]) == LINES, f"split at {i}"

    def test_every_pair_of_split_points(self):
        for i in range(len(BODY) + 1):
            for j in range(i, len(BODY) + 1):
                chunks = [BODY[:i], BODY[i:j], BODY[j:]]
                assert decode_in_chunks(chunks) == LINES, f"split at {i}, {j}"

    def test_delimiter_alone_in_chunk(self):
        assert decode_in_chunks([b"abc", b"\n", b"def", b"\n"]) == [b"abc", b"def"]


class TestLineDecoderPartialData:
    """Trailing bytes without a delimiter are held back."""

    def test_partial_data_yields_nothing(self):
        decoder = LineDecoder()
        decoder.feed(b'{"a":')
        decoder.feed(b"1}")
        assert list(decoder.lines()) == []
        assert decoder.pending == b'{"a":1}'

    def test_delimiter_completes_accumulated_line(self):
        decoder = LineDecoder()
        decoder.feed(b'{"a":')
        decoder.feed(b"1}")
        decoder.feed(b"\n")
        assert list(decoder.lines()) == [b'{"a":1}']
        assert decoder.pending == b""

    def test_decode_returns_none_until_complete(self):
        decoder = LineDecoder()
        decoder.feed(b"abc")
        assert decoder.decode() is None
        decoder.feed(b"\n")
        assert decoder.decode() == b"abc"
        assert decoder.decode() is None


class TestJsonLineDecoder:
    """Test per-line JSON decoding."""

    def test_decodes_values_in_order(self):
        decoder = JsonLineDecoder()
        assert list(decoder.decode_chunk(b'{"a":1}\n{"a":2}\n')) == [{"a": 1}, {"a": 2}]

    def test_value_split_across_chunks(self):
        decoder = JsonLineDecoder()
        assert list(decoder.decode_chunk(b'{"a":')) == []
        assert list(decoder.decode_chunk(b"1}\n")) == [{"a": 1}]

    def test_decodes_into_model(self):
        decoder = JsonLineDecoder(model=PingResponse)
        [pong] = decoder.decode_chunk(b'{"Success":true,"Time":1500,"Text":""}\n')
        assert isinstance(pong, PingResponse)
        assert pong.success is True
        assert pong.time == 1500

    def test_decodes_with_type_adapter(self):
        decoder = JsonLineDecoder(model=TypeAdapter(list[int]))
        assert list(decoder.decode_chunk(b"[1,2]\n[3]\n")) == [[1, 2], [3]]

    def test_decodes_with_callable(self):
        decoder = JsonLineDecoder(model=lambda value: value["a"])
        assert list(decoder.decode_chunk(b'{"a":"x"}\n')) == ["x"]

    def test_callable_lookup_failure_is_malformed(self):
        """A value of the wrong shape for the callable is a malformed line."""
        decoder = JsonLineDecoder(model=lambda value: value["a"])
        with pytest.raises(MalformedJsonError) as exc_info:
            decoder.decode_item(b'{"b":1}')
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert exc_info.value.line == b'{"b":1}'

    def test_callable_type_failure_is_malformed(self):
        decoder = JsonLineDecoder(model=lambda value: value["a"])
        with pytest.raises(MalformedJsonError):
            decoder.decode_item(b"[1, 2]")

    def test_stream_error_line(self):
        decoder = JsonLineDecoder(parse_stream_error=True)
        with pytest.raises(StreamError) as exc_info:
            decoder.decode_item(b"X-Stream-Error: boom")
        assert exc_info.value.message == "boom"
        assert "boom" in str(exc_info.value)

    def test_stream_error_stops_iteration(self):
        """Values before the error line come out, nothing after it."""
        decoder = JsonLineDecoder(parse_stream_error=True)
        items = decoder.decode_chunk(b'{"a":1}\nX-Stream-Error: boom\n{"a":2}\n')
        assert next(items) == {"a": 1}
        with pytest.raises(StreamError):
            next(items)
        with pytest.raises(StopIteration):
            next(items)

    def test_malformed_line_without_trailer(self):
        decoder = JsonLineDecoder(parse_stream_error=False)
        with pytest.raises(MalformedJsonError) as exc_info:
            decoder.decode_item(b"not json")
        assert not isinstance(exc_info.value, StreamError)
        assert exc_info.value.line == b"not json"

    def test_error_marker_ignored_without_trailer(self):
        decoder = JsonLineDecoder(parse_stream_error=False)
        with pytest.raises(MalformedJsonError):
            decoder.decode_item(b"X-Stream-Error: boom")

    def test_malformed_line_with_trailer(self):
        """With the flag set, a line that isn't an error line is still malformed."""
        decoder = JsonLineDecoder(parse_stream_error=True)
        with pytest.raises(MalformedJsonError):
            decoder.decode_item(b"Other-Header: boom")

    def test_empty_line_is_malformed(self):
        decoder = JsonLineDecoder()
        with pytest.raises(MalformedJsonError):
            decoder.decode_item(b"")

    def test_model_validation_failure_is_malformed(self):
        decoder = JsonLineDecoder(model=PingResponse)
        with pytest.raises(MalformedJsonError):
            decoder.decode_item(b'{"Time":1}')

    def test_unsupported_model(self):
        with pytest.raises(TypeError):
            JsonLineDecoder(model=42)
