"""Tests for error classes and the error body classifier."""

from ipfs_rpc._errors import (
    ApiError,
    IpfsError,
    StreamConsumedError,
    StreamError,
    TextDecodeError,
    TransportError,
    UnrecognizedApiError,
    UnrecognizedTrailerError,
    error_from_body,
)


class TestErrorFromBody:
    """Test classification of error-status bodies."""

    def test_structured_error(self):
        error = error_from_body(b'{"Message":"boom","Code":0,"Type":"error"}', 500)
        assert isinstance(error, ApiError)
        assert error.message == "boom"
        assert error.code == 0
        assert error.status == 500

    def test_json_without_error_fields(self):
        error = error_from_body(b'{"Something":"else"}', 500)
        assert isinstance(error, UnrecognizedApiError)
        assert error.text == '{"Something":"else"}'

    def test_plain_text(self):
        error = error_from_body(b"404 page not found\n", 404)
        assert isinstance(error, UnrecognizedApiError)
        assert error.text == "404 page not found\n"
        assert error.status == 404

    def test_empty_body(self):
        error = error_from_body(b"", 502)
        assert isinstance(error, UnrecognizedApiError)
        assert error.text == ""

    def test_invalid_utf8(self):
        error = error_from_body(b"\xff\xfe\xfd", 500)
        assert isinstance(error, TextDecodeError)
        assert isinstance(error.__cause__, UnicodeDecodeError)


class TestErrorMessages:
    """Test string forms of errors."""

    def test_api_error_format(self):
        assert str(ApiError("merkledag: not found", 0)) == "[0] merkledag: not found"

    def test_stream_error_format(self):
        assert str(StreamError("disk full")) == (
            "api returned an error while streaming: disk full"
        )

    def test_unrecognized_trailer_message(self):
        error = UnrecognizedTrailerError("Other")
        assert "Other" in str(error)
        assert error.code == "UNRECOGNIZED_TRAILER"

    def test_base_error_format(self):
        error = IpfsError("failed", status=500, code="X")
        assert str(error) == "failed (status=500) [X]"
        assert repr(error) == "IpfsError(message='failed', status=500, code='X')"

    def test_transport_error_format(self):
        error = TransportError("request failed", url="http://node/api/v0/id")
        assert str(error) == "request failed at http://node/api/v0/id"
        assert not isinstance(error, IpfsError)

    def test_stream_consumed_message(self):
        error = StreamConsumedError(attempted_method="read_bytes", consumed_by="iter_json")
        assert "read_bytes" in str(error)
        assert "iter_json" in str(error)
