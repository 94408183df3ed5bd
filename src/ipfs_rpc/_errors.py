"""
Exception hierarchy for the IPFS RPC client.

This module defines all exceptions that can be raised by the library, and
the classifier that turns an error-status response body into one of them.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ipfs_rpc.models import ApiErrorBody


class IpfsError(Exception):
    """
    Base exception for all IPFS API protocol errors.

    Attributes:
        message: Human-readable error message
        status: HTTP status code (if applicable)
        code: Error code for programmatic handling
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    def __str__(self) -> str:
        parts = [self.message]
        if self.status is not None:
            parts.append(f"(status={self.status})")
        if self.code is not None:
            parts.append(f"[{self.code}]")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"status={self.status!r}, "
            f"code={self.code!r})"
        )


class TransportError(Exception):
    """
    Exception for network/transport/timeout errors.

    Raised when the HTTP exchange itself fails: connection refused, reset,
    timeouts, or an I/O failure while reading a response body.

    Attributes:
        message: Human-readable error message
        url: The URL that was being fetched
        cause: The underlying exception
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.cause = cause

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} at {self.url}"
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"url={self.url!r})"
        )


class ApiError(IpfsError):
    """
    A structured error returned by the API.

    The server answered with an error status and a JSON body of the form
    {"Message": ..., "Code": ...}.
    """

    def __init__(self, message: str, code: int, status: int | None = None) -> None:
        super().__init__(message, status=status, code=code)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class StreamError(IpfsError):
    """
    The server reported an error in the middle of a streaming response.

    Raised when a response announced `Trailer: X-Stream-Error` and a body
    line carried the error instead of data.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, code="STREAM_ERROR")

    def __str__(self) -> str:
        return f"api returned an error while streaming: {self.message}"


class UnrecognizedTrailerError(IpfsError):
    """
    The response announced a Trailer header this client can't interpret.
    """

    def __init__(self, value: str) -> None:
        super().__init__(
            f"api got unrecognized trailer header: {value}",
            code="UNRECOGNIZED_TRAILER",
        )
        self.value = value


class UnrecognizedApiError(IpfsError):
    """
    The server answered with an error status and a body that isn't a
    structured API error. The body text is kept as the message.
    """

    def __init__(self, text: str, status: int | None = None) -> None:
        super().__init__(text, status=status, code="UNRECOGNIZED_API_ERROR")
        self.text = text


class MalformedJsonError(IpfsError):
    """
    A response body (or one line of a streaming body) is not valid JSON
    for the expected type.
    """

    def __init__(self, cause: Exception, line: bytes | None = None) -> None:
        super().__init__(f"json decoding error: {cause}", code="PARSE_ERROR")
        self.cause = cause
        self.line = line


class TextDecodeError(IpfsError):
    """A body that should have been UTF-8 text could not be decoded."""

    def __init__(self, cause: UnicodeDecodeError, status: int | None = None) -> None:
        super().__init__(f"utf8 decoding error: {cause}", status=status, code="PARSE_UTF8")
        self.cause = cause


class StreamConsumedError(IpfsError):
    """
    Exception raised when attempting to consume a stream response twice.

    StreamResponse is a one-shot object - it can only be consumed in one mode.
    """

    def __init__(
        self,
        message: str = "Stream has already been consumed",
        attempted_method: str | None = None,
        consumed_by: str | None = None,
    ) -> None:
        if attempted_method and consumed_by:
            message = (
                f"Cannot call {attempted_method}() - stream was already consumed "
                f"via {consumed_by}()"
            )
        super().__init__(message, code="ALREADY_CONSUMED")
        self.attempted_method = attempted_method
        self.consumed_by = consumed_by


class InvalidUriError(IpfsError):
    """The API address could not be turned into a base URL."""

    def __init__(self, message: str, uri: str | None = None) -> None:
        super().__init__(message, code="INVALID_URI")
        self.uri = uri


class UnknownEndpointError(IpfsError):
    """No endpoint with the given name is known to the client."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown endpoint: {name}", code="UNKNOWN_ENDPOINT")
        self.name = name


def error_from_body(body: bytes, status: int | None = None) -> IpfsError:
    """
    Create an appropriate error from an error-status response body.

    Args:
        body: The complete response body
        status: The HTTP status code (if known)

    Returns:
        ApiError for a structured error body, UnrecognizedApiError carrying
        the body text otherwise, or TextDecodeError if the body isn't UTF-8
    """
    try:
        parsed = ApiErrorBody.model_validate_json(body)
    except ValidationError:
        pass
    else:
        return ApiError(parsed.message, parsed.code, status=status)

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        error = TextDecodeError(e, status=status)
        error.__cause__ = e
        return error
    return UnrecognizedApiError(text, status=status)
