"""
Shared utility functions for the IPFS RPC client.

This module provides common utilities used by both sync and async implementations.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from typing import Any

from ipfs_rpc._types import HeadersLike, QueryParams


def resolve_headers_sync(headers: HeadersLike | None) -> dict[str, str]:
    """
    Resolve headers from HeadersLike to a plain dict.

    Supports static string values or callable functions that return strings.

    Args:
        headers: Headers dict with static or callable values

    Returns:
        Resolved headers dict with all string values
    """
    if headers is None:
        return {}

    resolved: dict[str, str] = {}
    for key, value in headers.items():
        if callable(value):
            resolved[key] = value()
        else:
            resolved[key] = value
    return resolved


async def resolve_headers_async(headers: HeadersLike | None) -> dict[str, str]:
    """
    Async version of resolve_headers_sync.

    Supports static string values, sync callables, or async callables.
    """
    if headers is None:
        return {}

    resolved: dict[str, str] = {}
    for key, value in headers.items():
        if callable(value):
            result = value()
            # Check if result is awaitable
            if hasattr(result, "__await__"):
                resolved[key] = await result  # type: ignore[misc]
            else:
                resolved[key] = result  # type: ignore[assignment]
        else:
            resolved[key] = value
    return resolved


def option_name(name: str) -> str:
    """
    Convert a Python keyword name to the API's kebab-case option name.

    A trailing underscore (used to dodge keywords, e.g. `hash_`) is dropped.
    """
    return name.rstrip("_").replace("_", "-")


def encode_query_value(value: Any) -> str:
    """
    Encode a single option value for the query string.

    Booleans become "true"/"false"; everything else goes through str().
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_options(options: Mapping[str, Any]) -> QueryParams:
    """
    Encode keyword options as query parameters.

    None values are omitted; lists and tuples repeat the parameter.

    Args:
        options: Option values keyed by Python name

    Returns:
        Ordered query parameter pairs
    """
    params: QueryParams = []
    for key, value in options.items():
        if value is None:
            continue
        name = option_name(key)
        if isinstance(value, (list, tuple)):
            params.extend((name, encode_query_value(v)) for v in value)
        else:
            params.append((name, encode_query_value(value)))
    return params


def encode_body(body: str | bytes | Any) -> bytes:
    """
    Encode a body value to bytes.

    - Bytes are returned as-is
    - Strings are encoded as UTF-8
    - Other values are JSON-serialized
    """
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")


def multibase_encode(data: str | bytes) -> str:
    """Encode as unpadded base64url multibase (the `u` prefix)."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return "u" + base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def multibase_decode(value: str) -> bytes:
    """
    Decode a base64url multibase string.

    Raises:
        ValueError: The string is not base64url multibase
    """
    if not value.startswith("u"):
        raise ValueError(f"Unsupported multibase prefix: {value[:1]!r}")
    body = value[1:]
    return base64.urlsafe_b64decode(body + "=" * (-len(body) % 4))


def file_part(field: str, data: Any, filename: str | None = None) -> list[tuple[str, Any]]:
    """
    Build a one-part multipart upload in the form httpx accepts.

    File-like objects are streamed; other values go through encode_body.
    """
    content = data if hasattr(data, "read") else encode_body(data)
    return [(field, (filename or field, content, "application/octet-stream"))]


def encode_config_value(value: Any) -> tuple[str, dict[str, Any]]:
    """Encode a config value as the argument and flags config expects."""
    if isinstance(value, bool):
        return ("true" if value else "false"), {"bool": True}
    if isinstance(value, str):
        return value, {}
    return json.dumps(value), {"json": True}
