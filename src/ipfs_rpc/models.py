"""
pydantic models for common IPFS API responses.

The API speaks PascalCase JSON. Models use aliases so attributes read as
snake_case while validation accepts the wire names, and unknown fields are
kept so newer servers don't break older clients.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ipfs_rpc._util import multibase_decode


class IpfsModel(BaseModel):
    """Base model for API payloads."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ApiErrorBody(BaseModel):
    """The JSON body the server sends with an error status."""

    message: str = Field(alias="Message")
    code: int = Field(alias="Code")


class VersionResponse(IpfsModel):
    version: str = Field(alias="Version")
    commit: str = Field(default="", alias="Commit")
    repo: str = Field(default="", alias="Repo")
    system: str = Field(default="", alias="System")
    golang: str = Field(default="", alias="Golang")


class IdResponse(IpfsModel):
    id: str = Field(alias="ID")
    public_key: str = Field(default="", alias="PublicKey")
    addresses: list[str] | None = Field(default=None, alias="Addresses")
    agent_version: str = Field(default="", alias="AgentVersion")
    protocols: list[str] | None = Field(default=None, alias="Protocols")


class AddResponse(IpfsModel):
    name: str = Field(alias="Name")
    hash: str = Field(default="", alias="Hash")
    size: str = Field(default="", alias="Size")
    bytes: int | None = Field(default=None, alias="Bytes")


class PingResponse(IpfsModel):
    success: bool = Field(alias="Success")
    time: int = Field(default=0, alias="Time")
    text: str = Field(default="", alias="Text")


class PubsubMessage(IpfsModel):
    """A message received from pubsub/sub."""

    from_: str = Field(default="", alias="from")
    data: str = ""
    seqno: str = ""
    topic_ids: list[str] = Field(default_factory=list, alias="topicIDs")

    @property
    def payload(self) -> bytes:
        """The message data, decoded from multibase."""
        return multibase_decode(self.data)

    @property
    def topics(self) -> list[str]:
        return [multibase_decode(t).decode("utf-8", errors="replace") for t in self.topic_ids]


class RefsResponse(IpfsModel):
    ref: str = Field(alias="Ref")
    err: str = Field(default="", alias="Err")


class KeyPair(IpfsModel):
    name: str = Field(alias="Name")
    id: str = Field(alias="Id")


class KeyListResponse(IpfsModel):
    keys: list[KeyPair] = Field(default_factory=list, alias="Keys")


Decoder = Callable[[bytes], Any]


def _call_on_json(convert: Callable[[Any], Any]) -> Decoder:
    # Lookup and type failures in the converter mean the value has the wrong shape.
    def decode(data: bytes) -> Any:
        value = json.loads(data)
        try:
            return convert(value)
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"cannot convert {value!r}: {e!r}") from e

    return decode


def json_decoder(model: Any = None) -> Decoder:
    """
    Build a function turning one JSON document into a decoded value.

    Args:
        model: None for plain JSON values, a pydantic model class, a
            TypeAdapter, or a callable applied to the parsed JSON value

    Returns:
        A callable accepting raw JSON bytes. It raises ValueError (which
        covers json.JSONDecodeError and pydantic.ValidationError) when the
        document cannot be decoded.
    """
    if model is None:
        return json.loads
    if isinstance(model, TypeAdapter):
        return model.validate_json
    if isinstance(model, type) and issubclass(model, BaseModel):
        return model.model_validate_json
    if callable(model):
        return _call_on_json(model)
    raise TypeError(f"Unsupported decode target: {model!r}")
