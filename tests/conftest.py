"""
Pytest configuration and fixtures for ipfs-rpc tests.

Unit tests run against in-memory chunk sources and httpx.MockTransport;
no IPFS node is needed.
"""

from collections.abc import AsyncIterator, Iterator

import pytest


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class NeverPolled:
    """A chunk source that fails the test if anything reads from it."""

    def __init__(self) -> None:
        self.polled = False

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        self.polled = True
        raise AssertionError("body was read")

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        self.polled = True
        raise AssertionError("body was read")


class CountingChunks:
    """Hands out the given chunks and counts how many were pulled."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)
        self.pulled = 0

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        if self.pulled >= len(self._chunks):
            raise StopIteration
        chunk = self._chunks[self.pulled]
        self.pulled += 1
        return chunk


async def async_chunks(chunks: list[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


@pytest.fixture
def never_polled() -> NeverPolled:
    return NeverPolled()
