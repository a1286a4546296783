"""Stream draining with incremental text decoding.

ytdl-exec runtime module v0.1.0

Reads a subprocess pipe to EOF and hands each decoded chunk to a callback.
A stateful decoder keeps multi-byte characters intact when a read boundary
falls inside one.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Callable
from typing import Protocol

__all__ = [
    "ByteStream",
    "DEFAULT_CHUNK_SIZE",
    "drain_stream",
]

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096


class ByteStream(Protocol):
    """Anything with an ``asyncio.StreamReader``-style ``read``."""

    async def read(self, n: int = -1) -> bytes:
        ...


async def drain_stream(
    stream: ByteStream,
    on_chunk: Callable[[str], None],
    *,
    encoding: str = "utf-8",
    errors: str = "replace",
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Read a stream until EOF, calling on_chunk for every chunk.

    on_chunk is called synchronously, once per chunk read, in arrival
    order. A chunk ending inside a multi-byte character yields the
    decodable prefix; the rest is carried into the next call. If the
    stream ends mid-character, one extra call flushes the remainder.

    Args:
        stream: Byte stream to drain
        on_chunk: Callback receiving decoded text
        encoding: Text encoding of the stream
        errors: Decoder error handler ("strict" makes bad bytes fatal)
        chunk_size: Maximum bytes per read

    Returns:
        Number of chunks read
    """
    decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
    count = 0

    while True:
        chunk = await stream.read(chunk_size)
        if not chunk:
            break
        count += 1
        on_chunk(decoder.decode(chunk))

    tail = decoder.decode(b"", final=True)
    if tail:
        on_chunk(tail)

    logger.debug(f"Stream drained: chunks={count}")
    return count
