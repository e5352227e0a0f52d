from __future__ import annotations

import logging
import os
from typing import IO

import requests

_logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def write_stream_to_file(
    response: requests.Response,
    path: str,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """Write a streamed result body to ``path`` without buffering it in memory.

    Parent directories are created. Returns the number of bytes written.
    """
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    with open(path, "wb") as f:
        written = copy_stream(response, f, chunk_size=chunk_size)

    _logger.info("Wrote %d bytes → %s", written, path)
    return written


def copy_stream(
    response: requests.Response,
    out: IO[bytes],
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """Copy response chunks into a binary file object; return bytes copied."""
    written = 0
    for chunk in response.iter_content(chunk_size=chunk_size):
        if not chunk:  # keep-alive
            continue
        out.write(chunk)
        written += len(chunk)
    return written
