"""Response body decompression for gzip and deflate content encodings."""

from __future__ import annotations

import gzip
import io
import zlib
from collections.abc import MutableMapping

from api_courier.errors import ParseError

GZIP_ENCODINGS = ("gzip", "x-gzip")
DEFLATE_ENCODING = "deflate"


def inflate(body: bytes, headers: MutableMapping[str, str]) -> bytes:
    """Decompress *body* according to its ``content-encoding`` header.

    Only the exact tokens ``gzip``, ``x-gzip`` and ``deflate`` are handled;
    any other encoding (or none) returns the body untouched and leaves the
    headers alone. Once a body has been decompressed the ``content-encoding``
    header is removed so nothing downstream decodes it a second time.

    Raises:
        ParseError: If the body is not a valid stream for its declared encoding.
    """
    encoding = headers.get("content-encoding")

    if encoding in GZIP_ENCODINGS:
        decoded = _gunzip(body)
    elif encoding == DEFLATE_ENCODING:
        decoded = _inflate(body)
    else:
        return body

    del headers["content-encoding"]
    return decoded


def _gunzip(body: bytes) -> bytes:
    if not body:
        return b""
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(body)) as gz:
            return gz.read()
    except (OSError, EOFError) as e:
        raise ParseError(f"gzip decode failed: {e}") from e


def _inflate(body: bytes) -> bytes:
    if not body:
        return b""
    try:
        return zlib.decompress(body)
    except zlib.error:
        # Some servers send a raw deflate stream without the zlib header.
        try:
            return zlib.decompress(body, -zlib.MAX_WBITS)
        except zlib.error as e:
            raise ParseError(f"deflate decode failed: {e}") from e
