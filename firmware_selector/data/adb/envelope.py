"""
Optional compression envelope around an ADB file.

Envelope layouts:
- ``ADBd`` followed by one deflate stream
- ``ADBc`` followed by a 1-byte algorithm id, a 1-byte level hint and the
  (possibly compressed) ADB file. Algorithm 0 is stored, 1 is deflate.
- anything else is already a raw ADB file
"""
from __future__ import annotations

import logging
import zlib

from firmware_selector.domain.errors import FormatError, UnsupportedCompressionError

logger = logging.getLogger(__name__)

ENVELOPE_DEFLATE = b"ADBd"
ENVELOPE_COMPRESSED = b"ADBc"

COMPRESSION_NONE = 0x00
COMPRESSION_DEFLATE = 0x01


def maybe_decompress(data: bytes) -> bytes:
    """
    Strip the compression envelope, if any, and return the raw ADB file.
    """
    if len(data) < 4:
        raise FormatError("envelope", f"buffer too small ({len(data)} bytes)")

    head = bytes(data[:4])
    if head == ENVELOPE_DEFLATE:
        logger.debug("envelope: ADBd (deflate)")
        out = inflate(data[4:])
        logger.debug(f"decompressed len: {len(out)}")
        return out

    if head == ENVELOPE_COMPRESSED:
        if len(data) < 6:
            raise FormatError("envelope", "truncated ADBc header")
        algorithm = data[4]
        level = data[5]
        rest = bytes(data[6:])
        logger.debug(f"envelope: ADBc alg={algorithm} level={level} rest_len={len(rest)}")
        if algorithm == COMPRESSION_NONE:
            return rest
        if algorithm == COMPRESSION_DEFLATE:
            return inflate(rest)
        raise UnsupportedCompressionError(algorithm)

    return bytes(data)


def inflate(data: bytes) -> bytes:
    """
    Inflate a deflate stream.

    Raw deflate is tried first; zlib-wrapped deflate is the fallback.
    """
    try:
        decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
        out = decompressor.decompress(bytes(data))
        out += decompressor.flush()
        if not decompressor.eof:
            raise zlib.error("incomplete raw deflate stream")
        return out
    except zlib.error as raw_error:
        logger.debug(f"raw deflate failed: {raw_error}")

    try:
        return zlib.decompress(bytes(data))
    except zlib.error as e:
        logger.debug(f"zlib deflate failed: {e}")
        raise FormatError("envelope", f"decompression failed: {e}") from e
