"""
Outer block stream of an ADB file.

File layout (all little-endian):
- 4-byte magic ``ADB.`` and 4-byte schema id
- a sequence of blocks, each aligned to 8 bytes. A block header is a 32-bit
  word whose top 2 bits give the block type and whose low 30 bits give the
  raw block size (header + payload). Type 3 marks an extended header: the
  low 30 bits hold the real type and a 64-bit raw size follows at +8,
  for a 16-byte header.
"""
from __future__ import annotations

import logging
import struct
from typing import Tuple

from firmware_selector.domain.errors import FormatError

logger = logging.getLogger(__name__)

ADB_FORMAT_MAGIC = 0x2E424441  # 'ADB.'
ADB_SCHEMA_INDEX = 0x78646E69  # 'indx'

ADB_BLOCK_ADB = 0
ADB_BLOCK_SIG = 1
ADB_BLOCK_DATA = 2
ADB_BLOCK_EXT = 3

_SIZE_MASK = 0x3FFFFFFF


def _align8(value: int) -> int:
    return (value + 7) & ~7


def parse_adb_blocks(data: bytes) -> Tuple[int, memoryview]:
    """
    Validate the file header and return ``(schema, payload)`` where payload is
    the first ADB block. Later ADB blocks, signatures and data blocks are skipped.
    """
    view = memoryview(data)
    if len(view) < 8:
        raise FormatError("magic", f"file too small ({len(view)} bytes)")

    magic, schema = struct.unpack_from("<II", view, 0)
    if magic != ADB_FORMAT_MAGIC:
        raise FormatError("magic", f"not an ADB file (magic 0x{magic:08x})")
    logger.debug(f"file header ok, schema=0x{schema:08x}")

    offset = 8
    while offset < len(view):
        if offset + 4 > len(view):
            raise FormatError("block bounds", f"truncated block header at {offset}")
        (type_size,) = struct.unpack_from("<I", view, offset)
        indicator = type_size >> 30

        if indicator == ADB_BLOCK_EXT:
            if offset + 16 > len(view):
                raise FormatError("block bounds", f"truncated extended block header at {offset}")
            block_type = type_size & _SIZE_MASK
            header_size = 16
            (raw_size,) = struct.unpack_from("<Q", view, offset + 8)
        else:
            block_type = indicator
            header_size = 4
            raw_size = type_size & _SIZE_MASK

        if raw_size < header_size:
            raise FormatError("block bounds", f"block at {offset} smaller than its header")

        payload_offset = offset + header_size
        payload_end = offset + raw_size
        logger.debug(
            f"block@{offset}: type={block_type} hdr={header_size} raw={raw_size}"
        )
        if payload_end > len(view):
            raise FormatError("block bounds", f"truncated block payload at {offset}")

        if block_type == ADB_BLOCK_ADB:
            payload = view[payload_offset:payload_end]
            logger.debug(f"ADB block found len={len(payload)}")
            return schema, payload

        offset += _align8(raw_size)

    raise FormatError("no payload block")
