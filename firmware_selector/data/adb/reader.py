"""
Tagged-value reader for the payload of an ADB block.

Every value in the payload is referenced by a 32-bit tag. The top nibble is
the value type; the low 28 bits are either the value itself (small ints) or a
byte offset into the payload.
"""
from __future__ import annotations

import logging
import struct
from typing import List

from firmware_selector.domain.errors import FormatError

logger = logging.getLogger(__name__)

ADB_TYPE_MASK = 0xF0000000
ADB_VALUE_MASK = 0x0FFFFFFF

ADB_TYPE_INT = 0x10000000
ADB_TYPE_INT_32 = 0x20000000
ADB_TYPE_INT_64 = 0x30000000
ADB_TYPE_BLOB_8 = 0x80000000
ADB_TYPE_BLOB_16 = 0x90000000
ADB_TYPE_BLOB_32 = 0xA0000000
ADB_TYPE_ARRAY = 0xD0000000
ADB_TYPE_OBJECT = 0xE0000000

_BLOB_PREFIX = {
    ADB_TYPE_BLOB_8: (1, "<B"),
    ADB_TYPE_BLOB_16: (2, "<H"),
    ADB_TYPE_BLOB_32: (4, "<I"),
}


class ADBReader:
    """Reads integers, blobs, strings and slot tables from an ADB payload."""

    def __init__(self, payload: bytes):
        self.buf = memoryview(payload)
        if len(self.buf) < 8:
            raise FormatError("out of bounds", f"ADB payload too small ({len(self.buf)} bytes)")
        self.compat_version = self.buf[0]
        self.format_version = self.buf[1]
        (self.root_tag,) = struct.unpack_from("<I", self.buf, 4)
        logger.debug(
            f"adb hdr: compat={self.compat_version} ver={self.format_version} "
            f"root_tag=0x{self.root_tag:08x}"
        )

    def _slice(self, tag: int, local_offset: int, size: int) -> memoryview:
        start = (tag & ADB_VALUE_MASK) + local_offset
        end = start + size
        if end > len(self.buf):
            raise FormatError(
                "out of bounds",
                f"tag 0x{tag:08x} reads {start}..{end} of {len(self.buf)}",
            )
        return self.buf[start:end]

    def read_int(self, tag: int) -> int:
        type_ = tag & ADB_TYPE_MASK
        if type_ == ADB_TYPE_INT:
            return tag & ADB_VALUE_MASK
        if type_ == ADB_TYPE_INT_32:
            return struct.unpack("<I", self._slice(tag, 0, 4))[0]
        if type_ == ADB_TYPE_INT_64:
            return struct.unpack("<Q", self._slice(tag, 0, 8))[0]
        return 0

    def read_blob(self, tag: int) -> bytes:
        prefix = _BLOB_PREFIX.get(tag & ADB_TYPE_MASK)
        if prefix is None:
            return b""
        prefix_size, fmt = prefix
        (length,) = struct.unpack(fmt, self._slice(tag, 0, prefix_size))
        return bytes(self._slice(tag, prefix_size, length))

    def read_string(self, tag: int) -> str:
        return self.read_blob(tag).decode("utf-8", errors="replace")

    def read_hex(self, tag: int) -> str:
        return self.read_blob(tag).hex()

    def read_slots(self, tag: int) -> List[int]:
        """
        Return the slot table of an array or object.

        Index 0 holds the slot count itself; elements start at index 1.
        """
        type_ = tag & ADB_TYPE_MASK
        if type_ not in (ADB_TYPE_ARRAY, ADB_TYPE_OBJECT):
            raise FormatError("tag type", f"tag 0x{tag:08x} is not an array or object")
        (num_slots,) = struct.unpack("<I", self._slice(tag, 0, 4))
        table = self._slice(tag, 0, 4 * num_slots)
        return list(struct.unpack(f"<{num_slots}I", table))
