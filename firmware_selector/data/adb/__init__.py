"""
Binary ADB (apk v3) index decoding.
"""

from firmware_selector.data.adb.container import ADB_SCHEMA_INDEX, parse_adb_blocks
from firmware_selector.data.adb.envelope import maybe_decompress
from firmware_selector.data.adb.index import map_adb_packages, parse_packages_adb
from firmware_selector.data.adb.reader import ADBReader

__all__ = [
    "ADB_SCHEMA_INDEX",
    "ADBReader",
    "map_adb_packages",
    "maybe_decompress",
    "parse_adb_blocks",
    "parse_packages_adb",
]
