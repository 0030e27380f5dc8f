"""
Decode an apk v3 ``packages.adb`` index into package records.

The index root object holds a description string and an array of pkginfo
objects. Slot numbers below are fixed by the ``indx`` schema.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from firmware_selector.data.adb.container import ADB_SCHEMA_INDEX, parse_adb_blocks
from firmware_selector.data.adb.envelope import maybe_decompress
from firmware_selector.data.adb.reader import ADBReader
from firmware_selector.data.depends import dependency_names, render_dependency
from firmware_selector.domain.errors import FormatError
from firmware_selector.domain.models import AdbIndex, AdbPackageInfo, PackageRecord

logger = logging.getLogger(__name__)

# Root object slots
ADBI_NDX_DESCRIPTION = 0x01
ADBI_NDX_PACKAGES = 0x02
ADBI_NDX_PKGNAME_SPEC = 0x03

# pkginfo object slots
ADBI_PI_NAME = 0x01
ADBI_PI_VERSION = 0x02
ADBI_PI_HASHES = 0x03
ADBI_PI_DESCRIPTION = 0x04
ADBI_PI_ARCH = 0x05
ADBI_PI_LICENSE = 0x06
ADBI_PI_ORIGIN = 0x07
ADBI_PI_MAINTAINER = 0x08
ADBI_PI_URL = 0x09
ADBI_PI_REPO_COMMIT = 0x0A
ADBI_PI_BUILD_TIME = 0x0B
ADBI_PI_INSTALLED_SIZE = 0x0C
ADBI_PI_FILE_SIZE = 0x0D
ADBI_PI_PROVIDER_PRIORITY = 0x0E
ADBI_PI_DEPENDS = 0x0F
ADBI_PI_PROVIDES = 0x10
ADBI_PI_REPLACES = 0x11
ADBI_PI_INSTALL_IF = 0x12
ADBI_PI_RECOMMENDS = 0x13
ADBI_PI_LAYER = 0x14
ADBI_PI_TAGS = 0x15

# dependency object slots
ADBI_DEP_NAME = 0x01
ADBI_DEP_VERSION = 0x02
ADBI_DEP_MATCH = 0x03


def _slot(slots: List[int], index: int) -> int:
    return slots[index] if index < len(slots) else 0


def _dependency_to_string(rdr: ADBReader, tag: int) -> str:
    obj = rdr.read_slots(tag)
    name_tag = _slot(obj, ADBI_DEP_NAME)
    if not name_tag:
        return ""
    name = rdr.read_string(name_tag)
    version_tag = _slot(obj, ADBI_DEP_VERSION)
    match_tag = _slot(obj, ADBI_DEP_MATCH)
    mask = rdr.read_int(match_tag) if match_tag else 0
    version = rdr.read_string(version_tag) if version_tag else None
    return render_dependency(name, version, mask)


def _array(rdr: ADBReader, tag: int, read: Callable[[ADBReader, int], Any]) -> List[Any]:
    arr = rdr.read_slots(tag)
    return [read(rdr, t) for t in arr[1:] if t]


def _string_array(rdr: ADBReader, tag: int) -> List[str]:
    return _array(rdr, tag, ADBReader.read_string)


def _dependency_array(rdr: ADBReader, tag: int) -> List[str]:
    return [d for d in _array(rdr, tag, _dependency_to_string) if d]


# field name -> (slot, decoder)
_PKGINFO_FIELDS: Dict[str, tuple] = {
    "name": (ADBI_PI_NAME, ADBReader.read_string),
    "version": (ADBI_PI_VERSION, ADBReader.read_string),
    "hashes": (ADBI_PI_HASHES, ADBReader.read_hex),
    "description": (ADBI_PI_DESCRIPTION, ADBReader.read_string),
    "arch": (ADBI_PI_ARCH, ADBReader.read_string),
    "license": (ADBI_PI_LICENSE, ADBReader.read_string),
    "origin": (ADBI_PI_ORIGIN, ADBReader.read_string),
    "maintainer": (ADBI_PI_MAINTAINER, ADBReader.read_string),
    "url": (ADBI_PI_URL, ADBReader.read_string),
    "repo_commit": (ADBI_PI_REPO_COMMIT, ADBReader.read_hex),
    "build_time": (ADBI_PI_BUILD_TIME, ADBReader.read_int),
    "installed_size": (ADBI_PI_INSTALLED_SIZE, ADBReader.read_int),
    "file_size": (ADBI_PI_FILE_SIZE, ADBReader.read_int),
    "provider_priority": (ADBI_PI_PROVIDER_PRIORITY, ADBReader.read_int),
    "depends": (ADBI_PI_DEPENDS, _dependency_array),
    "provides": (ADBI_PI_PROVIDES, _dependency_array),
    "replaces": (ADBI_PI_REPLACES, _dependency_array),
    "install_if": (ADBI_PI_INSTALL_IF, _dependency_array),
    "recommends": (ADBI_PI_RECOMMENDS, _dependency_array),
    "layer": (ADBI_PI_LAYER, ADBReader.read_int),
    "tags": (ADBI_PI_TAGS, _string_array),
}


def parse_pkginfo(rdr: ADBReader, tag: int) -> AdbPackageInfo:
    """Decode one pkginfo object; absent slots stay unset."""
    obj = rdr.read_slots(tag)
    fields: Dict[str, Any] = {}
    for field_name, (index, decode) in _PKGINFO_FIELDS.items():
        value_tag = _slot(obj, index)
        if value_tag:
            fields[field_name] = decode(rdr, value_tag)
    return AdbPackageInfo(**fields)


def parse_packages_adb(data: bytes) -> AdbIndex:
    """
    Decode a (possibly compressed) ``packages.adb`` buffer.

    Raises:
        FormatError: for any malformed envelope, header, block or tag
    """
    raw = maybe_decompress(data)
    schema, payload = parse_adb_blocks(raw)
    if schema != ADB_SCHEMA_INDEX:
        raise FormatError("schema", f"unsupported schema 0x{schema:08x}")

    rdr = ADBReader(payload)
    root = rdr.read_slots(rdr.root_tag)
    logger.debug(f"root slots: {len(root)}")

    index = AdbIndex()
    desc_tag = _slot(root, ADBI_NDX_DESCRIPTION)
    if desc_tag:
        index.description = rdr.read_string(desc_tag)
    spec_tag = _slot(root, ADBI_NDX_PKGNAME_SPEC)
    if spec_tag:
        index.pkgname_spec = rdr.read_string(spec_tag)

    packages_tag = _slot(root, ADBI_NDX_PACKAGES)
    if packages_tag:
        index.packages = _array(rdr, packages_tag, parse_pkginfo)
    logger.debug(f"packages count: {len(index.packages)}")
    return index


def map_adb_packages(entries: List[AdbPackageInfo], source: str) -> List[PackageRecord]:
    """
    Convert decoded pkginfo entries to package records.

    Entries without a name, version or architecture are skipped. ADB indexes
    carry no section or filename, so the section is empty and the filename
    is synthesized.
    """
    out: List[PackageRecord] = []
    for e in entries:
        if not e.name or not e.version or not e.arch:
            continue
        out.append(
            PackageRecord(
                name=e.name,
                version=e.version,
                architecture=e.arch,
                section="",
                license=e.license,
                url=e.url,
                filename=f"{e.name}_{e.version}_{e.arch}.apk",
                size=e.file_size or 0,
                installed_size=e.installed_size or 0,
                sha256sum=e.hashes or "",
                description=e.description or "",
                dependencies=tuple(dependency_names(e.depends or [])),
                source=source,
            )
        )
    return out


def parse_adb_feed(data: bytes, source: str) -> List[PackageRecord]:
    """Decode a binary index and map it straight to package records."""
    return map_adb_packages(parse_packages_adb(data).packages, source)
