"""
Parse legacy opkg ``Packages`` index files.

Each package is a block of ``Key: value`` lines; blocks are separated by a
blank line. Blocks missing Package, Version, Architecture or Filename are
dropped without failing the whole file.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from firmware_selector.data.depends import parse_depends_field
from firmware_selector.domain.models import PackageRecord

logger = logging.getLogger(__name__)

_BLOCK_SEPARATOR = re.compile(r"\n[ \t]*\n")

# Control-file key -> PackageRecord field
_STRING_FIELDS = {
    "Package": "name",
    "Version": "version",
    "License": "license",
    "Section": "section",
    "URL": "url",
    "CPE-ID": "cpe_id",
    "Architecture": "architecture",
    "Filename": "filename",
    "SHA256sum": "sha256sum",
    "Description": "description",
}
_INT_FIELDS = {
    "Installed-Size": "installed_size",
    "Size": "size",
}
_REQUIRED = ("name", "version", "architecture", "filename")


def _parse_int(value: str) -> int:
    try:
        return int(value, 10)
    except ValueError:
        return 0


def parse_packages_file(content: str, source: str) -> List[PackageRecord]:
    """
    Parse the text of a ``Packages`` file into package records.
    """
    packages: List[PackageRecord] = []
    text = content.replace("\r\n", "\n")
    dropped = 0

    for block in _BLOCK_SEPARATOR.split(text):
        if not block.strip():
            continue
        pkg = parse_package_block(block, source)
        if pkg is None:
            dropped += 1
            continue
        packages.append(pkg)

    logger.debug(f"{source}: parsed {len(packages)} packages, dropped {dropped} blocks")
    return packages


def parse_package_block(block: str, source: str) -> Optional[PackageRecord]:
    """
    Parse a single package block. Returns None if a mandatory field is missing.
    """
    fields: Dict[str, object] = {"source": source}
    last_key: Optional[str] = None

    for line in block.split("\n"):
        # Continuation lines extend a multi-line Description
        if line[:1] in (" ", "\t"):
            if last_key == "Description" and line.strip():
                previous = fields.get("description") or ""
                fields["description"] = f"{previous}\n{line.strip()}" if previous else line.strip()
            continue

        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()
        last_key = key

        if key in _STRING_FIELDS:
            fields[_STRING_FIELDS[key]] = value
        elif key in _INT_FIELDS:
            fields[_INT_FIELDS[key]] = _parse_int(value)
        elif key == "Depends":
            fields["dependencies"] = tuple(parse_depends_field(value))

    if not all(fields.get(name) for name in _REQUIRED):
        logger.debug(f"{source}: dropping incomplete block for {fields.get('name')!r}")
        return None

    return PackageRecord(**fields)
