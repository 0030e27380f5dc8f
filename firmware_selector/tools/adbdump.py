"""
Dump an apk v3 ``packages.adb`` index as JSON.
"""
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import aiofiles

from firmware_selector.data.adb.index import parse_packages_adb
from firmware_selector.domain.models import AdbIndex

logger = logging.getLogger(__name__)


async def dump_file(path: Path) -> AdbIndex:
    """Read a local index file and decode it."""
    async with aiofiles.open(path, "rb") as f:
        data = await f.read()
    logger.debug(f"file: {path} size={len(data)}")
    return parse_packages_adb(data)


def render(index: AdbIndex, pretty: bool = False) -> str:
    return index.model_dump_json(by_alias=True, exclude_none=True, indent=2 if pretty else None)


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    pretty = "--pretty" in sys.argv[1:]
    if "--debug" in sys.argv[1:]:
        logging.basicConfig(level=logging.DEBUG)

    if len(args) != 1:
        print("Usage: python -m firmware_selector.tools.adbdump <packages.adb> [--pretty] [--debug]")
        sys.exit(2)

    try:
        index = asyncio.run(dump_file(Path(args[0])))
        print(render(index, pretty))
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
