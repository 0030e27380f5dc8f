from __future__ import annotations

from typing import Iterable, List

from firmware_selector.domain.models import PackageRecord, PackageSearchFilter

FEED_DISPLAY_NAMES = {
    "base": "Base system",
    "luci": "LuCI web interface",
    "packages": "Community packages",
    "telephony": "Telephony",
    "kmods": "Kernel modules",
    "target-packages": "Target packages",
}

SECTION_DISPLAY_NAMES = {
    "admin": "Administration",
    "base": "Base system",
    "boot": "Boot loaders",
    "devel": "Development",
    "firmware": "Firmware",
    "kernel": "Kernel modules",
    "lang": "Languages",
    "libs": "Libraries",
    "luci": "Web interface",
    "mail": "Mail",
    "multimedia": "Multimedia",
    "net": "Network",
    "sound": "Sound",
    "system": "System",
    "telephony": "Telephony",
    "text": "Text processing",
    "utils": "Utilities",
    "web": "Web servers",
}


def search_packages(packages: Iterable[PackageRecord], flt: PackageSearchFilter) -> List[PackageRecord]:
    """
    Apply a search filter to a package list.

    The query is a case-insensitive substring match on name or description;
    section, architecture and source must match exactly.
    """
    results = list(packages)

    if flt.query:
        query = flt.query.lower()
        results = [
            pkg for pkg in results
            if query in pkg.name.lower() or query in pkg.description.lower()
        ]
    if flt.section:
        results = [pkg for pkg in results if pkg.section == flt.section]
    if flt.architecture:
        results = [pkg for pkg in results if pkg.architecture == flt.architecture]
    if flt.source:
        results = [pkg for pkg in results if pkg.source == flt.source]

    return results


def package_sections(packages: Iterable[PackageRecord]) -> List[str]:
    """All non-empty sections, sorted."""
    return sorted({pkg.section for pkg in packages if pkg.section})


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    if size < 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024):.1f} MB"
    return f"{size / (1024 * 1024 * 1024):.1f} GB"


def feed_display_name(feed_name: str) -> str:
    return FEED_DISPLAY_NAMES.get(feed_name, feed_name)


def section_display_name(section: str) -> str:
    if not section:
        return "None"
    return SECTION_DISPLAY_NAMES.get(section, section)
