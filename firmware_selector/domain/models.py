"""
Pydantic models for the firmware package selector.

This module defines the data models shared by the decoders, services and API:
- Canonical package records produced from both index formats
- Feed descriptors tracking per-feed load state
- Device profile and kernel metadata supplied by the profile collaborator
- Selection snapshots exchanged with the configuration collaborator

All models use Pydantic for validation, serialization, and type safety.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Package Records
# ---------------------------------------------------------------------------


class PackageRecord(BaseModel):
    """
    One package entry from a feed index, normalized across both index formats.

    Records are immutable once constructed. The binary format carries no
    section or filename, so those fields get an empty section and a
    synthetic ``{name}_{version}_{architecture}.apk`` filename.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    architecture: str
    section: str = Field(
        default="",
        description="Category like 'net', 'utils' or 'kernel'. Empty for binary indexes.",
    )
    license: Optional[str] = None
    url: Optional[str] = Field(
        default=None,
        description="Upstream homepage URL.",
    )
    cpe_id: Optional[str] = Field(
        default=None,
        description="CPE identifier used for security tracking (text indexes only).",
    )
    filename: str = Field(
        default="",
        description="Package file name relative to the feed.",
    )
    size: int = Field(
        default=0,
        description="Download size in bytes.",
    )
    installed_size: int = Field(
        default=0,
        description="Size on the device once installed, in bytes.",
    )
    sha256sum: str = Field(
        default="",
        description="Content hash as a lowercase hex string.",
    )
    description: str = ""
    dependencies: Tuple[str, ...] = Field(
        default_factory=tuple,
        description="Plain dependency names, ordered and de-duplicated.",
    )
    source: str = Field(
        default="",
        description="Name of the feed this record was loaded from.",
    )


class AdbPackageInfo(BaseModel):
    """
    Full pkginfo dump of one package in a binary (ADB) index.

    Every field is optional; dependency-bearing fields hold rendered
    dependency strings such as ``!foo>=1.2``.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    version: Optional[str] = None
    hashes: Optional[str] = None
    description: Optional[str] = None
    arch: Optional[str] = None
    license: Optional[str] = None
    origin: Optional[str] = None
    maintainer: Optional[str] = None
    url: Optional[str] = None
    repo_commit: Optional[str] = Field(default=None, alias="repo-commit")
    build_time: Optional[int] = Field(default=None, alias="build-time")
    installed_size: Optional[int] = Field(default=None, alias="installed-size")
    file_size: Optional[int] = Field(default=None, alias="file-size")
    provider_priority: Optional[int] = Field(default=None, alias="provider-priority")
    depends: Optional[List[str]] = None
    provides: Optional[List[str]] = None
    replaces: Optional[List[str]] = None
    install_if: Optional[List[str]] = Field(default=None, alias="install-if")
    recommends: Optional[List[str]] = None
    layer: Optional[int] = None
    tags: Optional[List[str]] = None


class AdbIndex(BaseModel):
    """Decoded root of a binary package index."""

    model_config = ConfigDict(populate_by_name=True)

    description: Optional[str] = None
    pkgname_spec: Optional[str] = Field(default=None, alias="pkgname-spec")
    packages: List[AdbPackageInfo] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Feeds
# ---------------------------------------------------------------------------


class FeedStatus(str, Enum):
    PENDING = "pending"
    LOADED = "loaded"
    ERROR = "error"


class FeedDescriptor(BaseModel):
    """
    One package feed for the active device.

    Each descriptor is owned by a single loader task, which is the only
    writer of ``status``, ``packages``, ``last_updated`` and ``error``.
    """

    name: str = Field(
        description="Logical feed name (base, luci, packages, telephony, target-packages, kmods).",
    )
    url: str = Field(
        default="",
        description="Resolved index URL or local path. Empty for custom feeds.",
    )
    status: FeedStatus = FeedStatus.PENDING
    packages: List[PackageRecord] = Field(default_factory=list)
    last_updated: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def is_loading(self) -> bool:
        return self.status == FeedStatus.PENDING


class FeedSummary(BaseModel):
    """Feed descriptor without its records, as returned by the API."""

    name: str
    url: str
    status: FeedStatus
    is_loading: bool = False
    package_count: int
    last_updated: Optional[datetime] = None
    error: Optional[str] = None

    @classmethod
    def from_feed(cls, feed: FeedDescriptor) -> "FeedSummary":
        return cls(
            name=feed.name,
            url=feed.url,
            status=feed.status,
            is_loading=feed.is_loading,
            package_count=len(feed.packages),
            last_updated=feed.last_updated,
            error=feed.error,
        )


# ---------------------------------------------------------------------------
# Device Profiles
# ---------------------------------------------------------------------------


class KernelInfo(BaseModel):
    """Kernel descriptor used to pick the matching kernel-module feed."""

    version: str
    release: str
    vermagic: str


class DeviceProfile(BaseModel):
    """
    Per-device firmware metadata supplied by the profile collaborator.
    """

    id: str = ""
    target: str = ""
    default_packages: List[str] = Field(
        default_factory=list,
        description="Packages included in the stock image for this profile.",
    )
    device_packages: List[str] = Field(default_factory=list)
    arch_packages: str = ""
    linux_kernel: Optional[KernelInfo] = None


class ProfilesResponse(BaseModel):
    """
    Subset of the upstream ``targets/<target>/profiles.json`` document.
    """

    version_number: str = ""
    version_code: str = ""
    arch_packages: str = ""
    default_packages: List[str] = Field(default_factory=list)
    linux_kernel: Optional[KernelInfo] = None
    profiles: Dict[str, dict] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

# Reported status of a package relative to the active profile defaults
PackageStatus = Literal["default", "removed", "selected", "none"]


class SelectionSnapshot(BaseModel):
    """
    User package configuration exchanged with the configuration collaborator.

    Serialized with camelCase keys: ``{"addedPackages": [...], "removedPackages": [...]}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    added_packages: List[str] = Field(
        default_factory=list,
        alias="addedPackages",
        serialization_alias="addedPackages",
        description="Non-default packages explicitly added by the user.",
    )
    removed_packages: List[str] = Field(
        default_factory=list,
        alias="removedPackages",
        serialization_alias="removedPackages",
        description="Default packages explicitly removed by the user.",
    )


class SizeSummary(BaseModel):
    download_size: int = 0
    installed_size: int = 0


class PackageSearchFilter(BaseModel):
    """
    Filters applied when searching the loaded package set.

    Empty values mean "no filter".
    """

    query: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring matched against name and description.",
    )
    section: Optional[str] = None
    architecture: Optional[str] = None
    source: Optional[str] = Field(
        default=None,
        description="Feed name the package must come from.",
    )
