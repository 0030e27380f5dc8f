"""
Package catalog and selection for one device session.

A ``PackageStore`` owns the feed set of the active device, the profile's
default packages and the user's selection. It is constructed explicitly and
handed to whatever composes the UI or API layer.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from firmware_selector.core.config import Settings
from firmware_selector.domain import graph
from firmware_selector.domain.models import (
    DeviceProfile,
    FeedDescriptor,
    FeedStatus,
    KernelInfo,
    PackageRecord,
    PackageSearchFilter,
    PackageStatus,
    SelectionSnapshot,
    SizeSummary,
)
from firmware_selector.domain.package_utils import package_sections, search_packages
from firmware_selector.domain.selection import PackageSelection, SelectionState
from firmware_selector.services.feeds import FeedLoader, FeedResolver
from firmware_selector.services.profiles import ProfileClient

logger = logging.getLogger(__name__)


class PackageStore:
    """
    Feeds, records and selection state for the currently selected device.
    """

    def __init__(
        self,
        settings: Settings,
        resolver: Optional[FeedResolver] = None,
        loader: Optional[FeedLoader] = None,
        profiles: Optional[ProfileClient] = None,
    ):
        self.settings = settings
        self.resolver = resolver or FeedResolver(settings)
        self.loader = loader or FeedLoader(settings)
        self.profiles = profiles or ProfileClient(self.resolver)

        self.feeds: List[FeedDescriptor] = []
        self.selection = PackageSelection()
        self.profile: Optional[DeviceProfile] = None
        self.is_loading = False
        self.error = ""

        self._kernel_cache: Dict[Tuple[str, str], Optional[KernelInfo]] = {}
        self._generation = 0

    # ========================================================================
    # Device / feed loading
    # ========================================================================

    def set_profile(self, profile: Optional[DeviceProfile]) -> None:
        """Install a device profile; its default packages become the selection defaults."""
        self.profile = profile
        self.selection.set_defaults(profile.default_packages if profile else [])

    async def resolve_kernel(self, version: str, target: str) -> Optional[KernelInfo]:
        """
        Kernel descriptor for a target: taken from the active profile when it
        has one, otherwise fetched once from profiles.json and cached.
        """
        if self.profile is not None and self.profile.linux_kernel is not None:
            return self.profile.linux_kernel

        key = (version, target)
        if key not in self._kernel_cache:
            try:
                self._kernel_cache[key] = await self.profiles.get_kernel_info(version, target)
            except Exception as e:
                logger.warning(f"Could not fetch kernel info for {target} ({version}): {e}")
                return None
        return self._kernel_cache[key]

    async def select_device(
        self,
        version: str,
        architecture: str,
        target: Optional[str] = None,
        profile: Optional[DeviceProfile] = None,
    ) -> List[FeedDescriptor]:
        """
        Switch to a new device: clear the selection, install its profile and
        load its feeds.
        """
        self.selection.clear()
        self.set_profile(profile)
        return await self.load_packages_for_device(version, architecture, target)

    async def load_packages_for_device(
        self,
        version: str,
        architecture: str,
        target: Optional[str] = None,
    ) -> List[FeedDescriptor]:
        """
        Replace the feed set for a device and load every feed concurrently.

        Results of an earlier, still-running load land on descriptors that are
        no longer part of ``self.feeds`` and are discarded with them.
        """
        self._generation += 1
        generation = self._generation
        self.is_loading = True
        self.error = ""

        try:
            kernel = await self.resolve_kernel(version, target) if target else None
            feeds = self.resolver.resolve(version, architecture, target, kernel)
            if generation != self._generation:
                logger.info(f"Discarding stale feed set for {architecture} ({version})")
                return feeds
            self.feeds = feeds
            await self.loader.load_all(feeds)
            failed = [f.name for f in feeds if f.status == FeedStatus.ERROR]
            if failed:
                logger.warning(f"Feeds failed to load: {', '.join(failed)}")
            return feeds
        except Exception as e:
            logger.error(f"Failed to load package lists: {e}", exc_info=True)
            if generation == self._generation:
                self.error = f"Failed to load package lists: {e}"
            return self.feeds
        finally:
            if generation == self._generation:
                self.is_loading = False

    def add_custom_feed(self, feed_name: str, packages: List[PackageRecord]) -> None:
        """Add a loaded feed, or replace the records of an existing feed with that name."""
        for feed in self.feeds:
            if feed.name == feed_name:
                feed.packages = list(packages)
                feed.last_updated = datetime.now(timezone.utc)
                feed.status = FeedStatus.LOADED
                feed.error = None
                return

        self.feeds.append(
            FeedDescriptor(
                name=feed_name,
                packages=list(packages),
                status=FeedStatus.LOADED,
                last_updated=datetime.now(timezone.utc),
            )
        )

    def remove_custom_feed(self, feed_name: str) -> None:
        self.feeds = [feed for feed in self.feeds if feed.name != feed_name]

    def clear_all(self) -> None:
        """Clear the selection and drop loaded package data."""
        self.selection.clear()
        self.feeds = []
        self.error = ""

    # ========================================================================
    # Catalog queries
    # ========================================================================

    @property
    def all_packages(self) -> List[PackageRecord]:
        return [pkg for feed in self.feeds for pkg in feed.packages]

    @property
    def total_packages(self) -> int:
        return sum(len(feed.packages) for feed in self.feeds)

    def search(self, flt: PackageSearchFilter) -> List[PackageRecord]:
        return search_packages(self.all_packages, flt)

    def sections(self) -> List[str]:
        return package_sections(self.all_packages)

    def sources(self) -> List[str]:
        return list(dict.fromkeys(feed.name for feed in self.feeds))

    def get_package_info(self, name: str) -> Optional[PackageRecord]:
        for pkg in self.all_packages:
            if pkg.name == name:
                return pkg
        return None

    def get_dependencies(self, name: str) -> List[str]:
        return graph.expand(name, self.all_packages)

    def get_dependents(self, name: str) -> List[str]:
        return graph.dependents(name, self.all_packages)

    # ========================================================================
    # Selection
    # ========================================================================

    def toggle(self, name: str) -> PackageStatus:
        self.selection.toggle(name)
        return self.selection.status(name)

    def add_with_dependencies(self, name: str) -> List[str]:
        """Select a package and everything it depends on. Returns the affected names."""
        names = [name] + self.get_dependencies(name)
        for n in names:
            self.selection.select(n)
        return names

    def remove_with_dependents(self, name: str) -> List[str]:
        """
        Drop the additions of every package depending on ``name``, then
        deselect ``name`` itself. Dependents that are profile defaults keep
        their state.
        """
        dependents = self.get_dependents(name)
        for n in dependents:
            if self.selection.state(n) == SelectionState.ADDED:
                self.selection.set_state(n, SelectionState.UNSET)
        self.selection.deselect(name)
        return dependents + [name]

    def status(self, name: str) -> PackageStatus:
        return self.selection.status(name)

    def build_packages(self) -> List[str]:
        return self.selection.build_list()

    def snapshot(self) -> SelectionSnapshot:
        return self.selection.snapshot()

    def restore(self, snapshot: SelectionSnapshot) -> None:
        self.selection.load_snapshot(snapshot)

    def selected_packages_info(self) -> List[PackageRecord]:
        """Records for the explicitly added packages that are present in the loaded feeds."""
        out = []
        for name in self.selection.added:
            pkg = self.get_package_info(name)
            if pkg is not None:
                out.append(pkg)
        return out

    def total_size(self) -> SizeSummary:
        info = self.selected_packages_info()
        return SizeSummary(
            download_size=sum(pkg.size for pkg in info),
            installed_size=sum(pkg.installed_size for pkg in info),
        )
