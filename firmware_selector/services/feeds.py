"""
Feed URL resolution and concurrent feed loading.

Feeds for one device are loaded as independent tasks. A failing feed records
its error on its own descriptor and never blocks or cancels the others.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import aiofiles
import httpx

from firmware_selector.core.config import Settings
from firmware_selector.data.adb.index import parse_adb_feed
from firmware_selector.data.control import parse_packages_file
from firmware_selector.domain.models import FeedDescriptor, FeedStatus, KernelInfo, PackageRecord

logger = logging.getLogger(__name__)

ADB_INDEX_FILENAME = "packages.adb"
TEXT_INDEX_FILENAME = "Packages"

ARCHITECTURE_FEEDS = ("base", "luci", "packages", "telephony")
TARGET_PACKAGES_FEED = "target-packages"
KMODS_FEED = "kmods"


class FeedResolver:
    """Builds feed URLs for a firmware version, architecture and target."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @staticmethod
    def is_snapshot(version: str) -> bool:
        return version == "SNAPSHOT" or version.endswith("-SNAPSHOT")

    def uses_adb_index(self, version: str) -> bool:
        return version in self.settings.apk_versions

    def index_filename(self, version: str) -> str:
        return ADB_INDEX_FILENAME if self.uses_adb_index(version) else TEXT_INDEX_FILENAME

    def base_url(self, version: str) -> str:
        image_url = self.settings.image_url.rstrip("/")
        if self.is_snapshot(version):
            return f"{image_url}/snapshots"
        return f"{image_url}/releases/{version}"

    def target_url(self, version: str, target: str) -> str:
        return f"{self.base_url(version)}/targets/{target}"

    def resolve(
        self,
        version: str,
        architecture: str,
        target: Optional[str] = None,
        kernel: Optional[KernelInfo] = None,
    ) -> List[FeedDescriptor]:
        """
        Return one pending descriptor per feed: the architecture feeds, then
        the target package feed and the kernel-module feed when a target
        (and kernel descriptor) is known.
        """
        file_name = self.index_filename(version)
        arch_url = f"{self.base_url(version)}/packages/{architecture}"

        feeds = [
            FeedDescriptor(name=feed, url=f"{arch_url}/{feed}/{file_name}")
            for feed in ARCHITECTURE_FEEDS
        ]

        if target:
            target_url = self.target_url(version, target)
            feeds.append(
                FeedDescriptor(name=TARGET_PACKAGES_FEED, url=f"{target_url}/packages/{file_name}")
            )
            if kernel:
                kmods_key = f"{kernel.version}-{kernel.release}-{kernel.vermagic}"
                feeds.append(
                    FeedDescriptor(name=KMODS_FEED, url=f"{target_url}/kmods/{kmods_key}/{file_name}")
                )

        return feeds

    def feed_urls(
        self,
        version: str,
        architecture: str,
        target: Optional[str] = None,
        kernel: Optional[KernelInfo] = None,
    ) -> List[str]:
        return [feed.url for feed in self.resolve(version, architecture, target, kernel)]


def parse_feed(url: str, data: bytes, feed_name: str) -> List[PackageRecord]:
    """
    Route a fetched index to the matching parser by its file name.
    """
    if url.lower().endswith(ADB_INDEX_FILENAME):
        return parse_adb_feed(data, feed_name)
    return parse_packages_file(data.decode("utf-8", errors="replace"), feed_name)


def _local_path(url: str) -> Optional[Path]:
    if url.startswith("file://"):
        return Path(url[len("file://"):])
    if "://" not in url:
        return Path(url)
    return None


class FeedLoader:
    """
    Fetches and parses feed indexes over HTTP, or from disk for local paths.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.settings.request_timeout_seconds,
            transport=self.transport,
        )

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> bytes:
        path = _local_path(url)
        if path is not None:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()

        response = await client.get(url)
        response.raise_for_status()
        return response.content

    async def fetch_feed_packages(self, url: str, feed_name: str) -> List[PackageRecord]:
        """Fetch one index and parse it into package records."""
        async with self._client() as client:
            data = await self._fetch(client, url)
        return parse_feed(url, data, feed_name)

    async def load_feed(self, feed: FeedDescriptor, client: httpx.AsyncClient) -> None:
        """
        Load one feed into its descriptor. Errors are recorded, not raised.
        """
        try:
            data = await self._fetch(client, feed.url)
            logger.debug(f"Fetched {len(data)} bytes for feed {feed.name} from {feed.url}")
            feed.packages = parse_feed(feed.url, data, feed.name)
            feed.last_updated = datetime.now(timezone.utc)
            feed.status = FeedStatus.LOADED
            logger.info(f"Loaded {len(feed.packages)} packages from feed {feed.name}")
        except Exception as e:
            logger.error(f"Failed to load {feed.name} feed from {feed.url}: {e}")
            feed.packages = []
            feed.error = f"Failed to load: {e}"
            feed.status = FeedStatus.ERROR

    async def load_all(self, feeds: List[FeedDescriptor]) -> None:
        """Load every feed concurrently; returns once all have settled."""
        async with self._client() as client:
            await asyncio.gather(*(self.load_feed(feed, client) for feed in feeds))
