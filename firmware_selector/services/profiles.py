"""
Client for the upstream ``profiles.json`` device metadata.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from firmware_selector.domain.models import DeviceProfile, KernelInfo, ProfilesResponse
from firmware_selector.services.feeds import FeedResolver

logger = logging.getLogger(__name__)


class ProfileClient:
    """Fetches per-target profile metadata from the image server."""

    def __init__(self, resolver: FeedResolver, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.resolver = resolver
        self.transport = transport

    async def get_profiles(self, version: str, target: str) -> ProfilesResponse:
        url = f"{self.resolver.target_url(version, target)}/profiles.json"
        logger.debug(f"Fetching profiles from {url}")
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.resolver.settings.request_timeout_seconds,
            transport=self.transport,
        ) as client:
            response = await client.get(url, headers={"Cache-Control": "no-cache"})
            response.raise_for_status()
            return ProfilesResponse.model_validate(response.json())

    async def get_kernel_info(self, version: str, target: str) -> Optional[KernelInfo]:
        profiles = await self.get_profiles(version, target)
        return profiles.linux_kernel

    async def get_device_profile(self, version: str, target: str, profile_id: str) -> Optional[DeviceProfile]:
        """
        Merge the target-wide fields of profiles.json into one device profile.
        """
        profiles = await self.get_profiles(version, target)
        device = profiles.profiles.get(profile_id)
        if device is None:
            logger.warning(f"Profile {profile_id} not found for {target} ({version})")
            return None
        return DeviceProfile(
            id=profile_id,
            target=target,
            default_packages=profiles.default_packages,
            device_packages=device.get("device_packages", []),
            arch_packages=profiles.arch_packages,
            linux_kernel=profiles.linux_kernel,
        )
