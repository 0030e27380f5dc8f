"""Device sessions: feed loading, kernel lookup, catalog queries and selection helpers."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from firmware_selector.domain.models import DeviceProfile, FeedStatus, KernelInfo, PackageSearchFilter
from firmware_selector.services.feeds import FeedLoader, FeedResolver
from firmware_selector.services.package_store import PackageStore
from firmware_selector.services.profiles import ProfileClient
from tests.conftest import IMAGE_URL, control_block, text_index

RELEASE = f"{IMAGE_URL}/releases/23.05.4"
ARCH = f"{RELEASE}/packages/mips_24kc"
TARGET = f"{RELEASE}/targets/ath79/generic"
KERNEL = {"version": "5.15.150", "release": "1", "vermagic": "feedbeef"}

PROFILES_JSON = {
    "version_number": "23.05.4",
    "arch_packages": "mips_24kc",
    "default_packages": ["base-files", "dnsmasq"],
    "linux_kernel": KERNEL,
    "profiles": {"tplink_archer-c7-v2": {"device_packages": ["kmod-ath10k"]}},
}


def _routes() -> dict:
    return {
        f"{ARCH}/base/Packages": text_index(
            control_block("base-files"),
            control_block("dnsmasq", "libubox (>= 2023), libc", section="net"),
            control_block("libubox", section="libs", size=40),
        ),
        f"{ARCH}/luci/Packages": text_index(
            control_block("luci", "luci-base, uhttpd", section="luci", size=100),
            control_block("luci-base", "libubox", section="luci", size=200),
        ),
        f"{ARCH}/packages/Packages": text_index(control_block("uhttpd", "libubox", section="net", size=30)),
        f"{TARGET}/packages/Packages": text_index(control_block("kmod-ath10k", section="kernel")),
        f"{TARGET}/kmods/5.15.150-1-feedbeef/Packages": text_index(control_block("kmod-usb-core", section="kernel")),
        f"{TARGET}/profiles.json": PROFILES_JSON,
    }


@pytest.fixture
def transport(make_transport):
    return make_transport(_routes())


@pytest.fixture
def store(settings, transport) -> PackageStore:
    resolver = FeedResolver(settings)
    return PackageStore(
        settings,
        resolver=resolver,
        loader=FeedLoader(settings, transport),
        profiles=ProfileClient(resolver, transport),
    )


def _profile(**kwargs) -> DeviceProfile:
    return DeviceProfile(target="ath79/generic", default_packages=["base-files", "dnsmasq"], **kwargs)


class TestDeviceLoading:
    def test_loads_all_feeds_and_tolerates_failures(self, store: PackageStore) -> None:
        feeds = asyncio.run(store.select_device("23.05.4", "mips_24kc", "ath79/generic", _profile()))

        statuses = {f.name: f.status for f in feeds}
        assert statuses["telephony"] == FeedStatus.ERROR
        assert statuses["base"] == FeedStatus.LOADED
        assert statuses["kmods"] == FeedStatus.LOADED
        assert store.is_loading is False
        assert store.total_packages == 8
        assert store.sources() == ["base", "luci", "packages", "telephony", "target-packages", "kmods"]

    def test_kernel_fetched_once_and_cached(self, store: PackageStore, transport) -> None:
        asyncio.run(store.select_device("23.05.4", "mips_24kc", "ath79/generic", _profile()))
        asyncio.run(store.select_device("23.05.4", "mips_24kc", "ath79/generic", _profile()))
        profile_requests = [u for u in transport.requests if u.endswith("profiles.json")]
        assert len(profile_requests) == 1
        assert any(f.name == "kmods" for f in store.feeds)

    def test_kernel_taken_from_profile(self, store: PackageStore, transport) -> None:
        profile = _profile(linux_kernel=KernelInfo(**KERNEL))
        asyncio.run(store.select_device("23.05.4", "mips_24kc", "ath79/generic", profile))
        assert not any(u.endswith("profiles.json") for u in transport.requests)

    def test_device_switch_clears_selection_and_replaces_feeds(self, store: PackageStore) -> None:
        asyncio.run(store.select_device("23.05.4", "mips_24kc", "ath79/generic", _profile()))
        store.toggle("luci")
        store.toggle("dnsmasq")
        old_feeds = store.feeds

        asyncio.run(store.select_device("23.05.4", "mips_24kc", None, DeviceProfile(default_packages=["luci"])))
        assert store.build_packages() == ["luci"]
        assert store.feeds is not old_feeds
        assert [f.name for f in store.feeds] == ["base", "luci", "packages", "telephony"]

    def test_late_finishing_switch_does_not_replace_newer_device(self, settings) -> None:
        started = None
        release = None

        async def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            if url.endswith("/targets/t1/old/profiles.json"):
                started.set()
                await release.wait()
                return httpx.Response(200, json=PROFILES_JSON)
            return httpx.Response(404, text="not found")

        async def scenario() -> PackageStore:
            nonlocal started, release
            started = asyncio.Event()
            release = asyncio.Event()
            transport = httpx.MockTransport(handler)
            resolver = FeedResolver(settings)
            store = PackageStore(
                settings,
                resolver=resolver,
                loader=FeedLoader(settings, transport),
                profiles=ProfileClient(resolver, transport),
            )

            old = asyncio.create_task(
                store.select_device("23.05.4", "mips_24kc", "t1/old", DeviceProfile(default_packages=["old-default"]))
            )
            await started.wait()
            new_profile = DeviceProfile(default_packages=["new-default"], linux_kernel=KernelInfo(**KERNEL))
            await store.select_device("23.05.4", "aarch64", "t2/new", new_profile)
            release.set()
            await old
            return store

        store = asyncio.run(scenario())

        assert all("/t1/old/" not in f.url and "/mips_24kc/" not in f.url for f in store.feeds)
        assert [f.name for f in store.feeds][-1] == "kmods"
        assert store.build_packages() == ["new-default"]
        assert store.is_loading is False
        assert store.error == ""

    def test_device_profile_from_profiles_json(self, settings, transport) -> None:
        client = ProfileClient(FeedResolver(settings), transport)
        profile = asyncio.run(client.get_device_profile("23.05.4", "ath79/generic", "tplink_archer-c7-v2"))
        assert profile.default_packages == ["base-files", "dnsmasq"]
        assert profile.device_packages == ["kmod-ath10k"]
        assert profile.linux_kernel.vermagic == "feedbeef"
        assert asyncio.run(client.get_device_profile("23.05.4", "ath79/generic", "unknown")) is None


class TestCatalog:
    @pytest.fixture(autouse=True)
    def _load(self, store: PackageStore) -> None:
        asyncio.run(store.select_device("23.05.4", "mips_24kc", "ath79/generic", _profile()))

    def test_search(self, store: PackageStore) -> None:
        names = [p.name for p in store.search(PackageSearchFilter(query="LUCI"))]
        assert names == ["luci", "luci-base"]
        names = [p.name for p in store.search(PackageSearchFilter(section="net", source="packages"))]
        assert names == ["uhttpd"]

    def test_sections(self, store: PackageStore) -> None:
        assert store.sections() == ["kernel", "libs", "luci", "net", "utils"]

    def test_dependency_queries(self, store: PackageStore) -> None:
        assert store.get_dependencies("luci") == ["luci-base", "libubox", "uhttpd"]
        assert store.get_dependents("libubox") == ["dnsmasq", "luci-base", "uhttpd"]
        assert store.get_package_info("nope") is None

    def test_add_with_dependencies(self, store: PackageStore) -> None:
        affected = store.add_with_dependencies("luci")
        assert affected == ["luci", "luci-base", "libubox", "uhttpd"]
        assert store.build_packages() == ["base-files", "dnsmasq", "luci", "luci-base", "libubox", "uhttpd"]

    def test_remove_with_dependents(self, store: PackageStore) -> None:
        store.add_with_dependencies("luci")
        affected = store.remove_with_dependents("libubox")
        assert affected == ["dnsmasq", "luci-base", "uhttpd", "libubox"]
        assert store.selection.added == ["luci"]
        assert store.status("dnsmasq") == "default"
        assert store.build_packages() == ["base-files", "dnsmasq", "luci"]

    def test_remove_with_dependents_deselects_default_target(self, store: PackageStore) -> None:
        store.remove_with_dependents("dnsmasq")
        assert store.build_packages() == ["base-files", "-dnsmasq"]

    def test_total_size_counts_added_packages(self, store: PackageStore) -> None:
        store.toggle("luci")
        store.toggle("uhttpd")
        store.toggle("not-in-any-feed")
        sizes = store.total_size()
        assert sizes.download_size == 130
        assert sizes.installed_size == 260

    def test_custom_feeds(self, store: PackageStore) -> None:
        extra = list(store.feeds[0].packages[:1])
        store.add_custom_feed("modules", extra)
        assert store.sources()[-1] == "modules"
        store.add_custom_feed("modules", [])
        assert store.feeds[-1].packages == []
        store.remove_custom_feed("modules")
        assert "modules" not in store.sources()

    def test_clear_all(self, store: PackageStore) -> None:
        store.toggle("luci")
        store.clear_all()
        assert store.feeds == []
        assert store.snapshot().added_packages == []
