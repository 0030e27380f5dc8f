"""packages.adb index decoding and record mapping."""

from __future__ import annotations

import zlib

import pytest

from firmware_selector.data.adb.index import (
    ADBI_PI_DEPENDS,
    ADBI_PI_DESCRIPTION,
    ADBI_PI_FILE_SIZE,
    ADBI_PI_HASHES,
    ADBI_PI_INSTALLED_SIZE,
    ADBI_PI_LICENSE,
    ADBI_PI_PROVIDES,
    ADBI_PI_TAGS,
    ADBI_PI_URL,
    map_adb_packages,
    parse_adb_feed,
    parse_packages_adb,
)
from firmware_selector.data.depends import DEP_CONFLICT, DEP_EQUAL, DEP_GREATER
from firmware_selector.domain.errors import FormatError
from firmware_selector.domain.models import AdbPackageInfo
from tests.adb_builder import AdbBuilder, block, container, index_file, pkginfo, raw_deflate

HASH = bytes.fromhex("0badc0ffee")


class TestMinimalIndex:
    def test_single_package_round_trip(self) -> None:
        b = AdbBuilder()
        pkg = pkginfo(b, "foo", "1.0-r1", "x86_64", {ADBI_PI_HASHES: b.blob(HASH)})
        records = parse_adb_feed(index_file(b, [pkg]), "base")

        assert len(records) == 1
        rec = records[0]
        assert rec.name == "foo"
        assert rec.version == "1.0-r1"
        assert rec.architecture == "x86_64"
        assert rec.sha256sum == "0badc0ffee"
        assert rec.section == ""
        assert rec.filename == "foo_1.0-r1_x86_64.apk"
        assert rec.dependencies == ()
        assert rec.size == 0
        assert rec.installed_size == 0
        assert rec.license is None
        assert rec.source == "base"

    def test_deflate_envelope(self) -> None:
        b = AdbBuilder()
        data = index_file(b, [pkginfo(b, "foo", "1", "all")])
        assert [r.name for r in parse_adb_feed(b"ADBd" + raw_deflate(data), "luci")] == ["foo"]
        assert [r.name for r in parse_adb_feed(b"ADBc\x01\x09" + zlib.compress(data), "luci")] == ["foo"]


class TestFullPkginfo:
    def _index(self):
        b = AdbBuilder()
        depends = b.array([
            b.dependency("libc"),
            b.dependency("libubox", "2024.01", DEP_GREATER | DEP_EQUAL),
            b.dependency("dnsmasq", match=DEP_CONFLICT),
            b.dependency("libubox", "1"),
        ])
        provides = b.array([b.dependency("uhttpd-any", "1", DEP_EQUAL)])
        pkg = pkginfo(b, "uhttpd", "2023.06.25-r1", "mips_24kc", {
            ADBI_PI_DESCRIPTION: b.string("Tiny HTTP server"),
            ADBI_PI_LICENSE: b.string("ISC"),
            ADBI_PI_URL: b.string("https://openwrt.org"),
            ADBI_PI_INSTALLED_SIZE: b.int32(81920),
            ADBI_PI_FILE_SIZE: b.small_int(30210),
            ADBI_PI_DEPENDS: depends,
            ADBI_PI_PROVIDES: provides,
            ADBI_PI_TAGS: b.array([b.string("web"), b.string("server")]),
        })
        return index_file(b, [pkg, 0], description="OpenWrt base")

    def test_dump_fields(self) -> None:
        index = parse_packages_adb(self._index())
        assert index.description == "OpenWrt base"
        assert len(index.packages) == 1
        info = index.packages[0]
        assert info.depends == ["libc", "libubox>=2024.01", "!dnsmasq", "libubox=1"]
        assert info.provides == ["uhttpd-any=1"]
        assert info.tags == ["web", "server"]
        assert info.installed_size == 81920
        assert info.file_size == 30210

    def test_dump_serializes_with_dashed_keys(self) -> None:
        dumped = parse_packages_adb(self._index()).model_dump(by_alias=True, exclude_none=True)
        assert dumped["packages"][0]["installed-size"] == 81920
        assert "repo-commit" not in dumped["packages"][0]

    def test_record_mapping(self) -> None:
        (rec,) = parse_adb_feed(self._index(), "packages")
        assert rec.dependencies == ("libubox", "dnsmasq")
        assert rec.description == "Tiny HTTP server"
        assert rec.license == "ISC"
        assert rec.url == "https://openwrt.org"
        assert rec.size == 30210
        assert rec.installed_size == 81920


class TestMapping:
    @pytest.mark.parametrize("missing", ["name", "version", "arch"])
    def test_entries_missing_mandatory_fields_are_skipped(self, missing: str) -> None:
        fields = {"name": "a", "version": "1", "arch": "all"}
        fields[missing] = None
        assert map_adb_packages([AdbPackageInfo(**fields)], "base") == []

    def test_package_without_arch_not_emitted(self) -> None:
        b = AdbBuilder()
        data = index_file(b, [pkginfo(b, "noarch", "1", None), pkginfo(b, "ok", "1", "all")])
        assert [r.name for r in parse_adb_feed(data, "base")] == ["ok"]


class TestIndexErrors:
    def test_wrong_schema(self) -> None:
        b = AdbBuilder()
        root = b.obj({})
        data = container([block(b.payload(root))], schema=0x676B6370)  # 'pckg'
        with pytest.raises(FormatError) as exc:
            parse_packages_adb(data)
        assert exc.value.reason == "schema"

    def test_empty_root_has_no_packages(self) -> None:
        b = AdbBuilder()
        root = b.obj({})
        index = parse_packages_adb(container([block(b.payload(root))]))
        assert index.packages == []
        assert index.description is None
