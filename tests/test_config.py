"""Settings loading and persistence."""

from __future__ import annotations

import json
from pathlib import Path

from firmware_selector.core.config import DATA_ROOT_ENV_VAR, Settings, get_data_dir, load_settings


class TestSettings:
    def test_defaults_are_written_back(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path)
        assert settings == Settings()
        saved = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))
        assert saved["image_url"] == "https://downloads.openwrt.org"
        assert saved["apk_versions"] == ["SNAPSHOT"]

    def test_partial_file_is_merged(self, tmp_path: Path) -> None:
        (tmp_path / "settings.json").write_text(
            json.dumps({"image_url": "https://mirror.example", "apk_versions": ["SNAPSHOT", "25.12.0"]}),
            encoding="utf-8",
        )
        settings = load_settings(tmp_path)
        assert settings.image_url == "https://mirror.example"
        assert settings.apk_versions == ["SNAPSHOT", "25.12.0"]
        assert settings.request_timeout_seconds == 30.0
        saved = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))
        assert saved["brand_name"] == "OpenWrt"

    def test_unreadable_file_falls_back_to_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "settings.json").write_text("{not json", encoding="utf-8")
        assert load_settings(tmp_path) == Settings()

    def test_data_dir_from_environment(self, tmp_path: Path, monkeypatch) -> None:
        target = tmp_path / "nested" / "data"
        monkeypatch.setenv(DATA_ROOT_ENV_VAR, str(target))
        assert get_data_dir() == target
        assert target.is_dir()
        assert load_settings().image_url == "https://downloads.openwrt.org"
        assert (target / "settings.json").exists()
