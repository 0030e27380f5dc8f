from __future__ import annotations

from typing import Callable, Dict, List

import httpx
import pytest

from firmware_selector.core.config import Settings

IMAGE_URL = "https://mirror.test"


def text_index(*blocks: str) -> bytes:
    return "\n\n".join(blocks).encode("utf-8")


def control_block(name: str, depends: str = "", section: str = "utils", size: int = 10) -> str:
    lines = [
        f"Package: {name}",
        "Version: 1.0-1",
        "Architecture: all",
        f"Filename: {name}_1.0-1_all.ipk",
        f"Section: {section}",
        f"Size: {size}",
        f"Installed-Size: {size * 2}",
        f"Description: {name} package",
    ]
    if depends:
        lines.append(f"Depends: {depends}")
    return "\n".join(lines)


class RecordingTransport(httpx.MockTransport):
    """Serves fixed bodies by URL and records every requested URL; unknown URLs get 404."""

    def __init__(self, routes: Dict[str, object]):
        self.routes = routes
        self.requests: List[str] = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        body = self.routes.get(url)
        if body is None:
            return httpx.Response(404, text="not found")
        if isinstance(body, dict):
            return httpx.Response(200, json=body)
        return httpx.Response(200, content=body)


@pytest.fixture
def settings() -> Settings:
    return Settings(image_url=IMAGE_URL, apk_versions=["SNAPSHOT"], request_timeout_seconds=5)


@pytest.fixture
def make_transport() -> Callable[[Dict[str, object]], RecordingTransport]:
    return RecordingTransport
