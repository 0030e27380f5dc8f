from __future__ import annotations

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from firmware_selector.core.dependencies import get_package_store
from firmware_selector.domain.models import (
    DeviceProfile,
    FeedSummary,
    PackageSearchFilter,
    SelectionSnapshot,
)
from firmware_selector.domain.package_utils import feed_display_name, format_size, section_display_name
from firmware_selector.services.package_store import PackageStore

logger = logging.getLogger(__name__)
router = APIRouter()


class DeviceRequest(BaseModel):
    """Device switch request. The profile, when given, supplies defaults and kernel info."""

    version: str = Field(description="Firmware version, e.g. '23.05.4' or 'SNAPSHOT'.")
    architecture: str = Field(description="Package architecture, e.g. 'mips_24kc'.")
    target: Optional[str] = Field(default=None, description="Target, e.g. 'ath79/generic'.")
    profile: Optional[DeviceProfile] = None


class PackageNameRequest(BaseModel):
    name: str


def _selection_body(store: PackageStore) -> dict:
    sizes = store.total_size()
    return {
        **store.snapshot().model_dump(by_alias=True),
        "buildPackages": store.build_packages(),
        "downloadSize": sizes.download_size,
        "installedSize": sizes.installed_size,
        "downloadSizeText": format_size(sizes.download_size),
        "installedSizeText": format_size(sizes.installed_size),
    }


def _feeds_body(store: PackageStore) -> dict:
    return {
        "isLoading": store.is_loading,
        "error": store.error or None,
        "totalPackages": store.total_packages,
        "feeds": [
            {**FeedSummary.from_feed(f).model_dump(mode="json"), "display_name": feed_display_name(f.name)}
            for f in store.feeds
        ],
    }


# ---------------------------------------------------------------------------
# Device and feeds
# ---------------------------------------------------------------------------

@router.post("/device")
async def select_device(
    body: DeviceRequest,
    store: PackageStore = Depends(get_package_store),
) -> dict:
    """
    Switch device: clears the selection and replaces the feed set.
    Individual feed failures are reported per feed.
    """
    await store.select_device(body.version, body.architecture, body.target, body.profile)
    return _feeds_body(store)


@router.get("/feeds")
async def list_feeds(store: PackageStore = Depends(get_package_store)) -> dict:
    return _feeds_body(store)


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

@router.get("/packages")
async def search_packages(
    query: Optional[str] = Query(default=None),
    section: Optional[str] = Query(default=None),
    architecture: Optional[str] = Query(default=None),
    source: Optional[str] = Query(default=None),
    store: PackageStore = Depends(get_package_store),
) -> dict:
    flt = PackageSearchFilter(query=query, section=section, architecture=architecture, source=source)
    results = store.search(flt)
    return {
        "total": len(results),
        "packages": [
            {**pkg.model_dump(mode="json"), "status": store.status(pkg.name)}
            for pkg in results
        ],
    }


@router.get("/packages/sections")
async def list_sections(store: PackageStore = Depends(get_package_store)) -> List[dict]:
    return [
        {"section": s, "display_name": section_display_name(s)}
        for s in store.sections()
    ]


@router.get("/packages/{name}")
async def get_package(name: str, store: PackageStore = Depends(get_package_store)) -> dict:
    pkg = store.get_package_info(name)
    if pkg is None:
        raise HTTPException(status_code=404, detail=f"Package '{name}' not found")
    return {
        "package": pkg.model_dump(mode="json"),
        "status": store.status(name),
        "dependencies": store.get_dependencies(name),
        "dependents": store.get_dependents(name),
        "size_text": format_size(pkg.size),
        "installed_size_text": format_size(pkg.installed_size),
    }


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

@router.get("/selection")
async def get_selection(store: PackageStore = Depends(get_package_store)) -> dict:
    return _selection_body(store)


@router.put("/selection")
async def restore_selection(
    body: SelectionSnapshot,
    store: PackageStore = Depends(get_package_store),
) -> dict:
    store.restore(body)
    return _selection_body(store)


@router.delete("/selection")
async def clear_selection(store: PackageStore = Depends(get_package_store)) -> dict:
    store.selection.clear()
    return _selection_body(store)


@router.post("/selection/toggle")
async def toggle_package(
    body: PackageNameRequest,
    store: PackageStore = Depends(get_package_store),
) -> dict:
    status = store.toggle(body.name)
    return {"name": body.name, "status": status, **_selection_body(store)}


@router.post("/selection/add-with-dependencies")
async def add_with_dependencies(
    body: PackageNameRequest,
    store: PackageStore = Depends(get_package_store),
) -> dict:
    affected = store.add_with_dependencies(body.name)
    return {"affected": affected, **_selection_body(store)}


@router.post("/selection/remove-with-dependents")
async def remove_with_dependents(
    body: PackageNameRequest,
    store: PackageStore = Depends(get_package_store),
) -> dict:
    affected = store.remove_with_dependents(body.name)
    return {"affected": affected, **_selection_body(store)}


@router.get("/build-packages")
async def build_packages(store: PackageStore = Depends(get_package_store)) -> List[str]:
    return store.build_packages()
