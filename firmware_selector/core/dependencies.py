from fastapi import Request

from firmware_selector.services.package_store import PackageStore


def get_package_store(request: Request) -> PackageStore:
    return request.app.state.package_store
