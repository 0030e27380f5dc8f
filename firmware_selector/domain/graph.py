"""
Read-only dependency queries over a loaded package set.
"""
from __future__ import annotations

from typing import Dict, Iterable, List

from firmware_selector.domain.models import PackageRecord


def dependency_map(packages: Iterable[PackageRecord]) -> Dict[str, List[str]]:
    """
    Map each package name to its dependency names.

    When a name occurs in several feeds the dependency lists are merged in
    load order.
    """
    deps: Dict[str, List[str]] = {}
    for pkg in packages:
        merged = deps.setdefault(pkg.name, [])
        for dep in pkg.dependencies:
            if dep not in merged:
                merged.append(dep)
    return deps


def expand(name: str, packages: Iterable[PackageRecord]) -> List[str]:
    """
    Return every package reachable from ``name`` through dependencies, in
    depth-first discovery order. ``name`` itself is never included, and
    cycles terminate.
    """
    deps = dependency_map(packages)
    visited = {name}
    result: List[str] = []
    stack = [iter(deps.get(name, ()))]
    while stack:
        dep = next(stack[-1], None)
        if dep is None:
            stack.pop()
            continue
        if dep in visited:
            continue
        visited.add(dep)
        result.append(dep)
        stack.append(iter(deps.get(dep, ())))
    return result


def dependents(name: str, packages: Iterable[PackageRecord]) -> List[str]:
    """Return the names of packages that list ``name`` as a dependency."""
    out: List[str] = []
    for pkg in packages:
        if name in pkg.dependencies and pkg.name not in out:
            out.append(pkg.name)
    return out
