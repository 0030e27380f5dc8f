"""
Dependency string normalization shared by the text and binary index parsers.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional

# Dependency match bits used by ADB dependency objects
DEP_EQUAL = 1
DEP_LESS = 2
DEP_GREATER = 4
DEP_FUZZY = 8
DEP_CONFLICT = 16

DEPMASK_ANY = DEP_EQUAL | DEP_LESS | DEP_GREATER
DEPMASK_CHECKSUM = DEP_LESS | DEP_GREATER

# Always present on the device, never listed as a dependency
IMPLICIT_DEPENDENCIES = frozenset({"libc"})

_VERSION_OPS = {
    DEP_LESS: "<",
    DEP_LESS | DEP_EQUAL: "<=",
    DEP_LESS | DEP_EQUAL | DEP_FUZZY: "<~",
    DEP_EQUAL | DEP_FUZZY: "~",
    DEP_FUZZY: "~",
    DEP_EQUAL: "=",
    DEP_GREATER | DEP_EQUAL: ">=",
    DEP_GREATER | DEP_EQUAL | DEP_FUZZY: ">~",
    DEP_GREATER: ">",
    DEPMASK_CHECKSUM: "><",
    DEPMASK_ANY: "",
}

_ADB_NAME_RE = re.compile(r"^([^<>=~\s]+)")


def version_op_string(mask: int) -> str:
    """
    Render the comparison bits of a dependency mask.

    The conflict bit is ignored here. A zero mask means "equal"; combinations
    without a table entry are looked up again with the fuzzy bit dropped.
    """
    op = mask & (DEPMASK_ANY | DEP_FUZZY)
    if op == 0:
        op = DEP_EQUAL
    if op in _VERSION_OPS:
        return _VERSION_OPS[op]
    op &= ~DEP_FUZZY
    return _VERSION_OPS.get(op or DEP_EQUAL, "=")


def render_dependency(name: str, version: Optional[str] = None, mask: int = 0) -> str:
    """
    Render an ADB dependency object, e.g. ``!foo>=1.2``.
    """
    if not mask:
        mask = DEP_EQUAL
    sign = "!" if mask & DEP_CONFLICT else ""
    if not version:
        return f"{sign}{name}"
    return f"{sign}{name}{version_op_string(mask)}{version}"


def clean_dependency(dep: str) -> str:
    """Strip a conflict marker and any operator/version suffix from an ADB dependency string."""
    stripped = dep.strip()
    if stripped.startswith("!"):
        stripped = stripped[1:]
    m = _ADB_NAME_RE.match(stripped)
    return m.group(1).strip() if m else stripped


def dependency_names(deps: Iterable[str]) -> List[str]:
    """
    Reduce rendered ADB dependency strings to plain, de-duplicated names.
    """
    return _unique(clean_dependency(str(d)) for d in deps)


def parse_depends_field(value: str) -> List[str]:
    """
    Parse a text-index ``Depends`` value such as ``bar (>= 1.0), libc``.
    """
    if not value:
        return []
    names = []
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        # Remove version constraints like "(>= 1.0.0)"
        names.append(entry.split("(", 1)[0].strip())
    return _unique(names)


def _unique(names: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for name in names:
        if not name or name in IMPLICIT_DEPENDENCIES or name in seen:
            continue
        seen.add(name)
        out.append(name)
    return out
