"""
Three-state package selection relative to a device profile's default packages.

Every package name is in one of three states:

* ``unset``   - nothing recorded; defaults are included, other packages are not
* ``added``   - a non-default package the user asked for
* ``removed`` - a default package the user asked to drop

``added`` is only reachable for names outside the default set and
``removed`` only for names inside it. Every mutation enforces this; a
request that would break it is clamped to ``unset``.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional

from firmware_selector.domain.models import PackageStatus, SelectionSnapshot

logger = logging.getLogger(__name__)


class SelectionState(str, Enum):
    UNSET = "unset"
    ADDED = "added"
    REMOVED = "removed"


class PackageSelection:
    """Selection state for one device session."""

    def __init__(self, defaults: Optional[Iterable[str]] = None):
        self._defaults: List[str] = []
        self._default_set: frozenset = frozenset()
        # Insertion ordered; only ADDED / REMOVED entries are stored
        self._states: Dict[str, SelectionState] = {}
        self.set_defaults(defaults or [])

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    @property
    def defaults(self) -> List[str]:
        return list(self._defaults)

    def is_default(self, name: str) -> bool:
        return name in self._default_set

    def set_defaults(self, defaults: Iterable[str]) -> None:
        """
        Install a new default-package set and drop any recorded state that
        no longer satisfies the default/added/removed rules.
        """
        ordered: List[str] = []
        for name in defaults:
            if name and name not in ordered:
                ordered.append(name)
        self._defaults = ordered
        self._default_set = frozenset(ordered)
        for name, state in list(self._states.items()):
            self.set_state(name, state)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _allowed(self, name: str, state: SelectionState) -> SelectionState:
        if state == SelectionState.ADDED and self.is_default(name):
            return SelectionState.UNSET
        if state == SelectionState.REMOVED and not self.is_default(name):
            return SelectionState.UNSET
        return state

    def set_state(self, name: str, state: SelectionState) -> SelectionState:
        """
        Set the state of ``name``, clamping to ``unset`` when the requested
        state is not reachable for it. Returns the state actually stored.
        """
        state = SelectionState(state)
        allowed = self._allowed(name, state)
        if allowed != state:
            logger.debug(f"clamping {state.value} for {name!r} to unset")
        if allowed == SelectionState.UNSET:
            self._states.pop(name, None)
        else:
            self._states[name] = allowed
        return allowed

    def state(self, name: str) -> SelectionState:
        return self._states.get(name, SelectionState.UNSET)

    def toggle(self, name: str) -> SelectionState:
        """
        Flip a default package between included and removed, or a
        non-default package between absent and added.
        """
        if self.state(name) != SelectionState.UNSET:
            return self.set_state(name, SelectionState.UNSET)
        if self.is_default(name):
            return self.set_state(name, SelectionState.REMOVED)
        return self.set_state(name, SelectionState.ADDED)

    def select(self, name: str) -> SelectionState:
        """Make ``name`` part of the build: restore a default or add a non-default."""
        if self.is_default(name):
            return self.set_state(name, SelectionState.UNSET)
        return self.set_state(name, SelectionState.ADDED)

    def deselect(self, name: str) -> SelectionState:
        """Keep ``name`` out of the build: remove a default or drop an addition."""
        if self.is_default(name):
            return self.set_state(name, SelectionState.REMOVED)
        return self.set_state(name, SelectionState.UNSET)

    def remove(self, name: str) -> SelectionState:
        """Mark a default package as removed. No effect on non-default names."""
        return self.set_state(name, SelectionState.REMOVED)

    def restore(self, name: str) -> SelectionState:
        """Return ``name`` to its profile default."""
        return self.set_state(name, SelectionState.UNSET)

    def clear(self) -> None:
        self._states.clear()

    def clear_added(self) -> None:
        for name in self.added:
            self._states.pop(name)

    def clear_removed(self) -> None:
        for name in self.removed:
            self._states.pop(name)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def added(self) -> List[str]:
        return [n for n, s in self._states.items() if s == SelectionState.ADDED]

    @property
    def removed(self) -> List[str]:
        return [n for n, s in self._states.items() if s == SelectionState.REMOVED]

    def is_selected(self, name: str) -> bool:
        if self.is_default(name):
            return self.state(name) != SelectionState.REMOVED
        return self.state(name) == SelectionState.ADDED

    def status(self, name: str) -> PackageStatus:
        if self.is_default(name):
            return "removed" if self.state(name) == SelectionState.REMOVED else "default"
        return "selected" if self.state(name) == SelectionState.ADDED else "none"

    def build_list(self) -> List[str]:
        """
        Derive the package list for a build request: the defaults minus the
        removed ones, then the added packages, then each removed default
        prefixed with ``-``.
        """
        removed = self.removed
        removed_set = set(removed)
        packages = [name for name in self._defaults if name not in removed_set]
        packages.extend(self.added)
        packages.extend(f"-{name}" for name in removed)
        return packages

    # ------------------------------------------------------------------
    # Interchange
    # ------------------------------------------------------------------

    def snapshot(self) -> SelectionSnapshot:
        return SelectionSnapshot(added_packages=self.added, removed_packages=self.removed)

    def load_snapshot(self, snapshot: SelectionSnapshot) -> None:
        """Replace the current state with a snapshot, dropping entries the defaults do not allow."""
        self.clear()
        for name in snapshot.added_packages:
            self.set_state(name, SelectionState.ADDED)
        for name in snapshot.removed_packages:
            self.set_state(name, SelectionState.REMOVED)

    def load_build_list(self, packages: Iterable[str]) -> None:
        """
        Replace the current state from a build list: ``-name`` entries are
        removals, plain non-default names are additions.
        """
        self.clear()
        for pkg in packages:
            if pkg.startswith("-"):
                self.set_state(pkg[1:], SelectionState.REMOVED)
            elif not self.is_default(pkg):
                self.set_state(pkg, SelectionState.ADDED)
