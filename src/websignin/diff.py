"""Diff classification for web sign-in property snapshots.

Both the advisory Diff verb and the Update verb use this module, so the
engine's preview and the actual reconciliation always agree.

REPLACE POLICY:
- objectId changed: the identity itself moved, so the resource is replaced.
  The target is a pre-existing directory object that is claimed rather than
  created, so the old one is released before the new one is configured
  (delete-before-replace).
- hostName changed: the sign-in URLs are patched in place.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .models import OBJECT_ID, TRACKED_FIELDS

_MISSING = object()


class DiffChanges(str, Enum):
    """Overall change classification reported to the engine."""

    UNKNOWN = "unknown"
    NONE = "none"
    SOME = "some"


class PropertyDiffKind(str, Enum):
    """Per-field change kinds, mirroring the engine's detailed diff."""

    ADD = "add"
    ADD_REPLACE = "add_replace"
    DELETE = "delete"
    DELETE_REPLACE = "delete_replace"
    UPDATE = "update"
    UPDATE_REPLACE = "update_replace"


# Fields whose change requires destroy-then-recreate
REPLACE_FIELDS: frozenset[str] = frozenset({OBJECT_ID})


@dataclass(frozen=True)
class DiffResult:
    """Outcome of comparing two property snapshots.

    Attributes:
        changes: NONE when no tracked field differs, SOME otherwise.
        diffs: Changed field names, objectId before hostName.
        replaces: Subset of diffs that require replacement.
        detailed_diff: Per-field change kind.
        delete_before_replace: True when the old object must be released first.
    """

    changes: DiffChanges = DiffChanges.NONE
    diffs: tuple[str, ...] = ()
    replaces: tuple[str, ...] = ()
    detailed_diff: dict[str, PropertyDiffKind] = field(default_factory=dict)
    delete_before_replace: bool = False

    @property
    def has_changes(self) -> bool:
        return self.changes == DiffChanges.SOME

    def changed(self, name: str) -> bool:
        """Check whether a tracked field changed."""
        return name in self.diffs

    @property
    def requires_replace(self) -> bool:
        return bool(self.replaces)


def _field_kind(old: Any, new: Any, replace: bool) -> PropertyDiffKind:
    if old is _MISSING:
        return PropertyDiffKind.ADD_REPLACE if replace else PropertyDiffKind.ADD
    if new is _MISSING:
        return PropertyDiffKind.DELETE_REPLACE if replace else PropertyDiffKind.DELETE
    return PropertyDiffKind.UPDATE_REPLACE if replace else PropertyDiffKind.UPDATE


def diff_properties(olds: Mapping[str, Any], news: Mapping[str, Any]) -> DiffResult:
    """Compare the tracked fields of two snapshots.

    A field counts as changed when its value differs or when it is present
    in only one of the snapshots. Untracked keys are ignored.
    """
    diffs: list[str] = []
    replaces: list[str] = []
    detailed: dict[str, PropertyDiffKind] = {}

    for name in TRACKED_FIELDS:
        old = olds.get(name, _MISSING)
        new = news.get(name, _MISSING)
        if old is _MISSING and new is _MISSING:
            continue
        if old is not _MISSING and new is not _MISSING and old == new:
            continue

        replace = name in REPLACE_FIELDS
        diffs.append(name)
        if replace:
            replaces.append(name)
        detailed[name] = _field_kind(old, new, replace)

    if not diffs:
        return DiffResult()

    return DiffResult(
        changes=DiffChanges.SOME,
        diffs=tuple(diffs),
        replaces=tuple(replaces),
        detailed_diff=detailed,
        delete_before_replace=bool(replaces),
    )
