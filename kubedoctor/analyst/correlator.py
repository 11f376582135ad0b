"""Fault correlation: one group per concrete resource, one primary per group."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from kubedoctor.models.analysis import ResourceKey
from kubedoctor.models.faults import FaultRecord


def correlate(faults: Iterable[FaultRecord]) -> dict[ResourceKey, list[FaultRecord]]:
    """Group *faults* by (namespace, resource_kind, resource_name).

    Groups and their members keep first-seen order. A ``None`` namespace
    only matches other ``None`` namespaces.
    """
    groups: dict[ResourceKey, list[FaultRecord]] = {}
    for fault in faults:
        groups.setdefault(ResourceKey.of(fault), []).append(fault)
    return groups


def select_primary(group: Sequence[FaultRecord]) -> FaultRecord:
    """Return the most severe member; ties go to the earliest detected.

    Raises:
        ValueError: if *group* is empty.
    """
    if not group:
        raise ValueError("Cannot select a primary fault from an empty group")
    # min() keeps the first of equal keys, which gives the tie break.
    return min(group, key=lambda f: f.severity.rank)  # type: ignore[union-attr]


def related_faults(primary: FaultRecord, faults: Iterable[FaultRecord]) -> list[FaultRecord]:
    """Return every other fault on the primary's resource, excluding the primary itself."""
    key = ResourceKey.of(primary)
    return [f for f in faults if f is not primary and ResourceKey.of(f) == key]
