"""Tests for fault grouping and primary selection."""

from __future__ import annotations

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from kubedoctor.analyst.correlator import correlate, related_faults, select_primary
from kubedoctor.models.analysis import ResourceKey
from kubedoctor.models.faults import ContextKey, FaultKind, Severity

from tests.factories import make_fault

_kinds = st.sampled_from(list(FaultKind))
_names = st.sampled_from(["api-1", "api-2", "worker-1"])
_namespaces = st.sampled_from(["default", "batch", None])


@st.composite
def _faults(draw: st.DrawFn):
    return make_fault(
        kind=draw(_kinds),
        resource_name=draw(_names),
        namespace=draw(_namespaces),
        severity=draw(st.sampled_from(list(Severity))),
    )


class TestCorrelate:
    def test_groups_by_namespace_kind_and_name(self) -> None:
        a = make_fault(FaultKind.OOM_KILLED, resource_name="api-1")
        b = make_fault(FaultKind.READINESS_PROBE_FAILED, resource_name="api-1")
        c = make_fault(FaultKind.OOM_KILLED, resource_name="api-2")
        d = make_fault(FaultKind.OOM_KILLED, resource_name="api-1", namespace="staging")

        groups = correlate([a, b, c, d])

        assert list(groups) == [
            ResourceKey("default", "Pod", "api-1"),
            ResourceKey("default", "Pod", "api-2"),
            ResourceKey("staging", "Pod", "api-1"),
        ]
        assert groups[ResourceKey("default", "Pod", "api-1")] == [a, b]

    def test_none_namespace_only_matches_none(self) -> None:
        node = make_fault(FaultKind.NODE_NOT_READY, resource_kind="Node", resource_name="worker-1", namespace=None)
        pod = make_fault(FaultKind.OOM_KILLED, resource_kind="Node", resource_name="worker-1", namespace="default")
        assert len(correlate([node, pod])) == 2

    def test_empty_input(self) -> None:
        assert correlate([]) == {}

    @given(st.lists(_faults(), max_size=30))
    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_partition_is_exact(self, faults: list) -> None:
        groups = correlate(faults)
        flattened = [f for group in groups.values() for f in group]

        assert sorted(map(id, flattened)) == sorted(map(id, faults))
        for key, group in groups.items():
            assert group
            assert all(ResourceKey.of(f) == key for f in group)


class TestSelectPrimary:
    def test_most_severe_wins(self) -> None:
        readiness = make_fault(FaultKind.READINESS_PROBE_FAILED)
        oom = make_fault(FaultKind.OOM_KILLED)
        assert select_primary([readiness, oom]) is oom

    def test_tie_goes_to_first_detected(self) -> None:
        pending = make_fault(
            FaultKind.PENDING,
            context={ContextKey.ISSUE_CATEGORY: "RESOURCE_SHORTAGE"},
        )
        error = make_fault(FaultKind.ERROR)

        assert pending.severity is error.severity is Severity.HIGH
        assert select_primary([pending, error]) is pending

    def test_empty_group_raises(self) -> None:
        with pytest.raises(ValueError, match="empty group"):
            select_primary([])

    @given(st.lists(_faults(), min_size=1, max_size=20))
    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_primary_is_earliest_of_highest_severity(self, group: list) -> None:
        primary = select_primary(group)
        best = min(f.severity.rank for f in group)

        assert primary.severity.rank == best
        assert group.index(primary) == min(i for i, f in enumerate(group) if f.severity.rank == best)


class TestRelatedFaults:
    def test_excludes_primary_and_other_resources(self) -> None:
        primary = make_fault(FaultKind.OOM_KILLED, resource_name="api-1")
        sibling = make_fault(FaultKind.READINESS_PROBE_FAILED, resource_name="api-1")
        other = make_fault(FaultKind.OOM_KILLED, resource_name="api-2")

        assert related_faults(primary, [primary, sibling, other]) == [sibling]

    def test_keeps_equal_looking_records(self) -> None:
        primary = make_fault(FaultKind.OOM_KILLED)
        twin = make_fault(FaultKind.OOM_KILLED)
        assert related_faults(primary, [primary, twin]) == [twin]
