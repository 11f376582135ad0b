"""Tests for the fault taxonomy, severity ordering and FaultRecord."""

from __future__ import annotations

import dataclasses

import pytest

from kubedoctor.models.faults import ContextKey, FaultKind, Severity

from tests.factories import make_fault


class TestSeverity:
    def test_rank_orders_critical_first(self) -> None:
        ranked = sorted(Severity, key=lambda s: s.rank)
        assert ranked == [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]

    def test_at_least_is_inclusive(self) -> None:
        assert Severity.MEDIUM.at_least(Severity.MEDIUM)
        assert Severity.CRITICAL.at_least(Severity.MEDIUM)
        assert not Severity.LOW.at_least(Severity.MEDIUM)


class TestFaultKind:
    def test_codes_are_unique(self) -> None:
        codes = [k.code for k in FaultKind]
        assert len(codes) == len(set(codes))

    @pytest.mark.parametrize(
        ("kind", "severity"),
        [
            (FaultKind.OOM_KILLED, Severity.CRITICAL),
            (FaultKind.CRASH_LOOP_BACK_OFF, Severity.CRITICAL),
            (FaultKind.NODE_NOT_READY, Severity.CRITICAL),
            (FaultKind.PENDING, Severity.HIGH),
            (FaultKind.READINESS_PROBE_FAILED, Severity.MEDIUM),
            (FaultKind.NODE_PRESSURE, Severity.MEDIUM),
            (FaultKind.UNKNOWN, Severity.LOW),
        ],
    )
    def test_default_severity(self, kind: FaultKind, severity: Severity) -> None:
        assert kind.severity is severity

    def test_from_code_round_trips(self) -> None:
        assert FaultKind.from_code("CrashLoopBackOff") is FaultKind.CRASH_LOOP_BACK_OFF

    def test_from_code_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown fault kind"):
            FaultKind.from_code("Exploded")


class TestFaultRecord:
    def test_severity_defaults_to_kind(self) -> None:
        assert make_fault(FaultKind.PENDING).severity is Severity.HIGH

    def test_explicit_severity_overrides_kind(self) -> None:
        fault = make_fault(FaultKind.CRONJOB_FAILED, severity=Severity.HIGH)
        assert fault.severity is Severity.HIGH

    def test_record_is_immutable(self) -> None:
        fault = make_fault()
        with pytest.raises(dataclasses.FrozenInstanceError):
            fault.summary = "changed"  # type: ignore[misc]
        with pytest.raises(TypeError):
            fault.context[ContextKey.CLUSTER_ID] = "prod"  # type: ignore[index]

    def test_with_context_returns_new_record(self) -> None:
        fault = make_fault()
        stamped = fault.with_context(ContextKey.CLUSTER_ID, "prod-eu")
        assert stamped is not fault
        assert stamped.get(ContextKey.CLUSTER_ID) == "prod-eu"
        assert ContextKey.CLUSTER_ID not in fault.context
        assert stamped.kind is fault.kind

    def test_context_is_copied_from_caller(self) -> None:
        ctx = {ContextKey.OWNER_KIND: "Deployment"}
        fault = make_fault(context=ctx)
        ctx[ContextKey.OWNER_KIND] = "StatefulSet"
        assert fault.owner_kind == "Deployment"

    def test_owner_falls_back_to_resource(self) -> None:
        fault = make_fault(context={})
        assert fault.owner_kind == "Pod"
        assert fault.owner_name == fault.resource_name

    def test_records_compare_by_identity(self) -> None:
        assert make_fault() != make_fault()

    def test_to_dict_uses_codes_and_string_keys(self) -> None:
        data = make_fault(FaultKind.OOM_KILLED).to_dict()
        assert data["kind"] == "OOMKilled"
        assert data["severity"] == "critical"
        assert data["context"] == {"ownerKind": "Deployment", "ownerName": "api"}
