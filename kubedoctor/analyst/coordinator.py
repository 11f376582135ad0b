"""Diagnosis coordinator.

Runs the diagnosis flow for one correlation group:

    gate -> fingerprint -> cache -> logs/events -> prompt -> completion
         -> parse -> cache store

and fans that out across every group found in a scan. Every failure
below the coordinator degrades to reduced context or to the built-in
fallback; nothing aborts a scan.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol

from kubedoctor.analyst.correlator import correlate, related_faults, select_primary
from kubedoctor.analyst.fallback import fallback
from kubedoctor.cache.diagnosis_cache import DiagnosisCache
from kubedoctor.cache.fingerprint import fingerprint
from kubedoctor.detector import detect
from kubedoctor.errors import CollaboratorFetchError, CompletionError
from kubedoctor.llm.builder import PromptBuilder
from kubedoctor.llm.client import DEFAULT_MAX_OUTPUT_TOKENS, CompletionClient
from kubedoctor.llm.parser import UNPARSED_ROOT_CAUSE, build_diagnosis
from kubedoctor.models.analysis import DiagnosisResult, DiagnosisSource
from kubedoctor.models.config import KubeDoctorConfig
from kubedoctor.models.faults import ContextKey, FaultRecord
from kubedoctor.models.resources import EventInfo, ResourceSnapshot
from kubedoctor.observability.logging import get_logger
from kubedoctor.observability.metrics import diagnoses_total, faults_detected_total

_log = get_logger("analyst.coordinator")

_LOG_KINDS = frozenset({"Pod", "Job"})
_EVENT_KINDS = frozenset({"Pod", "Job", "CronJob"})


class ContextSource(Protocol):
    """Supplies recent logs and events for a faulty resource.

    Implementations should raise :class:`~kubedoctor.errors.CollaboratorFetchError`
    on failure; any exception is absorbed by the coordinator.
    """

    async def fetch_logs(self, fault: FaultRecord) -> str: ...

    async def fetch_events(self, fault: FaultRecord) -> list[EventInfo]: ...


def collect_faults(
    snapshots: Iterable[ResourceSnapshot],
    cluster_id: str = "",
    now: datetime | None = None,
) -> list[FaultRecord]:
    """Run detection over *snapshots*, stamping Pod faults with *cluster_id*."""
    faults: list[FaultRecord] = []
    for snapshot in snapshots:
        for fault in detect(snapshot.kind, snapshot, now):
            if cluster_id and fault.resource_kind == "Pod":
                fault = fault.with_context(ContextKey.CLUSTER_ID, cluster_id)
            faults_detected_total.labels(kind=fault.kind.code).inc()
            faults.append(fault)
    return faults


class DiagnosisCoordinator:
    """Turns fault records into diagnoses.

    Args:
        builder:           Prompt builder, which also owns the enable/severity gate.
        client:            Completion client, or None to always use the fallback.
        model:             Backend model identifier.
        cache:             Shared diagnosis cache, or None to disable caching.
        context_source:    Log/event supplier, or None for no extra context.
        max_output_tokens: Completion length limit.
    """

    def __init__(
        self,
        builder: PromptBuilder,
        client: CompletionClient | None,
        model: str,
        cache: DiagnosisCache | None = None,
        context_source: ContextSource | None = None,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> None:
        self._builder = builder
        self._client = client
        self._model = model
        self._cache = cache
        self._context_source = context_source
        self._max_output_tokens = max_output_tokens

    @classmethod
    def from_config(
        cls,
        config: KubeDoctorConfig,
        context_source: ContextSource | None = None,
    ) -> DiagnosisCoordinator:
        """Wire a coordinator from loaded configuration."""
        client = CompletionClient.from_config(config.completion) if config.completion.enabled else None
        cache = DiagnosisCache(ttl_seconds=config.cache.ttl_minutes * 60) if config.cache.enabled else None
        return cls(
            builder=PromptBuilder(
                enabled=config.completion.enabled,
                min_severity=config.diagnosis.min_severity,
            ),
            client=client,
            model=config.completion.model,
            cache=cache,
            context_source=context_source,
            max_output_tokens=config.completion.max_tokens,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Single group
    # ------------------------------------------------------------------

    async def diagnose(self, primary: FaultRecord, faults: Sequence[FaultRecord] = ()) -> DiagnosisResult:
        """Diagnose *primary*, treating the rest of *faults* on its resource as related."""
        related = related_faults(primary, faults)
        if self._client is None or not self._builder.should_diagnose(primary):
            return self._fallback(primary, related, reason="gated")

        key = fingerprint(primary)
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                diagnoses_total.labels(source=DiagnosisSource.CACHE.value).inc()
                _log.info("diagnosis_cache_hit", fingerprint=key, resource=_resource(primary))
                return DiagnosisResult(
                    primary=primary,
                    related=related,
                    root_cause=cached.root_cause,
                    diagnosis=cached.diagnosis,
                    steps=list(cached.steps),
                    preventions=list(cached.preventions),
                    source=DiagnosisSource.CACHE,
                )

        logs, events = await self._fetch_context(primary)
        prompt = self._builder.build(primary, related, logs, events)
        try:
            text = await self._client.complete(prompt, self._model, self._max_output_tokens)
        except CompletionError as exc:
            _log.warning(
                "completion_failed_using_fallback",
                resource=_resource(primary),
                kind=primary.kind.code,
                error=str(exc),
            )
            return self._fallback(primary, related, reason="completion_error")

        result = build_diagnosis(primary, related, text)
        if self._cache is not None and result.root_cause != UNPARSED_ROOT_CAUSE:
            self._cache.put(key, result)
        diagnoses_total.labels(source=DiagnosisSource.LLM.value).inc()
        return result

    def _fallback(self, primary: FaultRecord, related: list[FaultRecord], reason: str) -> DiagnosisResult:
        built_in = fallback(primary)
        diagnoses_total.labels(source=DiagnosisSource.FALLBACK.value).inc()
        _log.info("diagnosis_fallback", resource=_resource(primary), kind=primary.kind.code, reason=reason)
        return DiagnosisResult(
            primary=primary,
            related=related,
            root_cause=built_in.root_cause,
            diagnosis=built_in.diagnosis,
            steps=built_in.steps,
            preventions=built_in.preventions,
            source=DiagnosisSource.FALLBACK,
        )

    async def _fetch_context(self, fault: FaultRecord) -> tuple[str | None, list[EventInfo]]:
        source = self._context_source
        if source is None:
            return "", []
        logs: str | None = ""
        events: list[EventInfo] = []
        if fault.resource_kind in _LOG_KINDS:
            try:
                logs = await source.fetch_logs(fault)
            except Exception as exc:
                _fetch_failed("logs", fault, exc)
                logs = None
        if fault.resource_kind in _EVENT_KINDS:
            try:
                events = list(await source.fetch_events(fault))
            except Exception as exc:
                _fetch_failed("events", fault, exc)
        return logs, events

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def collect_faults(
        self,
        snapshots: Iterable[ResourceSnapshot],
        cluster_id: str = "",
        now: datetime | None = None,
    ) -> list[FaultRecord]:
        return collect_faults(snapshots, cluster_id, now)

    async def scan(
        self,
        snapshots: Iterable[ResourceSnapshot],
        cluster_id: str = "",
        now: datetime | None = None,
    ) -> list[DiagnosisResult]:
        """Detect, correlate and diagnose every resource in *snapshots*.

        Returns one DiagnosisResult per affected resource, most severe
        first; equal severities keep detection order.
        """
        faults = self.collect_faults(snapshots, cluster_id, now)
        groups = correlate(faults)
        results = await asyncio.gather(
            *(self.diagnose(select_primary(group), group) for group in groups.values())
        )
        _log.info("scan_complete", resources=len(groups), faults=len(faults))
        return sorted(results, key=lambda r: r.primary.severity.rank)  # type: ignore[union-attr]


def _resource(fault: FaultRecord) -> str:
    return f"{fault.namespace or '-'}/{fault.resource_kind}/{fault.resource_name}"


def _fetch_failed(what: str, fault: FaultRecord, exc: Exception) -> None:
    """Log a collaborator failure; the caller continues with empty input."""
    error = exc if isinstance(exc, CollaboratorFetchError) else CollaboratorFetchError(f"{what} fetch failed: {exc}")
    _log.warning(
        "collaborator_fetch_failed",
        what=what,
        resource=_resource(fault),
        error=str(error),
        error_type=type(exc).__name__,
    )
