"""Prompt construction for the completion backend.

Turns a primary fault, its related faults, recent logs and events into a
system/user message pair. Output is deterministic for identical inputs.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from kubedoctor.llm.prompts import system_prompt
from kubedoctor.models.faults import ContextKey, FaultKind, FaultRecord, Severity
from kubedoctor.models.resources import EventInfo
from kubedoctor.observability.logging import get_logger
from kubedoctor.observability.metrics import prompt_tokens_estimated

_logger = get_logger("llm.builder")

MAX_LOG_LINES = 10
LOG_TAIL_FALLBACK = 3
MAX_EVENT_GROUPS = 5

DETERMINISTIC_TEMPERATURE = 0.3
EXPLORATORY_TEMPERATURE = 0.7

_DETERMINISTIC_KINDS: frozenset[FaultKind] = frozenset(
    {
        FaultKind.IMAGE_PULL_BACK_OFF,
        FaultKind.OOM_KILLED,
        FaultKind.CRASH_LOOP_BACK_OFF,
        FaultKind.PENDING,
        FaultKind.CREATE_CONTAINER_CONFIG_ERROR,
        FaultKind.CREATE_CONTAINER_ERROR,
        FaultKind.TERMINATING_STUCK,
        FaultKind.STARTUP_PROBE_FAILED,
        FaultKind.EVICTED,
        FaultKind.VOLUME_MOUNT_ERROR,
        FaultKind.NODE_NOT_READY,
        FaultKind.NODE_PRESSURE,
        FaultKind.PVC_ERROR,
        FaultKind.JOB_FAILED,
        FaultKind.CRONJOB_FAILED,
    }
)

_LOG_ROOT_CAUSE_KINDS: frozenset[FaultKind] = frozenset({FaultKind.CRASH_LOOP_BACK_OFF, FaultKind.JOB_FAILED})

# Emitted in this order, only when present in the fault's context.
_CONTEXT_LABELS: tuple[tuple[ContextKey, str], ...] = (
    (ContextKey.ISSUE_CATEGORY, "Category"),
    (ContextKey.SCHEDULING_MESSAGE, "SchedulingMsg"),
    (ContextKey.CONTAINER_NAME, "Container"),
    (ContextKey.RESTART_COUNT, "Restarts"),
    (ContextKey.EXIT_CODE, "ExitCode"),
    (ContextKey.TERMINATION_REASON, "TermReason"),
    (ContextKey.HAS_LIVENESS_PROBE, "HasLivenessProbe"),
    (ContextKey.HAS_STARTUP_PROBE, "HasStartupProbe"),
    (ContextKey.IMAGE, "Image"),
    (ContextKey.ERROR_CATEGORY, "ErrorCategory"),
    (ContextKey.ERROR_MESSAGE, "ErrorMsg"),
    (ContextKey.FAILURE_THRESHOLD, "FailureThreshold"),
    (ContextKey.PERIOD_SECONDS, "PeriodSeconds"),
    (ContextKey.PVC_NAME, "PVC"),
    (ContextKey.STORAGE_CLASS_NAME, "StorageClass"),
    (ContextKey.NODE_NAME, "Node"),
    (ContextKey.MEMORY_LIMIT, "MemoryLimit"),
    (ContextKey.MEMORY_REQUEST, "MemoryRequest"),
    (ContextKey.EVICTION_MESSAGE, "EvictionMsg"),
    (ContextKey.FINALIZERS, "Finalizers"),
    (ContextKey.STUCK_MINUTES, "StuckMinutes"),
    (ContextKey.PRESSURE_TYPES, "PressureTypes"),
    (ContextKey.FAILED_COUNT, "FailedCount"),
    (ContextKey.SUCCEEDED_COUNT, "SucceededCount"),
    (ContextKey.BACKOFF_LIMIT, "BackoffLimit"),
    (ContextKey.COMPLETIONS, "Completions"),
    (ContextKey.FAILURE_REASON, "FailureReason"),
    (ContextKey.FAILURE_MESSAGE, "FailureMsg"),
    (ContextKey.RESTART_POLICY, "RestartPolicy"),
    (ContextKey.SCHEDULE, "Schedule"),
    (ContextKey.CONCURRENCY_POLICY, "ConcurrencyPolicy"),
    (ContextKey.ACTIVE_COUNT, "ActiveCount"),
    (ContextKey.LAST_SCHEDULE_TIME, "LastSchedule"),
    (ContextKey.LAST_SUCCESSFUL_TIME, "LastSuccess"),
)

_LOG_KEYWORDS: tuple[str, ...] = ("error", "fail", "exception", "timeout", "unhealthy", "warning")
_RE_HTTP_ERROR = re.compile(r"\b[45]\d{2}\b")

_WIDE_RANGES: tuple[tuple[int, int], ...] = (
    (0x1100, 0x11FF),  # Hangul Jamo
    (0x3040, 0x30FF),  # Hiragana, Katakana
    (0x3130, 0x318F),  # Hangul compatibility Jamo
    (0x3400, 0x4DBF),  # CJK extension A
    (0x4E00, 0x9FFF),  # CJK unified ideographs
    (0xAC00, 0xD7A3),  # Hangul syllables
)


@dataclass(frozen=True)
class Prompt:
    """A system/user message pair and its sampling temperature."""

    system: str
    user: str
    temperature: float

    def messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


# ---------------------------------------------------------------------------
# Input compression helpers
# ---------------------------------------------------------------------------


def _is_significant(line: str) -> bool:
    lowered = line.lower()
    return any(k in lowered for k in _LOG_KEYWORDS) or _RE_HTTP_ERROR.search(line) is not None


def filter_logs(logs: str) -> list[str]:
    """Keep error-looking log lines and the line after each.

    At most ``MAX_LOG_LINES`` lines are kept, each at most once, in
    original order. If nothing matches, the last ``LOG_TAIL_FALLBACK``
    lines are returned unchanged.
    """
    lines = logs.splitlines()
    kept: list[int] = []
    seen: set[int] = set()
    for i, line in enumerate(lines):
        if len(kept) >= MAX_LOG_LINES:
            break
        if not _is_significant(line):
            continue
        for j in (i, i + 1):
            if j < len(lines) and j not in seen and len(kept) < MAX_LOG_LINES:
                seen.add(j)
                kept.append(j)
    if not kept:
        return lines[-LOG_TAIL_FALLBACK:]
    return [lines[j] for j in kept]


def dedupe_events(events: Sequence[EventInfo]) -> list[str]:
    """Collapse events with identical (type, reason, message) into one line each.

    Groups keep first-seen order and only the first ``MAX_EVENT_GROUPS``
    are returned.
    """
    counts: dict[tuple[str, str, str], int] = {}
    for event in events:
        key = (event.type, event.reason, event.message)
        counts[key] = counts.get(key, 0) + 1
    lines: list[str] = []
    for (etype, reason, message), n in list(counts.items())[:MAX_EVENT_GROUPS]:
        if n > 1:
            lines.append(f"- [{etype}] {reason} (x{n} times): {message}")
        else:
            lines.append(f"- [{etype}] {reason}: {message}")
    return lines


def estimate_tokens(text: str) -> int:
    """Rough token count: 2.5 per CJK/Hangul/kana glyph, 0.25 per other character.

    Advisory only; never used to truncate a request.
    """
    wide = sum(1 for ch in text if any(lo <= ord(ch) <= hi for lo, hi in _WIDE_RANGES))
    return int(wide * 2.5 + (len(text) - wide) * 0.25)


def temperature_for(kind: FaultKind) -> float:
    """Return the sampling temperature used for *kind*."""
    if kind in _DETERMINISTIC_KINDS:
        return DETERMINISTIC_TEMPERATURE
    return EXPLORATORY_TEMPERATURE


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set, frozenset)):
        return ", ".join(str(v) for v in value)
    return str(value)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class PromptBuilder:
    """Builds completion prompts and decides which faults deserve one.

    Args:
        enabled:      Master switch for backend diagnosis.
        min_severity: Least severe fault that is still sent to the backend.
    """

    def __init__(self, enabled: bool = True, min_severity: Severity = Severity.MEDIUM) -> None:
        self._enabled = enabled
        self._min_severity = min_severity

    @property
    def enabled(self) -> bool:
        return self._enabled

    def should_diagnose(self, fault: FaultRecord) -> bool:
        """Return True when *fault* passes the enabled flag and severity gate."""
        return self._enabled and fault.severity.at_least(self._min_severity)  # type: ignore[union-attr]

    def build(
        self,
        primary: FaultRecord,
        related: Sequence[FaultRecord] = (),
        logs: str | None = "",
        events: Sequence[EventInfo] = (),
    ) -> Prompt:
        prompt = Prompt(
            system=system_prompt(primary),
            user=self.user_prompt(primary, related, logs, events),
            temperature=temperature_for(primary.kind),
        )
        tokens = estimate_tokens(prompt.system) + estimate_tokens(prompt.user)
        prompt_tokens_estimated.observe(tokens)
        _logger.debug(
            "prompt_built",
            kind=primary.kind.code,
            resource=f"{primary.resource_kind}/{primary.resource_name}",
            estimated_tokens=tokens,
            temperature=prompt.temperature,
        )
        return prompt

    def user_prompt(
        self,
        primary: FaultRecord,
        related: Sequence[FaultRecord] = (),
        logs: str | None = "",
        events: Sequence[EventInfo] = (),
    ) -> str:
        """Render the user message. *logs* is None when log collection failed."""
        lines = [
            f"FaultType: {primary.kind.code}",
            f"Owner: {primary.owner_kind}/{primary.owner_name}",
            f"Namespace: {primary.namespace or '-'}",
            f"Summary: {primary.summary}",
        ]
        lines.extend(f"Related: {r.kind.code} - {r.summary}" for r in related)
        for key, label in _CONTEXT_LABELS:
            value = primary.context.get(key)
            if value is not None and value != "":
                lines.append(f"{label}: {_format_value(value)}")

        kept = filter_logs(logs) if logs else []
        if kept:
            header = "## Logs (root cause)" if primary.kind in _LOG_ROOT_CAUSE_KINDS else "## Logs"
            lines.extend(["", header, "```", *kept, "```"])
        elif primary.kind in _LOG_ROOT_CAUSE_KINDS:
            lines.extend(["", "## Logs (root cause)", "(collection failed)" if logs is None else "(none)"])

        event_lines = dedupe_events(events)
        if event_lines:
            lines.extend(["", "## Events", *event_lines])
        return "\n".join(lines)
