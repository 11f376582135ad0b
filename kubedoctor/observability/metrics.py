"""Prometheus metrics for kubedoctor.

All collectors live on the default registry so an embedding service can
expose them with ``prometheus_client.start_http_server``.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

faults_detected_total = Counter(
    "kubedoctor_faults_detected_total",
    "Fault records produced by the detector",
    ["kind"],
)

diagnoses_total = Counter(
    "kubedoctor_diagnoses_total",
    "Diagnoses produced, by source",
    ["source"],
)

cache_lookups_total = Counter(
    "kubedoctor_cache_lookups_total",
    "Diagnosis cache lookups, by result",
    ["result"],
)

completion_requests_total = Counter(
    "kubedoctor_completion_requests_total",
    "Completion backend requests, by outcome",
    ["outcome"],
)

completion_duration_seconds = Histogram(
    "kubedoctor_completion_duration_seconds",
    "Completion backend request latency",
    buckets=(0.5, 1, 2, 5, 10, 20, 30, 60, 120),
)

prompt_tokens_estimated = Histogram(
    "kubedoctor_prompt_tokens_estimated",
    "Advisory token estimate of outgoing prompts",
    buckets=(250, 500, 1000, 1500, 2000, 3000, 5000, 8000),
)
