"""Analyst package: correlation, fallback policy and the diagnosis coordinator.

The coordinator is imported from ``kubedoctor.analyst.coordinator``
directly; it depends on the llm package, which depends on the fallback
policy here.
"""

from kubedoctor.analyst.correlator import correlate, related_faults, select_primary
from kubedoctor.analyst.fallback import FALLBACK_ROOT_CAUSE, fallback, fallback_steps

__all__ = [
    "FALLBACK_ROOT_CAUSE",
    "correlate",
    "fallback",
    "fallback_steps",
    "related_faults",
    "select_primary",
]
