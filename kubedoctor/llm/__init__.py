"""Completion backend package: prompt construction, HTTP client and response parsing."""

from kubedoctor.llm.builder import Prompt, PromptBuilder, dedupe_events, estimate_tokens, filter_logs
from kubedoctor.llm.client import CompletionClient
from kubedoctor.llm.parser import build_diagnosis, parse_response

__all__ = [
    "CompletionClient",
    "Prompt",
    "PromptBuilder",
    "build_diagnosis",
    "dedupe_events",
    "estimate_tokens",
    "filter_logs",
    "parse_response",
]
