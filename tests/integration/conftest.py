"""Fixtures wiring a DiagnosisCoordinator with a mocked completion client."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from kubedoctor.analyst.coordinator import DiagnosisCoordinator
from kubedoctor.cache.diagnosis_cache import DiagnosisCache
from kubedoctor.llm.builder import PromptBuilder
from kubedoctor.llm.client import CompletionClient

from tests.factories import LLM_RESPONSE


@pytest.fixture()
def completion_client() -> AsyncMock:
    client = AsyncMock(spec=CompletionClient)
    client.complete.return_value = LLM_RESPONSE
    return client

@pytest.fixture()
def cache() -> DiagnosisCache:
    return DiagnosisCache(ttl_seconds=1800)

@pytest.fixture()
def coordinator(completion_client: AsyncMock, cache: DiagnosisCache) -> DiagnosisCoordinator:
    return DiagnosisCoordinator(
        builder=PromptBuilder(enabled=True),
        client=completion_client,
        model="openai/gpt-4o-mini",
        cache=cache,
    )
