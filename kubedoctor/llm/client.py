"""HTTP client for an OpenAI-compatible chat completion backend.

Sends one system/user message pair per call and returns the raw text of
``choices[0].message.content``. There is no retry here; every failure
surfaces as :class:`CompletionError` and the caller decides what to do.
"""

from __future__ import annotations

import time

import httpx

from kubedoctor.errors import CompletionError
from kubedoctor.llm.builder import Prompt
from kubedoctor.models.config import CompletionConfig
from kubedoctor.observability.logging import get_logger
from kubedoctor.observability.metrics import completion_duration_seconds, completion_requests_total

_log = get_logger("llm.client")

DEFAULT_MAX_OUTPUT_TOKENS = 700


class CompletionClient:
    """Async chat completion client.

    Args:
        endpoint:        Full chat completions URL.
        api_key:         Bearer token; omitted from headers when empty.
        timeout_seconds: Per-request timeout.
        transport:       Optional httpx transport, for tests.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str = "",
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoint:
            raise ValueError("Completion endpoint must not be empty")
        headers = {"Content-Type": "application/json", "X-Title": "kubedoctor"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._endpoint = endpoint
        self._client = httpx.AsyncClient(timeout=timeout_seconds, headers=headers, transport=transport)

    @classmethod
    def from_config(cls, config: CompletionConfig) -> CompletionClient:
        return cls(
            endpoint=config.endpoint,
            api_key=config.api_key,
            timeout_seconds=float(config.timeout_seconds),
        )

    async def complete(
        self,
        prompt: Prompt,
        model: str,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> str:
        """Send *prompt* to the backend and return the completion text.

        Raises:
            CompletionError: on transport errors, timeouts, non-2xx
                responses, and bodies without usable content.
        """
        payload = {
            "model": model,
            "messages": prompt.messages(),
            "max_tokens": max_output_tokens,
            "temperature": prompt.temperature,
        }
        started = time.monotonic()
        try:
            response = await self._client.post(self._endpoint, json=payload)
        except httpx.TimeoutException as exc:
            completion_requests_total.labels(outcome="timeout").inc()
            _log.warning("completion_request_timeout", url=self._endpoint, model=model)
            raise CompletionError(f"Completion request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            completion_requests_total.labels(outcome="transport_error").inc()
            _log.warning("completion_http_error", error=str(exc), model=model)
            raise CompletionError(f"Completion request failed: {exc}") from exc
        finally:
            completion_duration_seconds.observe(time.monotonic() - started)

        if not response.is_success:
            completion_requests_total.labels(outcome="http_status").inc()
            _log.warning(
                "completion_non_2xx_response",
                status_code=response.status_code,
                body=response.text[:200],
                model=model,
            )
            raise CompletionError(
                f"Completion backend returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            completion_requests_total.labels(outcome="malformed").inc()
            _log.warning("completion_malformed_body", body=response.text[:200], model=model)
            raise CompletionError("Completion response has no choices[0].message.content") from exc

        if not isinstance(content, str) or not content.strip():
            completion_requests_total.labels(outcome="malformed").inc()
            raise CompletionError("Completion response content is empty")

        completion_requests_total.labels(outcome="success").inc()
        return content

    async def aclose(self) -> None:
        await self._client.aclose()
