"""Client for the generative text service.

GenerationController depends only on the `LLM` protocol below. The `stage`
argument names the calling operation ("initial_scene", "continuation",
"player_choices", "ending_analysis") and is used here for log lines only.

Every failure to get usable text out of the service surfaces as
ServiceError, whatever went wrong underneath: refused or dropped
connections, HTTP error statuses, transport timeouts, and bodies that are
not the JSON object the wire format promises. The controller relies on
that to turn any service trouble into a fallback or a retryable error.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, NamedTuple, Protocol

import httpx

logger = logging.getLogger(__name__)


class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


class ServiceError(RuntimeError):
    """The generation service could not be reached or gave no usable text."""


# ---------------------------------------------------------------------------
# Wire formats
# ---------------------------------------------------------------------------

ProviderFormat = Literal["koboldcpp", "openai"]


class WireFormat(NamedTuple):
    path: str
    results_key: str  # list of {"text": ...} in the response body
    label: str


_WIRE_FORMATS: dict[str, WireFormat] = {
    "koboldcpp": WireFormat("/api/v1/generate", "results", "KoboldCpp"),
    "openai": WireFormat("/v1/completions", "choices", "OpenAI-compatible"),
}


class HttpLLM:
    """Text completion over HTTP against a KoboldCpp or OpenAI-compatible server.

    Args:
        provider_url:    Base URL, e.g. "http://localhost:5001".
        api_key:         Sent as a bearer token when non-empty.
        provider_format: "koboldcpp" (default) or "openai".
        model:           Model name; only sent in the openai format.
        timeout:         Transport timeout in seconds.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        timeout: float = 120.0,
    ) -> None:
        if provider_format not in _WIRE_FORMATS:
            raise ValueError(f"Unknown provider format {provider_format!r}")
        self._wire = _WIRE_FORMATS[provider_format]
        self._url = provider_url.rstrip("/") + self._wire.path
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._model = model if provider_format == "openai" else ""
        self._timeout = timeout

    async def __call__(self, stage: str, prompt: str) -> str:
        payload: dict[str, Any] = {"prompt": prompt}
        if self._model:
            payload["model"] = self._model
        logger.debug("generate stage=%s url=%s prompt_len=%d", stage, self._url, len(prompt))

        resp = await self._post(payload)
        text = self._extract_text(self._decode(resp))
        logger.debug("generated stage=%s len=%d", stage, len(text))
        return text

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self._url, json=payload, headers=headers)
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise ServiceError(f"Cannot connect to generation service at {self._base_url}") from e
        except httpx.TimeoutException as e:
            raise ServiceError(f"Generation service timeout after {self._timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                raise ServiceError("Generation service rate limit exceeded (HTTP 429)") from e
            raise ServiceError(f"Generation service returned HTTP {status}") from e
        except httpx.HTTPError as e:
            # dropped connections, protocol violations, write failures
            raise ServiceError(f"Generation service connection failed: {e!r}") from e
        return resp

    def _decode(self, resp: httpx.Response) -> dict[str, Any]:
        try:
            body = resp.json()
        except ValueError as e:
            raise ServiceError("Generation service returned a body that is not JSON") from e
        if not isinstance(body, dict):
            raise ServiceError(
                f"Unexpected response format from {self._wire.label} backend: "
                f"expected an object, got {type(body).__name__}"
            )
        return body

    def _extract_text(self, body: dict[str, Any]) -> str:
        results = body.get(self._wire.results_key)
        first = results[0] if isinstance(results, list) and results else None
        if not isinstance(first, dict) or not isinstance(first.get("text"), str):
            raise ServiceError(f"Unexpected response format from {self._wire.label} backend")
        return first["text"]


class EchoLLM:
    """Hands the prompt back as the generated text. No network.

    Handy for checking controller wiring end to end; the structured stages
    fall back, since a prompt is not a valid choice or ending answer.
    """

    async def __call__(self, stage: str, prompt: str) -> str:
        logger.debug("echo stage=%s prompt_len=%d", stage, len(prompt))
        return prompt


# ---------------------------------------------------------------------------
# Failure classification for fallback segments
# ---------------------------------------------------------------------------

FallbackReason = Literal["timeout", "rate_limit", "service_unavailable", "error"]


def fallback_reason(error: BaseException | None) -> FallbackReason:
    if error is None:
        return "error"
    message = str(error).lower()
    if "timeout" in message or "timed out" in message:
        return "timeout"
    if "rate limit" in message or "rate_limit" in message:
        return "rate_limit"
    if "unavailable" in message or "service" in message:
        return "service_unavailable"
    return "error"
