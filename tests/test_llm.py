"""Tests for storyloom.llm — HttpLLM, EchoLLM and fallback_reason."""

import json

import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch

from storyloom.llm import EchoLLM, HttpLLM, ServiceError, fallback_reason


def _mock_response(body: dict, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


# ---------------------------------------------------------------------------
# EchoLLM
# ---------------------------------------------------------------------------

async def test_echo_returns_prompt() -> None:
    llm = EchoLLM()
    assert await llm("initial_scene", "Once upon a time") == "Once upon a time"


# ---------------------------------------------------------------------------
# HttpLLM — KoboldCpp format
# ---------------------------------------------------------------------------

class TestHttpLLMKoboldCpp:
    @pytest.fixture
    def llm(self) -> HttpLLM:
        return HttpLLM(provider_url="http://localhost:5001/")

    async def test_returns_generated_text(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "Fog rolls in."}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await llm("continuation", "prompt") == "Fog rolls in."

    async def test_url_and_body(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("continuation", "the prompt")
        assert mock_post.call_args[0][0] == "http://localhost:5001/api/v1/generate"
        assert mock_post.call_args.kwargs["json"] == {"prompt": "the prompt"}
        assert "Authorization" not in mock_post.call_args.kwargs["headers"]

    async def test_bearer_token_sent_when_api_key_set(self) -> None:
        llm = HttpLLM(provider_url="http://localhost:5001", api_key="secret")
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("continuation", "prompt")
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer secret"

    async def test_connect_error(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ServiceError, match="Cannot connect"):
                await llm("continuation", "prompt")

    async def test_transport_timeout(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.TimeoutException("slow"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ServiceError, match="timeout after"):
                await llm("continuation", "prompt")

    async def test_rate_limit(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=429))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ServiceError, match="rate limit"):
                await llm("continuation", "prompt")

    async def test_http_error(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=503))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ServiceError, match="HTTP 503"):
                await llm("continuation", "prompt")

    async def test_malformed_response(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"unexpected": "format"}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ServiceError, match="Unexpected response format"):
                await llm("continuation", "prompt")

    @pytest.mark.parametrize("error", [
        httpx.ReadError("connection reset"),
        httpx.RemoteProtocolError("peer closed connection"),
        httpx.WriteError("broken pipe"),
    ])
    async def test_other_transport_errors(self, llm: HttpLLM, error: httpx.HTTPError) -> None:
        mock_post = AsyncMock(side_effect=error)
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ServiceError, match="connection failed") as exc_info:
                await llm("continuation", "prompt")
        assert exc_info.value.__cause__ is error
        assert fallback_reason(exc_info.value) == "service_unavailable"

    async def test_non_json_body(self, llm: HttpLLM) -> None:
        resp = _mock_response({})
        resp.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=resp)):
            with pytest.raises(ServiceError, match="not JSON"):
                await llm("continuation", "prompt")

    @pytest.mark.parametrize("body", [["text"], "plain string", None])
    async def test_body_not_an_object(self, llm: HttpLLM, body) -> None:
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response(body))):
            with pytest.raises(ServiceError, match="Unexpected response format"):
                await llm("continuation", "prompt")

    async def test_result_without_text(self, llm: HttpLLM) -> None:
        body = {"results": [{"text": None}]}
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response(body))):
            with pytest.raises(ServiceError, match="Unexpected response format"):
                await llm("continuation", "prompt")


# ---------------------------------------------------------------------------
# HttpLLM — OpenAI format
# ---------------------------------------------------------------------------

class TestHttpLLMOpenAI:
    @pytest.fixture
    def llm(self) -> HttpLLM:
        return HttpLLM(
            provider_url="http://localhost:8080",
            provider_format="openai",
            model="mistral-7b",
        )

    async def test_url_and_model(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": [{"text": "A stormy night."}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await llm("initial_scene", "prompt")
        assert result == "A stormy night."
        assert mock_post.call_args[0][0] == "http://localhost:8080/v1/completions"
        assert mock_post.call_args.kwargs["json"]["model"] == "mistral-7b"

    async def test_kobold_body_is_malformed(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "wrong format"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ServiceError, match="Unexpected response format"):
                await llm("initial_scene", "prompt")


# ---------------------------------------------------------------------------
# fallback_reason
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("message, reason", [
    ("Generation service timeout after 120.0s", "timeout"),
    ("request timed out", "timeout"),
    ("Generation service rate limit exceeded (HTTP 429)", "rate_limit"),
    ("Cannot connect to generation service at http://x", "service_unavailable"),
    ("model unavailable", "service_unavailable"),
    ("something odd", "error"),
])
def test_fallback_reason(message: str, reason: str) -> None:
    assert fallback_reason(ServiceError(message)) == reason


def test_fallback_reason_without_error() -> None:
    assert fallback_reason(None) == "error"


def test_unknown_provider_format_rejected() -> None:
    with pytest.raises(ValueError):
        HttpLLM(provider_url="http://localhost:5001", provider_format="llamacpp")
