"""Tests for the Ollama backend client, using httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json
from typing import Callable

import httpx
import pytest

from parley.backends.base import GenerationRequest
from parley.backends.ollama import OllamaClient
from parley.config.settings import OllamaSettings
from parley.core.exceptions import BackendError, BackendTimeoutError
from parley.core.retry import RetryPolicy

FAST_RETRY = RetryPolicy(attempts=3, base_delay_ms=1, max_delay_ms=2)


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    **kwargs,
) -> OllamaClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OllamaClient(
        settings=kwargs.pop("settings", OllamaSettings()),
        retry_policy=kwargs.pop("retry_policy", FAST_RETRY),
        http_client=http_client,
        **kwargs,
    )


def ok_body(text: str = "Olá!") -> dict:
    return {
        "model": "llama3.2:3b",
        "response": text,
        "done": True,
        "prompt_eval_count": 12,
        "eval_count": 7,
    }


class TestPayload:
    """Tests for request payload construction."""

    def test_minimal_payload(self):
        """A bare prompt sends model, prompt and stream only."""
        client = OllamaClient(http_client=httpx.AsyncClient())
        payload = client.build_payload(GenerationRequest(prompt="oi"))
        assert payload == {"model": "llama3.2:3b", "prompt": "oi", "stream": False}

    def test_full_payload(self):
        """System prompt and options are included when set."""
        client = OllamaClient(http_client=httpx.AsyncClient())
        payload = client.build_payload(
            GenerationRequest(prompt="oi", system_prompt="be nice", temperature=0.2, max_tokens=64)
        )
        assert payload["system"] == "be nice"
        assert payload["options"] == {"temperature": 0.2, "num_predict": 64}


class TestOllamaClient:
    """Tests for generate_text against a mocked server."""

    @pytest.mark.asyncio
    async def test_success(self):
        """A 200 response yields text, model and token counts."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=ok_body())

        client = make_client(handler)
        result = await client.generate_text(GenerationRequest(prompt="oi", system_prompt="sys"))

        assert result.backend == "ollama"
        assert result.text == "Olá!"
        assert result.input_tokens == 12
        assert result.output_tokens == 7
        assert seen[0].url == httpx.URL("http://localhost:11434/api/generate")
        assert seen[0].headers["content-type"] == "application/json"
        body = json.loads(seen[0].content)
        assert body["prompt"] == "oi"
        assert body["system"] == "sys"

    @pytest.mark.asyncio
    async def test_retries_503_then_succeeds(self):
        """A 503 is retried and the next success is returned."""
        statuses = [503, 200]

        def handler(request: httpx.Request) -> httpx.Response:
            status = statuses.pop(0)
            if status == 200:
                return httpx.Response(200, json=ok_body("back"))
            return httpx.Response(status, text="busy")

        client = make_client(handler)
        result = await client.generate_text(GenerationRequest(prompt="oi"))

        assert result.text == "back"
        assert statuses == []

    @pytest.mark.asyncio
    async def test_400_not_retried(self):
        """Client errors fail immediately with the status and body."""
        calls = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["count"] += 1
            return httpx.Response(400, text="model not found")

        client = make_client(handler)
        with pytest.raises(BackendError) as exc_info:
            await client.generate_text(GenerationRequest(prompt="oi"))

        assert calls["count"] == 1
        assert exc_info.value.status_code == 400
        assert not exc_info.value.retryable
        assert str(exc_info.value) == "HTTP 400: model not found"

    @pytest.mark.asyncio
    async def test_timeout_maps_to_backend_timeout(self):
        """Transport timeouts become retryable BackendTimeoutErrors."""
        calls = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["count"] += 1
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)
        with pytest.raises(BackendTimeoutError):
            await client.generate_text(GenerationRequest(prompt="oi"))
        assert calls["count"] == 3

    @pytest.mark.asyncio
    async def test_connection_error_is_retryable(self):
        """A refused connection is retried, then surfaced."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with pytest.raises(BackendError) as exc_info:
            await client.generate_text(GenerationRequest(prompt="oi"))
        assert exc_info.value.retryable
        assert str(exc_info.value).startswith("Connection failed")

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        """A non-JSON body is a non-retryable failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        client = make_client(handler)
        with pytest.raises(BackendError) as exc_info:
            await client.generate_text(GenerationRequest(prompt="oi"))
        assert str(exc_info.value) == "Malformed JSON response"
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_empty_response_text(self):
        """An empty "response" field is an empty-response failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=ok_body(""))

        client = make_client(handler)
        with pytest.raises(BackendError) as exc_info:
            await client.generate_text(GenerationRequest(prompt="oi"))
        assert exc_info.value.code == "BACKEND_EMPTY_RESPONSE"

    @pytest.mark.asyncio
    async def test_delegates_to_fallback_when_down(self, make_backend):
        """When Ollama stays down the fallback client answers."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="down")

        fallback = make_backend("anthropic", "hosted answer")
        client = make_client(handler, fallback=fallback)

        result = await client.generate_text(GenerationRequest(prompt="oi"))

        assert result.backend == "anthropic"
        assert result.text == "hosted answer"

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self):
        """An injected http client belongs to the caller."""
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json=ok_body()))
        )
        client = OllamaClient(http_client=http_client)
        await client.aclose()
        assert not http_client.is_closed
        await http_client.aclose()


class TestConfiguredTimeout:
    """Tests that OllamaSettings.timeout governs the HTTP call."""

    @pytest.mark.asyncio
    async def test_owned_client_uses_settings_timeout(self):
        """The client it builds itself does not keep httpx's 5s default."""
        client = OllamaClient(OllamaSettings(timeout=45))

        assert client._http.timeout == httpx.Timeout(45.0)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_request_carries_settings_timeout(self):
        """An injected client still sends each request with the configured timeout."""
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.extensions["timeout"])
            return httpx.Response(200, json=ok_body())

        client = make_client(handler, settings=OllamaSettings(timeout=12))
        await client.generate_text(GenerationRequest(prompt="oi"))

        assert seen == [httpx.Timeout(12.0).as_dict()]

    @pytest.mark.asyncio
    async def test_slow_response_cut_at_settings_timeout(self):
        """A server slower than the configured timeout yields BackendTimeoutError."""

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, json=ok_body())

        client = make_client(
            handler,
            settings=OllamaSettings(timeout=0.05),
            retry_policy=RetryPolicy(attempts=1),
        )

        with pytest.raises(BackendTimeoutError) as exc_info:
            await client.generate_text(GenerationRequest(prompt="oi"))
        assert exc_info.value.timeout_seconds == 0.05
        assert "0.05s" in str(exc_info.value)
