"""
External API Client Tests

Gemini and Firecrawl clients against httpx.MockTransport.
"""

import json

import httpx
import pytest

from geospy.integrations.config import ExternalAPIClients, ExternalAPIConfig
from geospy.integrations.firecrawl import FirecrawlClient, FirecrawlError
from geospy.integrations.firecrawl import RetryConfig as FirecrawlRetryConfig
from geospy.integrations.gemini import GeminiClient, GeminiError, RetryConfig


NO_DELAY = RetryConfig(max_retries=1, initial_delay=0.0)


def _gemini(handler, retry_config=NO_DELAY):
    return GeminiClient(api_key="test-key", retry_config=retry_config, transport=httpx.MockTransport(handler))


def _firecrawl(handler):
    return FirecrawlClient(
        api_key="fc-key",
        retry_config=FirecrawlRetryConfig(max_retries=0),
        transport=httpx.MockTransport(handler),
    )


# =============================================================================
# GEMINI
# =============================================================================

class TestGeminiGenerate:

    @pytest.mark.asyncio
    async def test_success(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["key"] = request.headers["x-goog-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "world"}]}}],
                "usageMetadata": {"totalTokenCount": 42},
            })

        async with _gemini(handler) as client:
            result = await client.generate("Say hi", temperature=0.2)

        assert result.text == "Hello world"
        assert result.tokens_used == 42
        assert result.model == GeminiClient.DEFAULT_MODEL
        assert seen["path"].endswith(f"/models/{GeminiClient.DEFAULT_MODEL}:generateContent")
        assert seen["key"] == "test-key"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "Say hi"
        assert seen["body"]["generationConfig"] == {"temperature": 0.2}

    @pytest.mark.asyncio
    async def test_empty_candidates_raise(self):
        async with _gemini(lambda request: httpx.Response(200, json={"candidates": []})) as client:
            with pytest.raises(GeminiError, match="Empty response"):
                await client.generate("prompt")

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(400, json={"error": {"message": "API key not valid"}})

        async with _gemini(handler) as client:
            with pytest.raises(GeminiError, match="API key not valid") as exc_info:
                await client.generate("prompt")

        assert exc_info.value.status_code == 400
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_retried(self):
        responses = [
            httpx.Response(503, json={}),
            httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "ok"}]}}]}),
        ]

        async with _gemini(lambda request: responses.pop(0)) as client:
            result = await client.generate("prompt")

        assert result.text == "ok"

    @pytest.mark.asyncio
    async def test_per_call_retry_override(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(500)

        async with _gemini(handler) as client:
            with pytest.raises(GeminiError):
                await client.generate("prompt", max_retries=0)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_closed_client_raises(self):
        client = _gemini(lambda request: httpx.Response(200))
        await client.close()

        with pytest.raises(GeminiError, match="closed"):
            await client.generate("prompt")


class TestGeminiEmbed:

    @pytest.mark.asyncio
    async def test_success(self):
        def handler(request):
            assert request.url.path.endswith(":embedContent")
            return httpx.Response(200, json={"embedding": {"values": [0.1, 0.2, 3]}})

        async with _gemini(handler) as client:
            assert await client.embed("text") == [0.1, 0.2, 3.0]

    @pytest.mark.asyncio
    async def test_missing_values_raise(self):
        async with _gemini(lambda request: httpx.Response(200, json={"embedding": {}})) as client:
            with pytest.raises(GeminiError, match="Invalid embed response"):
                await client.embed("text")


# =============================================================================
# FIRECRAWL
# =============================================================================

class TestFirecrawl:

    @pytest.mark.asyncio
    async def test_fetch_markdown(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["url"] == "https://example.com"
            assert body["formats"] == ["markdown"]
            assert request.headers["Authorization"] == "Bearer fc-key"
            return httpx.Response(200, json={
                "success": True,
                "data": {"markdown": "# Example", "metadata": {"title": "Example"}},
            })

        async with _firecrawl(handler) as client:
            page = await client.fetch_markdown("https://example.com")

        assert page.markdown == "# Example"
        assert page.title == "Example"

    @pytest.mark.asyncio
    async def test_no_markdown_raises(self):
        handler = lambda request: httpx.Response(200, json={"success": True, "data": {}})

        async with _firecrawl(handler) as client:
            with pytest.raises(FirecrawlError, match="No markdown"):
                await client.fetch_markdown("https://example.com")

    @pytest.mark.asyncio
    async def test_unsuccessful_body_raises(self):
        handler = lambda request: httpx.Response(200, json={"success": False, "error": "Blocked"})

        async with _firecrawl(handler) as client:
            with pytest.raises(FirecrawlError, match="Blocked"):
                await client.fetch_markdown("https://example.com")

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        handler = lambda request: httpx.Response(402, json={"error": "Payment required"})

        async with _firecrawl(handler) as client:
            with pytest.raises(FirecrawlError, match="Payment required"):
                await client.fetch_markdown("https://example.com")


# =============================================================================
# CLIENT FACTORY
# =============================================================================

class TestExternalAPIClients:

    def test_missing_keys_give_none(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("FIRECRAWL_API_KEY", raising=False)

        clients = ExternalAPIClients(ExternalAPIConfig())

        assert clients.gemini is None
        assert clients.firecrawl is None

    @pytest.mark.asyncio
    async def test_clients_are_cached(self):
        clients = ExternalAPIClients(ExternalAPIConfig(gemini_api_key="g", firecrawl_api_key="f"))

        assert clients.gemini is clients.gemini
        assert clients.firecrawl is clients.firecrawl

        await clients.close()

    def test_disabled_service(self, monkeypatch):
        monkeypatch.setenv("GEMINI_ENABLED", "false")

        clients = ExternalAPIClients(ExternalAPIConfig(gemini_api_key="g"))

        assert clients.gemini is None
