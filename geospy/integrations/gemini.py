"""
Gemini API Client

Generative-AI service used for every model call in the pipeline.

Gemini provides:
- Single-shot text completion (answers, concept extraction, query
  enhancement, recommendation drafts, answer simulation)
- Text embeddings for semantic coverage

API: https://ai.google.dev/api
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class GeminiError(Exception):
    """Custom exception for Gemini API errors."""

    def __init__(self, message: str, status_code: int = None, response: dict = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 2
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)


@dataclass
class GenerationResult:
    """Result from a Gemini completion."""

    text: str
    model: str
    prompt: str = ""
    tokens_used: int = 0


class GeminiClient:
    """
    Async client for the Gemini generative language API.

    Usage:
        client = GeminiClient(api_key="your_api_key")

        result = await client.generate("What is generative engine optimization?")
        # result.text = "Generative engine optimization (GEO) is..."

        vector = await client.embed("running shoes for flat feet")
        # vector = [0.0123, -0.0456, ...]

        await client.close()
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    DEFAULT_MODEL = "gemini-2.5-flash"
    DEFAULT_EMBED_MODEL = "gemini-embedding-001"

    def __init__(
        self,
        api_key: str,
        retry_config: Optional[RetryConfig] = None,
        default_model: str = DEFAULT_MODEL,
        embed_model: str = DEFAULT_EMBED_MODEL,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Gemini API key
            retry_config: Retry configuration (optional)
            default_model: Model used for text generation
            embed_model: Model used for embeddings
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.api_key = api_key
        self.retry_config = retry_config or RetryConfig()
        self.default_model = default_model
        self.embed_model = embed_model

        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers={
                "x-goog-api-key": api_key,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._closed = False

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> GenerationResult:
        """
        Run a single-shot completion.

        Args:
            prompt: Prompt text
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_retries: Override the client's retry count for this call

        Returns:
            GenerationResult with the generated text

        Raises:
            GeminiError: On HTTP failure or a response without text
        """
        if self._closed:
            raise GeminiError("Client has been closed")

        model_name = model or self.default_model
        payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if temperature is not None:
            payload["generationConfig"] = {"temperature": temperature}

        response = await self._request_with_retry(
            f"/models/{model_name}:generateContent",
            payload,
            max_retries=max_retries,
        )

        text = _extract_text(response)
        if not text:
            raise GeminiError("Empty response from Gemini", response=response)

        usage = response.get("usageMetadata", {})

        return GenerationResult(
            text=text,
            model=model_name,
            prompt=prompt,
            tokens_used=usage.get("totalTokenCount", 0),
        )

    async def embed(
        self,
        text: str,
        model: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> List[float]:
        """
        Embed a text into a numeric vector.

        Raises:
            GeminiError: On HTTP failure or a response missing embedding.values
        """
        if self._closed:
            raise GeminiError("Client has been closed")

        model_name = model or self.embed_model
        payload = {
            "model": f"models/{model_name}",
            "content": {"parts": [{"text": text}]},
        }

        response = await self._request_with_retry(
            f"/models/{model_name}:embedContent",
            payload,
            max_retries=max_retries,
        )

        values = (response.get("embedding") or {}).get("values")
        if not isinstance(values, list) or not values:
            raise GeminiError("Invalid embed response", response=response)

        return [float(v) for v in values]

    async def _request_with_retry(
        self,
        endpoint: str,
        payload: Dict[str, Any],
        max_retries: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Make request with retry logic."""
        config = self.retry_config
        retries = config.max_retries if max_retries is None else max_retries
        last_exception = None

        for attempt in range(retries + 1):
            try:
                response = await self._client.post(endpoint, json=payload)

                if response.status_code >= 400:
                    error_data = _safe_json(response)

                    if response.status_code in config.retryable_status_codes:
                        last_exception = GeminiError(
                            f"API error: {response.status_code}",
                            status_code=response.status_code,
                            response=error_data,
                        )
                    else:
                        error = error_data.get("error")
                        message = error.get("message") if isinstance(error, dict) else error
                        raise GeminiError(
                            f"API error: {message or response.status_code}",
                            status_code=response.status_code,
                            response=error_data,
                        )
                else:
                    return _safe_json(response)

            except httpx.TimeoutException as e:
                last_exception = GeminiError(f"Request timed out: {e}")
            except httpx.RequestError as e:
                last_exception = GeminiError(f"Request failed: {e}")

            if attempt < retries:
                delay = min(
                    config.initial_delay * (config.exponential_base**attempt),
                    config.max_delay,
                )
                logger.warning(
                    f"Gemini request failed, retrying in {delay:.1f}s "
                    f"(attempt {attempt + 1}/{retries + 1})"
                )
                await asyncio.sleep(delay)

        raise last_exception

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _extract_text(response: Dict[str, Any]) -> str:
    """Pull candidates[0].content.parts[*].text out of a generateContent response."""
    candidates = response.get("candidates") or []
    if not candidates:
        return ""

    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()


def _safe_json(response: httpx.Response) -> Dict[str, Any]:
    """Decode a JSON body, returning {} for empty or non-JSON bodies."""
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
