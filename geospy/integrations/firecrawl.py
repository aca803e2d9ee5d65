"""
Firecrawl API Client

Page scraping service that turns target and competitor URLs into markdown
for structure extraction.

Firecrawl handles:
- JavaScript rendering
- Anti-bot bypass
- Clean markdown output

API: https://firecrawl.dev
Pricing: ~$0.001/page
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class FirecrawlError(Exception):
    """Custom exception for Firecrawl API errors."""

    def __init__(self, message: str, status_code: int = None, response: dict = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)


@dataclass
class ScrapedPage:
    """Markdown body returned for one URL."""

    url: str
    markdown: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return self.metadata.get("title", "")


class FirecrawlClient:
    """
    Async client for Firecrawl API.

    Usage:
        client = FirecrawlClient(api_key="your_api_key")

        page = await client.fetch_markdown("https://example.com")
        # page.markdown = "# Example Domain ..."

        await client.close()
    """

    BASE_URL = "https://api.firecrawl.dev/v1"

    def __init__(
        self,
        api_key: str,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Firecrawl client.

        Args:
            api_key: Firecrawl API key
            retry_config: Retry configuration (optional)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.api_key = api_key
        self.retry_config = retry_config or RetryConfig()

        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._closed = False

    async def scrape_url(
        self,
        url: str,
        formats: List[str] = None,
        only_main_content: bool = True,
        wait_for: int = None,
    ) -> Dict[str, Any]:
        """
        Scrape a single URL.

        Args:
            url: URL to scrape
            formats: Output formats (markdown, html, rawHtml, links)
            only_main_content: Extract only main content (no nav/footer)
            wait_for: Wait time in ms for JS rendering

        Returns:
            {
                "success": bool,
                "data": {
                    "markdown": "...",
                    "metadata": {
                        "title": "...",
                        "description": "...",
                        "sourceURL": "...",
                    }
                }
            }
        """
        if self._closed:
            raise FirecrawlError("Client has been closed")

        payload = {
            "url": url,
            "formats": formats or ["markdown"],
            "onlyMainContent": only_main_content,
        }

        if wait_for:
            payload["waitFor"] = wait_for

        return await self._post_with_retry("/scrape", payload)

    async def fetch_markdown(self, url: str, **scrape_kwargs) -> ScrapedPage:
        """
        Scrape a URL and return its markdown body.

        Raises:
            FirecrawlError: On HTTP failure or when no markdown comes back
        """
        result = await self.scrape_url(url, formats=["markdown"], **scrape_kwargs)

        if result.get("success") is False:
            raise FirecrawlError(
                f"Scrape failed: {result.get('error', 'unknown error')}",
                response=result,
            )

        data = result.get("data") or {}
        markdown = data.get("markdown")
        if not markdown:
            raise FirecrawlError(
                "No markdown content returned from Firecrawl",
                response=result,
            )

        return ScrapedPage(url=url, markdown=markdown, metadata=data.get("metadata") or {})

    async def _post_with_retry(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST with exponential backoff on timeouts and retryable statuses."""
        config = self.retry_config
        last_exception = None

        for attempt in range(config.max_retries + 1):
            try:
                response = await self._client.post(endpoint, json=payload)

                if response.status_code >= 400:
                    error_data = _safe_json(response)

                    if response.status_code in config.retryable_status_codes:
                        last_exception = FirecrawlError(
                            f"API error: {response.status_code}",
                            status_code=response.status_code,
                            response=error_data,
                        )
                        # Will retry
                    else:
                        raise FirecrawlError(
                            f"API error: {error_data.get('error', response.status_code)}",
                            status_code=response.status_code,
                            response=error_data,
                        )
                else:
                    return _safe_json(response)

            except httpx.TimeoutException as e:
                last_exception = FirecrawlError(f"Request timed out: {e}")
            except httpx.RequestError as e:
                last_exception = FirecrawlError(f"Request failed: {e}")

            # Retry delay
            if attempt < config.max_retries:
                delay = min(
                    config.initial_delay * (config.exponential_base**attempt),
                    config.max_delay,
                )
                logger.warning(
                    f"Firecrawl request failed, retrying in {delay:.1f}s "
                    f"(attempt {attempt + 1}/{config.max_retries + 1})"
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


def _safe_json(response: httpx.Response) -> Dict[str, Any]:
    """Decode a JSON body, returning {} for empty or non-JSON bodies."""
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
