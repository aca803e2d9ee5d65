"""
Scrape Orchestrator

Fans a project's URL set out to the scraping service and turns each page
into structural data.

Guarantees:
- At most `concurrency` fetches in flight at once
- Each URL is cancelled after `timeout` seconds
- Every URL resolves to exactly one outcome (success or failed)
- Partial failures never raise; only an empty URL set or a missing
  scraping client does
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import UUID

from geospy.collector.structure import PageStructure, extract_structure
from geospy.database.models import ScrapeStatus, URLRole
from geospy.exceptions import InvalidRequestError, MissingCredentialError
from geospy.integrations.firecrawl import FirecrawlError

logger = logging.getLogger(__name__)


DEFAULT_CONCURRENCY = 3
DEFAULT_TIMEOUT = 30.0


@dataclass
class ScrapeTarget:
    """One URL to fetch."""
    url: str
    url_id: Optional[UUID] = None
    role: URLRole = URLRole.TARGET


@dataclass
class ScrapeOutcome:
    """Terminal state of one URL."""
    target: ScrapeTarget
    status: ScrapeStatus
    structure: PageStructure = field(default_factory=PageStructure)
    markdown: str = ""
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == ScrapeStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "url": self.target.url,
            "url_id": str(self.target.url_id) if self.target.url_id else None,
            "role": self.target.role.value,
            "status": self.status.value,
        }
        if self.succeeded:
            result["h1_count"] = len(self.structure.h1s)
            result["h2_count"] = len(self.structure.h2s)
            result["h3_count"] = len(self.structure.h3s)
            result["word_count"] = self.structure.word_count
        else:
            result["error"] = self.error
        return result


@dataclass
class ScrapeBatchResult:
    """All outcomes of one orchestration call."""
    outcomes: List[ScrapeOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    def summary(self) -> Dict[str, int]:
        return {"total": self.total, "succeeded": self.succeeded, "failed": self.failed}


class ScrapeOrchestrator:
    """
    Bounded-concurrency scraper.

    Usage:
        orchestrator = ScrapeOrchestrator(clients.firecrawl, concurrency=3, timeout=30)
        batch = await orchestrator.run([ScrapeTarget(url="https://example.com")])
        print(batch.summary())  # {"total": 1, "succeeded": 1, "failed": 0}

    The fetcher is anything with an async `fetch_markdown(url)` returning an
    object with a `.markdown` attribute (FirecrawlClient in production).
    """

    def __init__(
        self,
        fetcher,
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if fetcher is None:
            raise MissingCredentialError("Firecrawl", "FIRECRAWL_API_KEY")
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.fetcher = fetcher
        self.concurrency = concurrency
        self.timeout = timeout

    async def run(self, targets: List[ScrapeTarget]) -> ScrapeBatchResult:
        """
        Scrape every target.

        Args:
            targets: URLs to fetch (duplicates are fetched once each)

        Returns:
            ScrapeBatchResult with one outcome per target

        Raises:
            InvalidRequestError: If targets is empty
        """
        if not targets:
            raise InvalidRequestError("No URLs to scrape")

        semaphore = asyncio.Semaphore(self.concurrency)
        logger.info(
            f"Scraping {len(targets)} URLs "
            f"(concurrency={self.concurrency}, timeout={self.timeout}s)"
        )

        async def scrape_with_limit(target: ScrapeTarget) -> ScrapeOutcome:
            async with semaphore:
                return await self._scrape_one(target)

        outcomes = await asyncio.gather(*(scrape_with_limit(t) for t in targets))
        batch = ScrapeBatchResult(outcomes=list(outcomes))

        logger.info(f"Scrape complete: {batch.succeeded} succeeded, {batch.failed} failed")
        return batch

    async def _scrape_one(self, target: ScrapeTarget) -> ScrapeOutcome:
        start = time.monotonic()

        try:
            page = await asyncio.wait_for(
                self.fetcher.fetch_markdown(target.url),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return self._failed(target, f"Timed out after {self.timeout:g}s", start)
        except FirecrawlError as e:
            return self._failed(target, str(e), start)
        except Exception as e:
            # One bad URL must not take down the batch
            logger.exception(f"Unexpected error scraping {target.url}")
            return self._failed(target, f"Scrape failed: {type(e).__name__}", start)

        markdown = page.markdown or ""
        structure = extract_structure(markdown)
        logger.debug(
            f"Scraped {target.url}: {structure.word_count} words, "
            f"{len(structure.h2s)} H2s"
        )

        return ScrapeOutcome(
            target=target,
            status=ScrapeStatus.SUCCESS,
            structure=structure,
            markdown=markdown,
            duration_seconds=time.monotonic() - start,
        )

    def _failed(self, target: ScrapeTarget, error: str, start: float) -> ScrapeOutcome:
        logger.warning(f"Scrape failed for {target.url}: {error}")
        return ScrapeOutcome(
            target=target,
            status=ScrapeStatus.FAILED,
            error=error,
            duration_seconds=time.monotonic() - start,
        )
