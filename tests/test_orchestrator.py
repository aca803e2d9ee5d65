"""
Scrape Orchestrator Tests

Bounded concurrency, per-URL timeouts and failure isolation.
"""

import asyncio
from uuid import uuid4

import pytest
from unittest.mock import MagicMock

from geospy.collector.orchestrator import ScrapeOrchestrator, ScrapeTarget
from geospy.database.models import ScrapeStatus, URLRole
from geospy.exceptions import InvalidRequestError, MissingCredentialError
from geospy.integrations.firecrawl import FirecrawlError


class FakeFetcher:
    """Records how many fetches run at once."""

    def __init__(self, delay=0.01, pages=None, errors=None):
        self.delay = delay
        self.pages = pages or {}
        self.errors = errors or {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = []

    async def fetch_markdown(self, url):
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if url in self.errors:
                raise self.errors[url]
            return MagicMock(markdown=self.pages.get(url, "# Page\n## Section\nbody text"))
        finally:
            self.in_flight -= 1


def _targets(n):
    return [ScrapeTarget(url=f"https://site{i}.com", url_id=uuid4()) for i in range(n)]


class TestScrapeOrchestrator:

    def test_requires_fetcher(self):
        with pytest.raises(MissingCredentialError):
            ScrapeOrchestrator(None)

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValueError):
            ScrapeOrchestrator(FakeFetcher(), concurrency=0)

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(self):
        with pytest.raises(InvalidRequestError):
            await ScrapeOrchestrator(FakeFetcher()).run([])

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        fetcher = FakeFetcher(delay=0.02)
        orchestrator = ScrapeOrchestrator(fetcher, concurrency=3)

        batch = await orchestrator.run(_targets(10))

        assert batch.total == 10
        assert batch.succeeded == 10
        assert fetcher.max_in_flight <= 3
        assert fetcher.max_in_flight > 1

    @pytest.mark.asyncio
    async def test_one_outcome_per_target_in_order(self):
        targets = _targets(5)
        batch = await ScrapeOrchestrator(FakeFetcher()).run(targets)

        assert [o.target for o in batch.outcomes] == targets

    @pytest.mark.asyncio
    async def test_structure_extracted(self):
        fetcher = FakeFetcher(pages={"https://site0.com": "# T\n## A\none two\n### B\nthree"})

        batch = await ScrapeOrchestrator(fetcher).run(_targets(1))
        outcome = batch.outcomes[0]

        assert outcome.status == ScrapeStatus.SUCCESS
        assert outcome.structure.h2s == ["A"]
        assert outcome.structure.h3s == ["B"]
        assert outcome.markdown.startswith("# T")

    @pytest.mark.asyncio
    async def test_all_timeouts_fail_individually(self):
        fetcher = FakeFetcher(delay=1.0)
        orchestrator = ScrapeOrchestrator(fetcher, concurrency=4, timeout=0.05)

        batch = await orchestrator.run(_targets(4))

        assert batch.summary() == {"total": 4, "succeeded": 0, "failed": 4}
        assert all(o.status == ScrapeStatus.FAILED for o in batch.outcomes)
        assert all("Timed out" in o.error for o in batch.outcomes)

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self):
        fetcher = FakeFetcher(errors={
            "https://site1.com": FirecrawlError("API error: 403"),
            "https://site2.com": RuntimeError("boom"),
        })

        batch = await ScrapeOrchestrator(fetcher).run(_targets(3))
        by_url = {o.target.url: o for o in batch.outcomes}

        assert by_url["https://site0.com"].succeeded
        assert by_url["https://site1.com"].error == "API error: 403"
        assert by_url["https://site2.com"].error == "Scrape failed: RuntimeError"
        assert batch.failed == 2

    @pytest.mark.asyncio
    async def test_duplicate_urls_fetched_each_time(self):
        fetcher = FakeFetcher()
        targets = [ScrapeTarget(url="https://same.com"), ScrapeTarget(url="https://same.com")]

        batch = await ScrapeOrchestrator(fetcher).run(targets)

        assert batch.total == 2
        assert fetcher.calls == ["https://same.com", "https://same.com"]


class TestScrapeOutcome:

    @pytest.mark.asyncio
    async def test_to_dict(self):
        fetcher = FakeFetcher(errors={"https://site1.com": FirecrawlError("down")})
        targets = _targets(2)
        targets[1].role = URLRole.COMPETITOR

        batch = await ScrapeOrchestrator(fetcher).run(targets)
        ok, failed = (o.to_dict() for o in batch.outcomes)

        assert ok["status"] == "success"
        assert ok["role"] == "target"
        assert ok["h2_count"] == 1
        assert "error" not in ok

        assert failed["status"] == "failed"
        assert failed["role"] == "competitor"
        assert failed["error"] == "down"
        assert "word_count" not in failed
