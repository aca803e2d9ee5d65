#!/usr/bin/env python3
"""
Local Pipeline Script

Run scrape -> answer -> coverage -> recommendations without a database.

Usage:
    python scripts/run_local.py "best running shoes for flat feet" \
        --target https://example.com/shoes --competitor https://rival.com/guide
    python scripts/run_local.py "what is GEO" --target https://example.com -o out.json
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from geospy.analyzer import AnswerGenerator
from geospy.analyzer.embeddings import EmbeddingClient
from geospy.collector import ScrapeOrchestrator, ScrapeTarget
from geospy.database.models import URLRole
from geospy.exceptions import PreconditionError
from geospy.integrations.config import ExternalAPIClients, ExternalAPIConfig
from geospy.reporter import generate_recommendations
from geospy.scoring import AnswerSnapshot, CoverageAnalyzer, CoverageConfig, PageSnapshot
from geospy.utils.config import Settings


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(),
        ]
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def run_pipeline(query: str, targets: list, competitors: list, enhance: bool, output_file: str = None):
    """Run the full pipeline for one query."""
    load_dotenv()
    settings = Settings()

    print(f"\n{'='*60}")
    print("GEOSPY - LOCAL RUN")
    print(f"{'='*60}")
    print(f"Query: {query}")
    print(f"Targets: {', '.join(targets)}")
    print(f"Competitors: {', '.join(competitors) or '-'}")
    print(f"{'='*60}\n")

    start_time = datetime.now()

    async with ExternalAPIClients(ExternalAPIConfig.from_settings(settings)) as clients:
        try:
            orchestrator = ScrapeOrchestrator(
                clients.firecrawl,
                concurrency=settings.SCRAPE_CONCURRENCY,
                timeout=settings.SCRAPE_TIMEOUT,
            )
            batch = await orchestrator.run(
                [ScrapeTarget(url=u, role=URLRole.TARGET) for u in targets]
                + [ScrapeTarget(url=u, role=URLRole.COMPETITOR) for u in competitors]
            )

            generator = AnswerGenerator(clients.gemini, enhance_timeout=settings.ENHANCE_TIMEOUT)
            answer = await generator.generate_one(query, enhance=enhance)

            pages = [
                PageSnapshot.from_structure(o.target.url, o.target.role, o.structure, o.markdown)
                for o in batch.outcomes
                if o.succeeded
            ]
            analyzer = CoverageAnalyzer(
                embedder=EmbeddingClient(clients.gemini, max_chars=settings.EMBED_MAX_CHARS),
                config=CoverageConfig.from_settings(settings),
            )
            report = await analyzer.analyze(
                AnswerSnapshot(answer.text, answer.answer_format, answer.concepts.topics),
                [p for p in pages if p.role == URLRole.TARGET],
                [p for p in pages if p.role == URLRole.COMPETITOR],
            )
        except PreconditionError as e:
            print(f"ERROR: {e}")
            return None

    recommendations = generate_recommendations(report)
    duration = (datetime.now() - start_time).total_seconds()

    print(f"\n{'='*60}")
    print("RUN COMPLETE")
    print(f"{'='*60}")
    print(f"Duration: {duration:.1f} seconds")
    print(f"Scrapes: {batch.summary()}")
    for outcome in batch.outcomes:
        if not outcome.succeeded:
            print(f"  - {outcome.target.url}: {outcome.error}")

    print(f"\nAnswer format: {answer.answer_format.value}")
    print(f"Depth score: {report.content_depth_score}")
    print(f"Present: {', '.join(report.topics_present) or '-'}")
    print(f"Weak:    {', '.join(report.topics_weak) or '-'}")
    print(f"Missing: {', '.join(report.topics_missing) or '-'}")

    print(f"\n{'='*60}")
    print("RECOMMENDATIONS")
    print(f"{'='*60}")
    for rec in recommendations:
        print(f"  [{rec.priority.value:6s}] {rec.title}")

    result = {
        "query": query,
        "answer": {"text": answer.text, **answer.metadata},
        "scrapes": [o.to_dict() for o in batch.outcomes],
        "analysis": report.to_dict(),
        "recommendations": [r.to_dict() for r in recommendations],
    }

    if output_file:
        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(result, f, indent=2, default=str)
        print(f"\nResults saved to: {output_path}")

    return result


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run a GEO content gap analysis locally"
    )
    parser.add_argument("query", help="Question to ask the AI engine")
    parser.add_argument(
        "--target", "-t",
        action="append",
        required=True,
        help="Target URL (repeatable)"
    )
    parser.add_argument(
        "--competitor", "-c",
        action="append",
        default=[],
        help="Competitor URL (repeatable)"
    )
    parser.add_argument(
        "--enhance",
        action="store_true",
        help="Rewrite the query before asking"
    )
    parser.add_argument(
        "--output", "-o",
        help="Save results to JSON file"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )

    args = parser.parse_args()

    setup_logging(args.verbose)

    asyncio.run(run_pipeline(
        query=args.query,
        targets=args.target,
        competitors=args.competitor,
        enhance=args.enhance,
        output_file=args.output,
    ))


if __name__ == "__main__":
    main()
