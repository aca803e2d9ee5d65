"""
Page Collection

- structure: markdown -> headings, word counts, H2 sections
- orchestrator: bounded-concurrency scraping of a project's URLs
"""

from .structure import (
    Section,
    HeadingBlock,
    PageStructure,
    count_words,
    build_hierarchy,
    extract_structure,
    heading_blocks,
)
from .orchestrator import (
    ScrapeTarget,
    ScrapeOutcome,
    ScrapeBatchResult,
    ScrapeOrchestrator,
)

__all__ = [
    "Section",
    "HeadingBlock",
    "PageStructure",
    "count_words",
    "build_hierarchy",
    "extract_structure",
    "heading_blocks",
    "ScrapeTarget",
    "ScrapeOutcome",
    "ScrapeBatchResult",
    "ScrapeOrchestrator",
]
