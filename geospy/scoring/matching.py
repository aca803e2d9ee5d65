"""
Topic Matching Strategies

Decides whether (and how deeply) a target page covers a topic.

Strategies run in a fixed order and the first hit wins:
1. ExactHeadingStrategy - normalized topic equals a heading
2. FuzzyHeadingStrategy - containment either way, or enough shared tokens
3. BodyKeywordStrategy  - topic phrase appears in body paragraphs

Each strategy is usable on its own, so precedence can be tested in isolation.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from geospy.collector.structure import HeadingBlock, Section, count_words, heading_blocks
from geospy.utils.topic_filter import normalize_heading

STOPWORDS = {
    "a", "an", "the", "and", "or", "of", "for", "to", "in", "on", "with",
    "how", "what", "why", "is", "are", "your", "you", "do", "does", "vs",
}

MIN_CONTAINMENT_CHARS = 3

_BLANK_LINES = re.compile(r"\n\s*\n")
_HEADING_LINE = re.compile(r"^#{1,6}[ \t]")


@dataclass
class TopicMatch:
    """How a topic was found on the page and how much text backs it."""
    kind: str
    heading: Optional[str]
    depth_words: int


@dataclass
class PageText:
    """Headings and body paragraphs of one page, prepared for matching."""
    blocks: List[HeadingBlock] = field(default_factory=list)
    paragraphs: List[str] = field(default_factory=list)

    @classmethod
    def from_markdown(cls, markdown: str) -> "PageText":
        markdown = markdown or ""
        paragraphs = []
        for chunk in _BLANK_LINES.split(markdown):
            lines = [line for line in chunk.splitlines() if not _HEADING_LINE.match(line)]
            text = " ".join(line.strip() for line in lines).strip()
            if text:
                paragraphs.append(text)
        return cls(blocks=heading_blocks(markdown), paragraphs=paragraphs)

    @classmethod
    def from_sections(cls, h1s: Sequence[str], sections: Sequence[Section]) -> "PageText":
        """Fallback when only stored structure (no raw content) is available."""
        blocks = [HeadingBlock(level=1, text=h, word_count=0) for h in h1s]
        for section in sections:
            blocks.append(HeadingBlock(level=2, text=section.heading, word_count=section.word_count))
            blocks.extend(HeadingBlock(level=3, text=sub, word_count=0) for sub in section.subheadings)
        return cls(blocks=blocks)


def topic_tokens(text: str) -> List[str]:
    """Normalized, stopword-free tokens."""
    return [t for t in normalize_heading(text).split() if t not in STOPWORDS]


def contains_phrase(words: Sequence[str], phrase: Sequence[str]) -> bool:
    """True when `phrase` occurs in `words` as a contiguous run of whole tokens."""
    size = len(phrase)
    if size == 0 or size > len(words):
        return False
    return any(list(words[i:i + size]) == list(phrase) for i in range(len(words) - size + 1))


def _deepest(matches: Iterable[HeadingBlock]) -> Optional[HeadingBlock]:
    best = None
    for block in matches:
        if best is None or block.word_count > best.word_count:
            best = block
    return best


class MatchStrategy:
    """Base class: return a TopicMatch or None."""

    kind = "base"

    def match(self, topic: str, page: PageText) -> Optional[TopicMatch]:
        raise NotImplementedError


class ExactHeadingStrategy(MatchStrategy):
    kind = "exact_heading"

    def match(self, topic: str, page: PageText) -> Optional[TopicMatch]:
        key = normalize_heading(topic)
        if not key:
            return None

        block = _deepest(b for b in page.blocks if normalize_heading(b.text) == key)
        if block is None:
            return None
        return TopicMatch(kind=self.kind, heading=block.text, depth_words=block.word_count)


class FuzzyHeadingStrategy(MatchStrategy):
    """
    Heading contains the topic (or vice versa), or shares at least
    `min_overlap` of the topic's tokens.
    """

    kind = "fuzzy_heading"

    def __init__(self, min_overlap: float = 0.6):
        self.min_overlap = min_overlap

    def _is_match(self, topic_key: str, tokens: List[str], heading: str) -> bool:
        heading_key = normalize_heading(heading)
        if not heading_key:
            return False

        topic_words = topic_key.split()
        heading_words = heading_key.split()
        shorter = min(topic_key, heading_key, key=len)
        if len(shorter) >= MIN_CONTAINMENT_CHARS and (
            contains_phrase(heading_words, topic_words) or contains_phrase(topic_words, heading_words)
        ):
            return True

        if not tokens:
            return False
        heading_tokens = set(topic_tokens(heading))
        shared = sum(1 for t in tokens if t in heading_tokens)
        return shared / len(tokens) >= self.min_overlap

    def match(self, topic: str, page: PageText) -> Optional[TopicMatch]:
        key = normalize_heading(topic)
        if not key:
            return None
        tokens = topic_tokens(topic)

        block = _deepest(b for b in page.blocks if self._is_match(key, tokens, b.text))
        if block is None:
            return None
        return TopicMatch(kind=self.kind, heading=block.text, depth_words=block.word_count)


class BodyKeywordStrategy(MatchStrategy):
    """Topic phrase appears in body text; depth is the words of those paragraphs."""

    kind = "body_keyword"

    def match(self, topic: str, page: PageText) -> Optional[TopicMatch]:
        key = normalize_heading(topic)
        if not key:
            return None

        needle = f" {key} "
        hits = [p for p in page.paragraphs if needle in f" {normalize_heading(p)} "]
        if not hits:
            return None
        return TopicMatch(kind=self.kind, heading=None, depth_words=sum(count_words(p) for p in hits))


class TopicMatcher:
    """
    Ordered strategy chain.

    Usage:
        matcher = TopicMatcher.default(min_overlap=0.6)
        match = matcher.match("sizing guide", PageText.from_markdown(md))
    """

    def __init__(self, strategies: List[MatchStrategy]):
        self.strategies = strategies

    @classmethod
    def default(cls, min_overlap: float = 0.6) -> "TopicMatcher":
        return cls([
            ExactHeadingStrategy(),
            FuzzyHeadingStrategy(min_overlap=min_overlap),
            BodyKeywordStrategy(),
        ])

    def match(self, topic: str, page: PageText) -> Optional[TopicMatch]:
        for strategy in self.strategies:
            found = strategy.match(topic, page)
            if found is not None:
                return found
        return None
