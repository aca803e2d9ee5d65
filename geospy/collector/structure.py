"""
Page Structure Extraction

Turns scraped markdown into the structural signals the coverage analysis
works from: H1/H2/H3 heading lists, a total word count, and a per-H2
section breakdown.

Pure functions, no I/O. Unmatched patterns simply produce empty lists.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List


H1_PATTERN = re.compile(r"^#[ \t]+(.+)$", re.MULTILINE)
H2_PATTERN = re.compile(r"^##[ \t]+(.+)$", re.MULTILINE)
H3_PATTERN = re.compile(r"^###[ \t]+(.+)$", re.MULTILINE)
ANY_HEADING_PATTERN = re.compile(r"^(#{1,3})[ \t]+(.+)$", re.MULTILINE)


@dataclass
class Section:
    """One H2 section with its own H3s and word count."""
    heading: str
    subheadings: List[str] = field(default_factory=list)
    word_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "heading": self.heading,
            "subheadings": list(self.subheadings),
            "word_count": self.word_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Section":
        return cls(
            heading=data.get("heading", ""),
            subheadings=list(data.get("subheadings") or []),
            word_count=int(data.get("word_count") or 0),
        )


@dataclass
class HeadingBlock:
    """A heading of any level and the words beneath it."""
    level: int
    text: str
    word_count: int


@dataclass
class PageStructure:
    """Structural signals extracted from one page."""
    h1s: List[str] = field(default_factory=list)
    h2s: List[str] = field(default_factory=list)
    h3s: List[str] = field(default_factory=list)
    word_count: int = 0
    sections: List[Section] = field(default_factory=list)

    @property
    def heading_count(self) -> int:
        """H2 + H3 headings, the unit the depth score compares."""
        return len(self.h2s) + len(self.h3s)

    def to_content_structure(self) -> Dict[str, Any]:
        """Serialized hierarchy as stored on ScrapedContent.content_structure."""
        return {"sections": [s.to_dict() for s in self.sections]}


def count_words(text: str) -> int:
    """Number of non-empty whitespace-delimited tokens."""
    return len(text.split())


def _headings(pattern: re.Pattern, text: str) -> List[str]:
    return [match.group(1).strip() for match in pattern.finditer(text)]


def build_hierarchy(markdown: str) -> List[Section]:
    """
    Split the document at H2 headings.

    Each section covers the text between its H2 and the next H2 (or the end
    of the document); its H3s and word count come from that slice only.
    Text before the first H2 belongs to no section.
    """
    matches = list(H2_PATTERN.finditer(markdown))
    sections = []

    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(markdown)
        body = markdown[match.end():end]
        sections.append(
            Section(
                heading=match.group(1).strip(),
                subheadings=_headings(H3_PATTERN, body),
                word_count=count_words(body),
            )
        )

    return sections


def extract_structure(markdown: str) -> PageStructure:
    """
    Extract heading lists, word count and section hierarchy from markdown.

    Args:
        markdown: Raw markdown-like page text

    Returns:
        PageStructure (empty lists for a document without headings)
    """
    markdown = markdown or ""
    return PageStructure(
        h1s=_headings(H1_PATTERN, markdown),
        h2s=_headings(H2_PATTERN, markdown),
        h3s=_headings(H3_PATTERN, markdown),
        word_count=count_words(markdown),
        sections=build_hierarchy(markdown),
    )


def heading_blocks(markdown: str) -> List[HeadingBlock]:
    """
    Every H1-H3 heading with the word count of the text it governs.

    A heading governs everything up to the next heading of the same or a
    higher level, so an H2 block includes its H3 sub-blocks.
    """
    markdown = markdown or ""
    matches = list(ANY_HEADING_PATTERN.finditer(markdown))
    blocks = []

    for index, match in enumerate(matches):
        level = len(match.group(1))
        end = len(markdown)
        for following in matches[index + 1:]:
            if len(following.group(1)) <= level:
                end = following.start()
                break
        blocks.append(
            HeadingBlock(
                level=level,
                text=match.group(2).strip(),
                word_count=count_words(markdown[match.end():end]),
            )
        )

    return blocks
