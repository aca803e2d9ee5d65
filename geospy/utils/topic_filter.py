"""
Topic Filtering Utilities

Shared heading/topic exclusion logic used wherever scraped headings become
candidate topics:
- Building the topic universe from competitor pages
- Selecting topics for recommendations

This ensures navigation chrome like "Related posts", "Privacy policy" or
"Skip to content" is NEVER treated as a content topic regardless of which
page it was scraped from.
"""

import re
from typing import Iterable, List, Optional
from urllib.parse import urlparse
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# EXCLUDED HEADINGS - Navigation and UI chrome found on scraped pages
# =============================================================================

# Account & Navigation
NAVIGATION = {
    "login", "register", "sign in", "sign up", "logout",
    "menu", "navigation", "post navigation",
    "search", "home", "about", "about us", "contact", "contact us",
    "breadcrumb", "breadcrumbs", "skip to content", "main content",
    "table of contents", "sidebar", "footer", "header",
}

# Blog & CMS Widgets
CMS_WIDGETS = {
    "categories", "tags", "archives", "comments",
    "internal links", "internal links for you",
    "related posts", "related articles", "related content",
    "you may also like", "popular posts", "recent posts",
    "categories for you", "posts for you",
    "recommended for you", "trending", "most read",
}

# Social & Engagement
SOCIAL = {
    "share", "follow", "follow us", "subscribe", "tweet", "like us",
    "social media", "newsletter", "newsletter signup",
}

# Legal & Advertising
LEGAL_AND_ADS = {
    "cookie policy", "privacy policy", "terms of service",
    "terms and conditions", "copyright",
    "advertisement", "ad", "sponsored",
}

BLOCKED_TOPICS = NAVIGATION | CMS_WIDGETS | SOCIAL | LEGAL_AND_ADS

# Single words only block exact matches ("home" but not "home workouts")
MULTIWORD_BLOCKED = {t for t in BLOCKED_TOPICS if " " in t}

URL_MARKERS = ("http", "www", ".com", ".co.", "couk", "author/")

MIN_TOPIC_LENGTH = 4
MAX_TOPIC_LENGTH = 40  # Without spaces
MIN_LETTER_RATIO = 0.5

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_LETTERS = re.compile(r"[a-z]", re.IGNORECASE)


def normalize_heading(heading: str) -> str:
    """Lowercase, drop everything except letters, digits and spaces, collapse whitespace."""
    return " ".join(_NON_ALNUM.sub("", heading.lower()).split())


def get_rejection_reason(topic: Optional[str]) -> Optional[str]:
    """
    Get the reason why a heading is not a content topic.

    Args:
        topic: Heading or topic text

    Returns:
        Reason string if rejected, None if valid topic
    """
    if not topic:
        return "Empty topic"

    text = topic.strip()
    if len(text) < MIN_TOPIC_LENGTH:
        return "Too short"

    lower = text.lower()
    if any(marker in lower for marker in URL_MARKERS):
        return "Looks like a URL"

    if len(re.sub(r"\s+", "", text)) > MAX_TOPIC_LENGTH:
        return "Too long"

    letters = len(_LETTERS.findall(text))
    if letters < 3 or letters / len(text) < MIN_LETTER_RATIO:
        return "Mostly non-letters"

    normalized = normalize_heading(text)
    if normalized in BLOCKED_TOPICS:
        return "Navigation/UI heading"

    for blocked in MULTIWORD_BLOCKED:
        if normalized.startswith(blocked + " ") or normalized.endswith(" " + blocked):
            return "Navigation/UI heading"

    return None


def is_valid_content_topic(topic: Optional[str]) -> bool:
    """Check whether a heading can stand as a content topic."""
    return get_rejection_reason(topic) is None


def filter_content_topics(topics: Iterable[str], source: str = "unknown") -> List[str]:
    """
    Drop non-content topics, keeping input order.

    Args:
        topics: Candidate topics
        source: Where the topics came from (for logging)

    Returns:
        Topics that passed the filter
    """
    kept = []
    rejected = 0
    for topic in topics:
        if is_valid_content_topic(topic):
            kept.append(topic)
        else:
            rejected += 1

    if rejected:
        logger.debug(f"Filtered {rejected} non-content topics from {source}")

    return kept


def extract_domain(url: str) -> str:
    """
    Get the host name of a URL, tolerating a missing scheme.

    Returns empty string if the URL cannot be parsed.
    """
    candidate = url.strip()
    if not candidate.startswith("http"):
        candidate = f"https://{candidate}"
    try:
        return urlparse(candidate).hostname or ""
    except ValueError:
        return ""
