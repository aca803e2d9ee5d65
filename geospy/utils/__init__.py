"""Shared utilities: settings, topic filtering, URL helpers."""

from .config import Settings, get_settings
from .topic_filter import (
    is_valid_content_topic,
    get_rejection_reason,
    normalize_heading,
    filter_content_topics,
    extract_domain,
)

__all__ = [
    "Settings",
    "get_settings",
    "is_valid_content_topic",
    "get_rejection_reason",
    "normalize_heading",
    "filter_content_topics",
    "extract_domain",
]
