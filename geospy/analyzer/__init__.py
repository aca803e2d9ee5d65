"""
AI Answer Analysis

- outcome: BestEffort tagged results
- classifier: answer format tagging
- concepts: topic/entity extraction (best-effort)
- query: query enhancement (best-effort)
- embeddings: embedding vectors (errors propagate)
- answers: per-query answer pipeline
"""

from .outcome import BestEffort
from .classifier import classify_answer_format
from .concepts import KeyConcepts, extract_key_concepts, parse_concepts, strip_code_fences
from .query import enhance_query, clean_enhanced_query
from .embeddings import EmbeddingClient
from .answers import AnswerGenerator, AnswerOutcome, GeneratedAnswer

__all__ = [
    "BestEffort",
    "classify_answer_format",
    "KeyConcepts",
    "extract_key_concepts",
    "parse_concepts",
    "strip_code_fences",
    "enhance_query",
    "clean_enhanced_query",
    "EmbeddingClient",
    "AnswerGenerator",
    "AnswerOutcome",
    "GeneratedAnswer",
]
