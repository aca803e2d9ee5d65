"""
Best-Effort Results

Some AI calls are allowed to fail without stopping the pipeline (concept
extraction, query enhancement). They return a BestEffort instead of raising,
so the fallback is part of the signature rather than a swallowed exception.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar('T')


@dataclass(frozen=True)
class BestEffort(Generic[T]):
    """
    Tagged result: `ok` carries the real value, `degraded` carries the fallback.

    Usage:
        result = await extract_key_concepts(gemini, answer)
        if result.degraded:
            logger.warning(result.reason)
        concepts = result.value  # usable either way
    """
    value: T
    degraded: bool = False
    reason: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "BestEffort[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, reason: str) -> "BestEffort[T]":
        return cls(value=value, degraded=True, reason=reason)

    @property
    def is_ok(self) -> bool:
        return not self.degraded
