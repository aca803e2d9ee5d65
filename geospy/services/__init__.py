"""Application services."""

from .geo import GeoService

__all__ = ["GeoService"]
