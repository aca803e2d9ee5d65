"""
GEOspy Content Gap Analyzer

Helps website owners get their content cited by generative AI engines:
1. Scrapes target and competitor pages into heading structure (Firecrawl)
2. Asks a generative model for a reference answer (Gemini)
3. Diffs topic coverage against competitors
4. Emits prioritized content recommendations
"""

__version__ = "0.2.0"
