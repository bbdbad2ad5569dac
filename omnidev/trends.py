"""Trend lookup: a stand-in for live web search.

Hits are written back to the knowledge store as internet-sourced entries,
so repeated lookups keep reinforcing (and refreshing) the same pattern.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from omnidev.knowledge import KnowledgeStore
from omnidev.protocols import TrendSearch
from omnidev.types import KnowledgeSource

logger = logging.getLogger(__name__)

NO_TRENDS_FOUND = "No specific trends found. Consider narrowing your search query."

# Ordered: the first keyword contained in the query wins
TREND_TABLE: List[Tuple[str, str]] = [
    (
        "typescript",
        "TypeScript 5.4 introduces more powerful type inference and new decorators API, "
        "improving developer experience with stricter type safety.",
    ),
    (
        "react",
        "React's new compiler architecture focuses on partial hydration and streaming SSR, "
        "significantly improving performance metrics.",
    ),
    (
        "ai coding",
        "AI coding assistants have evolved to understand full repository context and "
        "generate patches rather than just completing snippets.",
    ),
    (
        "webassembly",
        "WebAssembly's component model standardization is enabling language-agnostic "
        "module reuse across different environments.",
    ),
    (
        "database",
        "Vector databases are becoming essential infrastructure for AI applications "
        "requiring similarity search operations.",
    ),
    (
        "javascript",
        "JavaScript's Temporal API is revolutionizing date/time handling with immutable "
        "types and timezone-aware operations.",
    ),
    (
        "architecture",
        "Micro-frontends are gaining adoption for large-scale applications with "
        "domain-focused vertical slices.",
    ),
    (
        "security",
        "Supply chain attacks increased 300% in 2024, driving adoption of software bill "
        "of materials (SBOM) tooling.",
    ),
]


class StaticTrendSearch:
    """TrendSearch over a fixed keyword table."""

    def __init__(self, table: Optional[List[Tuple[str, str]]] = None) -> None:
        self._table = list(TREND_TABLE if table is None else table)

    def search(self, query: str) -> Optional[Tuple[str, str]]:
        lowered = query.lower()
        for keyword, insight in self._table:
            if keyword.lower() in lowered:
                return keyword, insight
        return None


class TrendLookup:
    """Looks up a trend insight and feeds hits into the knowledge store."""

    def __init__(self, store: KnowledgeStore, search: Optional[TrendSearch] = None) -> None:
        self._store = store
        self._search = search or StaticTrendSearch()

    def lookup(self, query: str) -> str:
        """Return the insight for the first matching keyword, or the no-trends sentinel."""
        hit = self._search.search(query)
        if hit is None:
            return NO_TRENDS_FOUND
        keyword, insight = hit
        logger.debug("Trend hit for %r: keyword=%r", query, keyword)
        self._store.upsert(keyword, insight, KnowledgeSource.INTERNET)
        return insight
