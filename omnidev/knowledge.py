"""Learned pattern -> solution store.

Entries are reinforced by positive feedback, trend hits and the router's
learning hook, and decayed by negative feedback. Patterns are unique
case-insensitively: reinforcing an existing pattern updates it in place.

The store is process-lifetime state shared by every request. Mutations are
serialized behind a single lock and readers get copies, so a caller never
observes a half-applied update.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Union

from omnidev.protocols import LearningEventSink
from omnidev.types import (
    CONFIDENCE_CEILING,
    DECAY_STEP,
    INITIAL_CONFIDENCE,
    REINFORCE_STEP,
    KnowledgeEntry,
    KnowledgeSource,
    LearningEvent,
    clamp_confidence,
    utc_now,
)

logger = logging.getLogger(__name__)

# Entries above this confidence count as "high confidence" in stats
HIGH_CONFIDENCE_THRESHOLD = 0.8


def _seed_entries() -> List[KnowledgeEntry]:
    return [
        KnowledgeEntry(
            pattern="react state management",
            solution=(
                "For complex state management in React, consider using Redux Toolkit "
                "or Zustand instead of plain Context API."
            ),
            confidence=0.92,
            votes=47,
            timestamp=datetime(2025, 5, 1, tzinfo=timezone.utc),
            source=KnowledgeSource.COMMUNITY,
        ),
        KnowledgeEntry(
            pattern="database indexing strategy",
            solution=(
                "Create composite indexes for frequently queried columns, and use "
                "covering indexes for read-heavy operations."
            ),
            confidence=0.89,
            votes=31,
            timestamp=datetime(2025, 4, 15, tzinfo=timezone.utc),
            source=KnowledgeSource.SYSTEM,
        ),
        KnowledgeEntry(
            pattern="microservices communication",
            solution=(
                "Consider using an event-driven architecture with a message broker "
                "like Kafka for asynchronous communication between microservices."
            ),
            confidence=0.95,
            votes=78,
            timestamp=datetime(2025, 4, 22, tzinfo=timezone.utc),
            source=KnowledgeSource.COMMUNITY,
        ),
    ]


def _coerce_source(source: Union[str, KnowledgeSource]) -> KnowledgeSource:
    if isinstance(source, KnowledgeSource):
        return source
    try:
        return KnowledgeSource(str(source).lower())
    except ValueError:
        raise ValueError(f"Unknown knowledge source: {source!r}") from None


class KnowledgeStore:
    """In-memory knowledge store guarded by a single-writer lock.

    Args:
        entries: Initial entries, in insertion order. Defaults to empty.
        max_entries: Optional cap. Inserting past the cap evicts the least
            recently updated entry. None means unbounded.
        sink: Optional LearningEventSink notified after each mutation.
        clock: Source of "now"; injectable for tests.
    """

    def __init__(
        self,
        entries: Optional[Iterable[KnowledgeEntry]] = None,
        *,
        max_entries: Optional[int] = None,
        sink: Optional[LearningEventSink] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._entries: Dict[str, KnowledgeEntry] = {}
        self._lock = threading.Lock()
        self._max_entries = max_entries
        self._sink = sink
        self._clock = clock
        for entry in entries or []:
            self._entries.setdefault(entry.key, replace(entry))

    @classmethod
    def with_seed_knowledge(cls, **kwargs) -> "KnowledgeStore":
        """Create a store pre-populated with the community seed entries."""
        return cls(_seed_entries(), **kwargs)

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> List[KnowledgeEntry]:
        """Snapshot of all entries in insertion order."""
        with self._lock:
            return [replace(e) for e in self._entries.values()]

    # ---- Mutations ----

    def upsert(
        self,
        pattern: str,
        solution: str,
        source: Union[str, KnowledgeSource] = KnowledgeSource.USER,
    ) -> KnowledgeEntry:
        """Insert a new entry or reinforce the existing one for `pattern`.

        Reinforcing bumps votes and confidence and refreshes the timestamp.
        Internet-sourced reinforcement also replaces the solution text.
        """
        src = _coerce_source(source)
        key = pattern.lower()
        evicted: Optional[KnowledgeEntry] = None
        with self._lock:
            now = self._clock()
            existing = self._entries.get(key)
            if existing is not None:
                existing.votes += 1
                existing.confidence = min(CONFIDENCE_CEILING, existing.confidence + REINFORCE_STEP)
                existing.timestamp = now
                if src is KnowledgeSource.INTERNET:
                    existing.solution = solution
                action, entry = "reinforce", existing
            else:
                evicted = self._evict_if_full()
                entry = KnowledgeEntry(
                    pattern=pattern,
                    solution=solution,
                    confidence=INITIAL_CONFIDENCE,
                    votes=1,
                    timestamp=now,
                    source=src,
                )
                self._entries[key] = entry
                action = "insert"
            snapshot = replace(entry)

        logger.debug(
            "Knowledge %s: pattern=%r votes=%d confidence=%.2f",
            action,
            snapshot.pattern,
            snapshot.votes,
            snapshot.confidence,
        )
        if evicted is not None:
            self._emit("evict", evicted)
        self._emit(action, snapshot)
        return snapshot

    def reinforce(self, pattern: str) -> Optional[KnowledgeEntry]:
        """Reinforce an existing entry without changing its solution. No-op if absent."""
        with self._lock:
            entry = self._entries.get(pattern.lower())
            if entry is None:
                return None
            entry.votes += 1
            entry.confidence = min(CONFIDENCE_CEILING, entry.confidence + REINFORCE_STEP)
            entry.timestamp = self._clock()
            snapshot = replace(entry)
        self._emit("reinforce", snapshot)
        return snapshot

    def decay(self, pattern: str) -> Optional[KnowledgeEntry]:
        """Lower confidence and votes for an existing entry. No-op if absent.

        Confidence never drops below the floor; votes have no floor.
        Decay never deletes an entry.
        """
        with self._lock:
            entry = self._entries.get(pattern.lower())
            if entry is None:
                return None
            entry.confidence = clamp_confidence(entry.confidence - DECAY_STEP)
            entry.votes -= 1
            entry.timestamp = self._clock()
            snapshot = replace(entry)

        logger.debug(
            "Knowledge decay: pattern=%r votes=%d confidence=%.2f",
            snapshot.pattern,
            snapshot.votes,
            snapshot.confidence,
        )
        self._emit("decay", snapshot)
        return snapshot

    def _evict_if_full(self) -> Optional[KnowledgeEntry]:
        # Caller holds the lock
        if self._max_entries is None or len(self._entries) < self._max_entries:
            return None
        oldest_key = min(self._entries, key=lambda k: self._entries[k].timestamp)
        evicted = self._entries.pop(oldest_key)
        logger.debug("Knowledge evict: pattern=%r", evicted.pattern)
        return evicted

    def _emit(self, action: str, entry: KnowledgeEntry) -> None:
        if self._sink is None:
            return
        event = LearningEvent(
            action=action,
            pattern=entry.pattern,
            source=entry.source,
            confidence=entry.confidence,
            votes=entry.votes,
            timestamp=entry.timestamp,
        )
        try:
            self._sink.record(event)
        except Exception as e:
            # Persistence is best-effort; the in-memory entry stays authoritative
            logger.warning("Learning event sink failed for %r: %s", entry.pattern, e)

    # ---- Queries ----

    def find_exact(self, pattern: str) -> Optional[KnowledgeEntry]:
        with self._lock:
            entry = self._entries.get(pattern.lower())
            return replace(entry) if entry is not None else None

    def find_containing(
        self,
        text: str,
        min_confidence: float = 0.0,
        *,
        inclusive: bool = True,
    ) -> Optional[KnowledgeEntry]:
        """First entry (insertion order) whose pattern occurs in `text`.

        Matching is case-insensitive. With `inclusive=False` the entry's
        confidence must strictly exceed `min_confidence`.
        """
        haystack = text.lower()
        with self._lock:
            for key, entry in self._entries.items():
                if key not in haystack:
                    continue
                if inclusive and entry.confidence >= min_confidence:
                    return replace(entry)
                if not inclusive and entry.confidence > min_confidence:
                    return replace(entry)
        return None

    def top_by_votes(self, n: int = 5) -> List[KnowledgeEntry]:
        """Highest-voted entries; ties keep insertion order."""
        snapshot = self.entries()
        return sorted(snapshot, key=lambda e: e.votes, reverse=True)[:n]

    def stats_by_source(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in KnowledgeSource}
        for entry in self.entries():
            counts[entry.source.value] = counts.get(entry.source.value, 0) + 1
        return counts

    def stats(self, top_n: int = 5) -> Dict[str, object]:
        """Aggregate view used by the admin learning-stats endpoint."""
        snapshot = self.entries()
        total = len(snapshot)
        avg_confidence = sum(e.confidence for e in snapshot) / total if total else 0.0
        top = sorted(snapshot, key=lambda e: e.votes, reverse=True)[:top_n]
        return {
            "total_entries": total,
            "by_source": self.stats_by_source(),
            "avg_confidence": avg_confidence,
            "high_confidence_entries": sum(
                1 for e in snapshot if e.confidence > HIGH_CONFIDENCE_THRESHOLD
            ),
            "top_patterns": [
                {"pattern": e.pattern, "votes": e.votes, "confidence": e.confidence}
                for e in top
            ],
        }
