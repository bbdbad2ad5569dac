"""Tests for the learned knowledge store.

Covers reinforcement and decay arithmetic, case-insensitive identity,
substring lookup order, stats, eviction and the learning-event sink.
"""

import threading
from unittest.mock import MagicMock

import pytest

from omnidev.knowledge import KnowledgeStore
from omnidev.types import KnowledgeEntry, KnowledgeSource


class TestUpsert:
    def test_new_entry_defaults(self, empty_store):
        entry = empty_store.upsert("graphql caching", "Use persisted queries", "user")
        assert entry.votes == 1
        assert entry.confidence == pytest.approx(0.7)
        assert entry.source is KnowledgeSource.USER
        assert len(empty_store) == 1

    def test_reinforce_existing_entry_in_place(self, empty_store):
        first = empty_store.upsert("graphql caching", "Use persisted queries")
        second = empty_store.upsert("GraphQL Caching", "Something else", "system")

        assert len(empty_store) == 1
        assert second.votes == 2
        assert second.confidence == pytest.approx(0.71)
        assert second.timestamp > first.timestamp
        # Non-internet reinforcement keeps the original solution and source
        assert second.solution == "Use persisted queries"
        assert second.source is KnowledgeSource.USER

    def test_internet_reinforcement_overwrites_solution(self, empty_store):
        empty_store.upsert("react", "old insight", KnowledgeSource.INTERNET)
        entry = empty_store.upsert("react", "fresh insight", KnowledgeSource.INTERNET)
        assert entry.solution == "fresh insight"
        assert entry.votes == 2

    def test_confidence_is_monotonic_and_capped(self, empty_store):
        previous = 0.0
        for _ in range(60):
            entry = empty_store.upsert("pattern", "solution")
            assert entry.confidence >= previous
            previous = entry.confidence
        assert entry.confidence == pytest.approx(0.99)
        assert len(empty_store) == 1

    def test_unknown_source_rejected(self, empty_store):
        with pytest.raises(ValueError, match="Unknown knowledge source"):
            empty_store.upsert("p", "s", "learned")

    def test_returned_entry_is_a_copy(self, empty_store):
        entry = empty_store.upsert("p", "s")
        entry.votes = 1000
        assert empty_store.find_exact("p").votes == 1


class TestReinforceAndDecay:
    def test_reinforce_missing_is_noop(self, empty_store):
        assert empty_store.reinforce("nothing") is None
        assert len(empty_store) == 0

    def test_reinforce_existing(self, store):
        entry = store.reinforce("React State Management")
        assert entry.votes == 48
        assert entry.confidence == pytest.approx(0.93)

    def test_decay_existing(self, store):
        entry = store.decay("react state management")
        assert entry.votes == 46
        assert entry.confidence == pytest.approx(0.82)

    def test_decay_missing_is_noop(self, empty_store):
        assert empty_store.decay("nothing") is None
        assert len(empty_store) == 0

    def test_decay_floors_confidence_and_votes_go_negative(self, empty_store):
        empty_store.upsert("p", "s")
        for _ in range(20):
            entry = empty_store.decay("p")
            assert entry.confidence >= 0.1
        assert entry.confidence == pytest.approx(0.1)
        assert entry.votes == 1 - 20
        # Never deleted by decay
        assert empty_store.find_exact("p") is not None


class TestQueries:
    def test_find_exact_case_insensitive(self, store):
        assert store.find_exact("MICROSERVICES communication").votes == 78
        assert store.find_exact("microservices") is None

    def test_find_containing_first_match_wins(self, empty_store):
        empty_store.upsert("react", "first")
        empty_store.upsert("react hooks", "second")
        match = empty_store.find_containing("Tips for React Hooks")
        assert match.solution == "first"

    def test_find_containing_threshold_inclusive(self, store):
        match = store.find_containing("database indexing strategy please", 0.89)
        assert match is not None
        assert match.pattern == "database indexing strategy"

    def test_find_containing_threshold_exclusive(self, store):
        assert store.find_containing("database indexing strategy", 0.89, inclusive=False) is None
        assert store.find_containing("database indexing strategy", 0.88, inclusive=False)

    def test_find_containing_skips_low_confidence(self, empty_store):
        empty_store.upsert("react", "weak")
        empty_store.upsert("react router", "also weak")
        assert empty_store.find_containing("react router", 0.8) is None

    def test_find_containing_no_match(self, store):
        assert store.find_containing("rust borrow checker", 0.0) is None

    def test_top_by_votes(self, store):
        top = store.top_by_votes(2)
        assert [e.pattern for e in top] == [
            "microservices communication",
            "react state management",
        ]

    def test_top_by_votes_ties_keep_insertion_order(self, empty_store):
        for pattern in ("a", "b", "c"):
            empty_store.upsert(pattern, "s")
        assert [e.pattern for e in empty_store.top_by_votes(3)] == ["a", "b", "c"]

    def test_stats_by_source(self, store):
        store.upsert("typescript", "insight", "internet")
        assert store.stats_by_source() == {
            "user": 0,
            "system": 1,
            "community": 2,
            "internet": 1,
        }

    def test_stats(self, store):
        stats = store.stats()
        assert stats["total_entries"] == 3
        assert stats["avg_confidence"] == pytest.approx((0.92 + 0.89 + 0.95) / 3)
        assert stats["high_confidence_entries"] == 3
        assert stats["top_patterns"][0] == {
            "pattern": "microservices communication",
            "votes": 78,
            "confidence": 0.95,
        }

    def test_stats_empty_store(self, empty_store):
        stats = empty_store.stats()
        assert stats["total_entries"] == 0
        assert stats["avg_confidence"] == 0.0
        assert stats["top_patterns"] == []


class TestEvictionAndSink:
    def test_max_entries_evicts_least_recently_updated(self, clock):
        store = KnowledgeStore(max_entries=2, clock=clock)
        store.upsert("a", "s")
        store.upsert("b", "s")
        store.upsert("a", "s")  # refresh "a"; "b" is now the oldest
        store.upsert("c", "s")

        assert len(store) == 2
        assert store.find_exact("b") is None
        assert store.find_exact("a") is not None
        assert store.find_exact("c") is not None

    def test_invalid_max_entries(self):
        with pytest.raises(ValueError):
            KnowledgeStore(max_entries=0)

    def test_sink_receives_events(self, clock):
        sink = MagicMock()
        store = KnowledgeStore(max_entries=1, sink=sink, clock=clock)
        store.upsert("a", "s")
        store.upsert("a", "s")
        store.decay("a")
        store.upsert("b", "s")

        actions = [call.args[0].action for call in sink.record.call_args_list]
        assert actions == ["insert", "reinforce", "decay", "evict", "insert"]
        assert sink.record.call_args_list[0].args[0].pattern == "a"

    def test_sink_failure_does_not_break_store(self, clock):
        sink = MagicMock()
        sink.record.side_effect = RuntimeError("db down")
        store = KnowledgeStore(sink=sink, clock=clock)
        entry = store.upsert("a", "s")
        assert entry.votes == 1
        assert store.find_exact("a") is not None

    def test_initial_entries_deduplicated(self):
        store = KnowledgeStore(
            [
                KnowledgeEntry(pattern="A", solution="first"),
                KnowledgeEntry(pattern="a", solution="second"),
            ]
        )
        assert len(store) == 1
        assert store.find_exact("a").solution == "first"


class TestConcurrency:
    def test_concurrent_upserts_do_not_lose_votes(self, empty_store):
        def worker():
            for _ in range(200):
                empty_store.upsert("shared", "s")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(empty_store) == 1
        assert empty_store.find_exact("shared").votes == 1600
