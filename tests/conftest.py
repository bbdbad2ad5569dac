"""
Pytest fixtures and test configuration for OmniDev bridge tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from omnidev.bridge import AIBridge, BridgeConfig
from omnidev.catalog import ModelCatalog
from omnidev.entitlements import EntitlementResolver, InMemorySubscriptionDirectory
from omnidev.knowledge import KnowledgeStore
from omnidev.router import TaskRouter
from omnidev.trends import TrendLookup

# Minimum tier per external model record. Mirrors how plans unlock models:
# tier 1 gets the small code models, tier 2 adds refactor/planning/debugging,
# tier 3 unlocks everything.
MODEL_MIN_LEVELS = {
    "CodeT5": 1,
    "CodeParrot": 1,
    "StarCoder": 2,
    "CodeGen": 2,
    "DiffCodeGen": 2,
    "GPTJ": 2,
    "OmniDev-AutoFix": 2,
    "CodeLlama": 3,
    "PolyCoder": 3,
    "StableDiffusion": 3,
    "SAM": 3,
    "CLIP": 3,
}


class FakeClock:
    """Monotonic clock advancing one second per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def directory():
    """Subscription directory with one user per tier."""
    return InMemorySubscriptionDirectory(
        user_tiers={
            "usr_free": None,
            "usr_basic": 1,
            "usr_pro": 2,
            "usr_team": 3,
        },
        model_min_levels=dict(MODEL_MIN_LEVELS),
    )


@pytest.fixture
def catalog():
    return ModelCatalog()


@pytest.fixture
def store(clock):
    """Knowledge store seeded with the community entries."""
    return KnowledgeStore.with_seed_knowledge(clock=clock)


@pytest.fixture
def empty_store(clock):
    return KnowledgeStore(clock=clock)


@pytest.fixture
def resolver(catalog, directory):
    return EntitlementResolver(catalog, directory)


@pytest.fixture
def sleeps():
    """Records every simulated delay instead of waiting."""
    return []


@pytest.fixture
def router(catalog, resolver, store, sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return TaskRouter(
        catalog,
        resolver,
        store,
        TrendLookup(store),
        sleep=fake_sleep,
    )


@pytest.fixture
def bridge(directory):
    return AIBridge(directory, BridgeConfig(latency_scale=0.0))
