"""Assembly of the AI bridge.

`AIBridge` wires one catalog, one knowledge store and the components that
share it. A process normally holds exactly one bridge, since the knowledge
store is the learning state for every request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from omnidev.catalog import ModelCatalog
from omnidev.entitlements import EntitlementResolver
from omnidev.feedback import FeedbackProcessor
from omnidev.knowledge import KnowledgeStore
from omnidev.protocols import (
    CodeGenerator,
    ForbiddenError,
    InvalidRequestError,
    LearningEventSink,
    SubscriptionDirectory,
    TrendSearch,
    UnauthorizedError,
)
from omnidev.router import TaskRouter
from omnidev.trends import TrendLookup
from omnidev.types import FeedbackOutcome, KnowledgeSource

logger = logging.getLogger(__name__)


@dataclass
class BridgeConfig:
    """Tunables for a bridge instance.

    Attributes:
        latency_scale: Multiplier on simulated model latency (0 disables it).
        knowledge_max_entries: Optional cap on the knowledge store.
        enforce_explicit_model_entitlement: Re-check entitlements for
            caller-chosen models.
        seed_knowledge: Start the store with the community seed entries.
    """

    latency_scale: float = 1.0
    knowledge_max_entries: Optional[int] = None
    enforce_explicit_model_entitlement: bool = True
    seed_knowledge: bool = True


class AIBridge:
    """Facade over the router, feedback processor, trend lookup and store."""

    def __init__(
        self,
        directory: SubscriptionDirectory,
        config: Optional[BridgeConfig] = None,
        *,
        catalog: Optional[ModelCatalog] = None,
        store: Optional[KnowledgeStore] = None,
        generator: Optional[CodeGenerator] = None,
        search: Optional[TrendSearch] = None,
        sink: Optional[LearningEventSink] = None,
    ) -> None:
        self.config = config or BridgeConfig()
        self.catalog = catalog or ModelCatalog()
        if store is None:
            if self.config.seed_knowledge:
                store = KnowledgeStore.with_seed_knowledge(
                    max_entries=self.config.knowledge_max_entries, sink=sink
                )
            else:
                store = KnowledgeStore(max_entries=self.config.knowledge_max_entries, sink=sink)
        self.store = store
        self.resolver = EntitlementResolver(self.catalog, directory)
        self.trends = TrendLookup(self.store, search)
        self.feedback = FeedbackProcessor(self.store)
        self.router = TaskRouter(
            self.catalog,
            self.resolver,
            self.store,
            self.trends,
            generator,
            latency_scale=self.config.latency_scale,
            enforce_explicit_model_entitlement=self.config.enforce_explicit_model_entitlement,
        )
        logger.debug(
            "AI bridge ready: %d models, %d knowledge entries", len(self.catalog), len(self.store)
        )

    def submit_feedback(
        self,
        user_id: Optional[str],
        pattern: Optional[str],
        solution: Optional[str],
        rating: Optional[int],
        source: Union[str, KnowledgeSource, None] = None,
    ) -> FeedbackOutcome:
        if not user_id:
            raise UnauthorizedError("Unauthorized")
        return self.feedback.submit(pattern, solution, rating, source)

    def search_trends(self, user_id: Optional[str], query: Optional[str]) -> str:
        if not user_id:
            raise UnauthorizedError("Unauthorized")
        if not query:
            raise InvalidRequestError("Query is required")
        return self.trends.lookup(query)

    def learning_stats(self, user_id: Optional[str], is_admin: bool) -> Dict[str, Any]:
        if not user_id:
            raise UnauthorizedError("Unauthorized")
        if not is_admin:
            raise ForbiddenError("Access denied")
        return self.store.stats()
