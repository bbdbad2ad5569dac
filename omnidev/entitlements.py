"""Subscription-tier gating of the model catalog.

A user's tier comes from an external subscription directory, which also
knows which model records each tier unlocks. The resolver intersects those
names with the catalog's active models.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from omnidev.catalog import ModelCatalog
from omnidev.protocols import NotFoundError, SubscriptionDirectory
from omnidev.types import CapabilityKind, ModelAvailability, ModelDescriptor

logger = logging.getLogger(__name__)


class InMemorySubscriptionDirectory:
    """SubscriptionDirectory backed by plain dicts.

    Args:
        user_tiers: user_id -> tier. A None tier is treated as 0 (free).
        model_min_levels: model record name -> minimum tier that unlocks it.
        inactive_models: model record names switched off by an operator.
    """

    def __init__(
        self,
        user_tiers: Optional[Dict[str, Optional[int]]] = None,
        model_min_levels: Optional[Dict[str, int]] = None,
        inactive_models: Optional[Iterable[str]] = None,
    ) -> None:
        self.user_tiers: Dict[str, Optional[int]] = dict(user_tiers or {})
        self.model_min_levels: Dict[str, int] = dict(model_min_levels or {})
        self.inactive_models = set(inactive_models or [])

    async def get_subscription_tier(self, user_id: str) -> int:
        if user_id not in self.user_tiers:
            raise NotFoundError(f"User not found: {user_id}")
        return self.user_tiers[user_id] or 0

    async def get_models_allowed_at_tier(self, tier: int) -> List[str]:
        return [
            name
            for name, min_level in self.model_min_levels.items()
            if min_level <= tier and name not in self.inactive_models
        ]


class EntitlementResolver:
    """Maps a user's tier to the catalog models they may invoke."""

    def __init__(self, catalog: ModelCatalog, directory: SubscriptionDirectory) -> None:
        self._catalog = catalog
        self._directory = directory

    async def allowed_names(self, user_id: str) -> tuple[int, set[str]]:
        """Resolve the user's tier and the lower-cased model names it unlocks."""
        tier = await self._directory.get_subscription_tier(user_id)
        names = await self._directory.get_models_allowed_at_tier(tier)
        return tier, {n.lower() for n in names}

    async def eligible_models(
        self, user_id: str, kind: CapabilityKind
    ) -> List[ModelDescriptor]:
        """Active catalog models of `kind` that the user's tier unlocks.

        May be empty. Raises NotFoundError if the user does not exist.
        """
        tier, allowed = await self.allowed_names(user_id)
        eligible = [
            m
            for m in self._catalog.filter_by_capability(kind)
            if m.is_active and m.id.lower() in allowed
        ]
        if not eligible:
            logger.info(
                "No %s models for user %s at tier %d", kind.value, user_id, tier
            )
        return eligible

    async def availability(self, user_id: str) -> ModelAvailability:
        """Split the whole catalog into models the user can and cannot reach."""
        tier, allowed = await self.allowed_names(user_id)
        available: List[ModelDescriptor] = []
        inaccessible: List[ModelDescriptor] = []
        for model in self._catalog:
            if model.is_active and model.id.lower() in allowed:
                available.append(model)
            else:
                inaccessible.append(model)
        return ModelAvailability(
            subscription_level=tier,
            available=available,
            inaccessible=inaccessible,
        )


def pick_strongest(models: List[ModelDescriptor]) -> Optional[ModelDescriptor]:
    """Highest parameter count wins; the first one found wins a tie."""
    best: Optional[ModelDescriptor] = None
    for model in models:
        if best is None or model.parameters > best.parameters:
            best = model
    return best
