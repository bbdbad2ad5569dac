"""Process-wide AI bridge for the service.

The knowledge store is learning state shared by every request, so the
bridge is built once and handed to routes through `get_bridge`.
"""

from typing import Annotated

from fastapi import Depends

from omnidev import AIBridge, BridgeConfig

from .config import Settings, get_settings
from .database import SupabaseLearningSink, SupabaseSubscriptionDirectory, get_supabase_client
from .logging_config import get_logger

logger = get_logger("omnidev.bridge")

_bridge: AIBridge | None = None


def build_bridge(settings: Settings) -> AIBridge:
    """Build a bridge wired to Supabase from settings."""
    db = get_supabase_client(settings)
    sink = SupabaseLearningSink(db) if settings.persist_learning_events else None
    config = BridgeConfig(
        latency_scale=settings.ai_latency_scale,
        knowledge_max_entries=settings.knowledge_max_entries,
        enforce_explicit_model_entitlement=settings.enforce_explicit_model_entitlement,
    )
    logger.info(
        f"Building AI bridge (latency_scale={config.latency_scale}, "
        f"persist_learning_events={settings.persist_learning_events})"
    )
    return AIBridge(SupabaseSubscriptionDirectory(db), config, sink=sink)


def get_bridge(settings: Annotated[Settings, Depends(get_settings)]) -> AIBridge:
    """FastAPI dependency for the shared bridge."""
    global _bridge
    if _bridge is None:
        _bridge = build_bridge(settings)
    return _bridge


# Type alias for dependency injection
Bridge = Annotated[AIBridge, Depends(get_bridge)]
