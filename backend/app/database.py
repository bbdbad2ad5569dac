"""Database utilities for Supabase integration.

The AI bridge only needs two things from the database: the caller's
subscription tier and the model records each tier unlocks. Learning events
can optionally be persisted as an audit trail.
"""

from typing import Annotated

from fastapi import Depends

from omnidev.protocols import NotFoundError
from omnidev.types import LearningEvent
from supabase import Client, create_client

from .config import Settings, get_settings
from .logging_config import get_logger

logger = get_logger("omnidev.database")

_supabase_client: Client | None = None


def get_supabase_client(settings: Settings | None = None) -> Client:
    """Get cached Supabase client."""
    global _supabase_client
    if _supabase_client is None:
        if settings is None:
            settings = get_settings()
        # Prefer new secret key, fall back to legacy service_role_key
        api_key = settings.supabase_secret_key or settings.supabase_service_role_key
        if not api_key:
            raise ValueError("Either SUPABASE_SECRET_KEY or SUPABASE_SERVICE_ROLE_KEY must be set")
        _supabase_client = create_client(settings.supabase_url, api_key)
    return _supabase_client


def get_db(settings: Annotated[Settings, Depends(get_settings)]) -> Client:
    """FastAPI dependency for Supabase client."""
    return get_supabase_client(settings)


# Type alias for dependency injection
Database = Annotated[Client, Depends(get_db)]


# =============================================================================
# Table Names
# =============================================================================

USERS_TABLE = "users"
AI_MODELS_TABLE = "ai_models"
LEARNING_EVENTS_TABLE = "learning_events"


# =============================================================================
# User Operations
# =============================================================================


async def get_user(db: Client, user_id: str) -> dict | None:
    """Get a user by ID."""
    result = db.table(USERS_TABLE).select("*").eq("user_id", user_id).execute()
    return result.data[0] if result.data else None


async def get_models_for_level(db: Client, level: int) -> list[dict]:
    """Active model records whose minimum subscription level is at most `level`."""
    result = (
        db.table(AI_MODELS_TABLE)
        .select("name, min_subscription_level")
        .eq("active", True)
        .lte("min_subscription_level", level)
        .execute()
    )
    return result.data or []


class SupabaseSubscriptionDirectory:
    """SubscriptionDirectory backed by the `users` and `ai_models` tables."""

    def __init__(self, db: Client):
        self._db = db

    async def get_subscription_tier(self, user_id: str) -> int:
        user = await get_user(self._db, user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return user.get("subscription_plan_id") or 0

    async def get_models_allowed_at_tier(self, tier: int) -> list[str]:
        return [row["name"] for row in await get_models_for_level(self._db, tier)]


# =============================================================================
# Learning Events
# =============================================================================


class SupabaseLearningSink:
    """LearningEventSink that appends each knowledge mutation to `learning_events`."""

    def __init__(self, db: Client):
        self._db = db

    def record(self, event: LearningEvent) -> None:
        self._db.table(LEARNING_EVENTS_TABLE).insert(
            {
                "action": event.action,
                "pattern": event.pattern,
                "source": event.source.value,
                "confidence": event.confidence,
                "votes": event.votes,
                "created_at": event.timestamp.isoformat(),
            }
        ).execute()
