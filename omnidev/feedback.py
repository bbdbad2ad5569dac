"""User feedback on learned solutions."""

from __future__ import annotations

import logging
from typing import Optional, Union

from omnidev.knowledge import KnowledgeStore
from omnidev.protocols import InvalidRequestError
from omnidev.types import VALID_SOURCE_VALUES, FeedbackOutcome, KnowledgeSource

logger = logging.getLogger(__name__)

# Ratings at or above this reinforce; anything lower decays
POSITIVE_RATING = 4


class FeedbackProcessor:
    """Applies ratings to the knowledge store.

    A positive rating upserts the pattern (creating it if new). A negative
    rating decays an existing entry and never creates one.
    """

    def __init__(self, store: KnowledgeStore) -> None:
        self._store = store

    def submit(
        self,
        pattern: Optional[str],
        solution: Optional[str],
        rating: Optional[int],
        source: Union[str, KnowledgeSource, None] = None,
    ) -> FeedbackOutcome:
        if not pattern or not solution or rating is None:
            raise InvalidRequestError("Pattern, solution and rating are required")
        if isinstance(rating, bool) or not isinstance(rating, (int, float)):
            raise InvalidRequestError("Rating must be a number")

        if source is None:
            source = KnowledgeSource.USER
        elif not isinstance(source, KnowledgeSource):
            if str(source).lower() not in VALID_SOURCE_VALUES:
                raise InvalidRequestError(f"Unknown feedback source: {source}")
            source = KnowledgeSource(str(source).lower())

        if rating >= POSITIVE_RATING:
            self._store.upsert(pattern, solution, source)
            message = "Feedback processed and knowledge updated"
        else:
            if self._store.decay(pattern) is None:
                logger.debug("Negative feedback for unknown pattern %r ignored", pattern)
            message = "Feedback processed"

        return FeedbackOutcome(accepted=True, message=message, database_size=len(self._store))
