"""
Errors and collaborator protocols for the OmniDev AI bridge.

The bridge talks to the outside world through a handful of narrow
interfaces: a subscription directory (who is on which tier, and which
models a tier unlocks), a code generator (the model call), a trend search
(the "internet" lookup) and an optional learning-event sink. Everything
here is a Protocol so production code can swap in real clients without
touching the router.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from omnidev.types import (
        GeneratedArchitecture,
        GeneratedCode,
        GeneratedRefactor,
        LearningEvent,
        ModelDescriptor,
    )


# =============================================================================
# ERRORS
# =============================================================================


class OmniDevError(Exception):
    """Base for all bridge errors. `status_code` is the caller-visible status."""

    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class UnauthorizedError(OmniDevError):
    """No authenticated caller."""

    status_code = 401


class ForbiddenError(OmniDevError):
    """Authenticated, but lacking the entitlement or privilege required."""

    status_code = 403


class NoEligibleModelError(ForbiddenError):
    """The caller's tier unlocks no model of the requested capability."""

    pass


class InvalidRequestError(OmniDevError):
    """A required field is missing or malformed."""

    status_code = 400


class NotFoundError(OmniDevError):
    """A referenced user or model does not exist."""

    status_code = 404


class InternalError(OmniDevError):
    """Unexpected failure in generation or scanning."""

    status_code = 500


# =============================================================================
# COLLABORATORS
# =============================================================================


@runtime_checkable
class SubscriptionDirectory(Protocol):
    """Read-only view of users' subscriptions and tier-gated model records."""

    async def get_subscription_tier(self, user_id: str) -> int:
        """Return the user's tier (0 = free). Raises NotFoundError for unknown users."""
        ...

    async def get_models_allowed_at_tier(self, tier: int) -> List[str]:
        """Return the names of active model records usable at `tier`."""
        ...


@runtime_checkable
class CodeGenerator(Protocol):
    """The model call. A real implementation would hit a model API here."""

    def generate_code(
        self, prompt: str, language: Optional[str], model: "ModelDescriptor"
    ) -> "GeneratedCode": ...

    def refactor(
        self,
        code: str,
        instructions: Optional[str],
        model: "ModelDescriptor",
        language: str,
    ) -> "GeneratedRefactor": ...

    def plan_architecture(
        self, requirements: str, stack: Optional[str], model: "ModelDescriptor"
    ) -> "GeneratedArchitecture": ...


@runtime_checkable
class TrendSearch(Protocol):
    """Keyword search for current technology trends."""

    def search(self, query: str) -> Optional[tuple[str, str]]:
        """Return (matched keyword, insight) or None when nothing matches."""
        ...


@runtime_checkable
class LearningEventSink(Protocol):
    """Optional persistence hook for knowledge-store mutations."""

    def record(self, event: "LearningEvent") -> None: ...
