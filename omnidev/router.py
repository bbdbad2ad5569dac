"""Task router: model selection, enrichment, generation and learning.

One request flows through:

1. Model selection. An explicit model id is looked up in the catalog and,
   unless disabled, re-checked against the caller's entitlements.
   Otherwise the strongest eligible model (by parameter count) is chosen.
2. Enrichment. A sufficiently confident knowledge entry is appended to the
   prompt, and for some tasks a trend insight is looked up.
3. Generation through the CodeGenerator seam, after a delay that models the
   selected model's latency class.
4. Learning. Salient keywords or the task's primary pattern are written
   back to the knowledge store as system-sourced entries.

Knowledge writes are advisory. If generation fails after a trend lookup has
already reinforced an entry, that write is not rolled back.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar

from omnidev import autofix
from omnidev.catalog import ModelCatalog
from omnidev.entitlements import EntitlementResolver, pick_strongest
from omnidev.knowledge import KnowledgeStore
from omnidev.models.templated import TemplatedGenerator
from omnidev.protocols import (
    CodeGenerator,
    ForbiddenError,
    InternalError,
    InvalidRequestError,
    NoEligibleModelError,
    NotFoundError,
    OmniDevError,
    UnauthorizedError,
)
from omnidev.trends import TrendLookup
from omnidev.types import (
    ArchitectureResult,
    AutoFixResult,
    CapabilityKind,
    GenerateResult,
    KnowledgeSource,
    LatencyClass,
    ModelAvailability,
    ModelDescriptor,
    RefactorResult,
    TaskType,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# =============================================================================
# Tuning constants
# =============================================================================

# Simulated model latency in seconds, per latency class
LATENCY_DELAYS: Dict[LatencyClass, float] = {
    LatencyClass.LOW: 0.5,
    LatencyClass.MEDIUM: 1.0,
    LatencyClass.HIGH: 2.0,
}

# Architecture planning is slower across the board
ARCHITECTURE_LATENCY_DELAYS: Dict[LatencyClass, float] = {
    LatencyClass.LOW: 1.0,
    LatencyClass.MEDIUM: 2.0,
    LatencyClass.HIGH: 3.0,
}

GENERATE_LEARNING_THRESHOLD = 0.8
REFACTOR_LEARNING_THRESHOLD = 0.7
ARCHITECTURE_LEARNING_THRESHOLD = 0.8

ARCHITECTURE_PATTERN = "architecture"
ARCHITECTURE_TREND_QUERY = "architecture latest trends"

# Prompt substrings that make a generate request trend-worthy
TREND_TRIGGERS = ("react", "typescript", "javascript", "ai", "database")

STOPWORDS = frozenset(
    ["the", "and", "or", "in", "on", "at", "to", "a", "an", "for", "with", "by"]
)
MAX_KEYWORDS = 5
MIN_LEARNED_KEYWORD_LENGTH = 5

NO_MODEL_MESSAGE = "No suitable AI model available for your subscription level"


# =============================================================================
# Helpers
# =============================================================================


def extract_keywords(text: str) -> List[str]:
    """Lower-cased words longer than two characters, minus stopwords, first five."""
    words = re.split(r"\W+", text.lower())
    return [w for w in words if len(w) > 2 and w not in STOPWORDS][:MAX_KEYWORDS]


def detect_code_language(code: str) -> str:
    """Best-effort language guess from telltale snippets. Returns "unknown" if none match."""
    if "import React" in code or ("function" in code and "return" in code):
        return "javascript"
    if "def " in code and ":" in code:
        return "python"
    if "class " in code and "{" in code and "public" in code:
        return "java"
    if "#include" in code and "int main" in code:
        return "c"
    if "func " in code and "package main" in code:
        return "go"
    return "unknown"


def simulated_delay(model: ModelDescriptor, task: TaskType, scale: float = 1.0) -> float:
    """Seconds to wait before answering, by latency class.

    A higher latency class never yields a shorter delay than a lower one for
    the same task.
    """
    table = ARCHITECTURE_LATENCY_DELAYS if task is TaskType.ARCHITECTURE else LATENCY_DELAYS
    return table[model.latency] * max(scale, 0.0)


# =============================================================================
# Router
# =============================================================================


class TaskRouter:
    """Routes generate, refactor, architecture and auto-fix requests.

    Args:
        catalog: Model catalog.
        resolver: Entitlement resolver for the caller's tier.
        store: Shared knowledge store.
        trends: Trend lookup (writes its hits into `store`).
        generator: CodeGenerator used for the model call.
        latency_scale: Multiplier on simulated delays; 0 disables them.
        enforce_explicit_model_entitlement: Re-check entitlements when the
            caller names a model. When False any catalog model may be named.
        sleep: Coroutine used for the delay; injectable for tests.
    """

    def __init__(
        self,
        catalog: ModelCatalog,
        resolver: EntitlementResolver,
        store: KnowledgeStore,
        trends: TrendLookup,
        generator: Optional[CodeGenerator] = None,
        *,
        latency_scale: float = 1.0,
        enforce_explicit_model_entitlement: bool = True,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._catalog = catalog
        self._resolver = resolver
        self._store = store
        self._trends = trends
        self._generator = generator or TemplatedGenerator()
        self._latency_scale = latency_scale
        self._enforce_explicit = enforce_explicit_model_entitlement
        self._sleep = sleep

    # ---- Model selection ----

    async def select_model(
        self,
        user_id: str,
        kind: CapabilityKind,
        explicit_model_id: Optional[str] = None,
    ) -> ModelDescriptor:
        """Pick the model for a request or raise a taxonomy error."""
        if explicit_model_id:
            model = self._catalog.find_by_id(explicit_model_id)
            if model is None:
                raise NotFoundError(f"Unknown model: {explicit_model_id}")
            if self._enforce_explicit:
                eligible = await self._resolver.eligible_models(user_id, kind)
                if model.id not in {m.id for m in eligible}:
                    raise ForbiddenError(
                        f"Model {model.id} is not available for your subscription level"
                    )
            else:
                logger.warning(
                    "Explicit model %s used by %s without entitlement check",
                    model.id,
                    user_id,
                )
            logger.info("Explicit model %s for %s (%s)", model.id, user_id, kind.value)
            return model

        model = pick_strongest(await self._resolver.eligible_models(user_id, kind))
        if model is None:
            raise NoEligibleModelError(NO_MODEL_MESSAGE)
        logger.info("Selected model %s for %s (%s)", model.id, user_id, kind.value)
        return model

    async def available_models(self, user_id: Optional[str]) -> ModelAvailability:
        self._require_user(user_id)
        return await self._resolver.availability(user_id)

    # ---- Dispatch ----

    async def route(
        self,
        user_id: Optional[str],
        kind: CapabilityKind,
        payload: Mapping[str, Any],
        explicit_model_id: Optional[str] = None,
    ):
        """Route a loosely-shaped payload to the handler for `kind`."""
        if kind is CapabilityKind.CODE_GENERATION:
            return await self.generate(
                user_id, payload.get("prompt"), payload.get("language"), explicit_model_id
            )
        if kind is CapabilityKind.REFACTOR:
            return await self.refactor(
                user_id, payload.get("code"), payload.get("instructions"), explicit_model_id
            )
        if kind is CapabilityKind.PLANNING:
            return await self.architecture(
                user_id, payload.get("requirements"), payload.get("stack"), explicit_model_id
            )
        if kind is CapabilityKind.DEBUGGING:
            return await self.auto_fix(
                user_id, payload.get("code"), payload.get("language"), explicit_model_id
            )
        raise InvalidRequestError(f"Unsupported capability: {kind.value}")

    # ---- Tasks ----

    async def generate(
        self,
        user_id: Optional[str],
        prompt: Optional[str],
        language: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> GenerateResult:
        self._require_user(user_id)
        if not prompt:
            raise InvalidRequestError("Prompt is required")

        model = await self.select_model(user_id, CapabilityKind.CODE_GENERATION, model_id)

        notes: List[str] = []
        match = self._store.find_containing(
            prompt, GENERATE_LEARNING_THRESHOLD, inclusive=False
        )
        if match is not None:
            notes.append(f"Additional context: {match.solution}")

        await self._delay(model, TaskType.GENERATE)

        lowered = prompt.lower()
        used_internet = any(trigger in lowered for trigger in TREND_TRIGGERS)
        if used_internet:
            notes.append(f"Latest trend info: {self._trends.lookup(prompt)}")

        enhanced_prompt = "\n\n".join([prompt, *notes])
        output = self._invoke(
            TaskType.GENERATE, self._generator.generate_code, enhanced_prompt, language, model
        )

        if output.success:
            for keyword in extract_keywords(prompt):
                if len(keyword) >= MIN_LEARNED_KEYWORD_LENGTH:
                    self._store.upsert(
                        keyword,
                        f"For {keyword}-related tasks, consider using: "
                        f"{language or 'appropriate language'}",
                        KnowledgeSource.SYSTEM,
                    )

        return GenerateResult(
            success=output.success,
            model=model.name,
            code=output.code,
            explanation=_append_notes(output.explanation, notes),
            used_learning=match is not None,
            used_internet=used_internet,
        )

    async def refactor(
        self,
        user_id: Optional[str],
        code: Optional[str],
        instructions: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> RefactorResult:
        self._require_user(user_id)
        if not code:
            raise InvalidRequestError("Code is required")

        model = await self.select_model(user_id, CapabilityKind.REFACTOR, model_id)
        await self._delay(model, TaskType.REFACTOR)

        language = detect_code_language(code)
        match = self._store.find_exact(language)
        if match is not None and match.confidence <= REFACTOR_LEARNING_THRESHOLD:
            match = None

        output = self._invoke(
            TaskType.REFACTOR, self._generator.refactor, code, instructions, model, language
        )

        notes = [f"Applied best practice: {match.solution}"] if match is not None else []

        if output.success:
            self._store.upsert(
                language,
                f"Common refactoring patterns for {language} include: "
                f"{instructions or 'improving readability'}",
                KnowledgeSource.SYSTEM,
            )

        return RefactorResult(
            success=output.success,
            model=model.name,
            refactored_code=output.refactored_code,
            explanation=_append_notes(output.explanation, notes),
            diff=output.diff,
            used_learning=match is not None,
        )

    async def architecture(
        self,
        user_id: Optional[str],
        requirements: Optional[str],
        stack: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> ArchitectureResult:
        self._require_user(user_id)
        if not requirements:
            raise InvalidRequestError("Requirements are required")

        model = await self.select_model(user_id, CapabilityKind.PLANNING, model_id)

        match = self._store.find_exact(ARCHITECTURE_PATTERN)
        if match is not None and match.confidence <= ARCHITECTURE_LEARNING_THRESHOLD:
            match = None

        await self._delay(model, TaskType.ARCHITECTURE)

        trend = self._trends.lookup(ARCHITECTURE_TREND_QUERY)
        output = self._invoke(
            TaskType.ARCHITECTURE, self._generator.plan_architecture, requirements, stack, model
        )

        notes: List[str] = []
        if match is not None:
            notes.append(f"Applied architectural pattern: {match.solution}")
        notes.append(f"Latest trend in architecture: {trend}")

        self._store.upsert(
            ARCHITECTURE_PATTERN,
            f"For {stack or 'modern'} architecture, consider: {', '.join(output.components)}",
            KnowledgeSource.SYSTEM,
        )

        return ArchitectureResult(
            success=output.success,
            model=model.name,
            diagram=output.diagram,
            components=output.components,
            explanation=_append_notes(output.explanation, notes),
            used_learning=match is not None,
            used_internet=True,
        )

    async def auto_fix(
        self,
        user_id: Optional[str],
        code: Optional[str],
        language: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> AutoFixResult:
        self._require_user(user_id)
        if not code:
            raise InvalidRequestError("Code is required")

        model = await self.select_model(user_id, CapabilityKind.DEBUGGING, model_id)
        result = self._invoke(
            TaskType.AUTO_FIX, autofix.scan, code, language or autofix.DEFAULT_LANGUAGE
        )
        await self._delay(model, TaskType.AUTO_FIX)

        for issue in result.detected_issues:
            self._store.upsert(issue, f"Auto-fixed: {issue}", KnowledgeSource.SYSTEM)

        issues = len(result.detected_issues)
        if issues:
            message = (
                f"Fixed {issues} issues and suggested "
                f"{len(result.performance_improvements)} performance improvements"
            )
        else:
            message = "No issues detected"

        return AutoFixResult(
            model=model.name,
            fixed_code=result.fixed_code,
            detected_issues=result.detected_issues,
            performance_improvements=result.performance_improvements,
            message=message,
        )

    # ---- Internals ----

    @staticmethod
    def _require_user(user_id: Optional[str]) -> None:
        if not user_id:
            raise UnauthorizedError("Unauthorized")

    async def _delay(self, model: ModelDescriptor, task: TaskType) -> None:
        seconds = simulated_delay(model, task, self._latency_scale)
        if seconds > 0:
            await self._sleep(seconds)

    @staticmethod
    def _invoke(task: TaskType, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except OmniDevError:
            raise
        except Exception as exc:
            logger.exception("%s failed", task.value)
            raise InternalError(f"Failed to {task.value.replace('_', ' ')}") from exc


def _append_notes(explanation: str, notes: List[str]) -> str:
    return "".join([explanation, *(f"\n\n{note}" for note in notes)])
