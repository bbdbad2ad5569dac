"""AI routes: model listing, code tasks, feedback, trends and learning stats.

Every route requires an authenticated caller. Taxonomy errors raised by the
bridge are mapped to responses by the handler registered in main.
"""

from fastapi import APIRouter, Request

from omnidev.types import CapabilityKind, ModelDescriptor

from ..auth import AdminUser, CurrentUser
from ..bridge import Bridge
from ..logging_config import get_logger, log_ai_request
from ..models import (
    ArchitectureRequest,
    ArchitectureResponse,
    AutoFixRequest,
    AutoFixResponse,
    FeedbackRequest,
    FeedbackResponse,
    GenerateRequest,
    GenerateResponse,
    LearningStatsResponse,
    ModelInfo,
    ModelListResponse,
    RefactorRequest,
    RefactorResponse,
    SearchRequest,
    SearchResponse,
)
from ..rate_limit import AI_TASK_LIMIT, AUTO_FIX_LIMIT, limiter

logger = get_logger("omnidev.ai")

router = APIRouter(prefix="/api/ai", tags=["ai"])


def _model_info(model: ModelDescriptor, accessible: bool) -> ModelInfo:
    data = model.to_dict()
    return ModelInfo(**data, is_accessible=accessible)


@router.get("/models", response_model=ModelListResponse)
async def list_models(user: CurrentUser, bridge: Bridge):
    """List every catalog model, flagged by whether the caller's tier reaches it."""
    availability = await bridge.router.available_models(user.user_id)
    models = [_model_info(m, True) for m in availability.available]
    models.extend(_model_info(m, False) for m in availability.inaccessible)
    return ModelListResponse(subscription_level=availability.subscription_level, models=models)


@router.post("/generate", response_model=GenerateResponse)
@limiter.limit(AI_TASK_LIMIT)
async def generate(request: Request, body: GenerateRequest, user: CurrentUser, bridge: Bridge):
    result = await bridge.router.route(
        user.user_id,
        CapabilityKind.CODE_GENERATION,
        {"prompt": body.prompt, "language": body.language},
        body.model_id,
    )
    log_ai_request("generate", user.user_id, result.model, result.success)
    return GenerateResponse(
        success=result.success,
        model=result.model,
        code=result.code,
        explanation=result.explanation,
        used_learning=result.used_learning,
        used_internet=result.used_internet,
    )


@router.post("/refactor", response_model=RefactorResponse)
@limiter.limit(AI_TASK_LIMIT)
async def refactor(request: Request, body: RefactorRequest, user: CurrentUser, bridge: Bridge):
    result = await bridge.router.route(
        user.user_id,
        CapabilityKind.REFACTOR,
        {"code": body.code, "instructions": body.instructions},
        body.model_id,
    )
    log_ai_request("refactor", user.user_id, result.model, result.success)
    return RefactorResponse(
        success=result.success,
        model=result.model,
        refactored_code=result.refactored_code,
        explanation=result.explanation,
        diff=result.diff,
        used_learning=result.used_learning,
    )


@router.post("/architecture", response_model=ArchitectureResponse)
@limiter.limit(AI_TASK_LIMIT)
async def architecture(
    request: Request, body: ArchitectureRequest, user: CurrentUser, bridge: Bridge
):
    result = await bridge.router.route(
        user.user_id,
        CapabilityKind.PLANNING,
        {"requirements": body.requirements, "stack": body.stack},
        body.model_id,
    )
    log_ai_request("architecture", user.user_id, result.model, result.success)
    return ArchitectureResponse(
        success=result.success,
        model=result.model,
        diagram=result.diagram,
        components=result.components,
        explanation=result.explanation,
        used_learning=result.used_learning,
        used_internet=result.used_internet,
    )


@router.post("/auto-fix", response_model=AutoFixResponse)
@limiter.limit(AUTO_FIX_LIMIT)
async def auto_fix(request: Request, body: AutoFixRequest, user: CurrentUser, bridge: Bridge):
    """Scan code for common mistakes and slow idioms and return a patched copy."""
    result = await bridge.router.auto_fix(user.user_id, body.code, body.language)
    log_ai_request("auto_fix", user.user_id, result.model, result.success)
    return AutoFixResponse(
        success=result.success,
        model=result.model,
        fixed_code=result.fixed_code,
        detected_issues=result.detected_issues,
        performance_improvements=result.performance_improvements,
        message=result.message,
    )


@router.post("/feedback", response_model=FeedbackResponse)
async def feedback(body: FeedbackRequest, user: CurrentUser, bridge: Bridge):
    outcome = bridge.submit_feedback(
        user.user_id, body.pattern, body.solution, body.rating, body.source
    )
    return FeedbackResponse(
        success=outcome.accepted,
        message=outcome.message,
        database_size=outcome.database_size,
    )


@router.post("/search", response_model=SearchResponse)
async def search(body: SearchRequest, user: CurrentUser, bridge: Bridge):
    return SearchResponse(results=bridge.search_trends(user.user_id, body.query))


@router.get("/learning-stats", response_model=LearningStatsResponse)
async def learning_stats(admin: AdminUser, bridge: Bridge):
    stats = bridge.learning_stats(admin.user_id, admin.is_admin)
    return LearningStatsResponse(**stats)
