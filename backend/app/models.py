"""Pydantic models for API requests and responses.

Wire names are camelCase; Python attributes stay snake_case.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )


# =============================================================================
# Model Catalog
# =============================================================================


class ModelInfo(ApiModel):
    """A catalog model as seen by one caller."""
    id: str
    name: str
    description: str
    type: str
    parameters: int
    context: int
    latency: str
    specialization: str | None = None
    is_active: bool = True
    self_improving: bool = False
    error_detection: bool = False
    is_accessible: bool


class ModelListResponse(ApiModel):
    """Catalog split by the caller's subscription level, accessible models first."""
    subscription_level: int
    models: list[ModelInfo]


# =============================================================================
# Task Requests
# =============================================================================
# Required fields are optional here so the bridge reports them with its own
# error messages.


class GenerateRequest(ApiModel):
    prompt: str | None = None
    language: str | None = None
    model_id: str | None = None


class RefactorRequest(ApiModel):
    code: str | None = None
    instructions: str | None = None
    model_id: str | None = None


class ArchitectureRequest(ApiModel):
    requirements: str | None = None
    stack: str | None = None
    model_id: str | None = None


class AutoFixRequest(ApiModel):
    code: str | None = None
    language: str | None = None


class FeedbackRequest(ApiModel):
    pattern: str | None = None
    solution: str | None = None
    rating: float | None = None
    source: Literal["user", "system", "community", "internet"] | None = None


class SearchRequest(ApiModel):
    query: str | None = None


# =============================================================================
# Task Responses
# =============================================================================


class GenerateResponse(ApiModel):
    success: bool
    model: str
    code: str
    explanation: str
    used_learning: bool
    used_internet: bool


class RefactorResponse(ApiModel):
    success: bool
    model: str
    refactored_code: str
    explanation: str
    diff: str
    used_learning: bool


class ArchitectureResponse(ApiModel):
    success: bool
    model: str
    diagram: str
    components: list[str]
    explanation: str
    used_learning: bool
    used_internet: bool


class AutoFixResponse(ApiModel):
    success: bool
    model: str
    fixed_code: str
    detected_issues: list[str]
    performance_improvements: list[str]
    message: str


class FeedbackResponse(ApiModel):
    success: bool
    message: str
    database_size: int


class SearchResponse(ApiModel):
    success: bool = True
    results: str


# =============================================================================
# Learning Stats
# =============================================================================


class TopPattern(ApiModel):
    pattern: str
    votes: int
    confidence: float


class LearningStatsResponse(ApiModel):
    """Aggregate view of the knowledge store (admin only)."""
    total_entries: int
    by_source: dict[str, int]
    avg_confidence: float
    high_confidence_entries: int
    top_patterns: list[TopPattern]
