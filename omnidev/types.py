"""
Shared types for the OmniDev AI bridge.

These are the vocabulary passed between the catalog, the knowledge store,
the router and the HTTP layer. The catalog owns ModelDescriptor instances,
the knowledge store owns KnowledgeEntry instances, and everything else
only reads them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# === Shared Utility Functions ===


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# === Enums ===


class CapabilityKind(str, Enum):
    """Task category a model serves."""

    CODE_GENERATION = "code"
    REFACTOR = "refactor"
    PLANNING = "planning"
    VISION = "vision"
    DEBUGGING = "debugging"


class LatencyClass(str, Enum):
    """Coarse response-time class of a model."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class KnowledgeSource(str, Enum):
    """Where a knowledge entry came from."""

    USER = "user"
    SYSTEM = "system"
    COMMUNITY = "community"
    INTERNET = "internet"


VALID_SOURCE_VALUES = frozenset(s.value for s in KnowledgeSource)


class TaskType(str, Enum):
    """Request kinds handled by the task router."""

    GENERATE = "generate"
    REFACTOR = "refactor"
    ARCHITECTURE = "architecture"
    AUTO_FIX = "auto_fix"


# === Catalog ===


@dataclass(frozen=True)
class ModelDescriptor:
    """A model the bridge knows how to route to.

    Descriptors are compiled into the catalog and never mutated.
    `parameters` is only used for ranking eligible models.
    """

    id: str
    name: str
    description: str
    kind: CapabilityKind
    parameters: int
    context: int
    latency: LatencyClass
    specialization: Optional[str] = None
    is_active: bool = True
    self_improving: bool = False
    error_detection: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.kind.value,
            "parameters": self.parameters,
            "context": self.context,
            "latency": self.latency.value,
            "specialization": self.specialization,
            "is_active": self.is_active,
            "self_improving": self.self_improving,
            "error_detection": self.error_detection,
        }


# === Knowledge ===

CONFIDENCE_FLOOR = 0.1
CONFIDENCE_CEILING = 0.99
INITIAL_CONFIDENCE = 0.7
REINFORCE_STEP = 0.01
DECAY_STEP = 0.1


def clamp_confidence(value: float) -> float:
    """Clamp a confidence value into the allowed band."""
    return max(CONFIDENCE_FLOOR, min(CONFIDENCE_CEILING, value))


@dataclass
class KnowledgeEntry:
    """A learned pattern -> solution association.

    `pattern` is matched case-insensitively. `votes` may go negative
    under repeated negative feedback.
    """

    pattern: str
    solution: str
    confidence: float = INITIAL_CONFIDENCE
    votes: int = 1
    timestamp: datetime = field(default_factory=utc_now)
    source: KnowledgeSource = KnowledgeSource.SYSTEM

    @property
    def key(self) -> str:
        return self.pattern.lower()


@dataclass(frozen=True)
class LearningEvent:
    """A single knowledge-store mutation, handed to an optional sink."""

    action: str  # "insert" | "reinforce" | "decay" | "evict"
    pattern: str
    source: KnowledgeSource
    confidence: float
    votes: int
    timestamp: datetime = field(default_factory=utc_now)


# === Scanner ===


@dataclass
class ScanResult:
    """Output of one static scan.

    Attributes:
        fixed_code: Source after every matching rewrite has been applied.
        detected_issues: Messages from error rules, in rule order.
        performance_improvements: Messages from performance rules, in rule order.
    """

    fixed_code: str
    detected_issues: List[str] = field(default_factory=list)
    performance_improvements: List[str] = field(default_factory=list)


# === Generation outputs ===


@dataclass
class GeneratedCode:
    code: str
    explanation: str
    success: bool = True


@dataclass
class GeneratedRefactor:
    refactored_code: str
    explanation: str
    diff: str
    success: bool = True


@dataclass
class GeneratedArchitecture:
    diagram: str
    components: List[str]
    explanation: str
    success: bool = True


# === Router results ===


@dataclass
class GenerateResult:
    model: str
    code: str
    explanation: str
    used_learning: bool
    used_internet: bool
    success: bool = True


@dataclass
class RefactorResult:
    model: str
    refactored_code: str
    explanation: str
    diff: str
    used_learning: bool
    success: bool = True


@dataclass
class ArchitectureResult:
    model: str
    diagram: str
    components: List[str]
    explanation: str
    used_learning: bool
    used_internet: bool = True
    success: bool = True


@dataclass
class AutoFixResult:
    model: str
    fixed_code: str
    detected_issues: List[str]
    performance_improvements: List[str]
    message: str
    success: bool = True


@dataclass
class FeedbackOutcome:
    accepted: bool
    message: str
    database_size: int


@dataclass
class ModelAvailability:
    """Catalog split into what a user's tier can and cannot reach."""

    subscription_level: int
    available: List[ModelDescriptor]
    inaccessible: List[ModelDescriptor]
