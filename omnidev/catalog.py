"""Static registry of the models the bridge can route to."""

from __future__ import annotations

from typing import Iterable, List, Optional

from omnidev.types import CapabilityKind, LatencyClass, ModelDescriptor

# Catalog order matters: it is the tie-breaker when two eligible models
# have the same parameter count.
SUPPORTED_MODELS: List[ModelDescriptor] = [
    ModelDescriptor(
        id="omnidev-autofix",
        name="OmniDev AutoFix (32B)",
        description=(
            "Advanced self-improving model with automatic error detection "
            "and fixing capabilities"
        ),
        kind=CapabilityKind.DEBUGGING,
        parameters=32_000_000_000,
        context=16384,
        latency=LatencyClass.LOW,
        specialization="error detection and repair",
        self_improving=True,
        error_detection=True,
    ),
    ModelDescriptor(
        id="starcoder",
        name="StarCoder (15.5B)",
        description="Permissively-licensed model trained on 1T tokens across 80+ languages",
        kind=CapabilityKind.CODE_GENERATION,
        parameters=15_500_000_000,
        context=8192,
        latency=LatencyClass.MEDIUM,
    ),
    ModelDescriptor(
        id="codegen",
        name="Salesforce CodeGen (16B)",
        description="Program-synthesis model trained on TPU-v4 supporting many languages",
        kind=CapabilityKind.CODE_GENERATION,
        parameters=16_000_000_000,
        context=2048,
        latency=LatencyClass.MEDIUM,
    ),
    ModelDescriptor(
        id="codellama",
        name="Meta CodeLlama (34B)",
        description="Llama 2-based code model with advanced infilling capabilities",
        kind=CapabilityKind.CODE_GENERATION,
        parameters=34_000_000_000,
        context=16384,
        latency=LatencyClass.HIGH,
    ),
    ModelDescriptor(
        id="codet5",
        name="CodeT5 (220M+)",
        description="Unified model for code understanding with identifier-aware pretraining",
        kind=CapabilityKind.CODE_GENERATION,
        parameters=220_000_000,
        context=512,
        latency=LatencyClass.LOW,
        specialization="Python",
    ),
    ModelDescriptor(
        id="codeparrot",
        name="CodeParrot (1.5B)",
        description="GPT-2 based model focused on Python code generation",
        kind=CapabilityKind.CODE_GENERATION,
        parameters=1_500_000_000,
        context=1024,
        latency=LatencyClass.LOW,
        specialization="Python",
    ),
    ModelDescriptor(
        id="polycoder",
        name="PolyCoder (2.7B)",
        description="Trained on 249 GB of code in 12 languages, ideal for systems-level code",
        kind=CapabilityKind.CODE_GENERATION,
        parameters=2_700_000_000,
        context=2048,
        latency=LatencyClass.LOW,
        specialization="C",
    ),
    ModelDescriptor(
        id="diffcodegen",
        name="Diff-CodeGen (350M)",
        description="Diff-based CodeGen variant trained on real GitHub commits",
        kind=CapabilityKind.REFACTOR,
        parameters=350_000_000,
        context=2048,
        latency=LatencyClass.LOW,
    ),
    ModelDescriptor(
        id="gptj",
        name="GPT-J-6B",
        description="6B-parameter model for general NL tasks and architecture planning",
        kind=CapabilityKind.PLANNING,
        parameters=6_000_000_000,
        context=2048,
        latency=LatencyClass.MEDIUM,
    ),
    ModelDescriptor(
        id="stablediffusion",
        name="Stable Diffusion",
        description="Text-to-image model for generating UI assets and mockups",
        kind=CapabilityKind.VISION,
        parameters=2_000_000_000,
        context=77,
        latency=LatencyClass.HIGH,
    ),
    ModelDescriptor(
        id="sam",
        name="Segment Anything Model (SAM)",
        description="Foundation vision model for detecting UI element boundaries",
        kind=CapabilityKind.VISION,
        parameters=1_000_000_000,
        context=1024,
        latency=LatencyClass.MEDIUM,
    ),
    ModelDescriptor(
        id="clip",
        name="CLIP",
        description="Vision-language model for matching image regions to text prompts",
        kind=CapabilityKind.VISION,
        parameters=500_000_000,
        context=77,
        latency=LatencyClass.LOW,
    ),
]


class ModelCatalog:
    """Read-only, ordered collection of model descriptors.

    Identifiers must be unique; construction fails otherwise.
    """

    def __init__(self, models: Optional[Iterable[ModelDescriptor]] = None) -> None:
        self._models: List[ModelDescriptor] = list(
            SUPPORTED_MODELS if models is None else models
        )
        seen = set()
        for model in self._models:
            if model.id in seen:
                raise ValueError(f"Duplicate model id in catalog: {model.id!r}")
            if not isinstance(model.kind, CapabilityKind):
                raise ValueError(f"Unknown capability kind for {model.id!r}: {model.kind!r}")
            seen.add(model.id)

    def __len__(self) -> int:
        return len(self._models)

    def __iter__(self):
        return iter(self._models)

    def list_models(self) -> List[ModelDescriptor]:
        return list(self._models)

    def find_by_id(self, model_id: str) -> Optional[ModelDescriptor]:
        for model in self._models:
            if model.id == model_id:
                return model
        return None

    def filter_by_capability(self, kind: CapabilityKind) -> List[ModelDescriptor]:
        return [m for m in self._models if m.kind == kind]
