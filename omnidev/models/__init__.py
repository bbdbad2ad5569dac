"""omnidev model implementations.

Concrete CodeGenerator implementations. Only the deterministic templated
generator ships here; hosted-model clients implement the same protocol.
"""

from __future__ import annotations

from omnidev.models.templated import TemplatedGenerator

__all__ = ["TemplatedGenerator"]
