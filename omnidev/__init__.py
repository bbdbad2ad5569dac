"""
OmniDev AI bridge - subscription-gated model routing with a self-learning
knowledge store.
"""

from .bridge import AIBridge, BridgeConfig
from .catalog import ModelCatalog
from .knowledge import KnowledgeStore

try:
    from importlib.metadata import version

    __version__ = version("omnidev")
except Exception:
    __version__ = "0.0.0"

__all__ = ["AIBridge", "BridgeConfig", "ModelCatalog", "KnowledgeStore"]
