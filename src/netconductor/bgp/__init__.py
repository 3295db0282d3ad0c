"""BGP manipulation - policy patches and preferred peer detection."""

from .patcher import NodePatcher
from .preferred import PreferredDetector

__all__ = [
    "NodePatcher",
    "PreferredDetector",
]
