"""
VisionForge

Batch image captioning across interchangeable vision model providers.
"""

from .batch import BatchOrchestrator, run_batch
from .collection import ItemCollection
from .models import (
    CanonicalResult,
    ImageItem,
    ImageSource,
    ProcessingOptions,
    ProgressEvent,
    ProviderConfig,
    ProviderKind,
    StatsSnapshot,
)
from .stats import compute_stats

__version__ = "0.1.0"

__all__ = [
    # Models
    "CanonicalResult",
    "ImageItem",
    "ImageSource",
    "ProcessingOptions",
    "ProgressEvent",
    "ProviderConfig",
    "ProviderKind",
    "StatsSnapshot",
    # Processing
    "BatchOrchestrator",
    "ItemCollection",
    "run_batch",
    "compute_stats",
]
