"""Core models and errors."""

from .errors import (
    ComfyFetchError,
    EmptyResultError,
    EnrichmentBatchError,
    ParseError,
    ValidationFailure,
)
from .models import (
    ComputeType,
    EnrichedResource,
    ExternalGuess,
    HistoryItem,
    ResourceType,
    ScannedItem,
    DEFAULT_TARGET_PATHS,
    default_compute_type,
)

__all__ = [
    # Errors
    "ComfyFetchError",
    "ParseError",
    "EmptyResultError",
    "EnrichmentBatchError",
    "ValidationFailure",
    # Models
    "ResourceType",
    "ComputeType",
    "ScannedItem",
    "EnrichedResource",
    "ExternalGuess",
    "HistoryItem",
    "DEFAULT_TARGET_PATHS",
    "default_compute_type",
]
