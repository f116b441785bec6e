"""
Enrichment Providers

- GeminiProvider: Google Gemini CLI
- GeminiApiProvider: Google Gemini REST API
- RuleBasedProvider: Offline fallback from known tables and filename rules
"""

from .base import AIProvider, ProviderResult, ProviderStatus
from .gemini import GeminiProvider
from .gemini_api import GeminiApiProvider
from .rule_based import RuleBasedProvider
from .registry import ProviderRegistry

__all__ = [
    "AIProvider",
    "ProviderResult",
    "ProviderStatus",
    "GeminiProvider",
    "GeminiApiProvider",
    "RuleBasedProvider",
    "ProviderRegistry",
]
