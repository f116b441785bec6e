"""
AI Services Module

Enrichment for scanned workflow resources:
- Gemini CLI (cloud, Google AI)
- Gemini REST API (cloud, API key)

Falls back to rule-based guesses when AI is unavailable.
"""

from typing import Optional

from .providers import ProviderRegistry
from .service import AIService
from .settings import AIServicesSettings, ProviderConfig
from .tasks import ResourceIdentificationTask


def get_ai_service(settings: Optional[AIServicesSettings] = None) -> AIService:
    """
    Return an AIService, loading settings from disk if not provided.

    Args:
        settings: Optional settings (loads from disk if not provided)
    """
    return AIService(settings)


def offline_settings() -> AIServicesSettings:
    """Settings that skip every AI provider and use rule-based guesses only."""
    settings = AIServicesSettings.get_defaults()
    settings.enabled = False
    return settings


__all__ = [
    "AIService",
    "AIServicesSettings",
    "ProviderConfig",
    "ProviderRegistry",
    "ResourceIdentificationTask",
    "get_ai_service",
    "offline_settings",
]
