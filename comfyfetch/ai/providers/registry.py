"""
Provider Registry

Dynamic provider registration and lookup, so new enrichment backends can
be plugged in without touching the service.
"""

import logging
from typing import Dict, List, Optional, Type

from .base import AIProvider, ProviderStatus
from .gemini import GeminiProvider
from .gemini_api import GeminiApiProvider
from .rule_based import RuleBasedProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry of provider classes keyed by provider id."""

    _providers: Dict[str, Type[AIProvider]] = {
        "gemini": GeminiProvider,
        "gemini_api": GeminiApiProvider,
        "rule_based": RuleBasedProvider,
    }

    @classmethod
    def register(cls, provider_id: str, provider_class: Type[AIProvider]) -> None:
        """Register a provider class (must extend AIProvider)."""
        if not issubclass(provider_class, AIProvider):
            raise TypeError(f"{provider_class} must be a subclass of AIProvider")

        cls._providers[provider_id] = provider_class
        logger.info(f"[ai-service] Registered provider: {provider_id}")

    @classmethod
    def unregister(cls, provider_id: str) -> bool:
        """Remove a provider; returns False if it was not registered."""
        return cls._providers.pop(provider_id, None) is not None

    @classmethod
    def get(
        cls,
        provider_id: str,
        model: str = "",
        endpoint: Optional[str] = None,
    ) -> Optional[AIProvider]:
        """Instantiate a provider, or None if the id is unknown."""
        provider_class = cls._providers.get(provider_id)
        if provider_class is None:
            logger.warning(f"[ai-service] Unknown provider: {provider_id}")
            return None

        return provider_class(model=model, endpoint=endpoint)

    @classmethod
    def list_providers(cls) -> List[str]:
        return list(cls._providers.keys())

    @classmethod
    def detect_all(cls) -> Dict[str, ProviderStatus]:
        """Detect availability of all registered providers."""
        results = {}
        for provider_id, provider_class in cls._providers.items():
            try:
                results[provider_id] = provider_class().detect_availability()
            except Exception as e:
                logger.error(f"[ai-service] Error detecting {provider_id}: {e}")
                results[provider_id] = ProviderStatus(
                    provider_id=provider_id,
                    available=False,
                    error=str(e),
                )
        return results
