"""
AI Services Settings

Configuration for enrichment providers and the fallback chain.
Uses str instead of Enum for provider ids so new providers can be added
without code changes.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def _get_settings_path() -> Path:
    """Get path to AI settings file."""
    from ..config import get_config

    return get_config().ai_settings_file


DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "gemini_api": "gemini-2.5-flash",
}

DEFAULT_PROVIDER_ORDER = ["gemini_api", "gemini"]


@dataclass
class ProviderConfig:
    """Configuration for a single provider."""

    provider_id: str
    enabled: bool = False
    model: str = ""
    endpoint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "provider_id": self.provider_id,
            "enabled": self.enabled,
            "model": self.model,
            "endpoint": self.endpoint,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderConfig":
        """Create from dictionary."""
        return cls(
            provider_id=data.get("provider_id", ""),
            enabled=data.get("enabled", False),
            model=data.get("model", ""),
            endpoint=data.get("endpoint"),
        )


@dataclass
class AIServicesSettings:
    """
    Complete AI services configuration.

    Stored in: <data dir>/ai_settings.json
    """

    # Master switch; when off only the rule-based provider runs
    enabled: bool = True

    # Provider configurations (key = provider_id)
    providers: Dict[str, ProviderConfig] = field(default_factory=dict)

    # Providers tried in order before the rule-based fallback
    provider_order: List[str] = field(default_factory=lambda: list(DEFAULT_PROVIDER_ORDER))

    # Advanced settings
    cli_timeout_seconds: int = 60
    max_retries: int = 2
    retry_delay_seconds: float = 1

    # Behavior
    always_fallback_to_rule_based: bool = True

    # Logging
    log_prompts: bool = False  # Verbose: log full prompts
    log_responses: bool = False  # Verbose: log raw responses

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "enabled": self.enabled,
            "providers": {k: v.to_dict() for k, v in self.providers.items()},
            "provider_order": self.provider_order,
            "cli_timeout_seconds": self.cli_timeout_seconds,
            "max_retries": self.max_retries,
            "retry_delay_seconds": self.retry_delay_seconds,
            "always_fallback_to_rule_based": self.always_fallback_to_rule_based,
            "log_prompts": self.log_prompts,
            "log_responses": self.log_responses,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AIServicesSettings":
        """Create from dictionary; missing providers fall back to defaults."""
        defaults = cls.get_defaults()
        providers = dict(defaults.providers)
        for k, v in data.get("providers", {}).items():
            providers[k] = ProviderConfig.from_dict(v)

        return cls(
            enabled=data.get("enabled", True),
            providers=providers,
            provider_order=list(data.get("provider_order", DEFAULT_PROVIDER_ORDER)),
            cli_timeout_seconds=data.get("cli_timeout_seconds", 60),
            max_retries=data.get("max_retries", 2),
            retry_delay_seconds=data.get("retry_delay_seconds", 1),
            always_fallback_to_rule_based=data.get("always_fallback_to_rule_based", True),
            log_prompts=data.get("log_prompts", False),
            log_responses=data.get("log_responses", False),
        )

    @classmethod
    def get_defaults(cls) -> "AIServicesSettings":
        """Get default settings with standard provider configurations."""
        settings = cls()
        settings.providers = {
            "gemini_api": ProviderConfig(
                provider_id="gemini_api",
                enabled=True,
                model=DEFAULT_MODELS["gemini_api"],
            ),
            "gemini": ProviderConfig(
                provider_id="gemini",
                enabled=True,
                model=DEFAULT_MODELS["gemini"],
            ),
        }
        return settings

    def save(self, path: Optional[Path] = None) -> bool:
        """
        Save settings to disk.

        Returns:
            True if saved successfully, False otherwise
        """
        settings_path = Path(path) if path else _get_settings_path()
        try:
            settings_path.parent.mkdir(parents=True, exist_ok=True)
            with open(settings_path, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            logger.error(f"[ai-service] Failed to save settings: {e}")
            return False

        logger.info(f"[ai-service] Settings saved to {settings_path}")
        return True

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AIServicesSettings":
        """Load settings from disk, or return defaults if not found."""
        settings_path = Path(path) if path else _get_settings_path()

        if settings_path.exists():
            try:
                with open(settings_path) as f:
                    data = json.load(f)
                logger.info(f"[ai-service] Settings loaded from {settings_path}")
                return cls.from_dict(data)
            except (OSError, json.JSONDecodeError, TypeError, AttributeError) as e:
                logger.warning(f"[ai-service] Failed to load settings, using defaults: {e}")

        return cls.get_defaults()
