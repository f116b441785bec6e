"""
Gemini API Provider

Google Gemini through the Generative Language REST API. Needs an API key
in GEMINI_API_KEY (or API_KEY).
"""

import logging
import os
from typing import Any, Dict, Optional

import requests

from .base import AIProvider, ProviderResult, ProviderStatus

logger = logging.getLogger(__name__)

USER_AGENT = "comfyfetch/0.1"


def _api_key_from_env() -> Optional[str]:
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")


_session: Optional[requests.Session] = None


def _shared_session() -> requests.Session:
    """Keep-alive session reused by every provider instance that is not given one."""
    global _session
    if _session is None:
        _session = requests.Session()
        _session.headers.update({"User-Agent": USER_AGENT})
    return _session


class GeminiApiProvider(AIProvider):
    """
    Gemini REST provider.

    Asks for an ``application/json`` response so the answer is usually a
    bare JSON array; falls back to the tolerant parser otherwise.
    """

    provider_id = "gemini_api"

    DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"

    KNOWN_MODELS = [
        "gemini-2.5-flash",
        "gemini-2.5-pro",
    ]

    def __init__(
        self,
        model: str = "gemini-2.5-flash",
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(model=model or "gemini-2.5-flash", endpoint=endpoint or self.DEFAULT_ENDPOINT)
        self.api_key = api_key or _api_key_from_env()
        self.session = session or _shared_session()

    def detect_availability(self) -> ProviderStatus:
        if not self.api_key:
            return ProviderStatus(
                provider_id=self.provider_id,
                available=False,
                error="API key is missing. Set GEMINI_API_KEY or API_KEY.",
            )
        return ProviderStatus(
            provider_id=self.provider_id,
            available=True,
            models=self.KNOWN_MODELS,
        )

    def execute(self, prompt: str, timeout: int = 60) -> ProviderResult:
        def _execute():
            if not self.api_key:
                return self._failure("API key is missing. Set GEMINI_API_KEY or API_KEY.")

            logger.info(f"[ai-service] Executing with provider: gemini_api ({self.model})")
            url = f"{self.endpoint.rstrip('/')}/models/{self.model}:generateContent"
            payload = {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"responseMimeType": "application/json"},
            }

            try:
                response = self.session.post(
                    url,
                    json=payload,
                    headers={"x-goog-api-key": self.api_key},
                    timeout=(10, timeout),
                )
                response.raise_for_status()
                data = response.json()
            except requests.Timeout:
                logger.warning(f"[ai-service] Provider gemini_api failed: timeout after {timeout}s")
                return self._failure(f"Timeout after {timeout}s")
            except requests.RequestException as e:
                return self._failure(f"Gemini API request failed: {e}")
            except ValueError as e:
                return self._failure(f"Gemini API returned non-JSON body: {e}")

            raw_response = self._extract_text(data)
            if not raw_response:
                return self._failure("Gemini API returned no text")
            return self._parsed_result(raw_response)

        return self._timed_execute(_execute)

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()
