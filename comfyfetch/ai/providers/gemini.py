"""
Gemini CLI Provider

Google Gemini via the `gemini` command line tool. Uses whatever account
the CLI is logged into; no API key handling here.
"""

import logging
import shutil
import subprocess
from typing import Optional

from .base import AIProvider, ProviderResult, ProviderStatus

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """
    Gemini CLI provider.

    Runs `gemini --model <model> -p <prompt>` and parses the JSON answer
    (the CLI often wraps it in markdown fences).
    """

    provider_id = "gemini"

    KNOWN_MODELS = [
        "gemini-2.5-flash",
        "gemini-2.5-pro",
        "gemini-3-flash-preview",
        "gemini-3-pro-preview",
    ]

    def __init__(self, model: str = "gemini-2.5-flash", endpoint: Optional[str] = None):
        super().__init__(model=model or "gemini-2.5-flash", endpoint=endpoint)

    def detect_availability(self) -> ProviderStatus:
        if not shutil.which("gemini"):
            return ProviderStatus(
                provider_id=self.provider_id,
                available=False,
                error="Gemini CLI not found. Install from: https://github.com/google-gemini/gemini-cli",
            )

        return ProviderStatus(
            provider_id=self.provider_id,
            available=True,
            version=self._get_version(),
            models=self.KNOWN_MODELS,
        )

    def execute(self, prompt: str, timeout: int = 60) -> ProviderResult:
        def _execute():
            logger.info(f"[ai-service] Executing with provider: gemini ({self.model})")
            try:
                result = subprocess.run(
                    ["gemini", "--model", self.model, "-p", prompt],
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
            except subprocess.TimeoutExpired:
                logger.warning(f"[ai-service] Provider gemini failed: timeout after {timeout}s")
                return self._failure(f"Timeout after {timeout}s")
            except FileNotFoundError:
                return self._failure("Gemini CLI not found")

            if result.returncode != 0:
                error_msg = result.stderr.strip() or "Unknown error"
                return self._failure(f"Gemini returned error: {error_msg}")

            raw_response = result.stdout.strip()
            logger.debug(f"[ai-service] Raw response length: {len(raw_response)}")
            return self._parsed_result(raw_response)

        return self._timed_execute(_execute)

    def _get_version(self) -> Optional[str]:
        """Get Gemini CLI version."""
        try:
            result = subprocess.run(
                ["gemini", "--version"],
                capture_output=True,
                text=True,
                timeout=5,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"[ai-service] gemini --version failed: {e}")
            return None
        if result.returncode == 0:
            return result.stdout.strip()
        return None
