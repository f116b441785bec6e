"""
Abstract Base Provider

Interface every enrichment provider implements, plus the tolerant JSON
extraction shared by the LLM-backed providers.
"""

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)\n?```", re.DOTALL)


@dataclass
class ProviderResult:
    """Result from one provider call."""

    success: bool
    output: Optional[Any] = None
    raw_response: Optional[str] = None
    error: Optional[str] = None
    provider_id: str = ""
    model: str = ""
    execution_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "output": self.output,
            "raw_response": self.raw_response,
            "error": self.error,
            "provider_id": self.provider_id,
            "model": self.model,
            "execution_time_ms": self.execution_time_ms,
        }


@dataclass
class ProviderStatus:
    """Availability of a provider on this machine."""

    provider_id: str
    available: bool
    version: Optional[str] = None
    models: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "provider_id": self.provider_id,
            "available": self.available,
            "version": self.version,
            "models": self.models,
            "error": self.error,
        }


class AIProvider(ABC):
    """Abstract base class for enrichment providers."""

    # Provider identifier (e.g., "gemini", "gemini_api", "rule_based")
    provider_id: str = ""

    # True when execute() expects the structured batch instead of a prompt
    wants_raw_input: bool = False

    def __init__(self, model: str = "", endpoint: Optional[str] = None):
        """
        Initialize the provider.

        Args:
            model: Model identifier to use
            endpoint: Optional custom endpoint
        """
        self.model = model
        self.endpoint = endpoint

    @abstractmethod
    def detect_availability(self) -> ProviderStatus:
        """Check if this provider can be used."""
        pass

    @abstractmethod
    def execute(self, prompt: Any, timeout: int = 60) -> ProviderResult:
        """
        Run the provider and return its parsed output.

        Args:
            prompt: Prompt text (or the raw batch for rule-based providers)
            timeout: Maximum execution time in seconds
        """
        pass

    def parse_json_response(self, response: str) -> Any:
        """
        Parse JSON out of a model answer.

        Models often wrap JSON in markdown fences or add commentary around
        it. Tries, in order: the whole text, each fenced block, then the
        first balanced array/object found in the text.

        Raises:
            json.JSONDecodeError: If no valid JSON found in response
        """
        text = response.strip()

        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass

        for match in _FENCE_PATTERN.findall(text):
            try:
                return json.loads(match.strip())
            except json.JSONDecodeError:
                continue

        starts = sorted(
            (text.find(open_char), open_char)
            for open_char in ("[", "{")
            if open_char in text
        )
        for pos, open_char in starts:
            close_char = "]" if open_char == "[" else "}"
            parsed = self._extract_balanced(text, pos, open_char, close_char)
            if parsed is not None:
                return parsed

        preview = text[:200] + "..." if len(text) > 200 else text
        raise json.JSONDecodeError(f"No valid JSON found in response. Preview: {preview}", text, 0)

    @staticmethod
    def _extract_balanced(text: str, start: int, open_char: str, close_char: str) -> Optional[Any]:
        """Parse the bracketed structure starting at ``start``, honouring strings."""
        depth = 0
        in_string = False
        escape = False

        for i in range(start, len(text)):
            char = text[i]
            if escape:
                escape = False
                continue
            if char == "\\":
                escape = True
                continue
            if char == '"':
                in_string = not in_string
                continue
            if in_string:
                continue
            if char == open_char:
                depth += 1
            elif char == close_char:
                depth -= 1
                if depth == 0:
                    try:
                        return json.loads(text[start:i + 1])
                    except json.JSONDecodeError:
                        return None
        return None

    def _timed_execute(self, execute_fn: Callable[[], ProviderResult]) -> ProviderResult:
        """Time execute_fn and turn unexpected exceptions into a failed result."""
        start_time = time.time()
        try:
            result = execute_fn()
        except Exception as e:
            logger.error(f"[ai-service] Provider {self.provider_id} error: {e}")
            result = ProviderResult(
                success=False,
                error=str(e),
                provider_id=self.provider_id,
                model=self.model,
            )
        result.execution_time_ms = int((time.time() - start_time) * 1000)
        return result

    def _failure(self, error: str, raw_response: Optional[str] = None) -> ProviderResult:
        return ProviderResult(
            success=False,
            error=error,
            raw_response=raw_response,
            provider_id=self.provider_id,
            model=self.model,
        )

    def _parsed_result(self, raw_response: str) -> ProviderResult:
        """Build a result from a raw answer, failing on unparsable JSON."""
        try:
            output = self.parse_json_response(raw_response)
        except json.JSONDecodeError as e:
            logger.warning(f"[ai-service] JSON parse error from {self.provider_id}: {e}")
            return self._failure(f"Invalid JSON response: {e}", raw_response=raw_response)
        return ProviderResult(
            success=True,
            output=output,
            raw_response=raw_response,
            provider_id=self.provider_id,
            model=self.model,
        )
