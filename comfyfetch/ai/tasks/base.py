"""
Abstract Base Task

Defines the interface that all AI tasks must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class TaskResult:
    """Result from an AI task execution."""

    success: bool
    output: Optional[Any] = None
    error: Optional[str] = None
    provider_id: str = ""
    model: str = ""
    execution_time_ms: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "provider_id": self.provider_id,
            "model": self.model,
            "execution_time_ms": self.execution_time_ms,
            "metadata": self.metadata,
        }


class AITask(ABC):
    """Abstract base class for AI-powered tasks."""

    # Task identifier (e.g., "resource_identification")
    task_type: str = ""

    @abstractmethod
    def build_prompt(self, input_data: Any) -> str:
        """
        Build the prompt for this task.

        Args:
            input_data: Task-specific input

        Returns:
            Prompt string for the AI provider
        """
        pass

    @abstractmethod
    def parse_result(self, raw_output: Any) -> Any:
        """
        Parse and validate the AI response.

        Args:
            raw_output: Parsed JSON output from the provider
        """
        pass

    @abstractmethod
    def get_raw_input(self, input_data: Any) -> Any:
        """
        Get raw input for the rule-based fallback.

        The rule-based provider doesn't use prompts, it needs the
        original input data.
        """
        pass

    def validate_output(self, output: Any) -> bool:
        """Default implementation accepts any non-None output."""
        return output is not None
