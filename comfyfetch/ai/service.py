"""
AI Service

Main orchestrator for enrichment tasks.
Handles provider selection, fallback chain and retries.
"""

import logging
import time
from typing import Any, Dict, Optional, Sequence

from ..core.errors import EnrichmentBatchError
from ..core.models import ExternalGuess, ScannedItem
from .providers import ProviderRegistry
from .settings import AIServicesSettings
from .tasks import AITask, ResourceIdentificationTask, TaskResult

logger = logging.getLogger(__name__)


class AIService:
    """
    Main AI service - orchestrates providers and tasks.

    Handles:
    - Provider chain from settings
    - Retries with configurable delay
    - Rule-based fallback when every provider fails

    An instance is itself an enrichment collaborator: calling it with a
    batch of scanned items returns guesses keyed by raw name.
    """

    def __init__(self, settings: Optional[AIServicesSettings] = None):
        self.settings = settings or AIServicesSettings.load()

    def execute_task(self, task: AITask, input_data: Any) -> TaskResult:
        """
        Execute a task using the configured provider chain.

        Returns:
            TaskResult with output or error
        """
        if not self.settings.enabled:
            logger.info("[ai-service] AI services disabled, using rule-based fallback")
            return self._execute_rule_based(task, input_data)

        provider_order = [p for p in self.settings.provider_order if p != "rule_based"]
        logger.info(
            f"[ai-service] Task: {task.task_type}, "
            f"Provider chain: {' → '.join(provider_order + ['rule_based'])}"
        )

        for provider_id in provider_order:
            result = self._try_provider(task, input_data, provider_id)
            if result.success:
                return result

            logger.warning(
                f"[ai-service] Fallback: {provider_id} failed "
                f"(reason: {result.error or 'unknown'}), trying next..."
            )

        if self.settings.always_fallback_to_rule_based:
            logger.info("[ai-service] All AI providers failed, using rule-based fallback")
            return self._execute_rule_based(task, input_data)

        return TaskResult(
            success=False,
            error="All AI providers failed and rule-based fallback is disabled",
        )

    def _try_provider(self, task: AITask, input_data: Any, provider_id: str) -> TaskResult:
        """Try one provider, retrying with the configured delay."""
        provider_config = self.settings.providers.get(provider_id)
        if not provider_config or not provider_config.enabled:
            return TaskResult(
                success=False,
                error=f"Provider {provider_id} is not configured or disabled",
            )

        provider = ProviderRegistry.get(
            provider_id,
            model=provider_config.model,
            endpoint=provider_config.endpoint,
        )
        if not provider:
            return TaskResult(success=False, error=f"Unknown provider: {provider_id}")

        status = provider.detect_availability()
        if not status.available:
            return TaskResult(
                success=False,
                error=status.error or f"Provider {provider_id} is not available",
                provider_id=provider_id,
            )

        if provider.wants_raw_input:
            prompt = task.get_raw_input(input_data)
        else:
            prompt = task.build_prompt(input_data)
            if self.settings.log_prompts:
                logger.debug(f"[ai-service] Prompt:\n{prompt[:500]}...")

        last_error = None
        for attempt in range(self.settings.max_retries + 1):
            if attempt > 0:
                logger.info(
                    f"[ai-service] Retry {attempt}/{self.settings.max_retries} "
                    f"for {provider_id}"
                )
                time.sleep(self.settings.retry_delay_seconds)

            result = provider.execute(prompt, timeout=self.settings.cli_timeout_seconds)

            if self.settings.log_responses and result.raw_response:
                logger.debug(f"[ai-service] Raw response:\n{result.raw_response[:500]}...")

            if result.success and result.output:
                parsed = task.parse_result(result.output)
                if task.validate_output(parsed):
                    logger.info(
                        f"[ai-service] Response received in "
                        f"{result.execution_time_ms / 1000:.1f}s, "
                        f"identified {len(parsed)} resources"
                    )
                    return TaskResult(
                        success=True,
                        output=parsed,
                        provider_id=result.provider_id,
                        model=result.model,
                        execution_time_ms=result.execution_time_ms,
                    )
                last_error = "Output validation failed"
            else:
                last_error = result.error

        return TaskResult(
            success=False,
            error=last_error or "Unknown error",
            provider_id=provider_id,
        )

    def _execute_rule_based(self, task: AITask, input_data: Any) -> TaskResult:
        """Execute task using the rule-based fallback."""
        provider = ProviderRegistry.get("rule_based")
        if not provider:
            return TaskResult(success=False, error="Rule-based provider not available")

        result = provider.execute(task.get_raw_input(input_data))

        if result.success and result.output:
            parsed = task.parse_result(result.output)
            return TaskResult(
                success=True,
                output=parsed,
                provider_id="rule_based",
                model="rules",
                execution_time_ms=result.execution_time_ms,
            )

        return TaskResult(
            success=False,
            error=result.error or "Rule-based identification failed",
            provider_id="rule_based",
        )

    def identify_resources(self, batch: Sequence[ScannedItem]) -> Dict[str, ExternalGuess]:
        """
        Identify one batch of scanned items.

        Raises:
            EnrichmentBatchError: If no provider produced a usable answer
        """
        if not batch:
            return {}

        result = self.execute_task(ResourceIdentificationTask(), batch)
        if not result.success:
            raise EnrichmentBatchError(
                result.error or "Enrichment failed",
                raw_names=[item.raw_name for item in batch],
            )

        logger.info(f"[ai-service] Batch identified by {result.provider_id}")
        return result.output

    def __call__(self, batch: Sequence[ScannedItem]) -> Dict[str, ExternalGuess]:
        return self.identify_resources(batch)
