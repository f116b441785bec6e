"""
Resource Identification Task

Turns a batch of scanned items into structured guesses keyed by raw name.
"""

import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from ...core.models import ExternalGuess
from ..prompts import batch_payload, build_identification_prompt
from .base import AITask

logger = logging.getLogger(__name__)

# Keys a model sometimes wraps the answer array in
_WRAPPER_KEYS = ("resources", "items", "results", "data")


class ResourceIdentificationTask(AITask):
    """
    Task for identifying workflow resources.

    Input is a sequence of ScannedItem (or {rawName, isNode} dicts);
    output is ``Dict[raw_name, ExternalGuess]``.
    """

    task_type = "resource_identification"

    def build_prompt(self, input_data: Any) -> str:
        return build_identification_prompt(input_data)

    def parse_result(self, raw_output: Any) -> Dict[str, ExternalGuess]:
        """
        Parse the provider answer into guesses.

        Accepts a bare array, an object wrapping the array under a common
        key, or a single object. Entries without a raw name or failing
        validation are dropped; on duplicate raw names the first wins.
        """
        entries = self._unwrap(raw_output)
        guesses: Dict[str, ExternalGuess] = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            try:
                guess = ExternalGuess.model_validate(entry)
            except ValidationError as e:
                logger.debug(f"[ai-service] Dropping malformed entry: {e}")
                continue
            key = guess.raw_name.strip()
            if key and key not in guesses:
                guesses[key] = guess
        return guesses

    def get_raw_input(self, input_data: Any) -> List[Dict[str, Any]]:
        return batch_payload(input_data)

    def validate_output(self, output: Any) -> bool:
        """Valid when at least one guess was recovered."""
        return isinstance(output, dict) and len(output) > 0

    @staticmethod
    def _unwrap(raw_output: Any) -> List[Any]:
        if isinstance(raw_output, list):
            return raw_output
        if isinstance(raw_output, dict):
            for key in _WRAPPER_KEYS:
                if isinstance(raw_output.get(key), list):
                    return raw_output[key]
            if "rawName" in raw_output or "raw_name" in raw_output:
                return [raw_output]
        return []
