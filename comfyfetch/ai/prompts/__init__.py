"""
AI Prompts Module

Prompt templates for AI-powered tasks.
"""

from .resource_identification import (
    RESOURCE_IDENTIFICATION_PROMPT,
    batch_payload,
    build_identification_prompt,
)

__all__ = [
    "RESOURCE_IDENTIFICATION_PROMPT",
    "batch_payload",
    "build_identification_prompt",
]
