"""
AI Tasks Module

Task-specific logic for AI-powered operations.
"""

from .base import AITask, TaskResult
from .resource_identification import ResourceIdentificationTask

__all__ = [
    "AITask",
    "TaskResult",
    "ResourceIdentificationTask",
]
