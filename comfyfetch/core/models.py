"""
comfyfetch Data Models

Pydantic v2 models for scanned items, enriched resources, collaborator
guesses and history entries. All models are JSON-serializable; resource
list files and the history file are plain JSON arrays of these models.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Enums
# =============================================================================

class ResourceType(str, Enum):
    """Kinds of resources a workflow can depend on."""
    CHECKPOINT = "Checkpoint"
    LORA = "LoRA"
    VAE = "VAE"
    EMBEDDING = "Embedding"
    CONTROLNET = "ControlNet"
    UPSCALER = "Upscaler"
    CUSTOM_NODE = "CustomNode"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Any) -> "ResourceType":
        """Map loose spellings ("CUSTOM_NODE", "custom node", "Lora") to a member."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        key = re.sub(r"[^a-z]", "", value.lower())
        return _RESOURCE_TYPE_ALIASES.get(key, cls.UNKNOWN)

    @property
    def is_model(self) -> bool:
        return self is not ResourceType.CUSTOM_NODE


_RESOURCE_TYPE_ALIASES = {
    "checkpoint": ResourceType.CHECKPOINT,
    "checkpoints": ResourceType.CHECKPOINT,
    "ckpt": ResourceType.CHECKPOINT,
    "lora": ResourceType.LORA,
    "loras": ResourceType.LORA,
    "vae": ResourceType.VAE,
    "embedding": ResourceType.EMBEDDING,
    "embeddings": ResourceType.EMBEDDING,
    "textualinversion": ResourceType.EMBEDDING,
    "controlnet": ResourceType.CONTROLNET,
    "upscaler": ResourceType.UPSCALER,
    "upscalemodel": ResourceType.UPSCALER,
    "customnode": ResourceType.CUSTOM_NODE,
    "customnodes": ResourceType.CUSTOM_NODE,
    "unknown": ResourceType.UNKNOWN,
}


class ComputeType(str, Enum):
    """Where a resource puts its load: GPU for weights, CPU for node code."""
    GPU = "GPU"
    CPU = "CPU"


# Default install folders relative to the ComfyUI root
DEFAULT_TARGET_PATHS = {
    ResourceType.CHECKPOINT: "models/checkpoints",
    ResourceType.LORA: "models/loras",
    ResourceType.VAE: "models/vae",
    ResourceType.EMBEDDING: "models/embeddings",
    ResourceType.CONTROLNET: "models/controlnet",
    ResourceType.UPSCALER: "models/upscale_models",
    ResourceType.CUSTOM_NODE: "custom_nodes",
    ResourceType.UNKNOWN: "models",
}


def default_compute_type(resource_type: ResourceType) -> ComputeType:
    """CPU for custom nodes, GPU for everything else."""
    if resource_type is ResourceType.CUSTOM_NODE:
        return ComputeType.CPU
    return ComputeType.GPU


def new_item_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# Scan / Resolve Models
# =============================================================================

class ScannedItem(BaseModel):
    """A raw resource name discovered in a workflow, before classification."""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_item_id, frozen=True)
    raw_name: str = Field(frozen=True)
    is_node: bool = False


class EnrichedResource(ScannedItem):
    """
    A scanned item augmented with classification, install path and source.

    Everything except ``id`` and ``raw_name`` may be edited in place by the
    reviewer. ``compute_type`` follows ``type`` (including later edits to
    ``type``) until it is set to a non-null value explicitly.
    """
    name: str = ""
    type: ResourceType = ResourceType.UNKNOWN
    description: str = ""
    target_path: str = ""
    download_url: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    compute_type: Optional[ComputeType] = None
    file_size: str = "N/A"

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, v: Any) -> ResourceType:
        return ResourceType.parse(v)

    @model_validator(mode="after")
    def _derive_compute_type(self) -> "EnrichedResource":
        # Runs on construction and on every validated assignment
        fields_set = self.__pydantic_fields_set__
        if self.compute_type is None:
            fields_set.discard("compute_type")
        if "compute_type" not in fields_set:
            # direct write, an assignment would re-run this validator
            self.__dict__["compute_type"] = default_compute_type(self.type)
        return self


class ExternalGuess(BaseModel):
    """
    Structured guess returned by the enrichment collaborator for one raw name.

    Accepts the camelCase keys the providers are prompted to produce as well
    as snake_case field names.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    raw_name: str = Field(alias="rawName")
    name: str = ""
    type: ResourceType = ResourceType.UNKNOWN
    description: str = ""
    target_path: str = Field(default="", alias="targetPath")
    download_url: str = Field(default="", alias="downloadUrl")
    compute_type: Optional[ComputeType] = Field(default=None, alias="computeType")
    file_size: Optional[str] = Field(default=None, alias="fileSize")

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, v: Any) -> ResourceType:
        return ResourceType.parse(v)

    @field_validator("compute_type", mode="before")
    @classmethod
    def _parse_compute_type(cls, v: Any) -> Optional[str]:
        if isinstance(v, str):
            v = v.strip().upper()
            return v if v in ("GPU", "CPU") else None
        return v

    @field_validator("name", "description", "target_path", "download_url", mode="before")
    @classmethod
    def _none_to_blank(cls, v: Any) -> Any:
        return "" if v is None else v


# =============================================================================
# History
# =============================================================================

class HistoryItem(EnrichedResource):
    """An enriched resource the user committed to an installer action."""
    date_added: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_resource(
        cls,
        resource: EnrichedResource,
        date_added: Optional[datetime] = None,
    ) -> "HistoryItem":
        data = resource.model_dump()
        data["date_added"] = date_added or datetime.now()
        return cls(**data)
