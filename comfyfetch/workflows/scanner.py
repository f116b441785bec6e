"""
Workflow Scanner

Analyzes ComfyUI workflow JSON documents to extract:
- Custom node types (anything not known to ship with ComfyUI)
- Model file references (checkpoints, LoRAs, VAEs, etc.)

Supports both serialization shapes:
- Graph form (saved from the editor): top-level "nodes" list
- Execution form (API export): mapping of node id -> {class_type, inputs}
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Union

from ..core.errors import ParseError
from ..core.models import ScannedItem

logger = logging.getLogger(__name__)


# Extensions that mark a string literal as a model file reference
MODEL_EXTENSIONS = (".safetensors", ".ckpt", ".pt", ".pth", ".bin")

# Execution-form input names that always hold a file reference
FILE_INPUT_KEYS = frozenset({
    "ckpt_name",
    "lora_name",
    "vae_name",
    "control_net_name",
    "upscale_model_name",
    "model_name",
    "embedding",
    "image",
})

# Stock ComfyUI node types, excluded from custom node extraction
CORE_NODE_TYPES = frozenset({
    # Sampling
    "KSampler", "KSamplerAdvanced", "SamplerCustom", "SamplerCustomAdvanced",
    # Loaders
    "CheckpointLoaderSimple", "CheckpointLoader", "LoraLoader",
    "LoraLoaderModelOnly", "VAELoader", "ControlNetLoader",
    "DiffControlNetLoader", "UpscaleModelLoader", "CLIPLoader",
    "DualCLIPLoader", "UNETLoader", "CLIPVisionLoader", "StyleModelLoader",
    "GLIGENLoader", "unCLIPCheckpointLoader",
    # Conditioning / encoding
    "CLIPTextEncode", "CLIPSetLastLayer", "ConditioningCombine",
    "ConditioningAverage", "ConditioningSetArea", "ControlNetApply",
    "ControlNetApplyAdvanced",
    # Latent / image
    "VAEDecode", "VAEEncode", "VAEDecodeTiled", "VAEEncodeTiled",
    "VAEEncodeForInpaint", "EmptyLatentImage", "LatentUpscale",
    "LatentUpscaleBy", "ImageScale", "ImageScaleBy", "ImageUpscaleWithModel",
    "ImageInvert", "ImagePadForOutpaint",
    # IO
    "SaveImage", "PreviewImage", "LoadImage", "LoadImageMask",
    # Graph utilities
    "Note", "MarkdownNote", "PrimitiveNode", "Reroute", "Group",
})

# Loose prefix heuristic for core/builtin node families
CORE_NODE_PREFIXES = ("ComfyUI",)


@dataclass(frozen=True)
class CoreNodePolicy:
    """
    Decides whether a node type ships with ComfyUI.

    A node is core when it is in ``denylist`` or starts with one of
    ``prefixes``. Policies are immutable; use ``extended`` to derive a
    larger one.
    """
    denylist: FrozenSet[str] = CORE_NODE_TYPES
    prefixes: tuple = CORE_NODE_PREFIXES

    def __call__(self, node_type: str) -> bool:
        return self.is_core(node_type)

    def is_core(self, node_type: str) -> bool:
        if node_type in self.denylist:
            return True
        return any(node_type.startswith(prefix) for prefix in self.prefixes)

    def extended(
        self,
        node_types: Iterable[str] = (),
        prefixes: Iterable[str] = (),
    ) -> "CoreNodePolicy":
        """Return a new policy that also treats the given types/prefixes as core."""
        return CoreNodePolicy(
            denylist=self.denylist | frozenset(node_types),
            prefixes=tuple(self.prefixes) + tuple(p for p in prefixes if p not in self.prefixes),
        )


CorePredicate = Callable[[str], bool]


def is_model_filename(value: str) -> bool:
    """Check if a string ends in a known model file extension."""
    return value.lower().endswith(MODEL_EXTENSIONS)


@dataclass
class _ScanCollector:
    """Ordered, deduplicating accumulator for one scan."""
    items: Dict[str, ScannedItem] = field(default_factory=dict)

    def add(self, name: Any, is_node: bool) -> None:
        if not isinstance(name, str):
            return
        clean = name.strip()
        if not clean or clean in self.items:
            return
        self.items[clean] = ScannedItem(raw_name=clean, is_node=is_node)


class WorkflowScanner:
    """
    Scans ComfyUI workflow documents for external resources.

    The core-node policy is injected so the denylist can grow without
    touching the scan logic; any ``str -> bool`` callable is accepted.
    """

    def __init__(self, core_policy: Optional[Union[CoreNodePolicy, CorePredicate]] = None):
        self.core_policy: CorePredicate = core_policy or CoreNodePolicy()

    def scan(self, document: str) -> List[ScannedItem]:
        """
        Scan raw workflow text.

        Raises:
            ParseError: If the text is not valid JSON or not a JSON object
        """
        try:
            data = json.loads(document)
        except (json.JSONDecodeError, TypeError) as e:
            raise ParseError(f"Invalid JSON format: {e}") from e
        return self.scan_data(data)

    def scan_file(self, path: Path) -> List[ScannedItem]:
        """Scan a workflow JSON file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(f"Error reading workflow file {path}: {e}") from e
        return self.scan(document)

    def scan_data(self, data: Any) -> List[ScannedItem]:
        """
        Scan an already-decoded workflow document.

        Returns an empty list when nothing is found; an empty result is the
        caller's concern, not a scan failure.
        """
        if not isinstance(data, dict):
            raise ParseError(
                f"Unrecognized workflow structure: expected a JSON object, got {type(data).__name__}"
            )

        collector = _ScanCollector()
        nodes = data.get("nodes")

        if isinstance(nodes, list):
            logger.debug(f"[scanner] Graph form detected ({len(nodes)} nodes)")
            for node in nodes:
                if isinstance(node, dict):
                    self._process_graph_node(node, collector)
        else:
            logger.debug(f"[scanner] Execution form detected ({len(data)} entries)")
            for node in data.values():
                if isinstance(node, dict):
                    self._process_execution_node(node, collector)

        items = list(collector.items.values())
        logger.info(
            f"[scanner] Found {len(items)} resources "
            f"({sum(1 for i in items if i.is_node)} nodes, "
            f"{sum(1 for i in items if not i.is_node)} files)"
        )
        return items

    def _process_graph_node(self, node: Dict[str, Any], collector: _ScanCollector) -> None:
        """Process a node record from the editor's saved format."""
        node_type = node.get("type")
        if isinstance(node_type, str) and not self._is_core(node_type):
            collector.add(node_type, True)

        widgets_values = node.get("widgets_values")
        if isinstance(widgets_values, list):
            for value in widgets_values:
                if isinstance(value, str) and is_model_filename(value.strip()):
                    collector.add(value, False)

    def _process_execution_node(self, node: Dict[str, Any], collector: _ScanCollector) -> None:
        """Process a node record from the API (execution) format."""
        class_type = node.get("class_type")
        if isinstance(class_type, str) and not self._is_core(class_type):
            collector.add(class_type, True)

        inputs = node.get("inputs")
        if not isinstance(inputs, dict):
            return

        for key, value in inputs.items():
            if not isinstance(value, str):
                continue
            if key in FILE_INPUT_KEYS or is_model_filename(value.strip()):
                collector.add(value, False)

    def _is_core(self, node_type: str) -> bool:
        return bool(self.core_policy(node_type.strip()))


def scan_workflow_file(path: Path, core_policy: Optional[CoreNodePolicy] = None) -> List[ScannedItem]:
    """Convenience function to scan a single workflow file."""
    scanner = WorkflowScanner(core_policy)
    return scanner.scan_file(path)
