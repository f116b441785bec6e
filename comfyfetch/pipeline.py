"""
Analysis Pipeline

Scan a workflow, enrich what was found and hand back both the scan and the
resolution, plus JSON persistence for reviewed resource lists.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import TypeAdapter, ValidationError

from .core.errors import ComfyFetchError, EmptyResultError
from .core.models import EnrichedResource, ScannedItem
from .workflows.resolver import EnrichmentCollaborator, ResolutionResult, ResourceResolver
from .workflows.scanner import WorkflowScanner

logger = logging.getLogger(__name__)

EMPTY_WORKFLOW_MESSAGE = "No identifiable resources found in this workflow."

_RESOURCES_ADAPTER = TypeAdapter(List[EnrichedResource])


@dataclass
class AnalysisResult:
    """Scanned items and their resolution for one workflow."""
    items: List[ScannedItem] = field(default_factory=list)
    resolution: ResolutionResult = field(default_factory=ResolutionResult)

    @property
    def resources(self) -> List[EnrichedResource]:
        return self.resolution.resources

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.model_dump(mode="json") for item in self.items],
            "resources": [r.model_dump(mode="json") for r in self.resources],
            "failed_batches": [b.to_dict() for b in self.resolution.failed_batches],
            "batch_count": self.resolution.batch_count,
        }


def analyze_workflow(
    document: Union[str, Dict[str, Any]],
    collaborator: EnrichmentCollaborator,
    scanner: Optional[WorkflowScanner] = None,
    resolver: Optional[ResourceResolver] = None,
) -> AnalysisResult:
    """
    Scan a workflow (raw text or decoded object) and enrich the result.

    Raises:
        ParseError: If the document is malformed
        EmptyResultError: If the workflow references nothing external
    """
    scanner = scanner or WorkflowScanner()
    resolver = resolver or ResourceResolver()

    if isinstance(document, str):
        items = scanner.scan(document)
    else:
        items = scanner.scan_data(document)

    if not items:
        raise EmptyResultError(EMPTY_WORKFLOW_MESSAGE)

    resolution = resolver.enrich(items, collaborator)
    return AnalysisResult(items=items, resolution=resolution)


def load_resources(path: Path) -> List[EnrichedResource]:
    """
    Load a resource list file.

    Accepts a bare JSON array or an object with a "resources" array (the
    shape written by ``comfyfetch analyze --json``).
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ComfyFetchError(f"Cannot read resource file {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("resources", [])

    try:
        resources = _RESOURCES_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise ComfyFetchError(f"Invalid resource file {path}: {e}") from e

    logger.debug(f"[pipeline] Loaded {len(resources)} resources from {path}")
    return resources


def save_resources(path: Path, resources: Sequence[EnrichedResource]) -> Path:
    """Write resources as a JSON array."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(_RESOURCES_ADAPTER.dump_json(list(resources), indent=2))
    return path
