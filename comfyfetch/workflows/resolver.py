"""
Resource Resolver

Folds enrichment guesses into authoritative resource records:
- Keeps identity (id, raw name, node flag) from the scan
- Copies classification, path, URL and size from the collaborator's guess
- Applies compute-type / file-size defaults
- Batches collaborator calls and tolerates failing batches
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from ..core.errors import EnrichmentBatchError
from ..core.models import (
    EnrichedResource,
    ExternalGuess,
    ResourceType,
    ScannedItem,
)

logger = logging.getLogger(__name__)


# Collaborator guesses are folded in with this fixed confidence
DEFAULT_CONFIDENCE = 0.9

# Confidence for items the collaborator said nothing about
UNRESOLVED_CONFIDENCE = 0.0

# Items per collaborator call
BATCH_SIZE = 20

GuessLike = Union[ExternalGuess, Mapping[str, Any]]

# Given one batch of scanned items, returns guesses keyed by raw name.
# Expected to raise EnrichmentBatchError on failure.
EnrichmentCollaborator = Callable[[Sequence[ScannedItem]], Mapping[str, GuessLike]]


@dataclass
class FailedBatch:
    """A collaborator batch that contributed no resources."""
    index: int
    raw_names: List[str]
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "raw_names": self.raw_names,
            "error": self.error,
        }


@dataclass
class ResolutionResult:
    """Result of resolving a full scan, possibly partial."""
    resources: List[EnrichedResource] = field(default_factory=list)
    failed_batches: List[FailedBatch] = field(default_factory=list)
    batch_count: int = 0

    @property
    def is_partial(self) -> bool:
        return len(self.failed_batches) > 0

    @property
    def missing_names(self) -> List[str]:
        return [name for batch in self.failed_batches for name in batch.raw_names]


def partition(items: Sequence[ScannedItem], batch_size: int = BATCH_SIZE) -> List[List[ScannedItem]]:
    """Split items into consecutive batches of at most ``batch_size``."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


class ResourceResolver:
    """
    Builds EnrichedResource records from scanned items and external guesses.

    ``confidence`` is the value stamped on every guessed resource; it does
    not come from the collaborator.
    """

    def __init__(
        self,
        confidence: float = DEFAULT_CONFIDENCE,
        batch_size: int = BATCH_SIZE,
        max_workers: int = 1,
    ):
        if not 0.0 <= confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {confidence}")
        self.confidence = confidence
        self.batch_size = batch_size
        self.max_workers = max(1, max_workers)

    def resolve(
        self,
        items: Sequence[ScannedItem],
        guesses: Mapping[str, GuessLike],
    ) -> List[EnrichedResource]:
        """Resolve each scanned item against its guess, preserving item order."""
        return [self.resolve_item(item, guesses.get(item.raw_name)) for item in items]

    def resolve_item(
        self,
        item: ScannedItem,
        guess: Optional[GuessLike],
    ) -> EnrichedResource:
        """Build one resource; identity fields always come from the scan."""
        parsed = self._coerce_guess(item, guess)

        if parsed is None:
            return EnrichedResource(
                id=item.id,
                raw_name=item.raw_name,
                is_node=item.is_node,
                type=ResourceType.UNKNOWN,
                confidence=UNRESOLVED_CONFIDENCE,
            )

        return EnrichedResource(
            id=item.id,
            raw_name=item.raw_name,
            is_node=item.is_node,
            name=parsed.name,
            type=parsed.type,
            description=parsed.description,
            target_path=parsed.target_path,
            download_url=parsed.download_url,
            confidence=self.confidence,
            compute_type=parsed.compute_type,
            file_size=parsed.file_size or "N/A",
        )

    def enrich(
        self,
        items: Sequence[ScannedItem],
        collaborator: EnrichmentCollaborator,
    ) -> ResolutionResult:
        """
        Resolve items batch by batch through the collaborator.

        A failing batch contributes zero resources and is recorded in
        ``failed_batches``; the remaining batches still run. Results are
        concatenated in batch order even when batches run concurrently.
        """
        batches = partition(items, self.batch_size)
        result = ResolutionResult(batch_count=len(batches))

        if self.max_workers > 1 and len(batches) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = [
                    pool.submit(self._run_batch, index, batch, collaborator)
                    for index, batch in enumerate(batches)
                ]
                outcomes = [future.result() for future in futures]
        else:
            outcomes = [
                self._run_batch(index, batch, collaborator)
                for index, batch in enumerate(batches)
            ]

        for resources, failure in outcomes:
            if failure is not None:
                result.failed_batches.append(failure)
            else:
                result.resources.extend(resources)

        if result.is_partial:
            logger.warning(
                f"[resolver] Partial resolution: {len(result.failed_batches)}/{len(batches)} "
                f"batches failed, {len(result.missing_names)} items unresolved"
            )
        else:
            logger.info(f"[resolver] Resolved {len(result.resources)} resources in {len(batches)} batches")

        return result

    def _run_batch(
        self,
        index: int,
        batch: List[ScannedItem],
        collaborator: EnrichmentCollaborator,
    ):
        names = [item.raw_name for item in batch]
        logger.info(f"[resolver] Batch {index + 1}: enriching {len(batch)} items")
        try:
            guesses = collaborator(batch)
            if not isinstance(guesses, Mapping):
                raise EnrichmentBatchError(
                    f"Collaborator returned {type(guesses).__name__}, expected a mapping",
                    batch_index=index,
                    raw_names=names,
                )
        except EnrichmentBatchError as e:
            logger.warning(f"[resolver] Batch {index + 1} failed: {e}")
            return [], FailedBatch(index=index, raw_names=names, error=str(e))
        except Exception as e:
            logger.error(f"[resolver] Batch {index + 1} raised unexpectedly: {e}")
            return [], FailedBatch(index=index, raw_names=names, error=str(e))

        return self.resolve(batch, guesses), None

    @staticmethod
    def _coerce_guess(item: ScannedItem, guess: Optional[GuessLike]) -> Optional[ExternalGuess]:
        if guess is None or isinstance(guess, ExternalGuess):
            return guess
        data = dict(guess)
        if "rawName" not in data and "raw_name" not in data:
            data["rawName"] = item.raw_name
        try:
            return ExternalGuess.model_validate(data)
        except ValidationError as e:
            logger.warning(f"[resolver] Ignoring malformed guess for {item.raw_name!r}: {e}")
            return None


def create_resolver(**kwargs) -> ResourceResolver:
    """Factory function to create a configured ResourceResolver."""
    return ResourceResolver(**kwargs)
