"""
comfyfetch Errors

Exception hierarchy shared by the scanner, resolver, validator and CLI.
"""

from typing import List, Optional, Sequence


class ComfyFetchError(Exception):
    """Base exception for comfyfetch errors."""
    pass


class ParseError(ComfyFetchError):
    """Error when a workflow document is not well-formed."""
    pass


class EmptyResultError(ComfyFetchError):
    """Error when a well-formed workflow yields no candidate resources."""
    pass


class EnrichmentBatchError(ComfyFetchError):
    """Error when one enrichment batch failed or returned unparsable output."""

    def __init__(
        self,
        message: str,
        batch_index: Optional[int] = None,
        raw_names: Optional[Sequence[str]] = None,
    ):
        super().__init__(message)
        self.batch_index = batch_index
        self.raw_names: List[str] = list(raw_names or [])


class ValidationFailure(ComfyFetchError):
    """Raised when a caller opts to stop on advisory URL validation failures."""

    def __init__(self, failures):
        self.failures = list(failures)
        names = ", ".join(f.resource.name or f.resource.raw_name for f in self.failures)
        super().__init__(f"{len(self.failures)} resource(s) failed URL validation: {names}")
