"""
Download URL Validator

Heuristic checks that a resource's download URL is something an installer
script can fetch directly:
- Rejects fallback markers ("SEARCH: ...", "PAGE: ...")
- Requires http(s), or a GitHub SSH remote for custom nodes
- Requires GitHub for custom nodes
- Requires a known hosting platform or a model file extension for models

No network access is performed. Rules run in order and the first verdict wins.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.errors import ValidationFailure
from ..core.models import EnrichedResource, ResourceType
from .scanner import MODEL_EXTENSIONS

logger = logging.getLogger(__name__)


# Platforms whose links are accepted for model downloads
MODEL_HOSTS = ("civitai.com", "huggingface.co", "files.catbox.moe")


@dataclass
class ValidationResult:
    """Verdict for one resource. Recomputed on demand, never persisted."""
    resource: EnrichedResource
    is_valid: bool
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.resource.id,
            "name": self.resource.name,
            "raw_name": self.resource.raw_name,
            "download_url": self.resource.download_url,
            "is_valid": self.is_valid,
            "reason": self.reason,
        }


@dataclass
class ValidationReport:
    """Results of validating a whole resource list."""
    results: List[ValidationResult] = field(default_factory=list)

    @property
    def failures(self) -> List[ValidationResult]:
        return [r for r in self.results if not r.is_valid]

    @property
    def is_clean(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        """Raise ValidationFailure if any resource failed."""
        if self.failures:
            raise ValidationFailure(self.failures)


# A rule sees the lowercased URL and the resource type and returns
# None to pass, or (is_valid, reason) to decide.
Verdict = Tuple[bool, Optional[str]]
Rule = Callable[[str, ResourceType], Optional[Verdict]]


def rule_too_short(url: str, resource_type: ResourceType) -> Optional[Verdict]:
    if len(url) < 5:
        return False, "URL is empty or too short"
    return None


def rule_search_marker(url: str, resource_type: ResourceType) -> Optional[Verdict]:
    if url.startswith("search:"):
        return False, "This is a search query, not a direct link"
    return None


def rule_page_marker(url: str, resource_type: ResourceType) -> Optional[Verdict]:
    if url.startswith("page:"):
        return False, "This is a general page, not a direct link"
    return None


def rule_scheme(url: str, resource_type: ResourceType) -> Optional[Verdict]:
    if url.startswith(("http://", "https://")):
        return None
    if (
        resource_type is ResourceType.CUSTOM_NODE
        and url.startswith("git@")
        and "github.com" in url
    ):
        return True, None
    return False, "URL is not http(s) or a recognized SSH remote"


def rule_custom_node_github(url: str, resource_type: ResourceType) -> Optional[Verdict]:
    if resource_type is ResourceType.CUSTOM_NODE and "github.com" not in url:
        return False, "Custom node URL must be a GitHub repository"
    return None


def make_model_host_rule(hosts: Sequence[str] = MODEL_HOSTS) -> Rule:
    """Build the model-kind rule for a set of accepted hosting platforms."""
    lowered = tuple(h.lower() for h in hosts)

    def rule_model_host(url: str, resource_type: ResourceType) -> Optional[Verdict]:
        if resource_type is ResourceType.CUSTOM_NODE:
            return None
        if any(host in url for host in lowered) or url.endswith(MODEL_EXTENSIONS):
            return None
        return False, "URL is not a recognized direct link or hosting platform"

    return rule_model_host


DEFAULT_RULES: Tuple[Rule, ...] = (
    rule_too_short,
    rule_search_marker,
    rule_page_marker,
    rule_scheme,
    rule_custom_node_github,
    make_model_host_rule(),
)


class URLValidator:
    """Runs the ordered rule chain against resources."""

    def __init__(self, rules: Optional[Iterable[Rule]] = None, extra_hosts: Sequence[str] = ()):
        if rules is not None:
            self.rules = tuple(rules)
        elif extra_hosts:
            self.rules = DEFAULT_RULES[:-1] + (make_model_host_rule(tuple(MODEL_HOSTS) + tuple(extra_hosts)),)
        else:
            self.rules = DEFAULT_RULES

    def validate(self, resource: EnrichedResource) -> ValidationResult:
        url = (resource.download_url or "").strip().lower()
        for rule in self.rules:
            verdict = rule(url, resource.type)
            if verdict is not None:
                is_valid, reason = verdict
                return ValidationResult(resource=resource, is_valid=is_valid, reason=reason)
        return ValidationResult(resource=resource, is_valid=True)

    def validate_all(self, resources: Iterable[EnrichedResource]) -> ValidationReport:
        report = ValidationReport(results=[self.validate(r) for r in resources])
        if report.failures:
            logger.info(f"[validator] {len(report.failures)}/{len(report.results)} URLs need review")
        return report


_default_validator = URLValidator()


def validate(resource: EnrichedResource) -> ValidationResult:
    """Validate one resource's download URL with the default rules."""
    return _default_validator.validate(resource)


def validate_all(resources: Iterable[EnrichedResource]) -> ValidationReport:
    """Validate a resource list with the default rules."""
    return _default_validator.validate_all(resources)
