"""Workflow scanning, resolution, validation and script generation modules."""

from .scanner import CoreNodePolicy, WorkflowScanner, scan_workflow_file
from .resolver import FailedBatch, ResolutionResult, ResourceResolver, create_resolver
from .validator import URLValidator, ValidationReport, ValidationResult
from .synthesizer import (
    InstallerScriptSynthesizer,
    ScriptDialect,
    repo_dir_name,
    script_filename,
    synthesize,
    write_script,
)

__all__ = [
    # Scanner
    "CoreNodePolicy",
    "WorkflowScanner",
    "scan_workflow_file",
    # Resolver
    "FailedBatch",
    "ResolutionResult",
    "ResourceResolver",
    "create_resolver",
    # Validator
    "URLValidator",
    "ValidationReport",
    "ValidationResult",
    # Synthesizer
    "InstallerScriptSynthesizer",
    "ScriptDialect",
    "repo_dir_name",
    "script_filename",
    "synthesize",
    "write_script",
]
