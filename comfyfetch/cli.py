"""
comfyfetch CLI

Thin wrapper around the scan / resolve / validate / generate pipeline.

Usage:
    comfyfetch scan <workflow.json> [--json]
    comfyfetch analyze <workflow.json> [--offline] [-o resources.json] [--json]
    comfyfetch validate <resources.json> [--strict] [--json]
    comfyfetch generate <resources.json> [--dialect bash|bat] [-o script] [--strict] [--no-history]
    comfyfetch history list [--json]
    comfyfetch history clear [--yes]
    comfyfetch providers [--json]
"""

from __future__ import annotations

import json as json_module
import logging
import os
from pathlib import Path
from typing import List, Optional

import typer

from .config import get_config
from .core.errors import ComfyFetchError
from .core.models import EnrichedResource
from .workflows.validator import ValidationReport

app = typer.Typer(
    name="comfyfetch",
    help="comfyfetch - ComfyUI workflow dependency fetcher",
    no_args_is_help=True,
)

history_app = typer.Typer(
    name="history",
    help="Download history commands",
    no_args_is_help=True,
)
app.add_typer(history_app, name="history")


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging; COMFYFETCH_LOG_LEVEL overrides the default level."""
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.environ.get("COMFYFETCH_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def output_json(data) -> None:
    """Output data as JSON."""
    typer.echo(json_module.dumps(data, indent=2, default=str))


def output_error(message: str) -> None:
    """Output error message."""
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)


def output_success(message: str) -> None:
    """Output success message."""
    typer.secho(message, fg=typer.colors.GREEN)


def output_warning(message: str) -> None:
    """Output warning message."""
    typer.secho(f"Warning: {message}", fg=typer.colors.YELLOW)


def get_scanner():
    """Scanner with the configured extra core nodes."""
    from .workflows.scanner import CoreNodePolicy, WorkflowScanner

    config = get_config()
    policy = CoreNodePolicy().extended(
        config.scan.extra_core_nodes,
        config.scan.extra_core_prefixes,
    )
    return WorkflowScanner(policy)


def get_resolver():
    """Resolver with the configured batching and confidence."""
    from .workflows.resolver import ResourceResolver

    resolve = get_config().resolve
    return ResourceResolver(
        confidence=resolve.confidence,
        batch_size=resolve.batch_size,
        max_workers=resolve.max_workers,
    )


def get_validator():
    """Validator accepting the configured extra model hosts."""
    from .workflows.validator import URLValidator

    return URLValidator(extra_hosts=get_config().resolve.extra_model_hosts)


def get_history():
    """History store at the configured location."""
    from .history import HistoryStore

    return HistoryStore(get_config().history_file)


def print_report(report: ValidationReport) -> None:
    """Print one line per resource with its validation verdict."""
    for result in report.results:
        resource = result.resource
        label = f"[{resource.type.value}] {resource.name or resource.raw_name}"
        if result.is_valid:
            typer.echo(f"  OK    {label}: {resource.download_url}")
        else:
            typer.secho(f"  CHECK {label}: {result.reason}", fg=typer.colors.YELLOW)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Find and install the custom nodes and models a ComfyUI workflow needs."""
    configure_logging(verbose)


# =============================================================================
# Scan / Analyze Commands
# =============================================================================

@app.command("scan")
def scan_command(
    workflow: Path = typer.Argument(..., help="Workflow JSON file"),
    json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List the custom nodes and model files a workflow references."""
    from .pipeline import EMPTY_WORKFLOW_MESSAGE

    try:
        items = get_scanner().scan_file(workflow)
    except ComfyFetchError as e:
        output_error(str(e))
        raise typer.Exit(1)

    if not items:
        output_error(EMPTY_WORKFLOW_MESSAGE)
        raise typer.Exit(1)

    if json:
        output_json({"items": [item.model_dump(mode="json") for item in items]})
        return

    nodes = [i for i in items if i.is_node]
    files = [i for i in items if not i.is_node]
    typer.echo(f"Found {len(items)} resource(s) in {workflow.name}:")
    if nodes:
        typer.echo(f"\nCustom nodes ({len(nodes)}):")
        for item in nodes:
            typer.echo(f"  - {item.raw_name}")
    if files:
        typer.echo(f"\nModel files ({len(files)}):")
        for item in files:
            typer.echo(f"  - {item.raw_name}")


@app.command("analyze")
def analyze_command(
    workflow: Path = typer.Argument(..., help="Workflow JSON file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write resources to this JSON file"),
    offline: bool = typer.Option(False, "--offline", help="Use rule-based guesses only"),
    json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Scan a workflow and identify where to get each resource."""
    from .ai import get_ai_service, offline_settings
    from .pipeline import analyze_workflow, save_resources

    try:
        with open(workflow, "r", encoding="utf-8") as f:
            document = f.read()
    except OSError as e:
        output_error(f"Cannot read {workflow}: {e}")
        raise typer.Exit(1)

    service = get_ai_service(offline_settings() if offline else None)

    try:
        result = analyze_workflow(
            document,
            service,
            scanner=get_scanner(),
            resolver=get_resolver(),
        )
    except ComfyFetchError as e:
        output_error(str(e))
        raise typer.Exit(1)

    if output:
        save_resources(output, result.resources)

    if json:
        output_json(result.to_dict())
    else:
        typer.echo(f"Identified {len(result.resources)} of {len(result.items)} resource(s):")
        print_report(get_validator().validate_all(result.resources))

    if result.resolution.is_partial:
        output_warning(
            f"{len(result.resolution.failed_batches)} batch(es) failed; "
            f"unresolved: {', '.join(result.resolution.missing_names)}"
        )
    if output:
        output_success(f"Resources written to {output}")


# =============================================================================
# Validate / Generate Commands
# =============================================================================

def _load(path: Path) -> List[EnrichedResource]:
    from .pipeline import load_resources

    try:
        return load_resources(path)
    except ComfyFetchError as e:
        output_error(str(e))
        raise typer.Exit(1)


@app.command("validate")
def validate_command(
    resources_file: Path = typer.Argument(..., help="Resource list JSON file"),
    strict: bool = typer.Option(False, "--strict", help="Exit with an error if any URL needs review"),
    json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Check that every download URL looks directly fetchable."""
    report = get_validator().validate_all(_load(resources_file))

    if json:
        output_json({"results": [r.to_dict() for r in report.results]})
    else:
        print_report(report)
        if report.is_clean:
            output_success("All download URLs look valid.")
        else:
            output_warning(f"{len(report.failures)} URL(s) need review.")

    if strict and not report.is_clean:
        raise typer.Exit(1)


@app.command("generate")
def generate_command(
    resources_file: Path = typer.Argument(..., help="Resource list JSON file"),
    dialect: Optional[str] = typer.Option(None, "--dialect", "-d", help="Script dialect: bash or bat"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Script path"),
    strict: bool = typer.Option(False, "--strict", help="Refuse to generate if any URL needs review"),
    no_history: bool = typer.Option(False, "--no-history", help="Don't record resources in history"),
    stdout: bool = typer.Option(False, "--stdout", help="Print the script instead of writing it"),
):
    """Write an installer script for a resource list."""
    from .workflows.synthesizer import ScriptDialect, script_filename, synthesize, write_script

    resources = _load(resources_file)

    try:
        script_dialect = ScriptDialect.parse(dialect or get_config().default_dialect)
    except ValueError as e:
        output_error(str(e))
        raise typer.Exit(1)

    report = get_validator().validate_all(resources)
    if not report.is_clean:
        if strict:
            try:
                report.raise_for_failures()
            except ComfyFetchError as e:
                output_error(str(e))
                raise typer.Exit(1)
        for failure in report.failures:
            resource = failure.resource
            output_warning(f"{resource.name or resource.raw_name}: {failure.reason}")

    text = synthesize(resources, script_dialect)

    if stdout:
        typer.echo(text, nl=False)
    else:
        path = write_script(output or Path(script_filename(script_dialect)), text, script_dialect)
        output_success(f"Script written to {path}")

    if not no_history:
        added = get_history().add(resources)
        if added:
            typer.echo(f"Recorded {len(added)} resource(s) in history.")


# =============================================================================
# History Commands
# =============================================================================

@history_app.command("list")
def history_list(
    json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show previously committed resources, newest first."""
    items = get_history().list()

    if json:
        output_json({"history": [item.model_dump(mode="json") for item in items]})
        return

    if not items:
        typer.echo("History is empty.")
        return

    typer.echo(f"{len(items)} item(s):")
    for item in items:
        typer.echo(
            f"  {item.date_added:%Y-%m-%d %H:%M}  [{item.type.value}] "
            f"{item.name or item.raw_name}  {item.download_url}"
        )


@history_app.command("clear")
def history_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
):
    """Delete all history entries."""
    if not yes and not typer.confirm("Clear download history?"):
        raise typer.Exit(0)

    count = get_history().clear()
    output_success(f"Cleared {count} history item(s).")


# =============================================================================
# Providers Command
# =============================================================================

@app.command("providers")
def providers_command(
    json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show which enrichment providers are available."""
    from .ai.providers import ProviderRegistry

    statuses = ProviderRegistry.detect_all()

    if json:
        output_json({k: v.to_dict() for k, v in statuses.items()})
        return

    for provider_id, status in statuses.items():
        if status.available:
            version = f" ({status.version})" if status.version else ""
            output_success(f"  {provider_id}{version}: available")
        else:
            output_warning(f"{provider_id}: {status.error or 'unavailable'}")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
