"""
Typer application for the ResearchMate resolution engine.

``cite`` and ``summarize`` commands print the serialized resolution payload
as JSON. Exit codes: ``0`` resolved, ``1`` nothing found, ``2`` invalid input
or configuration.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Optional

import typer

from ..config import load_settings
from ..core import (
    Capability,
    ProviderRegistry,
    RegistryLoadError,
    ResolutionReport,
    ResolverConfigurationError,
    configure_logging,
)
from ..core.errors import InvalidIdentifierError
from ..llm.prompts import SummaryStyle
from ..services import ResolutionService

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Multi-provider citation and summarization resolver.\n\n"
        "Command groups:\n"
        "- providers: inspect the provider catalogue and chain order.\n"
        "- cite: resolve citation metadata from a DOI, ISBN, publisher URL, or YouTube link.\n"
        "- summarize: summarize text through the LLM fallback chain."
    ),
)
providers_app = typer.Typer(help="Inspect the provider catalogue grouped by capability.")
app.add_typer(providers_app, name="providers")
cite_app = typer.Typer(help="Resolve citation metadata for DOIs, ISBNs, publisher URLs, and YouTube videos.")
app.add_typer(cite_app, name="cite")

EXIT_NOT_FOUND = 1
EXIT_INVALID = 2


def _load_registry(registry_file: Optional[Path]) -> ProviderRegistry:
    if registry_file:
        return ProviderRegistry.from_yaml(registry_file)
    return ProviderRegistry.default()


def _parse_capability(value: Optional[str]) -> Optional[Capability]:
    if value is None:
        return None
    try:
        return Capability(value.lower())
    except ValueError as exc:
        choices = ", ".join(item.value for item in Capability)
        raise typer.BadParameter(f"Unknown capability '{value}'. Choose from: {choices}.") from exc


@app.callback(invoke_without_command=False)
def main(
    ctx: typer.Context,
    registry_file: Optional[Path] = typer.Option(
        None,
        "--registry",
        "-r",
        help="Override provider registry YAML file.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (defaults to RESEARCHMATE_LOG_LEVEL or WARNING)."),
) -> None:
    """
    Configure logging and load the provider registry.

    The registry is stored in Typer's state; the resolution service is built
    lazily by the commands that need it.
    """

    configure_logging(log_level or os.getenv("RESEARCHMATE_LOG_LEVEL") or "WARNING", force=True)
    state = ctx.ensure_object(dict)
    if "registry" in state:
        return
    try:
        state["registry"] = _load_registry(registry_file)
    except RegistryLoadError as exc:
        typer.echo(f"Failed to load provider registry: {exc}", err=True)
        raise typer.Exit(code=EXIT_INVALID) from exc


def _require_registry(ctx: typer.Context) -> ProviderRegistry:
    state = ctx.ensure_object(dict)
    registry = state.get("registry")
    if not isinstance(registry, ProviderRegistry):
        raise typer.Exit(code=EXIT_INVALID)
    return registry


def _require_service(ctx: typer.Context) -> ResolutionService:
    state = ctx.ensure_object(dict)
    service = state.get("service")
    if service is None:
        try:
            service = ResolutionService(settings=load_settings(), registry=_require_registry(ctx))
        except ResolverConfigurationError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=EXIT_INVALID) from exc
        state["service"] = service
    return service


def _run(coro: Any) -> ResolutionReport:
    try:
        return asyncio.run(coro)
    except InvalidIdentifierError as exc:
        typer.echo(json.dumps({"error": str(exc)}, ensure_ascii=False), err=True)
        raise typer.Exit(code=EXIT_INVALID) from exc
    except ResolverConfigurationError as exc:
        typer.echo(json.dumps({"error": str(exc)}, ensure_ascii=False), err=True)
        raise typer.Exit(code=EXIT_INVALID) from exc


def _emit(report: ResolutionReport) -> None:
    typer.echo(json.dumps(report.to_payload(), ensure_ascii=False, indent=2))
    if not report.found:
        raise typer.Exit(code=EXIT_NOT_FOUND)


@providers_app.command("list")
def providers_list(
    ctx: typer.Context,
    capability: Optional[str] = typer.Option(None, "--capability", "-c", help="Filter by capability (doi, isbn, summarize, pmid, ieee, youtube, video_enrich)."),
) -> None:
    """List registered providers in chain order."""

    registry = _require_registry(ctx)
    entries = registry.list(capability=_parse_capability(capability))
    if not entries:
        typer.echo("No providers match the requested filters.")
        raise typer.Exit(code=0)

    header = f"{'ID':<18} {'Capability':<12} {'Priority':<8} {'Status':<9} Description"
    typer.echo(header)
    typer.echo("-" * len(header))
    for entry in entries:
        descr = entry.description.replace("\n", " ")
        typer.echo(f"{entry.provider_id:<18} {entry.capability.value:<12} {entry.priority:<8} {entry.status.value:<9} {descr}")


@providers_app.command("describe")
def providers_describe(
    ctx: typer.Context,
    provider_id: str = typer.Argument(..., help="Identifier of the provider."),
    output_json: bool = typer.Option(False, "--json", help="Emit descriptor in JSON format."),
) -> None:
    """Show detailed metadata for a specific provider."""

    registry = _require_registry(ctx)
    descriptor = registry.get(provider_id)
    if not descriptor:
        typer.echo(f"Provider '{provider_id}' is not registered.", err=True)
        raise typer.Exit(code=1)

    if output_json:
        typer.echo(descriptor.to_json())
        return

    typer.echo(f"ID: {descriptor.provider_id}")
    typer.echo(f"Name: {descriptor.name}")
    typer.echo(f"Capability: {descriptor.capability.value}")
    typer.echo(f"Priority: {descriptor.priority}")
    typer.echo(f"Status: {descriptor.status.value}")
    typer.echo(f"Credentials: {descriptor.credential_family or 'none'}")
    if descriptor.base_url:
        typer.echo(f"Base URL: {descriptor.base_url}")
    if descriptor.model:
        typer.echo(f"Model: {descriptor.model}")
    if descriptor.description:
        typer.echo(f"Description: {descriptor.description}")


@cite_app.command("doi")
def cite_doi(
    ctx: typer.Context,
    doi: str = typer.Argument(..., help="DOI, with or without a doi.org prefix."),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Caller-supplied key; used only by providers whose key format it matches."),
) -> None:
    """Resolve article metadata for a DOI."""

    service = _require_service(ctx)
    _emit(_run(service.cite_doi(doi, override=api_key)))


@cite_app.command("isbn")
def cite_isbn(
    ctx: typer.Context,
    isbn: str = typer.Argument(..., help="ISBN-10 or ISBN-13; hyphens and spaces are ignored."),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Caller-supplied key; used only by providers whose key format it matches."),
) -> None:
    """Resolve book metadata for an ISBN."""

    service = _require_service(ctx)
    _emit(_run(service.cite_isbn(isbn, override=api_key)))


@cite_app.command("url")
def cite_url(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Publisher, preprint, or doi.org URL."),
) -> None:
    """Derive a DOI from a publisher URL and resolve it."""

    service = _require_service(ctx)
    _emit(_run(service.cite_url(url)))


@cite_app.command("youtube")
def cite_youtube(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="youtube.com or youtu.be link, or a bare 11-character video id."),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Caller-supplied key; used only by providers whose key format it matches."),
) -> None:
    """Resolve video metadata for a YouTube link."""

    service = _require_service(ctx)
    _emit(_run(service.cite_youtube(url, override=api_key)))


@app.command("summarize")
def summarize(
    ctx: typer.Context,
    text: Optional[str] = typer.Argument(None, help="Text to summarize. Use --file to read it from disk instead."),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the text from a UTF-8 file.", dir_okay=False),
    style: SummaryStyle = typer.Option(SummaryStyle.RESEARCH, "--style", help="Summary style.", case_sensitive=False),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Caller-supplied key; used only by providers whose key format it matches."),
) -> None:
    """Summarize text through the LLM fallback chain."""

    if file is not None:
        if text:
            raise typer.BadParameter("Provide either TEXT or --file, not both.")
        if not file.is_file():
            raise typer.BadParameter(f"File '{file}' does not exist.")
        try:
            text = file.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise typer.BadParameter(f"Failed to decode file '{file}': {exc}") from exc

    service = _require_service(ctx)
    _emit(_run(service.summarize(text or "", style=style, override=api_key)))


def run() -> None:  # pragma: no cover - console entry point
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
