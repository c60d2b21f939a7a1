"""Typer CLI entry point for media-summarizer."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import pydantic
import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from media_summarizer import __version__
from media_summarizer.chunking import transcript_duration_seconds
from media_summarizer.config import Settings, format_validation_error
from media_summarizer.logging import configure_logging
from media_summarizer.manager import ProviderManager
from media_summarizer.models import ProviderType, TranscriptLine, VideoMetadata
from media_summarizer.timestamps import allowed_seconds_from_lines, validate_timestamps

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="media-summarizer",
    help="Summarize and clean up video transcripts with OpenAI, OpenRouter, or Ollama.",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config YAML file."),
]
ProviderOption = Annotated[
    ProviderType | None,
    typer.Option("--provider", "-p", help="Override the configured provider."),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_settings(
    config_path: Path | None = None,
    **overrides: Any,
) -> Settings:
    """Load settings with error handling and user-friendly messages."""
    try:
        return Settings.load(config_path=config_path, **overrides)
    except pydantic.ValidationError as exc:
        err_console.print(
            Panel(
                format_validation_error(exc),
                title="Configuration Error",
                border_style="red",
            )
        )
        raise typer.Exit(code=1) from exc


def _build_manager(
    config_path: Path | None,
    provider: ProviderType | None = None,
    verbose: bool = False,
) -> ProviderManager:
    overrides: dict[str, Any] = {}
    if provider is not None:
        overrides["current_provider"] = provider
    settings = _load_settings(config_path, **overrides)

    level = "DEBUG" if verbose else settings.logging.level
    configure_logging(level, settings.logging.format, settings.logging.file)
    logger.debug("cli_settings_loaded", provider=settings.current_provider.value)
    return ProviderManager(settings)


def _read_transcript(path: Path) -> str | list[TranscriptLine]:
    """Read a transcript file.

    ``.json`` files hold a list of ``{text, offset, duration}`` lines with
    offsets in milliseconds; anything else is read as plain text.
    """
    if not path.exists():
        err_console.print(f"[red]Transcript not found:[/red] {path}")
        raise typer.Exit(code=1)

    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() != ".json":
        return raw

    try:
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError("expected a JSON list of transcript lines")
        return [TranscriptLine.model_validate(item) for item in items]
    except (ValueError, pydantic.ValidationError) as exc:
        err_console.print(f"[red]Invalid transcript file {path}:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


def _emit(result: str, output: Path | None) -> None:
    """Print or save an operation result; ``Error:`` results exit non-zero."""
    if result.startswith("Error:"):
        err_console.print(f"[red]{escape(result)}[/red]")
        raise typer.Exit(code=1)

    if output is not None:
        output.write_text(result, encoding="utf-8")
        console.print(f"[green]Saved:[/green] {output}")
    else:
        console.print(result, markup=False, highlight=False)


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]media-summarizer[/bold] {__version__}")
        raise typer.Exit


@app.callback()
def common(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Media-summarizer global options."""


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def status(config: ConfigOption = None) -> None:
    """Show which providers are configured and reachable."""
    manager = _build_manager(config)
    statuses = asyncio.run(manager.get_provider_status())

    table = Table(title="Provider Status", show_lines=True)
    table.add_column("Provider", style="cyan")
    table.add_column("Available", justify="center")
    table.add_column("Connected", justify="center")
    table.add_column("Notes")

    for provider_type, entry in statuses.items():
        marker = " (current)" if provider_type == manager.current_provider_type else ""
        if entry.connected is None:
            connected = "[dim]-[/dim]"
        elif entry.connected:
            connected = "[green]yes[/green]"
        else:
            connected = "[red]no[/red]"

        table.add_row(
            f"{provider_type.value}{marker}",
            "[green]yes[/green]" if entry.available else "[red]no[/red]",
            connected,
            escape(entry.error or ""),
        )
    console.print(table)


@app.command()
def models(
    provider: ProviderOption = None,
    config: ConfigOption = None,
) -> None:
    """List the models a provider offers."""
    manager = _build_manager(config, provider)
    target = provider or manager.current_provider_type
    if manager.get_provider(target) is None:
        err_console.print(f"[red]Provider {target.value} is not configured.[/red]")
        raise typer.Exit(code=1)

    names = asyncio.run(manager.get_available_models(target))
    if not names:
        console.print(f"[yellow]No models available for {target.value}.[/yellow]")
        return
    for name in names:
        console.print(name)


@app.command()
def summarize(
    transcript: Annotated[
        Path, typer.Argument(help="Transcript file: plain text or JSON lines list.")
    ],
    title: Annotated[str | None, typer.Option("--title", help="Video title.")] = None,
    channel: Annotated[
        str | None, typer.Option("--channel", help="Channel name.")
    ] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="Video description.")
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the summary here.")
    ] = None,
    provider: ProviderOption = None,
    config: ConfigOption = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")
    ] = False,
) -> None:
    """Summarize a video transcript."""
    manager = _build_manager(config, provider, verbose)
    content = _read_transcript(transcript)
    metadata = VideoMetadata(title=title, channel=channel, description=description)
    result = asyncio.run(manager.summarize_transcript(content, metadata))
    _emit(result, output)


@app.command()
def enhance(
    transcript: Annotated[
        Path, typer.Argument(help="Transcript file: plain text or JSON lines list.")
    ],
    title: Annotated[str | None, typer.Option("--title", help="Video title.")] = None,
    channel: Annotated[
        str | None, typer.Option("--channel", help="Channel name.")
    ] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="Video description.")
    ] = None,
    duration: Annotated[
        int | None,
        typer.Option("--duration", help="Video duration in seconds (plain text input)."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the enhanced transcript here."),
    ] = None,
    provider: ProviderOption = None,
    config: ConfigOption = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")
    ] = False,
) -> None:
    """Reformat a transcript into readable paragraphs with timestamps."""
    manager = _build_manager(config, provider, verbose)
    content = _read_transcript(transcript)
    metadata = VideoMetadata(
        title=title,
        channel=channel,
        description=description,
        duration_seconds=duration,
    )
    result = asyncio.run(manager.enhance_transcript(content, metadata))
    _emit(result, output)


@app.command(name="check-timestamps")
def check_timestamps(
    document: Annotated[
        Path, typer.Argument(help="Enhanced transcript to check.")
    ],
    duration: Annotated[
        int | None,
        typer.Option("--duration", help="Video duration in seconds."),
    ] = None,
    source: Annotated[
        Path | None,
        typer.Option(
            "--source",
            help="JSON transcript the document was made from; also checks "
            "that every marker matches an input line.",
        ),
    ] = None,
) -> None:
    """Check the [MM:SS] markers of an enhanced transcript."""
    if not document.exists():
        err_console.print(f"[red]Document not found:[/red] {document}")
        raise typer.Exit(code=1)

    allowed: set[int] | None = None
    if source is not None:
        lines = _read_transcript(source)
        if isinstance(lines, str):
            err_console.print("[red]--source must be a JSON transcript.[/red]")
            raise typer.Exit(code=1)
        allowed = allowed_seconds_from_lines(lines)
        if duration is None:
            duration = transcript_duration_seconds(lines)

    if duration is None:
        err_console.print("[red]Provide --duration or a --source transcript.[/red]")
        raise typer.Exit(code=1)

    report = validate_timestamps(
        document.read_text(encoding="utf-8"), duration, allowed
    )

    table = Table(title="Timestamp Check")
    table.add_column("Check", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Markers")
    table.add_row("Found", str(len(report.found)), "")
    table.add_row(
        "Past duration", str(len(report.out_of_range)), ", ".join(report.out_of_range)
    )
    if allowed is not None:
        table.add_row("Not in source", str(len(report.unknown)), ", ".join(report.unknown))
    console.print(table)

    if not report.valid:
        raise typer.Exit(code=1)
    console.print("[green]All timestamps valid.[/green]")


def main() -> None:
    """Main entry point for the CLI."""
    app()
