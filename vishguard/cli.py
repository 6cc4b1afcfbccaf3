"""Command-line interface for vishguard."""

import asyncio
import json
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vishguard.config import Settings, configure_logging, get_settings
from vishguard.errors import PipelineFailure
from vishguard.models import InputHandle, RiskLabel, Verdict
from vishguard.pipeline import create_orchestrator

app = typer.Typer(
    name="vishguard",
    help="vishguard - Screen call recordings for voice phishing",
    add_completion=False,
)
console = Console()

RISK_STYLES = {
    RiskLabel.LOW: "green",
    RiskLabel.MEDIUM: "yellow",
    RiskLabel.HIGH: "bold red",
}


async def _process_files(settings: Settings, paths: list[Path], timeout: float | None) -> list:
    async with create_orchestrator(settings) as orchestrator:
        results = []
        for path in paths:
            try:
                results.append(await orchestrator.process(InputHandle.from_path(path), timeout))
            except PipelineFailure as e:
                results.append(e)
        return results


@app.command()
def analyze(
    audio_paths: list[Path] = typer.Argument(
        ...,
        help="Audio file(s) to screen",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    base_url: str = typer.Option(
        None,
        "--base-url",
        help="Base URL of the transcription/analysis service (overrides VISHGUARD_BASE_URL)",
    ),
    timeout: float = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Overall deadline per file in seconds",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print verdicts as JSON instead of a summary",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Transcribe recordings and score them for phishing risk."""
    settings = get_settings()
    if base_url:
        settings = settings.model_copy(update={"base_url": base_url})

    configure_logging("DEBUG" if verbose else "WARNING", settings.log_json)

    results = asyncio.run(_process_files(settings, audio_paths, timeout))

    failed = False
    for path, result in zip(audio_paths, results):
        if isinstance(result, PipelineFailure):
            failed = True
            if as_json:
                console.print_json(json.dumps({"file": str(path), **result.to_dict()}))
            else:
                hint = "try again later" if result.retryable else "not retryable"
                console.print(f"[red]Error:[/red] {path.name}: {result.message} [dim]({hint})[/dim]")
            continue

        if as_json:
            console.print_json(json.dumps({"file": str(path), **result.model_dump(mode="json")}))
        else:
            _display_verdict(path, result)

    if failed:
        sys.exit(1)


@app.command()
def info() -> None:
    """Display system information and configuration."""
    from vishguard import __version__

    settings = get_settings()

    console.print(Panel.fit("[bold blue]vishguard[/bold blue]", border_style="blue"))

    table = Table(show_header=False, box=None)
    table.add_column("Setting", style="dim")
    table.add_column("Value")

    low, high = settings.risk_band_thresholds
    table.add_row("Version", __version__)
    table.add_row("Service URL", settings.base_url)
    table.add_row("Call Timeout", f"{settings.call_timeout_seconds}s")
    table.add_row("Max Retries", str(settings.max_retries))
    table.add_row("Positive Labels", ", ".join(sorted(settings.positive_class_labels)))
    table.add_row("Risk Bands", f"low < {low} <= medium < {high} <= high")
    table.add_row("Max Text Length", f"{settings.max_text_length} chars")
    table.add_row("Cache Capacity", str(settings.cache_capacity))
    table.add_row("Staging Dir", str(settings.staging_dir))

    console.print(table)


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port"),
) -> None:
    """Run the HTTP API."""
    from vishguard.api.main import run

    settings = get_settings()
    updates = {key: value for key, value in {"api_host": host, "api_port": port}.items() if value}
    run(settings.model_copy(update=updates) if updates else settings)


def _display_verdict(path: Path, verdict: Verdict) -> None:
    """Display one verdict.

    Args:
        path: The screened file.
        verdict: Its verdict.
    """
    style = RISK_STYLES[verdict.risk_label]

    console.print(f"\n[bold]{path.name}[/bold]")
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Risk", f"[{style}]{verdict.risk_label.value.upper()}[/{style}] ({verdict.risk_score:.2f})")
    table.add_row("Source", verdict.source.value)
    table.add_row("Fingerprint", verdict.fingerprint[:16])
    console.print(table)

    if verdict.transcribed_text:
        preview = verdict.transcribed_text
        if len(preview) > 300:
            preview = preview[:300] + "..."
        console.print(Panel(preview, title="Transcript", border_style="dim"))

    for warning in verdict.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


if __name__ == "__main__":
    app()
