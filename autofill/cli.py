"""CLI commands using Typer."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from autofill.config import settings
from autofill.dom.document import FormDocument
from autofill.errors import AutofillError
from autofill.integrations.claude.client import ResilientApiClient
from autofill.integrations.langfuse.tracing import TracingState, flush_langfuse, init_langfuse
from autofill.models import FillResult
from autofill.orchestrator import Orchestrator
from autofill.progress import ProgressEvent, ProgressStage
from autofill.storage import SettingsStorageProvider, StaticStorageProvider

app = typer.Typer(
    name="autofill",
    help="AI-powered job application form autofill",
    add_completion=False,
)

console = Console()


def read_file(path: Path) -> str:
    """Read file content with encoding handling."""
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return path.read_text(encoding="latin-1")


def load_document(path: Path, url: str) -> FormDocument:
    if not path.exists():
        console.print(f"[red]Error:[/red] Page file not found: {path}")
        raise typer.Exit(1)
    return FormDocument(read_file(path), url=url)


def build_orchestrator(api_key: str | None) -> Orchestrator:
    """Wire the pipeline with console progress reporting."""
    client = ResilientApiClient()

    async def show_progress(event: ProgressEvent) -> None:
        if event.stage == ProgressStage.WAITING:
            console.print(
                f"[yellow]Attempt {event.attempt}/{event.max_attempts} failed "
                f"({event.reason}), retrying in {event.wait_ms / 1000:.1f}s[/yellow]"
            )

    client.progress.register(show_progress)
    storage = StaticStorageProvider(api_key) if api_key else SettingsStorageProvider()
    return Orchestrator(api_client=client, storage=storage)


def print_fill_result(result: FillResult) -> None:
    table = Table(title="Fill Result")
    table.add_column("Field")
    table.add_column("Outcome")
    table.add_column("Detail")

    for item in result.filled:
        table.add_row(item.field_id, "[green]filled[/green]", str(item.value)[:50])
    for item in result.skipped:
        table.add_row(item.field_id, "[yellow]skipped[/yellow]", item.reason)
    for item in result.errors:
        table.add_row(item.field_id, "[red]error[/red]", item.error)

    console.print(table)
    console.print(
        f"\n[bold]{len(result.filled)}[/bold] filled, [bold]{len(result.skipped)}[/bold] skipped, "
        f"[bold]{len(result.errors)}[/bold] errors"
    )


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def analyze(
    page: Annotated[Path, typer.Argument(help="Saved HTML page with the application form")],
    url: Annotated[str, typer.Option("--url", help="URL the page was loaded from")] = "",
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw extraction JSON")] = False,
):
    """
    Extract the fillable fields of a saved application page.

    Example:
        autofill analyze ./application.html --json
    """
    document = load_document(page, url)
    orchestrator = build_orchestrator(None)

    try:
        form_data = asyncio.run(orchestrator.analyze(document))
    except AutofillError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(form_data.to_wire()))
        return

    table = Table(title=form_data.job_posting.title or "Form Fields")
    table.add_column("ID")
    table.add_column("Type")
    table.add_column("Label")
    table.add_column("Required")
    table.add_column("Options")
    for field in form_data.fields:
        table.add_row(
            field.id,
            field.kind.value,
            field.label,
            "yes" if field.required else "",
            ", ".join(field.options or []),
        )
    console.print(table)


@app.command()
def fill(
    page: Annotated[Path, typer.Argument(help="Saved HTML page with the application form")],
    profile_path: Annotated[Path, typer.Option("--profile", "-p", help="Profile JSON file")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Where to write the filled page")
    ] = None,
    url: Annotated[str, typer.Option("--url", help="URL the page was loaded from")] = "",
    api_key: Annotated[
        str | None, typer.Option("--api-key", envvar="ANTHROPIC_API_KEY", help="Claude API key")
    ] = None,
):
    """
    Analyze a page, generate values with Claude and fill the form.

    Example:
        autofill fill ./application.html --profile ./profile.json -o ./filled.html
    """
    document = load_document(page, url)
    if not profile_path.exists():
        console.print(f"[red]Error:[/red] Profile file not found: {profile_path}")
        raise typer.Exit(1)

    try:
        profile = json.loads(read_file(profile_path))
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] Profile is not valid JSON: {e}")
        raise typer.Exit(1)

    tracing = init_langfuse()
    tracing_style = "green" if tracing == TracingState.ENABLED else "dim"
    console.print(
        Panel(
            f"[bold]Filling application form[/bold]\n\n"
            f"Page: {page}\n"
            f"Profile: {profile_path}\n"
            f"Model: {settings.claude_model}\n"
            f"Tracing: [{tracing_style}]{tracing.value}[/{tracing_style}]",
            title="Autofill",
        )
    )

    orchestrator = build_orchestrator(api_key)

    async def run_fill():
        async with orchestrator:
            return await orchestrator.run(document, profile)

    try:
        run = asyncio.run(run_fill())
    except AutofillError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        flush_langfuse()

    print_fill_result(run.result)

    if output:
        output.write_text(document.to_html(), encoding="utf-8")
        console.print(f"\n[green]Filled page saved to:[/green] {output}")


@app.command()
def validate_key(
    api_key: Annotated[
        str | None, typer.Option("--api-key", envvar="ANTHROPIC_API_KEY", help="Claude API key")
    ] = None,
):
    """Check that an Anthropic API key is accepted."""
    orchestrator = build_orchestrator(api_key)
    is_valid = asyncio.run(orchestrator.validate_api_key(api_key))

    if is_valid:
        console.print("[green]API key is valid[/green]")
    else:
        console.print("[red]API key is invalid[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
