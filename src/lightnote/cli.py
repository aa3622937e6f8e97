"""CLI interface for lightnote weekly digests."""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from lightnote.config import LightnoteConfig, load_config, merge_cli_overrides
from lightnote.errors import LLMError
from lightnote.formatter import DigestFormatter
from lightnote.insights import InsightStore, reflect_on_digest
from lightnote.llm import CompletionClient
from lightnote.pipeline import DigestRun, generate_digest
from lightnote.sentiment import SentimentService
from lightnote.store import JsonBlobStore, JsonEntryStore
from lightnote.weeks import (
    next_week_key,
    prev_week_key,
    week_key,
    week_range_from_key,
)

app = typer.Typer(
    name="lightnote",
    help="Weekly digests for your journal: mood, themes and tracked mentions.",
)

console = Console()

WeekOption = Annotated[
    Optional[str],
    typer.Option("--week", "-w", help="Week key (YYYY-Www). Defaults to the current week."),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to a .lightnote.toml config file."),
]
EntriesOption = Annotated[
    Optional[Path],
    typer.Option("--entries", "-e", help="Journal JSON export to read entries from."),
]
StoreOption = Annotated[
    Optional[Path],
    typer.Option("--store", help="Directory for caches and saved insights."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Enable debug logging and print the run summary."),
]
LLMUrlOption = Annotated[
    Optional[str],
    typer.Option("--llm-url", help="Completion endpoint URL (overrides config)."),
]
LLMModelOption = Annotated[
    Optional[str],
    typer.Option("--llm-model", help="Completion model (overrides config)."),
]
LLMTimeoutOption = Annotated[
    Optional[float],
    typer.Option("--llm-timeout", help="Completion timeout in seconds (overrides config)."),
]
TrackOption = Annotated[
    Optional[str],
    typer.Option("--track", help="Comma-separated entities to track (overrides config)."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from lightnote import __version__

        console.print(f"lightnote {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Lightnote - weekly insights from journal entries."""
    pass


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )


def _resolve_week(week: str | None) -> str:
    key = week or week_key(datetime.now())
    try:
        week_range_from_key(key)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        console.print("Use YYYY-Www format (e.g., 2025-W03)")
        raise typer.Exit(1)
    return key


def _load(
    config_path: Path | None,
    entries: Path | None,
    store: Path | None,
    **overrides: object,
) -> LightnoteConfig:
    config = load_config(config_path)
    return merge_cli_overrides(
        config,
        storage_directory=str(store) if store else None,
        entries_file=str(entries.resolve()) if entries else None,
        **overrides,
    )


def _run_digest(config: LightnoteConfig, key: str, use_llm: bool) -> DigestRun:
    client = CompletionClient(config.llm) if use_llm else None
    return asyncio.run(
        generate_digest(
            key,
            JsonEntryStore(config.storage.entries_path),
            JsonBlobStore(Path(config.storage.directory)),
            client=client,
            scorer=SentimentService(),
            config=config,
        )
    )


def _print_report(run: DigestRun, verbose: bool) -> None:
    if run.report.errors:
        console.print(
            f"[yellow]{run.report.error_count} recovered error(s); see --verbose.[/yellow]"
        )
    if verbose:
        console.print(run.report.summary_text(), markup=False, highlight=False)


@app.command(name="digest")
def digest_cmd(
    week: WeekOption = None,
    entries: EntriesOption = None,
    store: StoreOption = None,
    no_llm: Annotated[
        bool,
        typer.Option("--no-llm", help="Skip the completion service; use heuristic themes."),
    ] = False,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the digest as JSON."),
    ] = False,
    markdown: Annotated[
        bool,
        typer.Option("--markdown", help="Render the digest as markdown."),
    ] = False,
    save: Annotated[
        bool,
        typer.Option("--save", help="Save the rendered digest to insights."),
    ] = False,
    llm_url: LLMUrlOption = None,
    llm_model: LLMModelOption = None,
    llm_timeout: LLMTimeoutOption = None,
    track: TrackOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Generate the weekly digest for a week."""
    _setup_logging(verbose)
    key = _resolve_week(week)
    config = _load(
        config_path,
        entries,
        store,
        llm_url=llm_url,
        llm_model=llm_model,
        llm_timeout=llm_timeout,
        track=track,
    )

    run = _run_digest(config, key, use_llm=not no_llm)
    formatter = DigestFormatter()
    text = formatter.format_text(run.digest)

    if as_json:
        print(json.dumps(run.digest.model_dump(mode="json"), indent=2))
    elif markdown:
        print(formatter.format_markdown(run.digest))
    else:
        console.print(text, markup=False, highlight=False)

    if not as_json:
        _print_report(run, verbose)

    if save:
        insights = InsightStore(JsonBlobStore(Path(config.storage.directory)))
        saved = insights.save(key, text)
        if saved is None:
            console.print("[yellow]Nothing new to save.[/yellow]")
        else:
            console.print(f"[green]Saved to insights[/green] ({saved.id})")


@app.command(name="week")
def week_cmd(
    key: Annotated[
        Optional[str],
        typer.Argument(help="Week key (YYYY-Www). Defaults to the current week."),
    ] = None,
) -> None:
    """Show the date range and neighbours of a week key."""
    key = _resolve_week(key)
    week_range = week_range_from_key(key)
    console.print(f"Week: {key}")
    console.print(f"Start: {week_range.start:%Y-%m-%d}")
    console.print(f"End: {week_range.end:%Y-%m-%d} (exclusive)")
    console.print(f"Previous: {prev_week_key(key)}")
    console.print(f"Next: {next_week_key(key)}")


@app.command(name="insights")
def insights_cmd(
    store: StoreOption = None,
    clear: Annotated[
        bool,
        typer.Option("--clear", help="Delete all saved insights."),
    ] = False,
    delete: Annotated[
        Optional[str],
        typer.Option("--delete", help="Delete one insight by id."),
    ] = None,
    config_path: ConfigOption = None,
) -> None:
    """List saved insights, newest first."""
    config = _load(config_path, None, store)
    insights = InsightStore(JsonBlobStore(Path(config.storage.directory)))

    if clear:
        removed = insights.clear()
        console.print(f"Cleared {removed} insight(s).")
        return
    if delete:
        if not insights.delete(delete):
            console.print(f"[red]Error:[/red] No insight with id {escape(delete)}")
            raise typer.Exit(1)
        console.print("Insight deleted.")
        return

    items = insights.list()
    console.print(f"{len(items)} saved")
    for item in items:
        kind = " (AI Reflection)" if item.scope == "week-ai" else ""
        console.print(f"\n[bold]{item.week}{kind}[/bold]  {item.id}  {item.created_at:%Y-%m-%d %H:%M}")
        console.print(item.text, markup=False, highlight=False)


@app.command(name="reflect")
def reflect_cmd(
    week: WeekOption = None,
    entries: EntriesOption = None,
    store: StoreOption = None,
    llm_url: LLMUrlOption = None,
    llm_model: LLMModelOption = None,
    llm_timeout: LLMTimeoutOption = None,
    track: TrackOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Ask the completion service to reflect on a week's digest."""
    _setup_logging(verbose)
    key = _resolve_week(week)
    config = _load(
        config_path,
        entries,
        store,
        llm_url=llm_url,
        llm_model=llm_model,
        llm_timeout=llm_timeout,
        track=track,
    )

    run = _run_digest(config, key, use_llm=True)
    if verbose:
        _print_report(run, verbose)
    if run.digest.empty:
        console.print(run.digest.message)
        raise typer.Exit(0)

    text = DigestFormatter().format_text(run.digest)
    try:
        reply = asyncio.run(reflect_on_digest(CompletionClient(config.llm), text))
    except LLMError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    console.print(reply, markup=False, highlight=False)
    insights = InsightStore(JsonBlobStore(Path(config.storage.directory)))
    if insights.save(key, reply, scope="week-ai") is not None:
        console.print("[green]Saved reflection to insights.[/green]")


if __name__ == "__main__":
    app()
