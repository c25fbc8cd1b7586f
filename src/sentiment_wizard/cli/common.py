"""Shared helpers for CLI commands: component wiring and rendering."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from sentiment_wizard.config import Settings, settings
from sentiment_wizard.export import summarize
from sentiment_wizard.logging_config import configure_logging
from sentiment_wizard.models.analysis_models import AnalysisResult, PipelineState
from sentiment_wizard.models.enums import InstallPhase, Sentiment
from sentiment_wizard.models.runtime_models import InstallationState
from sentiment_wizard.monitoring.metrics import start_metrics_server
from sentiment_wizard.preferences import Preferences
from sentiment_wizard.runtime.manager import InferenceRuntimeManager

console = Console()


def bootstrap(app_settings: Optional[Settings] = None) -> Settings:
    """Configure logging (and the metrics endpoint, if enabled) and return the settings in use."""
    app_settings = app_settings or settings
    configure_logging(app_settings.LOG_LEVEL, app_settings.ENVIRONMENT, app_settings.LOG_FILE)
    if app_settings.PROMETHEUS_ENABLED and app_settings.METRICS_PORT:
        start_metrics_server(app_settings.METRICS_PORT)
    return app_settings


def load_preferences(app_settings: Settings) -> Preferences:
    return Preferences(app_settings.PREFERENCES_PATH)


async def ensure_runtime(manager: InferenceRuntimeManager, assume_yes: bool = False) -> InstallationState:
    """
    Run ensure_ready, echoing status changes and answering the
    package-manager consent gate interactively.
    """
    last_message = ""

    def on_state(state: InstallationState) -> None:
        nonlocal last_message
        if state.status_message and state.status_message != last_message:
            last_message = state.status_message
            console.print(f"[dim]{state.status_message}[/dim]")

    unsubscribe = manager.state.subscribe(on_state)
    try:
        state = await manager.ensure_ready()
        if state.phase == InstallPhase.AWAITING_USER_DECISION:
            accept = assume_yes or await asyncio.to_thread(
                typer.confirm, state.status_message, default=True
            )
            state = await manager.resolve_package_manager_decision(accept)
    finally:
        unsubscribe()
    return state


def report_runtime(state: InstallationState) -> None:
    if state.phase == InstallPhase.READY:
        console.print(f"[green]✓[/green] {state.status_message}")
        if state.available_models:
            console.print("Models: " + ", ".join(sorted(state.available_models)))
        else:
            console.print("[yellow]No models found. Pull one with 'sentiment-wizard pull NAME'.[/yellow]")
    elif state.last_error is not None:
        console.print(f"[red]✗ {state.last_error.message}[/red]")


def make_progress() -> Progress:
    return Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    )


_SENTIMENT_STYLES = {
    Sentiment.POSITIVE: "green",
    Sentiment.NEGATIVE: "red",
    Sentiment.MIXED: "dark_orange",
    Sentiment.NEUTRAL: "grey62",
}


def render_summary(results: tuple[AnalysisResult, ...]) -> Table:
    summary = summarize(results)
    table = Table(title=f"Sentiment summary ({summary.total} comments)")
    table.add_column("Sentiment")
    table.add_column("Count", justify="right")
    table.add_column("Share", justify="right")
    for sentiment in Sentiment:
        style = _SENTIMENT_STYLES[sentiment]
        table.add_row(
            f"[{style}]{sentiment.label}[/{style}]",
            str(summary.count(sentiment)),
            f"{int(summary.percentage(sentiment) * 100)}%",
        )
    return table


async def run_with_progress(pipeline, start) -> PipelineState:
    """
    Start a run through the given coroutine and render live progress.
    
    Ctrl-C cancels the run cooperatively and keeps the partial results.
    """
    with make_progress() as progress:
        task_id = progress.add_task("Analyzing", total=1.0)
        
        def on_state(state: PipelineState) -> None:
            progress.update(task_id, completed=state.progress, description=state.status_message)
        
        unsubscribe = pipeline.state.subscribe(on_state)
        try:
            await start
            try:
                return await pipeline.wait()
            except asyncio.CancelledError:
                pipeline.cancel()
                return await pipeline.wait()
        finally:
            unsubscribe()
