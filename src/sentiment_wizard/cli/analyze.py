"""File commands: preview, analyze."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from sentiment_wizard.cli.common import (
    bootstrap,
    console,
    ensure_runtime,
    load_preferences,
    render_summary,
    report_runtime,
    run_with_progress,
)
from sentiment_wizard.export import export_results
from sentiment_wizard.models.analysis_models import PipelineState
from sentiment_wizard.models.dataset_models import ColumnarDataset
from sentiment_wizard.models.enums import RunStatus
from sentiment_wizard.pipeline.classification import ClassificationPipeline
from sentiment_wizard.runtime.manager import InferenceRuntimeManager
from sentiment_wizard.tabular.exceptions import TabularReadError
from sentiment_wizard.tabular.reader import TabularReader
from sentiment_wizard.tabular.selection import choose_initial_column


def render_preview(dataset: ColumnarDataset) -> Table:
    table = Table(title=dataset.file_name)
    for index, column in enumerate(dataset.columns):
        table.add_column(escape(f"{index}: {column}"))
    for row in dataset.preview_rows[1:]:
        cells = [escape(cell) for cell in row]
        table.add_row(*cells, *([""] * (len(dataset.columns) - len(cells))))
    return table


def read_dataset(reader: TabularReader, path: Path) -> ColumnarDataset:
    try:
        return reader.read_header_and_preview(path)
    except TabularReadError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(1)


def preview(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV or XLSX file"),
) -> None:
    """
    Show the columns and first rows of a file.
    """
    app_settings = bootstrap()
    dataset = read_dataset(TabularReader(app_settings.PREVIEW_ROWS), file)
    console.print(render_preview(dataset))


def analyze(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV or XLSX file"),
    column: Optional[str] = typer.Option(None, "--column", "-c", help="Header of the text column"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model to classify with"),
    context: Optional[str] = typer.Option(None, "--context", help="Extra context for every prompt"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write results as CSV"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Accept package-manager install"),
) -> None:
    """
    Classify every comment in a column and print the sentiment summary.
    """
    app_settings = bootstrap()
    preferences = load_preferences(app_settings)
    reader = TabularReader(app_settings.PREVIEW_ROWS)
    dataset = read_dataset(reader, file)

    if column is None:
        column = choose_initial_column(
            dataset, preferences.get("last_file_path"), preferences.get("last_column")
        )
    column_index = dataset.column_index(column) if column is not None else None
    if column_index is None:
        console.print(f"[red]✗ Choose a column with --column ({', '.join(dataset.columns)})[/red]")
        raise typer.Exit(1)

    model_id = model or preferences.get("last_model") or app_settings.DEFAULT_MODEL
    preferences.set("last_file_path", str(file))
    preferences.set("last_column", column)
    preferences.set("last_model", model_id)

    async def _run() -> Optional[PipelineState]:
        manager = InferenceRuntimeManager(app_settings)
        pipeline = ClassificationPipeline(manager.client)
        try:
            state = await ensure_runtime(manager, assume_yes=yes)
            if not state.is_ready:
                report_runtime(state)
                return None
            if model_id not in state.available_models:
                console.print(f"[yellow]Model {model_id} is not installed; results will be neutral.[/yellow]")
            return await run_with_progress(
                pipeline,
                pipeline.start_from_file(reader, file, column_index, model_id, context),
            )
        finally:
            await pipeline.aclose()
            await manager.aclose()

    final = asyncio.run(_run())
    if final is None:
        raise typer.Exit(1)

    console.print(final.status_message)
    console.print(render_summary(final.results))
    if output is not None and final.results:
        export_results(final.results, output)
        console.print(f"Results written to {output}")
    if final.status != RunStatus.COMPLETED:
        raise typer.Exit(1)
