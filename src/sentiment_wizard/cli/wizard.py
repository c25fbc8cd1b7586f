"""Interactive wizard: walks the stages with FlowController."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.rule import Rule

from sentiment_wizard.cli.analyze import render_preview
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
from sentiment_wizard.flow import FlowController
from sentiment_wizard.models.enums import DownloadState, Sentiment
from sentiment_wizard.pipeline.classification import ClassificationPipeline
from sentiment_wizard.runtime.manager import InferenceRuntimeManager
from sentiment_wizard.tabular.exceptions import TabularReadError
from sentiment_wizard.tabular.reader import TabularReader
from sentiment_wizard.tabular.selection import FileSelection

BACK = "<"


async def _ask(text: str, default: Optional[str] = None) -> str:
    return await asyncio.to_thread(typer.prompt, text, default=default)


async def _confirm(text: str, default: bool = True) -> bool:
    return await asyncio.to_thread(typer.confirm, text, default=default)


class WizardSession:
    """Holds the components for one interactive session and renders each stage."""
    
    def __init__(self, assume_yes: bool = False):
        self.settings = bootstrap()
        self.preferences = load_preferences(self.settings)
        self.manager = InferenceRuntimeManager(self.settings)
        self.pipeline = ClassificationPipeline(self.manager.client)
        self.selection = FileSelection(TabularReader(self.settings.PREVIEW_ROWS), self.preferences)
        self.flow = FlowController(lambda: self.manager.is_ready)
        self.flow.add_reset_hook(self.pipeline.reset)
        self.flow.add_reset_hook(self.selection.clear)
        self.assume_yes = assume_yes
        self.model_id = self.preferences.get("last_model") or self.settings.DEFAULT_MODEL
        self.context: Optional[str] = None
    
    async def _corrections(self) -> None:
        results = self.pipeline.state.value.results
        if not results or not await _confirm("Review individual results?", default=False):
            return
        for position, result in enumerate(results, start=1):
            console.print(f"{position}. {result.sentiment.label}: {escape(result.text)}")
        choices = "/".join(s.value for s in Sentiment)
        while True:
            answer = await _ask(f"Row to correct as NUMBER {choices} (blank to finish)", default="")
            if not answer.strip():
                break
            number, _, label = answer.strip().partition(" ")
            try:
                position = int(number) - 1
                if position < 0:
                    raise IndexError(position)
                corrected = self.pipeline.correct_result(position, Sentiment(label.strip().lower()))
            except (ValueError, IndexError):
                console.print("[red]✗ Expected a row number and a sentiment, e.g. 3 negative[/red]")
                continue
            console.print(f"Row {number} is now {corrected.sentiment.label}")
        console.print(render_summary(self.pipeline.state.value.results))
    
    def _prompt(self, text: str) -> str:
        return f"{text} (or {BACK} to go back)" if self.flow.can_go_back() else text
    
    def _header(self) -> None:
        stage = self.flow.stage
        index = FlowController.step_index(stage)
        titles = [
            f"[bold]{title}[/bold]" if i == index else title
            for i, title in enumerate(self.flow.steps)
        ]
        console.print(Rule(" > ".join(titles)))
    
    async def run(self) -> None:
        await self.selection.restore()
        try:
            while True:
                self._header()
                handler = getattr(self, f"_stage_{self.flow.stage.value}")
                if await handler() is False:
                    return
        finally:
            await self.pipeline.aclose()
            await self.manager.aclose()
    
    # === Stages ===
    
    async def _stage_welcome(self) -> bool:
        console.print(f"[bold]{self.settings.APP_NAME}[/bold] {self.settings.APP_VERSION}")
        console.print("Classify the sentiment of comments in a CSV or XLSX file with a local model.")
        if not await _confirm("Get started?"):
            return False
        self.flow.advance()
        return True
    
    async def _stage_runtime_setup(self) -> bool:
        state = await ensure_runtime(self.manager, assume_yes=self.assume_yes)
        report_runtime(state)
        if not state.is_ready:
            return await _confirm("Retry?")
        self.flow.advance()
        return True
    
    async def _stage_model_selection(self) -> bool:
        available = sorted(await self.manager.list_models())
        if available:
            console.print("Installed models: " + ", ".join(available))
        answer = await _ask(self._prompt("Model"), default=self.model_id)
        if answer == BACK:
            self.flow.back()
            return True
        if answer not in available:
            if not await _confirm(f"{answer} is not installed. Download it now?"):
                return True
            result = await self.manager.download_model(answer)
            console.print(result.status_message)
            if result.state != DownloadState.SUCCEEDED:
                return True
            await self.manager.refresh_models()
        self.model_id = answer
        self.preferences.set("last_model", answer)
        self.flow.advance()
        return True
    
    async def _stage_file_import(self) -> bool:
        current = self.selection.state.value
        default = str(current.file_path) if current.file_path else None
        answer = await _ask(self._prompt("CSV or XLSX file"), default=default)
        if answer == BACK:
            self.flow.back()
            return True
        try:
            dataset = await self.selection.import_file(Path(answer).expanduser())
        except TabularReadError as e:
            console.print(f"[red]✗ {e.message}[/red]")
            return True
        console.print(render_preview(dataset))
        self.flow.advance()
        return True
    
    async def _stage_column_selection(self) -> bool:
        current = self.selection.state.value
        columns = current.dataset.columns
        console.print("Columns: " + ", ".join(columns))
        answer = await _ask(self._prompt("Column with comments"), default=current.selected_column)
        if answer == BACK:
            self.flow.back()
            return True
        try:
            self.selection.select_column(answer)
        except ValueError as e:
            console.print(f"[red]✗ {e}[/red]")
            return True
        context = await _ask("Additional context (optional)", default="")
        self.context = context or None
        self.flow.advance()
        return True
    
    async def _stage_analysis_progress(self) -> bool:
        current = self.selection.state.value
        final = await run_with_progress(
            self.pipeline,
            self.pipeline.start_from_file(
                self.selection.reader,
                current.file_path,
                current.column_index,
                self.model_id,
                self.context,
            ),
        )
        console.print(final.status_message)
        self.flow.advance()
        return True
    
    async def _stage_results_summary(self) -> bool:
        console.print(render_summary(self.pipeline.state.value.results))
        await self._corrections()
        results = self.pipeline.state.value.results
        if results and await _confirm("Export results to CSV?", default=False):
            target = await _ask("Save as", default="sentiment_results.csv")
            export_results(results, Path(target).expanduser())
            console.print(f"Results written to {target}")
        if await _confirm("Start a new analysis?", default=False):
            self.flow.reset()
            return True
        return False


def wizard(
    yes: bool = typer.Option(False, "--yes", "-y", help="Accept package-manager install"),
) -> None:
    """
    Step through setup, model, file and column choice interactively.
    """
    asyncio.run(WizardSession(assume_yes=yes).run())
