"""
Sequential, cancellable sentiment classification.

One request per comment, in input order, never more than one in flight.
Progress and results are published through an Observable[PipelineState]
from the event loop; a run that has been superseded or reset can still
finish its in-flight request, but nothing it produces is published.
"""

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import structlog

from sentiment_wizard.llm.exceptions import LLMClientError
from sentiment_wizard.llm.ollama_client import OllamaClient
from sentiment_wizard.llm.prompt_builder import PromptBuilder
from sentiment_wizard.models.analysis_models import AnalysisItem, AnalysisResult, PipelineState
from sentiment_wizard.models.enums import RunStatus, Sentiment
from sentiment_wizard.monitoring.metrics import (
    classification_fallbacks_total,
    sentiment_classifications_total,
)
from sentiment_wizard.observable import Observable
from sentiment_wizard.pipeline.sentiment import match_sentiment
from sentiment_wizard.tabular.reader import TabularReader


logger = structlog.get_logger(__name__)


class CancellationToken:
    """Cooperative cancellation flag checked by the request loop."""
    
    def __init__(self) -> None:
        self._cancelled = False
    
    def cancel(self) -> None:
        self._cancelled = True
    
    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class _Run:
    run_id: str
    items: tuple[AnalysisItem, ...]
    model_id: str
    extra_context: Optional[str]
    token: CancellationToken
    settled: bool = False


class ClassificationPipeline:
    """
    Runs classification over an ordered list of comments.
    
    Single-flight: start() cancels and awaits the previous run before the
    new one begins, so results of two runs never interleave. Every publish
    is checked against the current run_id; stale runs are silently dropped.
    
    Per-item failures (network errors, malformed replies, replies without a
    sentiment keyword) become NEUTRAL and are never surfaced.
    """
    
    def __init__(
        self,
        client: OllamaClient,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        self.client = client
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.state: Observable[PipelineState] = Observable(PipelineState(), name="PipelineState")
        self._run: Optional[_Run] = None
        self._task: Optional[asyncio.Task] = None
        # Bumped by start()/reset(); lets an overtaken start detect it lost
        self._generation = 0
    
    # === Public API ===
    
    async def start(
        self,
        items: Sequence[Union[str, AnalysisItem]],
        model_id: str,
        extra_context: Optional[str] = None,
        source_name: str = "",
    ) -> Optional[str]:
        """
        Begin a new run, superseding any prior one.
        
        Args:
            items: Comment strings (indexed by position) or AnalysisItems
            model_id: Model to classify with
            extra_context: Optional free-text context added to every prompt
            source_name: File name shown alongside progress
            
        Returns:
            The new run_id, or None if a later start() or reset() took over
            while the previous run was winding down
        """
        self._generation += 1
        generation = self._generation
        await self._supersede()
        if generation != self._generation:
            logger.info("Start superseded by a newer call")
            return None
        
        analysis_items = tuple(
            item if isinstance(item, AnalysisItem) else AnalysisItem(index=i, text=item)
            for i, item in enumerate(items)
        )
        run = _Run(
            run_id=uuid.uuid4().hex,
            items=analysis_items,
            model_id=model_id,
            extra_context=extra_context,
            token=CancellationToken(),
        )
        self._run = run
        
        total = len(analysis_items)
        logger.info("Starting classification run", run_id=run.run_id, model=model_id, items=total)
        
        if total == 0:
            run.settled = True
            self.state.reset(PipelineState(
                run_id=run.run_id,
                status=RunStatus.COMPLETED,
                model_id=model_id,
                source_name=source_name,
                status_message="No comments to analyze.",
            ))
            return run.run_id
        
        self.state.reset(PipelineState(
            run_id=run.run_id,
            status=RunStatus.RUNNING,
            items=analysis_items,
            model_id=model_id,
            source_name=source_name,
            status_message=f"Analyzing {total} comments...",
        ))
        self._task = asyncio.create_task(self._execute(run), name=f"classification-{run.run_id}")
        return run.run_id
    
    async def start_from_file(
        self,
        reader: TabularReader,
        path: Path,
        column_index: int,
        model_id: str,
        extra_context: Optional[str] = None,
    ) -> Optional[str]:
        """
        Extract a column off the event loop, then start() on its values.
        
        Returns None if reset() or another start() happened while the
        column was being extracted.
        """
        self._generation += 1
        generation = self._generation
        await self._supersede()
        
        path = Path(path)
        self.state.reset(PipelineState(
            model_id=model_id,
            source_name=path.name,
            status_message="Extracting data...",
        ))
        values = await reader.aextract_column(path, column_index)
        
        if generation != self._generation:
            logger.info("Extraction superseded, not starting run", path=str(path))
            return None
        return await self.start(values, model_id, extra_context, source_name=path.name)
    
    def cancel(self) -> None:
        """
        Cooperatively cancel the active run.
        
        The run stops after its in-flight request and settles to CANCELLED.
        """
        if self._run is not None and not self._run.settled:
            logger.info("Cancelling classification run", run_id=self._run.run_id)
            self._run.token.cancel()
    
    def reset(self) -> None:
        """
        Cancel any active run and clear all published state.
        
        The cancelled run keeps going until its in-flight request returns,
        but its run_id no longer matches, so nothing more is published.
        """
        self._generation += 1
        if self._run is not None:
            self._run.token.cancel()
        self._run = None
        if self.state.value != PipelineState():
            self.state.reset(PipelineState())
    
    def correct_result(self, position: int, sentiment: Sentiment) -> AnalysisResult:
        """
        Manually override one result's sentiment after the run has settled.

        Raises:
            RuntimeError: A run is still in progress
            IndexError: No result at position
        """
        if self.is_running:
            raise RuntimeError("Cannot correct results while analysis is running")
        current = self.state.value
        corrected = current.results[position].with_sentiment(sentiment)
        results = current.results[:position] + (corrected,) + current.results[position + 1:]
        self.state.publish(results=results)
        logger.info("Result corrected", index=corrected.index, sentiment=corrected.sentiment.value)
        return corrected

    async def wait(self) -> PipelineState:
        """Await the active run's loop and return the published state."""
        task = self._task
        if task is not None:
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self.state.value
    
    async def aclose(self) -> None:
        """Hard-stop any run (application shutdown)."""
        task = self._task
        self.reset()
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
    
    @property
    def is_running(self) -> bool:
        return (
            self._run is not None
            and self._task is not None
            and not self._task.done()
        )
    
    # === Run loop ===
    
    async def _supersede(self) -> None:
        """Cancel the previous run and wait for its loop to exit."""
        previous_run, previous_task = self._run, self._task
        if previous_run is not None:
            previous_run.token.cancel()
        if previous_task is not None and not previous_task.done():
            logger.debug("Waiting for superseded run to finish", task=previous_task.get_name())
            try:
                await previous_task
            except asyncio.CancelledError:
                if not previous_task.cancelled():
                    raise
    
    async def _execute(self, run: _Run) -> None:
        total = len(run.items)
        try:
            for position, item in enumerate(run.items):
                if run.token.cancelled:
                    break
                sentiment = await self._classify(item, run)
                if run.token.cancelled:
                    break
                
                completed = position + 1
                self._publish(
                    run,
                    results=self.state.value.results + (
                        AnalysisResult(index=item.index, text=item.text, sentiment=sentiment),
                    ),
                    progress=completed / total,
                    status_message=f"Analyzed {completed} of {total} comments...",
                )
            
            if run.token.cancelled:
                self._settle(run, RunStatus.CANCELLED, "Analysis aborted.")
            else:
                self._settle(run, RunStatus.COMPLETED, "Analysis complete!")
                
        except asyncio.CancelledError:
            self._settle(run, RunStatus.CANCELLED, "Analysis aborted.")
            raise
        except Exception as e:
            logger.error(
                "Classification run crashed",
                run_id=run.run_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._settle(run, RunStatus.FAILED, f"Analysis failed: {e}")
    
    async def _classify(self, item: AnalysisItem, run: _Run) -> Sentiment:
        if not item.text.strip():
            classification_fallbacks_total.labels(reason="empty").inc()
            sentiment_classifications_total.labels(sentiment=Sentiment.NEUTRAL.value).inc()
            return Sentiment.NEUTRAL
        
        request = self.prompt_builder.build_request(item.text, run.model_id, run.extra_context)
        try:
            response = await self.client.generate(request)
        except LLMClientError as e:
            logger.warning(
                "Classification request failed, using neutral",
                run_id=run.run_id,
                index=item.index,
                error=e.message,
                error_type=type(e).__name__,
            )
            classification_fallbacks_total.labels(reason="error").inc()
            sentiment_classifications_total.labels(sentiment=Sentiment.NEUTRAL.value).inc()
            return Sentiment.NEUTRAL
        
        sentiment = match_sentiment(response.content)
        if sentiment is None:
            logger.debug("No sentiment keyword in reply", index=item.index, reply=response.content)
            classification_fallbacks_total.labels(reason="no_match").inc()
            sentiment = Sentiment.NEUTRAL
        
        sentiment_classifications_total.labels(sentiment=sentiment.value).inc()
        logger.debug("Classified comment", index=item.index, sentiment=sentiment.value)
        return sentiment
    
    # === Publishing ===
    
    def _is_current(self, run: _Run) -> bool:
        return self._run is run and self.state.value.run_id == run.run_id
    
    def _publish(self, run: _Run, **changes) -> None:
        if not self._is_current(run):
            logger.debug("Discarding update from superseded run", run_id=run.run_id)
            return
        self.state.publish(**changes)
    
    def _settle(self, run: _Run, status: RunStatus, message: str) -> None:
        """Publish the terminal status, at most once per run."""
        if run.settled:
            return
        run.settled = True
        logger.info(
            "Classification run finished",
            run_id=run.run_id,
            status=status.value,
            results=len(self.state.value.results) if self._is_current(run) else None,
        )
        changes = {"status": status, "status_message": message}
        if status == RunStatus.COMPLETED:
            changes["progress"] = 1.0
        self._publish(run, **changes)
