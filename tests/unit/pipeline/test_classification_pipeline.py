"""
Unit tests for ClassificationPipeline.

The Ollama client is mocked; tests control reply timing with asyncio
queues to exercise cancellation and superseding.
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from sentiment_wizard.llm.exceptions import LLMConnectionError, LLMTimeoutError
from sentiment_wizard.models.analysis_models import PipelineState
from sentiment_wizard.models.enums import RunStatus, Sentiment
from sentiment_wizard.models.llm_models import LLMGenerationResponse
from sentiment_wizard.llm.ollama_client import OllamaClient
from sentiment_wizard.pipeline.classification import ClassificationPipeline
from sentiment_wizard.tabular.reader import TabularReader


def make_generation_response(content: str) -> LLMGenerationResponse:
    return LLMGenerationResponse(content=content, model_version="gemma3:4b", latency_ms=5)


def replies_by_comment(mapping: dict):
    """generate side effect answering from the comment embedded in the prompt."""
    async def _generate(request):
        for comment, reply in mapping.items():
            if f'Comment: "{comment}"' in request.prompt:
                if isinstance(reply, Exception):
                    raise reply
                return make_generation_response(reply)
        return make_generation_response("neutral")
    return _generate


class GatedClient:
    """Client whose replies are released one at a time by the test."""
    
    def __init__(self, reply: str = "positive"):
        self.reply = reply
        self.requests = []
        self.started: asyncio.Queue = asyncio.Queue()
        self._releases: asyncio.Queue = asyncio.Queue()
    
    def release(self) -> None:
        self._releases.put_nowait(None)
    
    async def generate(self, request):
        self.requests.append(request)
        self.started.put_nowait(request)
        await self._releases.get()
        return make_generation_response(self.reply)


class CountingClient:
    """Client that records how many requests overlap."""
    
    def __init__(self):
        self.in_flight = 0
        self.peak = 0
        self.calls = 0
    
    async def generate(self, request):
        self.calls += 1
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.001)
        finally:
            self.in_flight -= 1
        return make_generation_response("positive")


class TestRun:
    
    @pytest.mark.asyncio
    async def test_results_in_input_order(self, mock_ollama_client):
        mock_ollama_client.generate = AsyncMock(side_effect=replies_by_comment({
            "Love it": "Positive",
            "Hate it": "negative",
            "Hmm": "mixed",
        }))
        pipeline = ClassificationPipeline(mock_ollama_client)
        
        run_id = await pipeline.start(["Love it", "Hate it", "Hmm"], "gemma3:4b")
        final = await pipeline.wait()
        
        assert final.run_id == run_id
        assert final.status == RunStatus.COMPLETED
        assert final.progress == 1.0
        assert final.status_message == "Analysis complete!"
        assert [r.index for r in final.results] == [0, 1, 2]
        assert [r.sentiment for r in final.results] == [
            Sentiment.POSITIVE,
            Sentiment.NEGATIVE,
            Sentiment.MIXED,
        ]
        assert mock_ollama_client.generate.await_count == 3
    
    @pytest.mark.asyncio
    async def test_progress_published_per_item(self, mock_ollama_client):
        pipeline = ClassificationPipeline(mock_ollama_client)
        seen = []
        pipeline.state.subscribe(seen.append)
        
        await pipeline.start(["a", "b"], "gemma3:4b")
        await pipeline.wait()
        
        running = [s for s in seen if s.status == RunStatus.RUNNING]
        assert running[0].status_message == "Analyzing 2 comments..."
        assert [s.progress for s in running[1:]] == [0.5, 1.0]
        assert running[-1].status_message == "Analyzed 2 of 2 comments..."
    
    @pytest.mark.asyncio
    async def test_empty_input_completes_without_requests(self, mock_ollama_client):
        pipeline = ClassificationPipeline(mock_ollama_client)
        
        await pipeline.start([], "gemma3:4b")
        final = await pipeline.wait()
        
        assert final.status == RunStatus.COMPLETED
        assert final.results == ()
        assert final.status_message == "No comments to analyze."
        mock_ollama_client.generate.assert_not_awaited()
    
    @pytest.mark.asyncio
    async def test_blank_comment_is_neutral_without_request(self, mock_ollama_client):
        pipeline = ClassificationPipeline(mock_ollama_client)
        
        await pipeline.start(["   ", "fine"], "gemma3:4b")
        final = await pipeline.wait()
        
        assert final.results[0].sentiment == Sentiment.NEUTRAL
        assert mock_ollama_client.generate.await_count == 1
    
    @pytest.mark.asyncio
    async def test_failures_and_unmatched_replies_are_neutral(self, mock_ollama_client):
        mock_ollama_client.generate = AsyncMock(side_effect=replies_by_comment({
            "down": LLMConnectionError("refused"),
            "slow": LLMTimeoutError("timeout"),
            "odd": "I am not sure",
            "good": "positive",
        }))
        pipeline = ClassificationPipeline(mock_ollama_client)
        
        await pipeline.start(["down", "slow", "odd", "good"], "gemma3:4b")
        final = await pipeline.wait()
        
        assert final.status == RunStatus.COMPLETED
        assert [r.sentiment for r in final.results] == [
            Sentiment.NEUTRAL,
            Sentiment.NEUTRAL,
            Sentiment.NEUTRAL,
            Sentiment.POSITIVE,
        ]
    
    @pytest.mark.asyncio
    async def test_context_reaches_prompt(self, mock_ollama_client):
        pipeline = ClassificationPipeline(mock_ollama_client)
        
        await pipeline.start(["nice"], "llama3.1:8b", extra_context="Hotel reviews")
        await pipeline.wait()
        
        request = mock_ollama_client.generate.await_args.args[0]
        assert request.model == "llama3.1:8b"
        assert "Additional context: Hotel reviews" in request.prompt
    
    @pytest.mark.asyncio
    async def test_unexpected_error_fails_run(self, mock_ollama_client):
        mock_ollama_client.generate = AsyncMock(side_effect=RuntimeError("bug"))
        pipeline = ClassificationPipeline(mock_ollama_client)
        
        await pipeline.start(["a"], "gemma3:4b")
        final = await pipeline.wait()
        
        assert final.status == RunStatus.FAILED
        assert final.status_message == "Analysis failed: bug"
    
    @pytest.mark.asyncio
    async def test_undecodable_reply_is_neutral(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, content=b'{"response": "\xff positive"}')
        )
        client = OllamaClient(base_url="http://ollama.test", transport=transport)
        pipeline = ClassificationPipeline(client)
        
        await pipeline.start(["a", "b"], "gemma3:4b")
        final = await pipeline.wait()
        await client.close()
        
        assert final.status == RunStatus.COMPLETED
        assert [r.sentiment for r in final.results] == [Sentiment.NEUTRAL, Sentiment.NEUTRAL]


class TestCancellation:
    
    @pytest.mark.asyncio
    async def test_cancel_keeps_partial_results(self):
        client = GatedClient()
        pipeline = ClassificationPipeline(client)
        
        await pipeline.start(["a", "b", "c"], "gemma3:4b")
        await client.started.get()
        client.release()
        await client.started.get()
        
        pipeline.cancel()
        client.release()
        final = await pipeline.wait()
        
        assert final.status == RunStatus.CANCELLED
        assert final.status_message == "Analysis aborted."
        assert len(final.results) == 1
        assert len(client.requests) == 2
    
    @pytest.mark.asyncio
    async def test_start_supersedes_previous_run(self):
        client = GatedClient()
        pipeline = ClassificationPipeline(client)
        seen = []
        pipeline.state.subscribe(seen.append)
        
        first_id = await pipeline.start(["old 1", "old 2"], "gemma3:4b")
        await client.started.get()
        
        second = asyncio.create_task(pipeline.start(["new"], "gemma3:4b"))
        await asyncio.sleep(0)
        client.release()
        second_id = await second
        
        await client.started.get()
        client.release()
        final = await pipeline.wait()
        
        assert second_id != first_id
        assert final.run_id == second_id
        assert final.status == RunStatus.COMPLETED
        assert [r.text for r in final.results] == ["new"]
        # Nothing from the first run after the second began
        first_new = next(i for i, s in enumerate(seen) if s.run_id == second_id)
        assert all(s.run_id == second_id for s in seen[first_new:])
    
    @pytest.mark.asyncio
    async def test_overlapping_starts_run_one_loop(self):
        client = CountingClient()
        pipeline = ClassificationPipeline(client)
        
        await pipeline.start(["x"] * 3, "gemma3:4b")
        ids = await asyncio.gather(
            pipeline.start(["a"] * 5, "gemma3:4b"),
            pipeline.start(["b"] * 5, "gemma3:4b"),
        )
        final = await pipeline.wait()
        
        assert ids[0] is None
        assert final.run_id == ids[1]
        assert client.peak == 1
        assert [r.text for r in final.results] == ["b"] * 5
    
    @pytest.mark.asyncio
    async def test_reset_discards_in_flight_reply(self):
        client = GatedClient()
        pipeline = ClassificationPipeline(client)
        
        await pipeline.start(["a", "b"], "gemma3:4b")
        await client.started.get()
        
        pipeline.reset()
        client.release()
        await pipeline.wait()
        
        assert pipeline.state.value == PipelineState()
        assert pipeline.is_running is False
        assert len(client.requests) == 1
    
    @pytest.mark.asyncio
    async def test_reset_is_idempotent(self, mock_ollama_client):
        pipeline = ClassificationPipeline(mock_ollama_client)
        seen = []
        pipeline.state.subscribe(seen.append)
        
        pipeline.reset()
        pipeline.reset()
        
        assert seen == []
        assert pipeline.state.value == PipelineState()
    
    @pytest.mark.asyncio
    async def test_aclose_stops_run(self):
        client = GatedClient()
        pipeline = ClassificationPipeline(client)
        
        await pipeline.start(["a", "b"], "gemma3:4b")
        await client.started.get()
        
        await pipeline.aclose()
        
        assert pipeline.is_running is False
        assert pipeline.state.value == PipelineState()


class TestStartFromFile:
    
    @pytest.mark.asyncio
    async def test_extracts_column_and_runs(self, mock_ollama_client, write_csv):
        path = write_csv("Id,Comment\n1,great\n2,\n3,awful\n")
        pipeline = ClassificationPipeline(mock_ollama_client)
        seen = []
        pipeline.state.subscribe(seen.append)
        
        run_id = await pipeline.start_from_file(TabularReader(), path, 1, "gemma3:4b")
        final = await pipeline.wait()
        
        assert seen[0].status_message == "Extracting data..."
        assert final.run_id == run_id
        assert final.source_name == "comments.csv"
        assert [r.text for r in final.results] == ["great", "awful"]
    
    @pytest.mark.asyncio
    async def test_reset_during_extraction_prevents_start(self, mock_ollama_client, write_csv):
        path = write_csv("Comment\ngreat\n")
        pipeline = ClassificationPipeline(mock_ollama_client)
        reader = TabularReader()
        extraction = asyncio.Event()
        
        async def slow_extract(p, index):
            await extraction.wait()
            return ["great"]
        
        reader.aextract_column = slow_extract
        task = asyncio.create_task(pipeline.start_from_file(reader, path, 0, "gemma3:4b"))
        await asyncio.sleep(0)
        pipeline.reset()
        extraction.set()
        
        assert await task is None
        assert pipeline.state.value == PipelineState()
        mock_ollama_client.generate.assert_not_awaited()


class TestCorrection:
    
    @pytest.mark.asyncio
    async def test_correct_result_after_run(self, mock_ollama_client):
        pipeline = ClassificationPipeline(mock_ollama_client)
        await pipeline.start(["a", "b"], "gemma3:4b")
        await pipeline.wait()
        
        corrected = pipeline.correct_result(1, Sentiment.NEGATIVE)
        
        assert corrected.index == 1
        assert [r.sentiment for r in pipeline.state.value.results] == [
            Sentiment.POSITIVE,
            Sentiment.NEGATIVE,
        ]
        assert pipeline.state.value.status == RunStatus.COMPLETED
    
    @pytest.mark.asyncio
    async def test_no_correction_while_running(self):
        client = GatedClient()
        pipeline = ClassificationPipeline(client)
        await pipeline.start(["a", "b"], "gemma3:4b")
        await client.started.get()
        
        with pytest.raises(RuntimeError):
            pipeline.correct_result(0, Sentiment.MIXED)
        
        pipeline.cancel()
        client.release()
        await pipeline.wait()
