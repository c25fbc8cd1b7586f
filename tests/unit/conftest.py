"""Unit test fixtures (mocks and stubs).

Provides mock objects for testing without a running Ollama server.
"""

import json

import httpx
import pytest
from unittest.mock import AsyncMock

from sentiment_wizard.models.llm_models import LLMGenerationResponse


def make_generation_response(content: str, model: str = "gemma3:4b") -> LLMGenerationResponse:
    return LLMGenerationResponse(
        content=content,
        model_version=model,
        done=True,
        latency_ms=12,
    )


@pytest.fixture
def mock_ollama_client():
    """Mock OllamaClient for unit tests."""
    mock = AsyncMock()
    
    # Mock generate method
    mock.generate = AsyncMock(return_value=make_generation_response("positive"))
    
    # Mock list_models method
    mock.list_models = AsyncMock(return_value=["gemma3:4b", "llama3.1:8b"])
    
    mock.close = AsyncMock()
    
    return mock


@pytest.fixture
def ndjson():
    """Encode a list of dicts as a newline-delimited JSON body."""
    def _encode(events: list[dict]) -> bytes:
        return "".join(json.dumps(event) + "\n" for event in events).encode("utf-8")
    return _encode


@pytest.fixture
def mock_transport():
    """Factory for httpx.MockTransport from a request handler.
    
    Usage:
        transport = mock_transport(lambda request: httpx.Response(200, json={...}))
    """
    def _create(handler) -> httpx.MockTransport:
        return httpx.MockTransport(handler)
    return _create
