"""
Client for the local inference endpoint.

Components:
- OllamaClient: generate, list models, pull models, health check
- PromptBuilder: renders the sentiment instruction prompt
- exceptions: client-specific exceptions
"""

from sentiment_wizard.llm.exceptions import (
    LLMClientError,
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
    LLMTimeoutError,
    ModelPullError,
)
from sentiment_wizard.llm.ollama_client import OllamaClient
from sentiment_wizard.llm.prompt_builder import PromptBuilder

__all__ = [
    "OllamaClient",
    "PromptBuilder",
    "LLMClientError",
    "LLMConnectionError",
    "LLMGenerationError",
    "LLMTimeoutError",
    "LLMModelNotAvailableError",
    "ModelPullError",
]
