"""
Request/response models for the local inference endpoint.

Kept separate from the analysis models so the Ollama client stays unaware of
comments, items and runs.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LLMGenerationRequest(BaseModel):
    """
    Single-shot generation request (POST /api/generate, stream=false).
    """
    model_config = ConfigDict(frozen=True)
    
    prompt: str = Field(..., description="Complete rendered prompt")
    model: str = Field(..., description="Model name/identifier (e.g., 'gemma3:4b')")
    stream: bool = Field(default=False, description="Always False: one JSON body per request")


class LLMGenerationResponse(BaseModel):
    """
    Generated text plus the metadata we log.
    """
    model_config = ConfigDict(frozen=True)
    
    content: str = Field(..., description="Raw model reply")
    model_version: str = Field(..., description="Model name reported by the server")
    done: bool = Field(default=True)
    latency_ms: int = Field(..., ge=0, description="Round trip latency in milliseconds")
    prompt_tokens: Optional[int] = Field(default=None)
    completion_tokens: Optional[int] = Field(default=None)
