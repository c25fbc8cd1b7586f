"""
Ollama client for the local inference endpoint.

Communicates with the Ollama HTTP API using httpx AsyncClient. Supports:
- Single-shot, non-streamed generation
- Model listing (tags)
- Streamed model pulls (newline-delimited JSON progress)
"""

import json
import time
from typing import AsyncIterator, Optional

import httpx
import structlog
from pydantic import ValidationError

from sentiment_wizard.llm.exceptions import (
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
    LLMTimeoutError,
    ModelPullError,
)
from sentiment_wizard.models.llm_models import LLMGenerationRequest, LLMGenerationResponse
from sentiment_wizard.models.runtime_models import PullProgress
from sentiment_wizard.monitoring.metrics import llm_latency_seconds


logger = structlog.get_logger(__name__)


class OllamaClient:
    """
    Ollama-specific client using httpx for async HTTP communication.
    
    API Endpoints:
    - POST /api/generate: Single-shot completion (stream=false)
    - GET /api/tags: List available models
    - POST /api/pull: Download a model, streamed progress
    
    There is no retry loop: callers decide how to degrade (the pipeline maps
    any failure to neutral, the runtime manager publishes a failed download).
    """
    
    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        timeout: float = 10.0,
        generate_timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Ollama client.
        
        Args:
            base_url: Ollama server URL
            timeout: Timeout for tags and pull handshakes, in seconds
            generate_timeout: Timeout for a single generation request
            transport: Optional httpx transport (tests inject MockTransport)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.generate_timeout = generate_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        
        logger.debug(
            "Ollama client initialized",
            base_url=self.base_url,
            timeout=timeout,
            generate_timeout=generate_timeout,
        )
    
    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                follow_redirects=True,
            )
            logger.debug("Created new httpx AsyncClient")
        return self._client
    
    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        """
        Generate a completion using POST /api/generate.
        
        Payload: {"model": "gemma3:4b", "prompt": "...", "stream": false}
        Response: {"model": "...", "response": "...", "done": true, ...}
        
        Raises:
            LLMTimeoutError: Request exceeded generate_timeout
            LLMConnectionError: Server unreachable
            LLMModelNotAvailableError: HTTP 404 (model not pulled)
            LLMGenerationError: Other HTTP errors or undecodable body
        """
        start_time = time.time()
        
        payload = {
            "model": request.model,
            "prompt": request.prompt,
            "stream": request.stream,
        }
        
        logger.debug(
            "Sending generation request to Ollama",
            model=request.model,
            prompt_length=len(request.prompt),
        )
        
        try:
            client = await self._get_client()
            response = await client.post(
                "/api/generate",
                json=payload,
                timeout=self.generate_timeout,
            )
            response.raise_for_status()
            response_data = response.json()
            
        except httpx.TimeoutException as e:
            self._observe_latency(request.model, start_time, success=False)
            logger.warning("Ollama request timeout", timeout=self.generate_timeout, error=str(e))
            raise LLMTimeoutError(
                f"Request timeout after {self.generate_timeout}s",
                details={"timeout": self.generate_timeout},
            )
            
        except httpx.HTTPStatusError as e:
            self._observe_latency(request.model, start_time, success=False)
            status_code = e.response.status_code
            logger.warning("Ollama HTTP error", status_code=status_code, error_text=e.response.text)
            if status_code == 404:
                raise LLMModelNotAvailableError(
                    f"Model not found: {request.model}",
                    details={"model": request.model, "status": status_code},
                )
            raise LLMGenerationError(
                f"Ollama error: {status_code}",
                details={"status": status_code, "error": e.response.text},
            )
            
        except httpx.RequestError as e:
            self._observe_latency(request.model, start_time, success=False)
            logger.warning("Ollama network error", error=str(e), error_type=type(e).__name__)
            raise LLMConnectionError(
                f"Network error: {e}",
                details={"error_type": type(e).__name__},
            )
            
        except ValueError as e:
            self._observe_latency(request.model, start_time, success=False)
            logger.warning("Failed to parse Ollama response JSON", error=str(e))
            raise LLMGenerationError(
                "Invalid JSON response from Ollama",
                details={"parse_error": str(e)},
            )
        
        if not isinstance(response_data, dict) or not isinstance(response_data.get("response"), str):
            self._observe_latency(request.model, start_time, success=False)
            raise LLMGenerationError(
                "Ollama response has no 'response' text",
                details={"response": response_data},
            )
        
        latency_ms = int((time.time() - start_time) * 1000)
        model_version = response_data.get("model", request.model)
        llm_latency_seconds.labels(model=request.model, success="true").observe(latency_ms / 1000.0)
        
        logger.debug(
            "Ollama generation successful",
            model=model_version,
            latency_ms=latency_ms,
            completion_tokens=response_data.get("eval_count"),
        )
        
        return LLMGenerationResponse(
            content=response_data["response"],
            model_version=model_version,
            done=bool(response_data.get("done", True)),
            latency_ms=latency_ms,
            prompt_tokens=response_data.get("prompt_eval_count"),
            completion_tokens=response_data.get("eval_count"),
        )
    
    @staticmethod
    def _observe_latency(model: str, start_time: float, success: bool) -> None:
        llm_latency_seconds.labels(
            model=model, success="true" if success else "false"
        ).observe(time.time() - start_time)
    
    async def list_models(self) -> list[str]:
        """
        List all available models via GET /api/tags.
        
        Returns:
            List of model names (e.g., ["gemma3:4b", "llama3.1:8b"])
        
        Raises:
            LLMConnectionError: On any transport, HTTP or decode failure
        """
        try:
            client = await self._get_client()
            response = await client.get("/api/tags", timeout=self.timeout)
            response.raise_for_status()
            
            data = response.json()
            models = [
                m["name"] for m in data.get("models", [])
                if isinstance(m, dict) and isinstance(m.get("name"), str)
            ]
            logger.debug("Listed available models", count=len(models), models=models)
            return models
            
        except Exception as e:
            logger.warning("Failed to list models", error=str(e))
            raise LLMConnectionError(
                f"Failed to list models: {e}",
                details={"error": str(e)},
            )
    
    async def pull(self, model_name: str) -> AsyncIterator[PullProgress]:
        """
        Pull a model via POST /api/pull, yielding decoded progress lines.
        
        Each line is a JSON object optionally carrying status, error,
        completed and total. Lines that do not decode to a valid progress
        object are skipped. Interpreting success/error events is up to the caller.
        
        Cancelling the consuming task closes the streamed response, which
        tears down the underlying connection.
        
        Raises:
            ModelPullError: Non-200 response
            LLMConnectionError: Transport failure before or during the stream
        """
        client = await self._get_client()
        logger.info("Starting model pull", model=model_name)
        
        try:
            async with client.stream(
                "POST",
                "/api/pull",
                json={"name": model_name},
                timeout=httpx.Timeout(self.timeout, read=None),
            ) as response:
                if response.status_code != 200:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.warning(
                        "Model pull rejected",
                        model=model_name,
                        status_code=response.status_code,
                        body=body,
                    )
                    raise ModelPullError(
                        f"HTTP error: {response.status_code}",
                        details={"status": response.status_code, "body": body},
                    )
                
                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug("Skipping non-JSON pull line", line=line)
                        continue
                    if not isinstance(data, dict):
                        continue
                    data.pop("raw", None)
                    try:
                        progress = PullProgress(raw=line, **data)
                    except ValidationError:
                        logger.debug("Skipping malformed pull line", line=line)
                        continue
                    yield progress
                    
        except httpx.RequestError as e:
            logger.warning("Model pull network error", model=model_name, error=str(e))
            raise LLMConnectionError(
                f"Network error: {e}",
                details={"error_type": type(e).__name__},
            )
    
    async def close(self):
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed Ollama client connection")
    
    async def __aenter__(self):
        """Async context manager entry."""
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
    
    def __repr__(self) -> str:
        return f"OllamaClient(base_url={self.base_url}, timeout={self.timeout}s)"
