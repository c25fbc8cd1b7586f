"""
Custom exceptions for the Ollama client layer.

The classification pipeline absorbs all of these (mapping the item to
neutral); the runtime manager converts them into published download state.
They exist so both callers can log which failure mode occurred.
"""


class LLMClientError(Exception):
    """
    Base exception for all Ollama client errors.
    
    All client-specific exceptions inherit from this to allow catching
    any endpoint-related error with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LLMConnectionError(LLMClientError):
    """
    Raised when unable to connect to the local inference server.
    
    Includes refused connections, DNS failures and dropped streams.
    """
    pass


class LLMGenerationError(LLMClientError):
    """
    Raised when the server answers a generation request with an error
    or with a body that cannot be decoded.
    """
    pass


class LLMTimeoutError(LLMConnectionError):
    """Raised when a request exceeds its timeout."""
    pass


class LLMModelNotAvailableError(LLMGenerationError):
    """Raised when the requested model is not present on the server (HTTP 404)."""
    pass


class ModelPullError(LLMClientError):
    """
    Raised when a model pull fails.
    
    Covers non-200 responses, an explicit ``error`` field in the progress
    stream, and streams that end without a ``success`` status.
    """
    pass
