"""
Runtime setup exceptions.

Raised by the detection/installation helpers and converted into the
``failed`` phase by InferenceRuntimeManager; they never escape
``ensure_ready()``.
"""


class RuntimeSetupError(Exception):
    """
    Unrecoverable error during runtime detection or installation.
    
    Attributes:
        kind: Stable machine-readable error kind (see ErrorKind)
        message: Human-readable message shown to the user
        details: Extra context for logs
    """

    def __init__(self, kind: str, message: str, details: dict | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details or {}
