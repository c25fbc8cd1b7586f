"""
Local inference runtime management.

Components:
- InferenceRuntimeManager: readiness state machine, model listing and pulls
- detection: runtime binary / package manager discovery
- installer: package-manager and direct-download installation
- server: server process spawn, readiness polling and shutdown
"""

from sentiment_wizard.runtime.exceptions import RuntimeSetupError
from sentiment_wizard.runtime.manager import InferenceRuntimeManager

__all__ = [
    "InferenceRuntimeManager",
    "RuntimeSetupError",
]
