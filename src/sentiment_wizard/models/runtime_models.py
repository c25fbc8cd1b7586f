"""
Published state owned by InferenceRuntimeManager.

Snapshots are frozen; the manager publishes a new snapshot for every change.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sentiment_wizard.models.enums import DownloadState, ErrorKind, InstallPhase


class ErrorRecord(BaseModel):
    """Terminal failure attached to InstallationState.last_error."""
    model_config = ConfigDict(frozen=True)
    
    kind: ErrorKind = Field(..., description="Machine-readable failure kind")
    message: str = Field(..., description="Human-readable failure message")
    details: Dict[str, Any] = Field(default_factory=dict, description="Extra context for logs")


class InstallationState(BaseModel):
    """
    Readiness state of the local inference runtime.
    
    Invariants:
    - phase == READY implies last_error is None
    - phase == FAILED implies last_error is not None
    """
    model_config = ConfigDict(frozen=True)
    
    phase: InstallPhase = Field(default=InstallPhase.IDLE)
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    status_message: str = Field(default="")
    available_models: frozenset[str] = Field(default_factory=frozenset)
    last_error: Optional[ErrorRecord] = Field(default=None)
    binary_path: Optional[Path] = Field(default=None, description="Selected runtime binary")
    package_manager_path: Optional[Path] = Field(default=None)
    user_declined_package_manager: bool = Field(
        default=False,
        description="Consent decision, remembered for the session",
    )
    server_started_by_manager: bool = Field(default=False)
    
    @model_validator(mode="after")
    def _check_phase_error_consistency(self) -> "InstallationState":
        if self.phase == InstallPhase.READY and self.last_error is not None:
            raise ValueError("ready phase cannot carry last_error")
        if self.phase == InstallPhase.FAILED and self.last_error is None:
            raise ValueError("failed phase requires last_error")
        return self
    
    @property
    def is_ready(self) -> bool:
        return self.phase == InstallPhase.READY


class ModelDownload(BaseModel):
    """
    One model pull. Terminal once state leaves RUNNING.
    
    bytes_total may be unknown, in which case progress is indeterminate.
    """
    model_config = ConfigDict(frozen=True)
    
    model_name: str
    bytes_completed: Optional[int] = Field(default=None, ge=0)
    bytes_total: Optional[int] = Field(default=None, ge=0)
    state: DownloadState = Field(default=DownloadState.RUNNING)
    status_message: str = Field(default="")
    error: Optional[str] = Field(default=None)
    log: tuple[str, ...] = Field(default=(), description="Raw progress lines received")
    
    @property
    def fraction(self) -> Optional[float]:
        """Completed fraction, or None when the total is unknown."""
        if self.bytes_completed is None or not self.bytes_total:
            return None
        return min(self.bytes_completed / self.bytes_total, 1.0)


class PullProgress(BaseModel):
    """One decoded line of the /api/pull progress stream."""
    model_config = ConfigDict(frozen=True, extra="ignore")
    
    status: Optional[str] = None
    error: Optional[str] = None
    completed: Optional[int] = None
    total: Optional[int] = None
    digest: Optional[str] = None
    raw: str = Field(default="", description="Original JSON line")
    
    @property
    def is_success(self) -> bool:
        return self.status == "success"
