"""
Enumerations for Sentiment Wizard data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class Sentiment(str, Enum):
    """
    Per-comment sentiment label.
    
    Single-label: exactly one value per comment. NEUTRAL doubles as the
    fallback for empty comments, endpoint failures and unmatched replies.
    """
    
    POSITIVE = "positive"
    NEGATIVE = "negative"
    MIXED = "mixed"
    NEUTRAL = "neutral"
    
    @property
    def label(self) -> str:
        """Capitalised display form (e.g. 'Positive')."""
        return self.value.capitalize()


class InstallPhase(str, Enum):
    """Phases of the runtime installation/readiness state machine."""
    
    IDLE = "idle"
    DETECTING = "detecting"
    AWAITING_USER_DECISION = "awaiting_user_decision"
    INSTALLING = "installing"
    WAITING_FOR_MANUAL_INSTALL = "waiting_for_manual_install"
    STARTING_SERVER = "starting_server"
    CHECKING_MODELS = "checking_models"
    READY = "ready"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Stable identifiers for runtime setup failures."""
    
    RUNTIME_NOT_FOUND = "runtime_not_found"
    PACKAGE_MANAGER_FAILED = "package_manager_failed"
    INSTALLER_DOWNLOAD_FAILED = "installer_download_failed"
    INSTALLER_TOO_SMALL = "installer_too_small"
    INSTALLER_OPEN_FAILED = "installer_open_failed"
    MANUAL_INSTALL_TIMEOUT = "manual_install_timeout"
    SERVER_UNREACHABLE = "server_unreachable"
    UNEXPECTED = "unexpected"


class DownloadState(str, Enum):
    """Lifecycle of a single model pull."""
    
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    """Lifecycle of a classification run."""
    
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class Stage(str, Enum):
    """
    Wizard stages, in forward order.
    
    RUNTIME_SETUP is skipped when the runtime is already ready.
    """
    
    WELCOME = "welcome"
    RUNTIME_SETUP = "runtime_setup"
    MODEL_SELECTION = "model_selection"
    FILE_IMPORT = "file_import"
    COLUMN_SELECTION = "column_selection"
    ANALYSIS_PROGRESS = "analysis_progress"
    RESULTS_SUMMARY = "results_summary"
