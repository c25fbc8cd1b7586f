"""
Data models for Sentiment Wizard.

Modules:
- enums: Closed taxonomies (Sentiment, InstallPhase, RunStatus, Stage, ...)
- runtime_models: InstallationState, ModelDownload, PullProgress
- analysis_models: AnalysisItem, AnalysisResult, PipelineState, SentimentSummary
- dataset_models: ColumnarDataset, FlowState
- llm_models: Ollama request/response
"""

from sentiment_wizard.models.analysis_models import (
    AnalysisItem,
    AnalysisResult,
    PipelineState,
    SentimentSummary,
)
from sentiment_wizard.models.dataset_models import ColumnarDataset, FileSelectionState, FlowState
from sentiment_wizard.models.enums import (
    DownloadState,
    ErrorKind,
    InstallPhase,
    RunStatus,
    Sentiment,
    Stage,
)
from sentiment_wizard.models.llm_models import LLMGenerationRequest, LLMGenerationResponse
from sentiment_wizard.models.runtime_models import (
    ErrorRecord,
    InstallationState,
    ModelDownload,
    PullProgress,
)

__all__ = [
    # Enums
    "Sentiment",
    "InstallPhase",
    "ErrorKind",
    "DownloadState",
    "RunStatus",
    "Stage",
    # Runtime
    "ErrorRecord",
    "InstallationState",
    "ModelDownload",
    "PullProgress",
    # Analysis
    "AnalysisItem",
    "AnalysisResult",
    "PipelineState",
    "SentimentSummary",
    # Dataset / flow
    "ColumnarDataset",
    "FlowState",
    "FileSelectionState",
    # LLM
    "LLMGenerationRequest",
    "LLMGenerationResponse",
]
