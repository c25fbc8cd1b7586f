"""
Data models for the classification pipeline and its results.

Results are produced in strict index order; a failed or ambiguous
classification is NEUTRAL, never an error.
"""

from typing import Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sentiment_wizard.models.enums import RunStatus, Sentiment


class AnalysisItem(BaseModel):
    """One comment to classify, positioned by its index in the input."""
    model_config = ConfigDict(frozen=True)
    
    index: int = Field(..., ge=0)
    text: str


class AnalysisResult(BaseModel):
    """Classified comment."""
    model_config = ConfigDict(frozen=True)
    
    index: int = Field(..., ge=0)
    text: str
    sentiment: Sentiment
    
    def with_sentiment(self, sentiment: Sentiment) -> "AnalysisResult":
        """Return a copy with a manually corrected sentiment."""
        return self.model_copy(update={"sentiment": Sentiment(sentiment)})


class PipelineState(BaseModel):
    """
    Published snapshot of the current PipelineRun.
    
    Invariants:
    - len(results) <= len(items)
    - status == COMPLETED implies len(results) == len(items)
    - results[i].index == items[i].index
    """
    model_config = ConfigDict(frozen=True)
    
    run_id: Optional[str] = Field(default=None, description="Changes on every start/reset")
    status: RunStatus = Field(default=RunStatus.IDLE)
    items: tuple[AnalysisItem, ...] = Field(default=())
    results: tuple[AnalysisResult, ...] = Field(default=())
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    status_message: str = Field(default="")
    model_id: str = Field(default="")
    source_name: str = Field(default="", description="File name being analysed")
    
    @model_validator(mode="after")
    def _check_prefix(self) -> "PipelineState":
        if len(self.results) > len(self.items):
            raise ValueError("results cannot outnumber items")
        if self.status == RunStatus.COMPLETED and len(self.results) != len(self.items):
            raise ValueError("completed run must have a result for every item")
        for item, result in zip(self.items, self.results):
            if item.index != result.index:
                raise ValueError(
                    f"result index {result.index} does not match item index {item.index}"
                )
        return self
    
    @property
    def is_running(self) -> bool:
        return self.status == RunStatus.RUNNING


class SentimentSummary(BaseModel):
    """Per-sentiment counts for the results view."""
    model_config = ConfigDict(frozen=True)
    
    total: int = Field(default=0, ge=0)
    counts: Dict[Sentiment, int] = Field(default_factory=dict)
    
    @field_validator("counts")
    @classmethod
    def _fill_missing(cls, counts: Dict[Sentiment, int]) -> Dict[Sentiment, int]:
        return {s: counts.get(s, 0) for s in Sentiment}
    
    @classmethod
    def from_results(cls, results: Iterable[AnalysisResult]) -> "SentimentSummary":
        counts: Dict[Sentiment, int] = {s: 0 for s in Sentiment}
        total = 0
        for result in results:
            counts[result.sentiment] += 1
            total += 1
        return cls(total=total, counts=counts)
    
    def count(self, sentiment: Sentiment) -> int:
        return self.counts.get(Sentiment(sentiment), 0)
    
    def percentage(self, sentiment: Sentiment) -> float:
        """Share of results with this sentiment, 0.0 when there are none."""
        if self.total == 0:
            return 0.0
        return self.count(sentiment) / self.total
