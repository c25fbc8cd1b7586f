"""
Result export and summary.

Export format: two-column delimited text, header ``Comment,Sentiment``,
one row per result. The comment is always quoted with internal quotes
doubled; the sentiment is its lowercase value (`positive`).
"""

from pathlib import Path
from typing import Iterable

import structlog

from sentiment_wizard.models.analysis_models import AnalysisResult, SentimentSummary


logger = structlog.get_logger(__name__)

EXPORT_HEADER = "Comment,Sentiment"


def quote_field(value: str) -> str:
    """Wrap in double quotes, doubling any embedded quote."""
    return '"' + value.replace('"', '""') + '"'


def render_results_csv(results: Iterable[AnalysisResult]) -> str:
    """Build the export text in memory."""
    lines = [EXPORT_HEADER]
    for result in results:
        lines.append(f"{quote_field(result.text)},{result.sentiment.value}")
    return "\n".join(lines) + "\n"


def export_results(results: Iterable[AnalysisResult], path: Path) -> Path:
    """Write results to path as UTF-8. Returns the path written."""
    path = Path(path)
    results = list(results)
    path.write_text(render_results_csv(results), encoding="utf-8", newline="")
    logger.info("Exported results", path=str(path), rows=len(results))
    return path


def summarize(results: Iterable[AnalysisResult]) -> SentimentSummary:
    """Per-sentiment counts for the results view."""
    return SentimentSummary.from_results(results)
