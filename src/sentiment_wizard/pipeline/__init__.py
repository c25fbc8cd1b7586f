"""
Classification pipeline.

Components:
- ClassificationPipeline: sequential, cancellable per-comment classification
- sentiment: reply-to-Sentiment keyword mapping
"""

from sentiment_wizard.pipeline.classification import CancellationToken, ClassificationPipeline
from sentiment_wizard.pipeline.sentiment import SENTIMENT_PRIORITY, match_sentiment

__all__ = [
    "ClassificationPipeline",
    "CancellationToken",
    "SENTIMENT_PRIORITY",
    "match_sentiment",
]
