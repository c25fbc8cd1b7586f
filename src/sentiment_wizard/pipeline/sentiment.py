"""
Mapping of free-text model replies to a Sentiment.

The reply is lower-cased and trimmed, then checked for each keyword by
substring containment in a fixed priority order. The first keyword in that
order wins, regardless of where it appears in the reply: "mixed, mostly
negative" classifies as NEGATIVE.
"""

from typing import Optional

from sentiment_wizard.models.enums import Sentiment


SENTIMENT_PRIORITY: tuple[Sentiment, ...] = (
    Sentiment.POSITIVE,
    Sentiment.NEGATIVE,
    Sentiment.MIXED,
    Sentiment.NEUTRAL,
)


def match_sentiment(reply: str) -> Optional[Sentiment]:
    """Return the highest-priority keyword contained in the reply, or None."""
    normalized = reply.lower().strip()
    for sentiment in SENTIMENT_PRIORITY:
        if sentiment.value in normalized:
            return sentiment
    return None
