"""Analysis – flakiness scoring and trend tracking."""
from mp_reliability.analysis.flakiness.analyzer import (
    FlakinessAnalyzer,
    FlakinessReport,
    RecommendedAction,
    binomial_confidence,
)
from mp_reliability.analysis.flakiness.trends import (
    FlakinessTrend,
    FlakinessTrendDirection,
    FlakinessTrendTracker,
)

__all__ = [
    "FlakinessAnalyzer",
    "FlakinessReport",
    "FlakinessTrend",
    "FlakinessTrendDirection",
    "FlakinessTrendTracker",
    "RecommendedAction",
    "binomial_confidence",
]
