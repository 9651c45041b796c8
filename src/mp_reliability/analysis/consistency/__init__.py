"""Analysis – cross-run consistency."""
from mp_reliability.analysis.consistency.checker import (
    ConsistencyChecker,
    ConsistencyMetric,
    ConsistencyReport,
    MetricConsistency,
    Outlier,
    coefficient_of_variation,
)

__all__ = [
    "ConsistencyChecker",
    "ConsistencyMetric",
    "ConsistencyReport",
    "MetricConsistency",
    "Outlier",
    "coefficient_of_variation",
]
