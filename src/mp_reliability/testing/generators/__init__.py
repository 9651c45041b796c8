"""Testing generators – attempt histories and hypothesis strategies."""
from mp_reliability.testing.generators.history import HistoryBuilder
from mp_reliability.testing.generators.strategies import (
    backoff_config_strategy,
    environment_strategy,
    execution_record_strategy,
    history_strategy,
)

__all__ = [
    "HistoryBuilder",
    "backoff_config_strategy",
    "environment_strategy",
    "execution_record_strategy",
    "history_strategy",
]
