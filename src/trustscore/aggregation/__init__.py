"""Aggregation package."""

from trustscore.aggregation.service import (
    AggregationService,
    BatchReport,
    OutcomeStatus,
    Phase,
    UrlOutcome,
)
from trustscore.aggregation.scheduler import (
    AggregationScheduler,
    PeriodicJob,
    SchedulerState,
)
from trustscore.aggregation.retention import RetentionSweeper

__all__ = [
    "AggregationService",
    "BatchReport",
    "OutcomeStatus",
    "Phase",
    "UrlOutcome",
    "AggregationScheduler",
    "PeriodicJob",
    "SchedulerState",
    "RetentionSweeper",
]
