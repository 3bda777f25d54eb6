"""Batch aggregation of unprocessed ratings into URL stats."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple

import structlog

from trustscore.common import AggregationError, utcnow
from trustscore.config import TrustConfig
from trustscore.schemas import DomainStats, URLStats
from trustscore.scoring import TrustScoreCalculator, UrlScoring
from trustscore.stores import RatingStore, StatsStore

logger = structlog.get_logger()


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"


class Phase(str, Enum):
    """Step of a URL's processing in which a failure happened."""

    SCORING = "scoring"
    PERSISTING = "persisting"


@dataclass(frozen=True)
class UrlOutcome:
    """Result of aggregating one URL."""

    url_hash: str
    status: OutcomeStatus
    final_score: Optional[float] = None
    reason: Optional[str] = None
    phase: Optional[Phase] = None

    @classmethod
    def success(cls, url_hash: str, final_score: float) -> "UrlOutcome":
        return cls(url_hash=url_hash, status=OutcomeStatus.SUCCESS, final_score=final_score)

    @classmethod
    def skipped(cls, url_hash: str, reason: str, phase: Phase) -> "UrlOutcome":
        return cls(url_hash=url_hash, status=OutcomeStatus.SKIPPED, reason=reason, phase=phase)


@dataclass
class BatchReport:
    """Per-URL outcomes of one aggregation pass."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    outcomes: List[UrlOutcome] = field(default_factory=list)
    remaining: int = 0

    @property
    def processed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status is OutcomeStatus.SUCCESS)

    @property
    def skipped(self) -> List[UrlOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.SKIPPED]

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def extend(self, other: "BatchReport") -> None:
        self.outcomes.extend(other.outcomes)
        self.remaining = other.remaining
        self.finished_at = other.finished_at


class AggregationService:
    """
    Turns unprocessed ratings into materialized URL stats.

    Each URL is scored and persisted independently. A failure for one URL
    is logged and recorded in the report while the pass continues; its
    ratings stay unprocessed so the next pass retries them.
    """

    def __init__(
        self,
        config: TrustConfig,
        ratings: RatingStore,
        stats: StatsStore,
        calculator: TrustScoreCalculator,
        metrics=None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize aggregation service.

        Args:
            config: Batch size and worker settings
            ratings: Rating store to read and mark
            stats: Stats store to upsert into
            calculator: Per-URL score calculator
            metrics: Optional AggregationMetrics recording each pass
            clock: Time source for ``last_updated``
        """
        self.config = config
        self.ratings = ratings
        self.stats = stats
        self.calculator = calculator
        self.metrics = metrics
        self.clock = clock

    def _process_url(self, url_hash: str) -> Tuple[UrlOutcome, Optional[UrlScoring]]:
        try:
            scoring = self.calculator.compute(url_hash)
        except Exception as e:
            return self._skip(url_hash, Phase.SCORING, e), None

        try:
            self.stats.upsert(url_hash, scoring.to_url_stats(self.clock()))
        except Exception as e:
            return self._skip(url_hash, Phase.PERSISTING, e), None

        return UrlOutcome.success(url_hash, scoring.scores.final_score), scoring

    def _skip(self, url_hash: str, phase: Phase, error: Exception) -> UrlOutcome:
        failure = AggregationError(
            "URL aggregation failed",
            context={"url_hash": url_hash, "phase": phase.value},
            original_error=error,
        )
        logger.error(
            "Skipping URL",
            url_hash=url_hash,
            phase=phase.value,
            error=str(failure),
            error_type=type(error).__name__,
        )
        return UrlOutcome.skipped(url_hash, str(error) or type(error).__name__, phase)

    def run_pass(self) -> BatchReport:
        """
        Aggregate up to ``aggregation_batch_size`` URLs with unprocessed ratings.

        Ratings are marked processed only after the whole batch was scored,
        and only those in the snapshot each URL was scored from.

        Returns:
            BatchReport with one outcome per URL in the batch
        """
        report = BatchReport(started_at=self.clock())

        pending = self.ratings.unprocessed_url_hashes()
        batch = pending[: self.config.aggregation_batch_size]
        report.remaining = len(pending) - len(batch)

        logger.info(
            "Starting aggregation pass",
            batch_size=len(batch),
            remaining=report.remaining,
            workers=self.config.aggregation_workers,
        )

        # url hashes are distinct, so workers never share a URL
        if self.config.aggregation_workers > 1 and len(batch) > 1:
            with ThreadPoolExecutor(max_workers=self.config.aggregation_workers) as pool:
                results = list(pool.map(self._process_url, batch))
        else:
            results = [self._process_url(url_hash) for url_hash in batch]

        for outcome, scoring in results:
            if scoring is not None:
                try:
                    self.ratings.mark_processed(scoring.url_hash, scoring.rating_ids)
                except Exception as e:
                    outcome = self._skip(scoring.url_hash, Phase.PERSISTING, e)
            report.outcomes.append(outcome)

        report.finished_at = self.clock()

        logger.info(
            "Aggregation pass complete",
            processed=report.processed_count,
            skipped=report.skipped_count,
            remaining=report.remaining,
            duration_seconds=report.duration_seconds,
        )

        if self.metrics is not None:
            self.metrics.record_report(report)

        return report

    def recompute_all(self) -> BatchReport:
        """
        Rebuild every URL's scores from all ratings.

        Resets ``processed`` on every rating, clears derived scores, then
        runs passes until nothing is left or a pass makes no progress.
        """
        reset = self.ratings.reset_processed()
        cleared = self.stats.clear_scores()
        logger.info("Recompute requested", ratings_reset=reset, stats_cleared=cleared)

        report = self.run_pass()
        while report.remaining:
            next_report = self.run_pass()
            report.extend(next_report)
            if next_report.processed_count == 0:
                break

        return report

    def get_url_stats(self, url_hash: str) -> Optional[URLStats]:
        return self.stats.get(url_hash)

    def get_domain_stats(self, domain: str) -> Optional[DomainStats]:
        return self.stats.get_by_domain(domain)
