"""Trust score engine service orchestration."""

import argparse
import asyncio
import signal
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from trustscore.aggregation import AggregationScheduler, AggregationService, RetentionSweeper
from trustscore.common import TrustEngineError, constants, setup_logging
from trustscore.config import TrustConfig, load_config, load_rules
from trustscore.ingestion import RatingIngestionService
from trustscore.monitoring import AggregationMetrics
from trustscore.rules import BlacklistMatcher, ContentClassifier, ContentRuleGenerator
from trustscore.scoring import TrustScoreCalculator
from trustscore.signals import DomainSignalProvider, DomainSignalRefresher, HTTPSignalProvider
from trustscore.stores import (
    InMemoryDomainSignalCache,
    InMemoryRatingStore,
    InMemoryRuleStore,
    InMemoryStatsStore,
)

logger = structlog.get_logger()


@dataclass
class TrustEngine:
    """Every component of a running engine, wired to shared stores."""

    config: TrustConfig
    ratings: InMemoryRatingStore
    cache: InMemoryDomainSignalCache
    stats: InMemoryStatsStore
    rules: InMemoryRuleStore
    calculator: TrustScoreCalculator
    aggregation: AggregationService
    refresher: DomainSignalRefresher
    ingestion: RatingIngestionService
    rule_generator: ContentRuleGenerator
    sweeper: RetentionSweeper
    metrics: AggregationMetrics

    def build_scheduler(self) -> AggregationScheduler:
        """Scheduler running aggregation plus the daily maintenance jobs."""
        scheduler = AggregationScheduler(
            self.aggregation.run_pass,
            interval_seconds=self.config.aggregation_interval_seconds,
            metrics=self.metrics,
        )
        scheduler.add_job("domain_refresh", self.refresher.refresh_stale)
        scheduler.add_job("rule_generation", self.rule_generator.generate)
        scheduler.add_job("retention", self.sweeper.sweep)
        return scheduler


def build_engine(
    config: TrustConfig,
    rules_path: Optional[str] = None,
    provider: Optional[DomainSignalProvider] = None,
) -> TrustEngine:
    """
    Wire stores and services together.

    Args:
        config: Validated configuration
        rules_path: YAML file with seed blacklist and content rules
        provider: Domain signal provider (default: HTTPSignalProvider)

    Returns:
        TrustEngine
    """
    blacklist, content_rules = load_rules(rules_path) if rules_path else ([], [])

    ratings = InMemoryRatingStore()
    cache = InMemoryDomainSignalCache(ttl_days=config.cache_ttl_days)
    stats = InMemoryStatsStore()
    rules = InMemoryRuleStore(blacklist=blacklist, content_rules=content_rules)
    metrics = AggregationMetrics(pushgateway_url=config.pushgateway_url)

    calculator = TrustScoreCalculator(
        config=config,
        ratings=ratings,
        cache=cache,
        blacklist=BlacklistMatcher(
            rules,
            severity_multiplier=config.blacklist_severity_multiplier,
            max_penalty=config.max_blacklist_penalty,
        ),
        classifier=ContentClassifier(rules),
        stats=stats,
    )

    provider = provider or HTTPSignalProvider(
        timeout=config.http_timeout,
        retries=config.refresh_retries,
        backoff=config.refresh_backoff,
        safe_browsing_api_key=config.safe_browsing_api_key,
    )
    refresher = DomainSignalRefresher(cache, provider, stats_store=stats, config=config)

    return TrustEngine(
        config=config,
        ratings=ratings,
        cache=cache,
        stats=stats,
        rules=rules,
        calculator=calculator,
        aggregation=AggregationService(config, ratings, stats, calculator, metrics=metrics),
        refresher=refresher,
        ingestion=RatingIngestionService(ratings, refresher=refresher),
        rule_generator=ContentRuleGenerator(ratings, rules),
        sweeper=RetentionSweeper(config, ratings, cache, stats),
        metrics=metrics,
    )


async def run_service(engine: TrustEngine, once: bool = False, recompute: bool = False) -> Dict[str, Any]:
    """
    Run the engine.

    Args:
        engine: Wired engine
        once: Run a single aggregation pass and return
        recompute: Recompute every URL before anything else

    Returns:
        Execution statistics
    """
    if recompute:
        report = await asyncio.to_thread(engine.aggregation.recompute_all)
        logger.info(
            "Recompute complete",
            processed=report.processed_count,
            skipped=report.skipped_count,
        )

    if once:
        report = await asyncio.to_thread(engine.aggregation.run_pass)
        engine.metrics.push()
        return {
            "status": "success",
            "processed": report.processed_count,
            "skipped": report.skipped_count,
            "remaining": report.remaining,
        }

    scheduler = engine.build_scheduler()
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    await scheduler.run_forever(stop_event)
    engine.metrics.push()

    return {
        "status": "stopped",
        "jobs": {
            job.name: {"runs": job.runs, "failures": job.failures, "skipped_ticks": job.skipped_ticks}
            for job in scheduler.jobs
        },
    }


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="URL Trust Score Aggregation Engine")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH} if present)",
    )
    parser.add_argument(
        "--rules",
        type=str,
        default=None,
        help=f"Path to seed rules file (default: {constants.DEFAULT_RULES_PATH} if present)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=constants.DEFAULT_LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs in JSON format",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single aggregation pass and exit",
    )
    parser.add_argument(
        "--recompute",
        action="store_true",
        help="Recompute all URL scores from every rating before starting",
    )

    args = parser.parse_args()

    global logger
    logger = setup_logging(
        level=args.log_level,
        service_name="trustscore",
        json_format=args.json_logs,
    )

    rules_path = args.rules
    if rules_path is None and Path(constants.DEFAULT_RULES_PATH).exists():
        rules_path = constants.DEFAULT_RULES_PATH

    try:
        config = load_config(args.config)
        engine = build_engine(config, rules_path=rules_path)
    except TrustEngineError as e:
        logger.error("Invalid configuration", error=str(e))
        sys.exit(2)

    logger.info(
        "Starting trust score engine",
        config_path=args.config,
        rules_path=rules_path,
        once=args.once,
        recompute=args.recompute,
    )

    try:
        result = asyncio.run(run_service(engine, once=args.once, recompute=args.recompute))

        logger.info("Service completed successfully", result=result)
        sys.exit(0)

    except KeyboardInterrupt:
        logger.info("Service interrupted by user")
        sys.exit(0)

    except Exception as e:
        logger.error("Service failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
