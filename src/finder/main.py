"""Entry point for the product finder.

Wires all components together, optionally serves the FastAPI API, and
runs scan cycles. When the API is enabled (default) the scheduler and the
API share one asyncio event loop via uvicorn's programmatic API and
FastAPI's lifespan context manager.

Component wiring order (in _build_components):
1. Clock
2. RateLimiter
3. TTLCache, PriceHistoryStore (snapshot-backed stores)
4. CategoryCatalog, CategoryScoreTracker, CategorySelector
5. EbayFindingClient (price lookup)
6. TableCostEstimator, ProfitCalculator
7. Demand provider (when enrichment is enabled)
8. Alert sink (SMTP or log)
9. ScanOrchestrator
"""

import asyncio
import random
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from finder.alerts.sink import build_alert_sink
from finder.categories.catalog import CategoryCatalog
from finder.categories.selector import CategorySelector
from finder.categories.tracker import CategoryScoreTracker
from finder.clock import SystemClock
from finder.config import AppSettings
from finder.enrichment.demand import SimulatedDemandProvider
from finder.logging import get_logger, setup_logging
from finder.marketplace.ebay_client import EbayFindingClient
from finder.orchestrator import ScanOrchestrator
from finder.pricing.profitability import ProfitCalculator
from finder.pricing.supplier import TableCostEstimator
from finder.scheduling.rate_limiter import RateLimiter
from finder.storage.cache import TTLCache
from finder.storage.database import SnapshotDatabase
from finder.storage.history import PriceHistoryStore
from finder.storage.snapshot import SqliteSnapshotStore

# Shutdown tasks spawned from signal handlers
_pending_tasks: set[asyncio.Task] = set()


def _build_components(settings: AppSettings, database: SnapshotDatabase) -> dict[str, Any]:
    """Build all scan components from settings.

    Does NOT load snapshots -- that happens once the database is connected,
    in run() or the API lifespan.

    Args:
        settings: Application-wide settings.
        database: Snapshot database (connected or not yet connected).

    Returns:
        Dict mapping component names to instances.
    """
    logger = get_logger("finder.main")
    clock = SystemClock()

    rate_limiter = RateLimiter(settings.rate_limit, clock=clock)
    cache = TTLCache(ttl_seconds=settings.cache.ttl_hours * 60 * 60, clock=clock)
    history = PriceHistoryStore(retention_days=settings.cache.history_retention_days, clock=clock)
    snapshot_store = SqliteSnapshotStore(database, clock=clock)

    catalog = CategoryCatalog()
    tracker = CategoryScoreTracker(recency_hours=settings.scan.recency_hours, clock=clock)
    selector = CategorySelector(catalog, tracker)

    price_lookup = EbayFindingClient(settings.marketplace)
    if not price_lookup.is_configured:
        logger.warning(
            "no_marketplace_app_id_configured",
            note="Every keyword will be skipped until EBAY_APP_ID is set.",
        )

    seed = settings.scan.cost_seed
    cost_estimator = TableCostEstimator(rng=random.Random(seed))
    calculator = ProfitCalculator(
        settings.fees,
        min_profit=settings.scan.min_profit,
        min_margin=settings.scan.min_margin,
    )

    demand_provider = (
        SimulatedDemandProvider(rng=random.Random(seed))
        if settings.scan.enrich_demand
        else None
    )

    alert_sink = build_alert_sink(settings.alerts)

    orchestrator = ScanOrchestrator(
        settings=settings,
        catalog=catalog,
        tracker=tracker,
        selector=selector,
        cache=cache,
        history=history,
        rate_limiter=rate_limiter,
        price_lookup=price_lookup,
        cost_estimator=cost_estimator,
        calculator=calculator,
        alert_sink=alert_sink,
        snapshot_store=snapshot_store,
        demand_provider=demand_provider,
        clock=clock,
    )

    return {
        "rate_limiter": rate_limiter,
        "cache": cache,
        "history": history,
        "snapshot_store": snapshot_store,
        "catalog": catalog,
        "tracker": tracker,
        "selector": selector,
        "price_lookup": price_lookup,
        "orchestrator": orchestrator,
    }


def _setup_signal_handlers(orchestrator: ScanOrchestrator) -> None:
    """SIGINT/SIGTERM stop the scheduler after the current keyword.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("finder.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        task = asyncio.create_task(orchestrator.stop())
        # The loop only keeps a weak reference to running tasks
        _pending_tasks.add(task)
        task.add_done_callback(_pending_tasks.discard)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: connects the snapshot database, loads state, exposes
    components on app.state and starts the interval scheduler if enabled.
    On shutdown: stops the scheduler and closes the database.
    """
    logger = get_logger("finder.main")
    settings: AppSettings = app.state.settings
    database: SnapshotDatabase = app.state.database
    components = app.state.components
    orchestrator: ScanOrchestrator = components["orchestrator"]

    await database.connect()
    await orchestrator.load_state()

    app.state.orchestrator = orchestrator
    app.state.history = components["history"]
    app.state.tracker = components["tracker"]
    app.state.catalog = components["catalog"]
    app.state.rate_limiter = components["rate_limiter"]

    scheduler_task = None
    if settings.scan.schedule_enabled:
        scheduler_task = asyncio.create_task(orchestrator.start())

    logger.info("lifespan_started", schedule_enabled=settings.scan.schedule_enabled)

    yield

    await orchestrator.stop()
    if scheduler_task is not None:
        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            pass

    await components["price_lookup"].close()
    await database.close()
    logger.info("product_finder_stopped")


async def run() -> None:
    """Run the product finder.

    With the API enabled (API_ENABLED=true, the default) uvicorn serves
    the API and the lifespan manages startup/shutdown. Without it, the
    scheduler runs directly when SCAN_SCHEDULE_ENABLED is set, otherwise
    a single cycle runs and the process exits.
    """
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("finder.main")

    database = SnapshotDatabase(settings.cache.db_path)
    components = _build_components(settings, database)
    orchestrator: ScanOrchestrator = components["orchestrator"]

    if settings.api.enabled:
        from finder.api.app import create_app

        app = create_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.database = database
        app.state.components = components

        logger.info(
            "starting_with_api",
            host=settings.api.host,
            port=settings.api.port,
            schedule_enabled=settings.scan.schedule_enabled,
        )

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
        return

    async with database:
        await orchestrator.load_state()
        _setup_signal_handlers(orchestrator)
        try:
            if settings.scan.schedule_enabled:
                logger.info(
                    "starting_without_api",
                    interval_seconds=settings.scan.interval_seconds,
                )
                await orchestrator.start()
            else:
                report = await orchestrator.run_cycle()
                logger.info(
                    "single_scan_finished",
                    findings=len(report.findings),
                    profitable=report.profitable_count,
                )
        finally:
            await components["price_lookup"].close()
            logger.info("product_finder_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
