"""Scan orchestrator -- wires the scan core and runs scan cycles.

Each cycle walks a fixed state sequence:
  1. SELECTING_CATEGORIES: pick categories (adaptive, or the whole catalog)
     and expand them to keywords. Misconfiguration aborts here, before any
     remote call.
  2. SCANNING: for each keyword, in order:
       cache hit  -> reuse the summary, no rate limiting
       cache miss -> RateLimiter.acquire(), remote lookup, cache store
     then supplier estimate, profitability, history, enrichment, alerts.
     A failing keyword is logged and skipped; the cycle continues.
  3. AGGREGATING: fold findings into per-category statistics.
  4. PERSISTING: save cache, price history and category snapshots.

Only one cycle runs at a time. An on-demand trigger while a cycle is in
flight is rejected with CycleInProgressError; the interval scheduler
queues behind the in-flight cycle on the same lock. Cancellation is
cooperative and checked between keywords.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from decimal import ROUND_HALF_UP, Decimal

import structlog

from finder.alerts.sink import AlertSink, is_standout
from finder.categories.catalog import CategoryCatalog, ScanTarget
from finder.categories.selector import CategorySelector
from finder.categories.tracker import CategoryScoreTracker
from finder.clock import Clock, SystemClock
from finder.config import AppSettings
from finder.enrichment.demand import DemandProvider
from finder.exceptions import CycleInProgressError, RemoteUnavailableError
from finder.logging import get_logger
from finder.marketplace.client import PriceLookup
from finder.marketplace.ebay_client import sold_listings_url
from finder.models import CycleState, Finding, HistoryPoint, PriceSummary, ScanReport
from finder.pricing.profitability import ProfitCalculator, classify_competition
from finder.pricing.supplier import CostEstimator, supplier_quotes
from finder.scheduling.rate_limiter import RateLimiter
from finder.storage.cache import TTLCache
from finder.storage.history import PriceHistoryStore, derive_trend
from finder.storage.snapshot import SnapshotStore

logger = get_logger(__name__)

_CENTS = Decimal("0.01")

# Pause before the scheduler retries after an unexpected cycle failure
_ERROR_BACKOFF_SECONDS = 10


def display_name(keyword: str) -> str:
    """'phone ring holder' -> 'Phone Ring Holder'."""
    return " ".join(word[:1].upper() + word[1:] for word in keyword.split(" "))


class ScanOrchestrator:
    """Runs scan cycles over the category catalog.

    Args:
        settings: Application-wide settings (scan flags, alerts, cache windows).
        catalog: Category -> keyword table.
        tracker: Category performance and recency state.
        selector: Category selection policy.
        cache: Response cache keyed by keyword.
        history: Rolling per-keyword price history.
        rate_limiter: Gate in front of every remote lookup.
        price_lookup: Marketplace sold-price summary provider.
        cost_estimator: Supplier unit-cost model.
        calculator: Profit math and threshold policy.
        alert_sink: Destination for standout findings.
        snapshot_store: Durable storage for the in-memory stores.
        demand_provider: Optional trend/social-proof enrichment.
        clock: Time source (injected in tests).
    """

    def __init__(
        self,
        settings: AppSettings,
        catalog: CategoryCatalog,
        tracker: CategoryScoreTracker,
        selector: CategorySelector,
        cache: TTLCache,
        history: PriceHistoryStore,
        rate_limiter: RateLimiter,
        price_lookup: PriceLookup,
        cost_estimator: CostEstimator,
        calculator: ProfitCalculator,
        alert_sink: AlertSink,
        snapshot_store: SnapshotStore,
        demand_provider: DemandProvider | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._settings = settings
        self._catalog = catalog
        self._tracker = tracker
        self._selector = selector
        self._cache = cache
        self._history = history
        self._rate_limiter = rate_limiter
        self._price_lookup = price_lookup
        self._cost_estimator = cost_estimator
        self._calculator = calculator
        self._alert_sink = alert_sink
        self._snapshot_store = snapshot_store
        self._demand_provider = demand_provider
        self._clock = clock or SystemClock()

        self._state = CycleState.IDLE
        self._cycle_lock = asyncio.Lock()
        self._cancel_requested = False
        self._running = False
        self._stop_event = asyncio.Event()
        self._last_report: ScanReport | None = None

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def load_state(self) -> None:
        """Load cache, history and category snapshots; seed catalog categories."""
        await self._cache.load_from(self._snapshot_store)
        await self._history.load_from(self._snapshot_store)
        await self._tracker.load_from(self._snapshot_store)
        self._tracker.seed(self._catalog.categories)
        logger.info(
            "scan_state_loaded",
            categories=len(self._catalog),
            keywords=self._catalog.total_keywords(),
        )

    async def start(self) -> None:
        """Run cycles on a fixed interval until stop() is called."""
        interval = self._settings.scan.interval_seconds
        logger.info("scan_scheduler_starting", interval_seconds=interval)
        self._running = True
        self._stop_event.clear()

        try:
            while self._running:
                try:
                    async with self._cycle_lock:
                        await self._execute_cycle()
                except asyncio.CancelledError:
                    break
                except Exception as e:
                    logger.error("scan_cycle_error", error=str(e), exc_info=True)
                    await self._wait_or_stop(_ERROR_BACKOFF_SECONDS)
                    continue
                await self._wait_or_stop(interval)
        finally:
            self._running = False
            logger.info("scan_scheduler_stopped")

    async def stop(self) -> None:
        """Stop the scheduler and cancel any in-flight cycle between keywords."""
        logger.info("scan_scheduler_stopping")
        self._running = False
        self._stop_event.set()
        self.cancel()

    async def _wait_or_stop(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def cancel(self) -> bool:
        """Ask the in-flight cycle to stop after its current keyword.

        Returns True if a cycle was running.
        """
        if not self._cycle_lock.locked():
            return False
        self._cancel_requested = True
        logger.info("scan_cancel_requested")
        return True

    async def run_cycle(self) -> ScanReport:
        """Run one cycle now (on-demand trigger).

        Raises:
            CycleInProgressError: If a cycle is already running.
            ConfigurationError: If category/keyword enumeration is invalid.
        """
        if self._cycle_lock.locked():
            raise CycleInProgressError("A scan cycle is already running")
        async with self._cycle_lock:
            return await self._execute_cycle()

    # ──────────────────────────────────────────────
    # Cycle
    # ──────────────────────────────────────────────

    async def _execute_cycle(self) -> ScanReport:
        cycle_id = uuid.uuid4().hex[:8]
        self._cancel_requested = False
        started = time.monotonic()
        report = ScanReport(cycle_id=cycle_id, started_at=self._clock.now())

        with structlog.contextvars.bound_contextvars(cycle_id=cycle_id):
            try:
                self._state = CycleState.SELECTING_CATEGORIES
                categories = self._select_categories()
                targets = self._catalog.expand(categories)
                report.categories_scanned = categories
                logger.info(
                    "scan_cycle_started",
                    categories=categories,
                    keywords=len(targets),
                )

                self._state = CycleState.SCANNING
                findings, attempted = await self._scan_targets(targets, report)

                self._state = CycleState.AGGREGATING
                self._aggregate(categories, attempted, findings, report)

                self._state = CycleState.PERSISTING
                await self._persist()
            finally:
                self._state = CycleState.IDLE

            report.duration_seconds = time.monotonic() - started
            report.rate_limit = self._rate_limiter.stats()
            self._last_report = report

            logger.info(
                "scan_cycle_complete",
                findings=len(report.findings),
                profitable=report.profitable_count,
                skipped=report.keywords_skipped,
                cache_hits=report.cache_hits,
                remote_calls=report.remote_calls,
                cancelled=report.cancelled,
                duration_seconds=round(report.duration_seconds, 1),
            )
        return report

    def _select_categories(self) -> list[str]:
        if not self._settings.scan.category_scanning_enabled:
            return self._catalog.categories
        return self._selector.select(self._settings.scan.max_categories)

    async def _scan_targets(
        self, targets: list[ScanTarget], report: ScanReport
    ) -> tuple[list[Finding], set[str]]:
        """Scan targets sequentially. Returns every priced finding and the categories reached."""
        findings: list[Finding] = []
        attempted: set[str] = set()

        for index, target in enumerate(targets, 1):
            if self._cancel_requested:
                report.cancelled = True
                logger.info(
                    "scan_cycle_cancelled",
                    completed=index - 1,
                    remaining=len(targets) - index + 1,
                )
                break

            attempted.add(target.category)
            try:
                finding = await self._scan_keyword(target, report)
            except Exception as e:
                logger.error(
                    "keyword_scan_failed",
                    keyword=target.keyword,
                    error=str(e),
                    exc_info=True,
                )
                finding = None

            if finding is None:
                report.keywords_skipped += 1
                continue

            report.keywords_scanned += 1
            findings.append(finding)
            if self._settings.scan.include_all_findings or finding.meets_threshold:
                report.findings.append(finding)

            if is_standout(finding, self._settings.alerts):
                if await self._notify(finding):
                    report.alerts_sent += 1

        return findings, attempted

    async def _scan_keyword(self, target: ScanTarget, report: ScanReport) -> Finding | None:
        keyword = target.keyword
        summary = await self._fetch_summary(keyword, report)
        if summary is None:
            return None

        supplier_price = self._cost_estimator.estimate(keyword)
        breakdown = self._calculator.calculate(summary.avg_price, supplier_price)
        profit = breakdown.profit.quantize(_CENTS, rounding=ROUND_HALF_UP)
        margin = breakdown.margin.quantize(_CENTS, rounding=ROUND_HALF_UP)
        now = self._clock.now()

        finding = Finding(
            keyword=keyword,
            name=display_name(keyword),
            category=target.category,
            buy_price=supplier_price,
            sell_price=summary.avg_price,
            profit=profit,
            margin=margin,
            competition=classify_competition(summary.sold_count),
            sold_count=summary.sold_count,
            # Judged on the reported figures so the flag agrees with them.
            meets_threshold=self._calculator.qualifies(profit, margin),
            found_at=now,
            suppliers=supplier_quotes(keyword, supplier_price),
            top_sellers=list(summary.top_sellers),
            search_url=sold_listings_url(keyword),
        )

        if self._settings.scan.price_history_enabled:
            self._history.record(
                keyword,
                HistoryPoint(
                    avg_price=summary.avg_price,
                    min_price=summary.min_price,
                    max_price=summary.max_price,
                    profit=profit,
                    margin=margin,
                    sold_count=summary.sold_count,
                    recorded_at=now,
                ),
            )
            window = self._history.query(keyword, self._settings.cache.trend_window_days)
            finding.trend = derive_trend(window)
            finding.history_points = len(window)

        if self._settings.scan.enrich_demand and self._demand_provider is not None:
            finding.demand = self._demand_provider.signals(keyword)

        logger.info(
            "keyword_priced",
            keyword=keyword,
            profit=str(profit),
            margin=str(margin),
            meets_threshold=finding.meets_threshold,
        )
        return finding

    async def _fetch_summary(self, keyword: str, report: ScanReport) -> PriceSummary | None:
        """Cache first; on a miss, rate-limit, call the marketplace and cache the result.

        An unreadable cache entry is evicted and treated as a miss. An
        unconfigured lookup skips the keyword without consuming quota.
        """
        cached = self._cache.get(keyword)
        if cached is not None:
            try:
                summary = PriceSummary.from_dict(cached)
            except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                logger.warning("cache_entry_corrupt", keyword=keyword, error=str(e))
                self._cache.discard(keyword)
            else:
                report.cache_hits += 1
                return summary

        if not self._price_lookup.is_configured:
            logger.info("keyword_skipped", keyword=keyword, reason="lookup_not_configured")
            return None

        await self._rate_limiter.acquire()
        report.remote_calls += 1
        try:
            summary = await self._price_lookup.lookup(keyword)
        except (RemoteUnavailableError, asyncio.TimeoutError) as e:
            logger.warning(
                "keyword_skipped",
                keyword=keyword,
                reason="remote_unavailable",
                error=str(e),
            )
            return None

        if summary is None:
            logger.info("keyword_skipped", keyword=keyword, reason="no_data")
            return None

        self._cache.set(keyword, summary.to_dict())
        return summary

    async def _notify(self, finding: Finding) -> bool:
        try:
            return await self._alert_sink.send(finding)
        except Exception as e:
            logger.warning("alert_sink_error", keyword=finding.keyword, error=str(e))
            return False

    def _aggregate(
        self,
        categories: list[str],
        attempted: set[str],
        findings: list[Finding],
        report: ScanReport,
    ) -> None:
        by_category: dict[str, list[Finding]] = {c: [] for c in categories if c in attempted}
        for finding in findings:
            by_category.setdefault(finding.category, []).append(finding)

        for category, category_findings in by_category.items():
            self._tracker.update(category, category_findings)
            report.category_breakdown[category] = {
                "total": len(category_findings),
                "profitable": sum(1 for f in category_findings if f.meets_threshold),
            }

    async def _persist(self) -> None:
        await self._cache.save_to(self._snapshot_store)
        if self._settings.scan.price_history_enabled:
            await self._history.save_to(self._snapshot_store)
        await self._tracker.save_to(self._snapshot_store)

    # ──────────────────────────────────────────────
    # Status
    # ──────────────────────────────────────────────

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether the interval scheduler is active."""
        return self._running

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    @property
    def last_report(self) -> ScanReport | None:
        return self._last_report

    def get_status(self) -> dict:
        """Scheduler state, cache size, rate limiter usage and last cycle summary."""
        last = self._last_report
        return {
            "state": self._state.value,
            "scheduler_running": self._running,
            "cycle_in_progress": self.cycle_in_progress,
            "cache_entries": len(self._cache),
            "rate_limit": self._rate_limiter.stats().to_dict(),
            "last_cycle": (
                {
                    "cycle_id": last.cycle_id,
                    "findings": len(last.findings),
                    "profitable": last.profitable_count,
                    "categories_scanned": last.categories_scanned,
                    "cancelled": last.cancelled,
                    "duration_seconds": round(last.duration_seconds, 1),
                }
                if last is not None
                else None
            ),
        }
