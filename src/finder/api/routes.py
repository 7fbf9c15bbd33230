"""JSON API endpoints: status, on-demand scan, price history, category performance."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from finder.exceptions import ConfigurationError, CycleInProgressError
from finder.storage.history import derive_trend

log = structlog.get_logger(__name__)

router = APIRouter()


def _iso(instant: float | None) -> str | None:
    if instant is None:
        return None
    return datetime.fromtimestamp(instant, tz=timezone.utc).isoformat()


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Scheduler state, cache size, rate limiter usage and last cycle summary."""
    orchestrator = request.app.state.orchestrator
    settings = request.app.state.settings
    status = orchestrator.get_status()
    status["marketplace_configured"] = bool(
        settings.marketplace.app_id.get_secret_value()
    )
    status["features"] = {
        "price_history": settings.scan.price_history_enabled,
        "category_scanning": settings.scan.category_scanning_enabled,
        "demand_enrichment": settings.scan.enrich_demand,
        "include_all_findings": settings.scan.include_all_findings,
    }
    return JSONResponse(content=status)


@router.post("/scan")
async def trigger_scan(request: Request) -> JSONResponse:
    """Run one scan cycle and return its report. 409 if a cycle is already running."""
    orchestrator = request.app.state.orchestrator
    try:
        report = await orchestrator.run_cycle()
    except CycleInProgressError as e:
        log.info("scan_request_rejected", reason="cycle_in_progress")
        return JSONResponse(status_code=409, content={"success": False, "error": str(e)})
    except ConfigurationError as e:
        log.error("scan_request_failed", error=str(e))
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return JSONResponse(content={"success": True, **report.to_dict()})


@router.post("/scan/cancel")
async def cancel_scan(request: Request) -> JSONResponse:
    """Ask the running cycle to stop after its current keyword."""
    cancelled = request.app.state.orchestrator.cancel()
    return JSONResponse(content={"success": True, "cancel_requested": cancelled})


@router.get("/history/{keyword}")
async def get_history(
    request: Request,
    keyword: str,
    days: int = Query(default=30, ge=1, le=365),
) -> JSONResponse:
    """Recorded price points for a keyword within the last `days` days."""
    history = request.app.state.history
    points = history.query(keyword, days)
    return JSONResponse(
        content={
            "success": True,
            "keyword": keyword,
            "days_requested": days,
            "data_points": len(points),
            "trend": derive_trend(points).value,
            "history": [
                {**p.to_dict(), "recorded_at": _iso(p.recorded_at)} for p in points
            ],
        }
    )


@router.get("/categories/performance")
async def get_category_performance(request: Request) -> JSONResponse:
    """Catalog categories ranked by score with their running statistics."""
    tracker = request.app.state.tracker
    catalog = request.app.state.catalog
    stats = tracker.snapshot()

    categories = []
    for name in tracker.top_categories(len(catalog), among=catalog.categories):
        entry = stats.get(name)
        categories.append({
            "category": name,
            "score": tracker.score_of(name),
            "success_rate": str(round(entry.success_rate, 1)) if entry else "0",
            "avg_profit": str(round(entry.avg_profit, 2)) if entry else "0",
            "total_scanned": entry.total_scanned if entry else 0,
            "last_scanned_at": _iso(entry.last_scanned_at) if entry else None,
            "eligible": tracker.should_scan(name),
        })

    return JSONResponse(
        content={
            "success": True,
            "categories": categories,
            "total_categories": len(catalog),
            "available_products": catalog.total_keywords(),
        }
    )


@router.get("/rate-limit")
async def get_rate_limit(request: Request) -> JSONResponse:
    """Marketplace call counts for the trailing hour and day."""
    stats = request.app.state.rate_limiter.stats()
    return JSONResponse(content=stats.to_dict())
