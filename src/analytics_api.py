"""REST API endpoints for streaks, heatmap, metric trends and personal records."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from analytics import (
    DEFAULT_HEATMAP_DAYS,
    build_heatmap,
    compute_streak,
    exercise_prs,
    metric_trend,
)
from dependencies import get_local_store
from health_metrics import METRIC_UNITS, trend_window_days
from local_store import LocalStore
from typedefs import HeatmapDay, SetEntry, StreakStats, TrendResult

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


@router.get("/streak", response_model=StreakStats)
def get_streak(store: LocalStore = Depends(get_local_store)) -> StreakStats:
    return compute_streak(store.get_sessions())


@router.get("/heatmap", response_model=List[HeatmapDay])
def get_heatmap(
    days: int = Query(DEFAULT_HEATMAP_DAYS, ge=1, le=3660),
    store: LocalStore = Depends(get_local_store),
) -> List[HeatmapDay]:
    """Per-day session counts for the trailing window, oldest day first."""
    return build_heatmap(store.get_sessions(), days=days)


@router.get("/trend/{metric_type}", response_model=TrendResult)
def get_trend(
    metric_type: str,
    days: Optional[int] = Query(None, ge=1),
    store: LocalStore = Depends(get_local_store),
) -> TrendResult:
    """Trend of a metric; the window defaults to the saved view range."""
    if metric_type not in METRIC_UNITS:
        raise HTTPException(
            status_code=404, detail=f"Unknown metric type: {metric_type}"
        )
    if days is None:
        days = trend_window_days(store.get_view_range())
    return metric_trend(store.get_health_metrics(metric_type), days=days)


@router.get("/prs", response_model=List[SetEntry])
def get_personal_records(
    exercise: str = Query(..., min_length=1),
    store: LocalStore = Depends(get_local_store),
) -> List[SetEntry]:
    """Best weight (then reps) for each of the first three set positions."""
    return exercise_prs(store.get_sessions(), exercise)
