"""REST API endpoints for daily health metrics."""

import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from dependencies import get_health_metric_manager
from health_metrics import METRIC_UNITS, SUPPLEMENTS, VIEW_RANGES, HealthMetricManager
from typedefs import HealthMetricEntry, SupplementDose

router = APIRouter(prefix="/api/v1/health-metrics", tags=["health-metrics"])


class SupplementDoseInput(BaseModel):
    """One row of the supplement form; blank rows are dropped."""

    name: str = ""
    amount: Optional[float] = None

    @field_validator("amount", mode="before")
    @classmethod
    def blank_amount_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class MetricEntryRequest(BaseModel):
    date: datetime.date = Field(default_factory=datetime.date.today)
    value: float | List[SupplementDoseInput]


class ViewRange(BaseModel):
    days: int


def _check_metric_type(metric_type: str) -> str:
    if metric_type not in METRIC_UNITS:
        raise HTTPException(
            status_code=404, detail=f"Unknown metric type: {metric_type}"
        )
    return metric_type


def build_entry(metric_type: str, request: MetricEntryRequest) -> HealthMetricEntry:
    """Validate a submitted value for its metric type and build the entry.

    Raises:
        HTTPException: 400 for future dates, non-positive values, or a
            supplement list without any complete row
    """
    if request.date > datetime.date.today():
        raise HTTPException(status_code=400, detail="Cannot log a future date")

    if metric_type == SUPPLEMENTS:
        if not isinstance(request.value, list):
            raise HTTPException(
                status_code=400, detail="Supplements must be a list of doses"
            )
        doses = [
            SupplementDose(name=dose.name.strip(), amount=dose.amount)
            for dose in request.value
            if dose.name.strip() and dose.amount
        ]
        if not doses:
            raise HTTPException(
                status_code=400, detail="Add at least one supplement with an amount"
            )
        value = doses
    else:
        if isinstance(request.value, list) or request.value <= 0:
            raise HTTPException(status_code=400, detail="Value must be a positive number")
        value = request.value

    return HealthMetricEntry(
        date=request.date, value=value, unit=METRIC_UNITS[metric_type]
    )


@router.get("/view-range", response_model=ViewRange)
def get_view_range(
    manager: HealthMetricManager = Depends(get_health_metric_manager),
) -> ViewRange:
    """Get the preferred chart/trend range in days (0 = all time)."""
    return ViewRange(days=manager.get_view_range())


@router.put("/view-range", response_model=ViewRange)
def set_view_range(
    view_range: ViewRange,
    manager: HealthMetricManager = Depends(get_health_metric_manager),
) -> ViewRange:
    if view_range.days not in VIEW_RANGES:
        raise HTTPException(
            status_code=400,
            detail=f"View range must be one of {list(VIEW_RANGES)}",
        )
    return ViewRange(days=manager.set_view_range(view_range.days))


@router.get("/{metric_type}", response_model=List[HealthMetricEntry])
def list_entries(
    metric_type: str,
    manager: HealthMetricManager = Depends(get_health_metric_manager),
) -> List[HealthMetricEntry]:
    """List a metric's entries, newest first."""
    return manager.get_entries(_check_metric_type(metric_type))


@router.post("/{metric_type}", response_model=List[HealthMetricEntry])
def save_entry(
    metric_type: str,
    request: MetricEntryRequest,
    manager: HealthMetricManager = Depends(get_health_metric_manager),
) -> List[HealthMetricEntry]:
    """Log a value for a day; logging the same day again overwrites it."""
    entry = build_entry(_check_metric_type(metric_type), request)
    return manager.save_entry(metric_type, entry)


@router.delete("/{metric_type}/{date}", response_model=List[HealthMetricEntry])
def delete_entry(
    metric_type: str,
    date: datetime.date,
    manager: HealthMetricManager = Depends(get_health_metric_manager),
) -> List[HealthMetricEntry]:
    return manager.delete_entry(_check_metric_type(metric_type), date)
