import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class SetEntry(BaseModel):
    """A single set slot within an exercise log.

    ``None`` means "not yet logged" and is distinct from zero. The logging
    form submits empty strings for untouched fields, so those are accepted
    as ``None`` too.
    """

    reps: int | None = None
    weight: float | None = None

    @field_validator("reps", "weight", mode="before")
    @classmethod
    def empty_string_is_unlogged(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ExerciseLog(BaseModel):
    """Exercise within a session.

    ``is_completed`` is False for exercises seeded from a template and
    flips to True once sets are logged through the exercise form.
    """

    id: str
    name: str
    sets: List[SetEntry] = []
    is_completed: bool = Field(default=False, alias="isCompleted")

    class Config:
        populate_by_name = True


class WorkoutSession(BaseModel):
    id: str
    date: datetime.datetime
    name: str
    exercises: List[ExerciseLog] = []


class Template(BaseModel):
    id: str
    name: str
    exercises: List[str]  # Exercise names, in order


class SupplementDose(BaseModel):
    name: str
    amount: float


class HealthMetricEntry(BaseModel):
    """One value for one metric type on one calendar day.

    ``value`` is a list of doses for the supplements metric and a plain
    number for every other metric type.
    """

    date: datetime.date
    value: float | List[SupplementDose]
    unit: str
    created_at: datetime.datetime = Field(default_factory=_utcnow, alias="createdAt")

    class Config:
        populate_by_name = True


class ExerciseDraft(BaseModel):
    """Unsaved exercise-log form contents, kept to resume interrupted entry."""

    name: str = ""
    sets: List[SetEntry] = []


class UserData(BaseModel):
    """The account bundle mirrored to the remote user document."""

    sessions: List[WorkoutSession] = []
    templates: List[Template] = []


# Analytics results


class StreakStats(BaseModel):
    current_streak: int
    longest_streak: int
    total_workouts: int  # Raw session count, not unique days


class SessionRef(BaseModel):
    id: str
    name: str


class HeatmapDay(BaseModel):
    date: datetime.date
    count: int
    level: int  # 0-4 intensity bucket
    weekday_index: int  # 0=Sunday, ..., 6=Saturday
    sessions: List[SessionRef] = []


class Trend(str, Enum):
    INSUFFICIENT = "insufficient"
    STABLE = "stable"
    INCREASING = "increasing"
    DECREASING = "decreasing"


TREND_LABELS = {
    Trend.INSUFFICIENT: "Insufficient Data",
    Trend.STABLE: "Stable",
    Trend.INCREASING: "Increasing",
    Trend.DECREASING: "Decreasing",
}


class TrendResult(BaseModel):
    trend: Trend
    label: str
    percentage: float = 0.0

    @classmethod
    def of(cls, trend: Trend, percentage: float = 0.0) -> "TrendResult":
        return cls(trend=trend, label=TREND_LABELS[trend], percentage=percentage)
