"""Derived analytics over workout history and health metrics.

All functions are pure: they take the record collections as read from the
local store and recompute everything on each call. Nothing is cached.
"""

import datetime
import math
from collections import defaultdict
from typing import Dict, List, Sequence

from sessions import session_day
from typedefs import (
    HealthMetricEntry,
    HeatmapDay,
    SessionRef,
    SetEntry,
    StreakStats,
    Trend,
    TrendResult,
    WorkoutSession,
)

ONE_DAY = datetime.timedelta(days=1)

DEFAULT_HEATMAP_DAYS = 365
MAX_HEATMAP_LEVEL = 4

MIN_TREND_ENTRIES = 3
# Percentage change at or below which a metric is considered stable
STABLE_THRESHOLD_PERCENT = 2.0

PR_SLOTS = 3


def _today(today: datetime.date | None) -> datetime.date:
    return today if today is not None else datetime.date.today()


def compute_streak(
    sessions: Sequence[WorkoutSession], today: datetime.date | None = None
) -> StreakStats:
    """Compute current and longest streaks of consecutive workout days.

    A current streak is alive only if the most recent workout day is today or
    yesterday; it counts consecutive days backwards from there. The longest
    streak is the longest run of consecutive days anywhere in the history.

    Args:
        sessions: All workout sessions
        today: Reference day (default: today)

    Returns:
        StreakStats, where total_workouts is the raw session count

    Examples:
        Workout days {today, yesterday, today-2} -> current 3, longest 3.
        Workout days {today-3, today-4} -> current 0, longest 2.
    """
    today = _today(today)
    days = {session_day(s) for s in sessions}

    current = 0
    if today in days:
        cursor = today
    elif today - ONE_DAY in days:
        cursor = today - ONE_DAY
    else:
        cursor = None
    while cursor is not None and cursor in days:
        current += 1
        cursor -= ONE_DAY

    longest = 0
    run = 0
    previous = None
    for day in sorted(days):
        run = run + 1 if previous is not None and day - previous == ONE_DAY else 1
        longest = max(longest, run)
        previous = day

    return StreakStats(
        current_streak=current, longest_streak=longest, total_workouts=len(sessions)
    )


def heatmap_level(count: int) -> int:
    """Bucket a daily session count: 0, 1, 2, 3 map to themselves, 4+ to 4."""
    return min(max(count, 0), MAX_HEATMAP_LEVEL)


def sunday_weekday_index(day: datetime.date) -> int:
    """Weekday index with Sunday=0 ... Saturday=6."""
    return (day.weekday() + 1) % 7


def build_heatmap(
    sessions: Sequence[WorkoutSession],
    days: int = DEFAULT_HEATMAP_DAYS,
    today: datetime.date | None = None,
) -> List[HeatmapDay]:
    """Build one heatmap cell per day for the trailing window ending today.

    Days without sessions are included with count 0 so the grid stays
    contiguous. Cells are ordered oldest first.

    Args:
        sessions: All workout sessions
        days: Window length in days (default: 365)
        today: Last day of the window (default: today)

    Returns:
        Exactly ``days`` HeatmapDay records
    """
    today = _today(today)
    by_day: Dict[datetime.date, List[WorkoutSession]] = defaultdict(list)
    for session in sessions:
        by_day[session_day(session)].append(session)

    cells = []
    for offset in range(days - 1, -1, -1):
        day = today - datetime.timedelta(days=offset)
        day_sessions = by_day.get(day, [])
        cells.append(
            HeatmapDay(
                date=day,
                count=len(day_sessions),
                level=heatmap_level(len(day_sessions)),
                weekday_index=sunday_weekday_index(day),
                sessions=[SessionRef(id=s.id, name=s.name) for s in day_sessions],
            )
        )
    return cells


def metric_trend(
    entries: Sequence[HealthMetricEntry],
    days: int = 30,
    today: datetime.date | None = None,
) -> TrendResult:
    """Classify the direction of a metric over a trailing window.

    Compares the average of the oldest 30% of entries in the window with the
    average of the newest 30% (rounded up, at least one entry each).

    Bucket edges:
        change <= 2% in magnitude -> stable
        change > 2%               -> increasing
        change < -2%              -> decreasing
        fewer than 3 entries      -> insufficient

    Only numeric values take part; list values (supplements) are ignored.

    Args:
        entries: Entries of a single metric type
        days: Window length in days; entries dated on or after today - days count
        today: Reference day (default: today)

    Returns:
        TrendResult with the percentage change of the sample averages
    """
    cutoff = _today(today) - datetime.timedelta(days=days)
    window = sorted(
        (
            e
            for e in entries
            if e.date >= cutoff and isinstance(e.value, (int, float))
        ),
        key=lambda e: e.date,
    )

    if len(window) < MIN_TREND_ENTRIES:
        return TrendResult.of(Trend.INSUFFICIENT)

    sample_size = max(1, math.ceil(len(window) * 3 / 10))
    first_avg = sum(e.value for e in window[:sample_size]) / sample_size
    last_avg = sum(e.value for e in window[-sample_size:]) / sample_size

    if first_avg == 0:
        # No baseline to measure relative change against
        return TrendResult.of(Trend.INSUFFICIENT)

    change = (last_avg - first_avg) * 100 / first_avg

    if abs(change) <= STABLE_THRESHOLD_PERCENT:
        return TrendResult.of(Trend.STABLE, change)
    if change > STABLE_THRESHOLD_PERCENT:
        return TrendResult.of(Trend.INCREASING, change)
    return TrendResult.of(Trend.DECREASING, change)


def exercise_prs(
    sessions: Sequence[WorkoutSession], exercise_name: str
) -> List[SetEntry]:
    """Find the best set for each of the first three set positions of an exercise.

    Only completed logs count, and names match case-insensitively. For each
    slot the heaviest weight wins; on equal weight the higher rep count wins.
    Sets without a positive weight are never records.

    Args:
        sessions: All workout sessions
        exercise_name: Exercise to look up

    Returns:
        Three SetEntry slots; a slot never logged stays empty
    """
    prs = [SetEntry() for _ in range(PR_SLOTS)]
    if not exercise_name:
        return prs

    wanted = exercise_name.lower()
    for session in sessions:
        for exercise in session.exercises:
            if not exercise.is_completed or exercise.name.lower() != wanted:
                continue
            for slot, entry in enumerate(exercise.sets[:PR_SLOTS]):
                if entry.weight is None or entry.weight <= 0:
                    continue
                best = prs[slot]
                if (
                    best.weight is None
                    or entry.weight > best.weight
                    or (
                        entry.weight == best.weight
                        and (entry.reps or 0) > (best.reps or 0)
                    )
                ):
                    prs[slot] = entry.model_copy()
    return prs
