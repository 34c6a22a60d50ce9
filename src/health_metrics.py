"""Daily health metric entries, one per metric type per calendar day."""

import datetime
import logging
from typing import List

from local_store import LocalStore
from reconciliation import SyncService, sort_entries
from typedefs import HealthMetricEntry

logger = logging.getLogger(__name__)

SUPPLEMENTS = "supplements"

# Metric type -> unit
METRIC_UNITS = {
    "bodyWeight": "kg",
    "sleepQuality": "rating",
    "muscleFatigue": "%",
    "waterIntake": "L",
    SUPPLEMENTS: "g",
}

# Allowed view range presets in days; 0 means all time
VIEW_RANGES = (7, 30, 90, 0)
ALL_TIME_TREND_DAYS = 365


def trend_window_days(view_range: int) -> int:
    """Translate a view range preference into a trend window in days."""
    return ALL_TIME_TREND_DAYS if view_range == 0 else view_range


class HealthMetricManager:
    def __init__(
        self, store: LocalStore, sync: SyncService, user_id: str | None = None
    ):
        self.store = store
        self.sync = sync
        self.user_id = user_id

    def _push(self, metric_type: str) -> None:
        if self.user_id:
            self.sync.push_health_metrics(self.user_id, metric_type)

    def get_entries(self, metric_type: str) -> List[HealthMetricEntry]:
        return self.store.get_health_metrics(metric_type)

    def save_entry(
        self, metric_type: str, entry: HealthMetricEntry
    ) -> List[HealthMetricEntry]:
        """Upsert the entry for its day; a second save on the same day overwrites."""
        with self.store.exclusive():
            entries = self.store.get_health_metrics(metric_type)
            for index, existing in enumerate(entries):
                if existing.date == entry.date:
                    entries[index] = entry
                    logger.debug("Replacing %s entry for %s", metric_type, entry.date)
                    break
            else:
                entries.insert(0, entry)

            entries = sort_entries(entries)
            self.store.set_health_metrics(metric_type, entries)
        self._push(metric_type)
        return entries

    def delete_entry(
        self, metric_type: str, date: datetime.date
    ) -> List[HealthMetricEntry]:
        with self.store.exclusive():
            entries = [
                e for e in self.store.get_health_metrics(metric_type) if e.date != date
            ]
            self.store.set_health_metrics(metric_type, entries)
        self._push(metric_type)
        return entries

    def get_view_range(self) -> int:
        return self.store.get_view_range()

    def set_view_range(self, days: int) -> int:
        self.store.set_view_range(days)
        return days
