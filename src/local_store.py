"""Synchronous key-value persistence of typed record collections."""

import json
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Sequence, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import StoredDocumentDB
from typedefs import ExerciseDraft, HealthMetricEntry, Template, WorkoutSession

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

SESSIONS_KEY = "gym_tracker_sessions"
TEMPLATES_KEY = "gym_tracker_templates"
HEALTH_METRICS_PREFIX = "health_metrics_"
VIEW_RANGE_KEY = "health_metric_view_range"
DRAFT_KEY = "exercise_draft"

DEFAULT_VIEW_RANGE = 30

# Shared by every LocalStore; requests run on FastAPI's threadpool
_update_lock = threading.RLock()


def health_metrics_key(metric_type: str) -> str:
    return HEALTH_METRICS_PREFIX + metric_type


def dump_records(records: Sequence[BaseModel]) -> list[dict]:
    """Serialize records to JSON-compatible dicts using wire (alias) names."""
    return [record.model_dump(mode="json", by_alias=True) for record in records]


class LocalStore:
    """Local-authoritative store, one JSON document per collection key.

    Reads never fail: a missing or unparseable document degrades to an
    empty collection (or the default scalar) and is logged. Writes replace
    the whole document in a single transaction, so a reader never observes
    a half-written collection.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def exclusive(self) -> Iterator["LocalStore"]:
        """Hold the store for a read-modify-write cycle.

        Updates from other threads wait until the block exits, so a
        collection read inside the block is still current when written back.
        Re-entrant within one thread.
        """
        with _update_lock:
            yield self

    def _row(self, key: str) -> StoredDocumentDB | None:
        # Always hit the database: another session may have committed since
        return self.db.get(StoredDocumentDB, key, populate_existing=True)

    def _load(self, key: str) -> str | None:
        row = self._row(key)
        return row.payload if row is not None else None

    def _save(self, key: str, payload: str) -> None:
        try:
            row = self._row(key)
            if row is None:
                self.db.add(StoredDocumentDB(key=key, payload=payload))
            else:
                row.payload = payload
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to write local document %s", key)
            raise

    def read(self, key: str, record_type: Type[T]) -> List[T]:
        """Return the collection stored under ``key``, or [] if absent/corrupt."""
        payload = self._load(key)
        if payload is None:
            return []
        try:
            return TypeAdapter(List[record_type]).validate_json(payload)
        except ValidationError as e:
            logger.warning("Discarding unreadable collection %s: %s", key, e)
            return []

    def write(self, key: str, records: Sequence[BaseModel]) -> None:
        """Replace the whole collection stored under ``key``."""
        self._save(key, json.dumps(dump_records(records)))

    # Typed collection accessors

    def get_sessions(self) -> List[WorkoutSession]:
        return self.read(SESSIONS_KEY, WorkoutSession)

    def set_sessions(self, sessions: Sequence[WorkoutSession]) -> None:
        self.write(SESSIONS_KEY, sessions)

    def get_templates(self) -> List[Template]:
        return self.read(TEMPLATES_KEY, Template)

    def set_templates(self, templates: Sequence[Template]) -> None:
        self.write(TEMPLATES_KEY, templates)

    def get_health_metrics(self, metric_type: str) -> List[HealthMetricEntry]:
        return self.read(health_metrics_key(metric_type), HealthMetricEntry)

    def set_health_metrics(
        self, metric_type: str, entries: Sequence[HealthMetricEntry]
    ) -> None:
        self.write(health_metrics_key(metric_type), entries)

    # Scalars

    def get_view_range(self) -> int:
        payload = self._load(VIEW_RANGE_KEY)
        if payload is None:
            return DEFAULT_VIEW_RANGE
        try:
            return int(json.loads(payload))
        except (ValueError, TypeError) as e:
            logger.warning("Discarding unreadable view range %r: %s", payload, e)
            return DEFAULT_VIEW_RANGE

    def set_view_range(self, days: int) -> None:
        self._save(VIEW_RANGE_KEY, json.dumps(int(days)))

    def get_draft(self) -> ExerciseDraft | None:
        payload = self._load(DRAFT_KEY)
        if payload is None:
            return None
        try:
            return ExerciseDraft.model_validate_json(payload)
        except ValidationError as e:
            logger.warning("Discarding unreadable exercise draft: %s", e)
            return None

    def set_draft(self, draft: ExerciseDraft) -> None:
        self._save(DRAFT_KEY, draft.model_dump_json())

    def clear_draft(self) -> None:
        row = self._row(DRAFT_KEY)
        if row is not None:
            self.db.delete(row)
            self.db.commit()
