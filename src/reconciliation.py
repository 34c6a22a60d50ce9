"""Offline-first reconciliation between the local store and the remote mirror.

The merge is a union by identifier with the remote copy winning on
collisions. It does not look at timestamps, so a concurrent local edit to a
record that already exists remotely is replaced by the remote version on the
next load. Only records that never reached the remote survive from the local
side, and those are pushed back.
"""

import datetime
import logging
from operator import attrgetter
from typing import Any, Callable, Hashable, List, Sequence, TypeVar

from pydantic import TypeAdapter, ValidationError

from local_store import LocalStore, dump_records
from remote_store import (
    DocumentPath,
    RemoteStore,
    health_metrics_document_path,
    user_document_path,
)
from typedefs import HealthMetricEntry, Template, UserData, WorkoutSession

logger = logging.getLogger(__name__)

R = TypeVar("R")

# Receives (func, *args) and arranges for func(*args) to run later, e.g.
# FastAPI's BackgroundTasks.add_task
Scheduler = Callable[..., Any]

session_id = attrgetter("id")
template_id = attrgetter("id")
entry_date = attrgetter("date")


def run_now(func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    """Scheduler that runs the task immediately (used outside requests)."""
    func(*args, **kwargs)


def merge_records(
    remote: Sequence[R], local: Sequence[R], key: Callable[[R], Hashable]
) -> List[R]:
    """Union two collections by identifier, keeping the remote copy on collisions.

    The remote records come first in their original order, followed by every
    local record whose identifier the remote does not know about.
    """
    seen = {key(record) for record in remote}
    merged = list(remote)
    for record in local:
        record_key = key(record)
        if record_key not in seen:
            seen.add(record_key)
            merged.append(record)
    return merged


def local_time(value: datetime.datetime) -> datetime.datetime:
    """Aware timestamp in local time; naive timestamps are taken as local."""
    return value.astimezone()


def sort_sessions(sessions: Sequence[WorkoutSession]) -> List[WorkoutSession]:
    """Newest first."""
    return sorted(sessions, key=lambda s: local_time(s.date), reverse=True)


def sort_entries(entries: Sequence[HealthMetricEntry]) -> List[HealthMetricEntry]:
    """Newest first."""
    return sorted(entries, key=entry_date, reverse=True)


def _timestamp() -> str:
    return datetime.datetime.now(datetime.UTC).isoformat()


def user_document(
    sessions: Sequence[WorkoutSession], templates: Sequence[Template]
) -> dict:
    return {
        "sessions": dump_records(sessions),
        "templates": dump_records(templates),
        "lastUpdated": _timestamp(),
    }


def health_metrics_document(entries: Sequence[HealthMetricEntry]) -> dict:
    return {"entries": dump_records(entries), "lastUpdated": _timestamp()}


class SyncService:
    """Merges remote snapshots into the local store and pushes local changes.

    Pushes are fire-and-forget: the document is built from the local state at
    the moment of the call and handed to ``schedule``. Their outcome is only
    visible in the logs.
    """

    def __init__(
        self, store: LocalStore, remote: RemoteStore, schedule: Scheduler = run_now
    ):
        self.store = store
        self.remote = remote
        self.schedule = schedule

    def _fetch(self, path: DocumentPath) -> dict | None:
        try:
            document = self.remote.fetch(path)
        except Exception:
            logger.exception("Error fetching %s from cloud", "/".join(path))
            return None
        if document is None:
            logger.info("No cloud document at %s", "/".join(path))
        return document

    def _upload(self, path: DocumentPath, document: dict) -> None:
        try:
            self.remote.upsert(path, document)
        except Exception:
            logger.exception("Error saving %s to cloud", "/".join(path))
            return
        logger.debug("Saved %s to cloud", "/".join(path))

    def _schedule_upload(self, path: DocumentPath, document: dict) -> None:
        self.schedule(self._upload, path, document)

    # Account bundle (sessions + templates)

    def reconcile_user_data(self, user_id: str) -> UserData | None:
        """Merge the remote account bundle into the local store.

        Returns:
            The merged collections, or None when the remote is unreachable or
            has no document (the local store is then left untouched)
        """
        path = user_document_path(user_id)
        document = self._fetch(path)
        if document is None:
            return None

        try:
            remote = UserData(
                sessions=document.get("sessions") or [],
                templates=document.get("templates") or [],
            )
        except ValidationError as e:
            logger.warning("Ignoring malformed cloud document %s: %s", path, e)
            return None

        with self.store.exclusive():
            sessions = sort_sessions(
                merge_records(remote.sessions, self.store.get_sessions(), session_id)
            )
            templates = merge_records(
                remote.templates, self.store.get_templates(), template_id
            )

            self.store.set_sessions(sessions)
            self.store.set_templates(templates)

        if len(sessions) > len(remote.sessions) or len(templates) > len(
            remote.templates
        ):
            logger.info(
                "Pushing %d local-only sessions and %d local-only templates",
                len(sessions) - len(remote.sessions),
                len(templates) - len(remote.templates),
            )
            self._schedule_upload(path, user_document(sessions, templates))

        return UserData(sessions=sessions, templates=templates)

    def push_user_data(self, user_id: str) -> None:
        document = user_document(self.store.get_sessions(), self.store.get_templates())
        self._schedule_upload(user_document_path(user_id), document)

    # Health metrics (one document per metric type)

    def reconcile_health_metrics(
        self, user_id: str, metric_type: str
    ) -> List[HealthMetricEntry] | None:
        """Merge the remote entries of one metric type into the local store.

        Entries are identified by their calendar day.
        """
        path = health_metrics_document_path(user_id, metric_type)
        document = self._fetch(path)
        if document is None:
            return None

        try:
            remote_entries = TypeAdapter(List[HealthMetricEntry]).validate_python(
                document.get("entries") or []
            )
        except ValidationError as e:
            logger.warning("Ignoring malformed cloud document %s: %s", path, e)
            return None

        with self.store.exclusive():
            entries = sort_entries(
                merge_records(
                    remote_entries,
                    self.store.get_health_metrics(metric_type),
                    entry_date,
                )
            )
            self.store.set_health_metrics(metric_type, entries)

        if len(entries) > len(remote_entries):
            logger.info(
                "Pushing %d local-only %s entries",
                len(entries) - len(remote_entries),
                metric_type,
            )
            self._schedule_upload(path, health_metrics_document(entries))

        return entries

    def push_health_metrics(self, user_id: str, metric_type: str) -> None:
        document = health_metrics_document(self.store.get_health_metrics(metric_type))
        self._schedule_upload(
            health_metrics_document_path(user_id, metric_type), document
        )
