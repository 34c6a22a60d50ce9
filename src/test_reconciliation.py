"""Tests for the id-union merge and the sync service."""

import datetime
import logging

from deepdiff import DeepDiff

from conftest import TEST_UID, DeferredScheduler, make_session
from local_store import dump_records
from reconciliation import (
    SyncService,
    entry_date,
    merge_records,
    session_id,
    sort_sessions,
)
from remote_store import health_metrics_document_path, user_document_path
from sessions import session_day
from typedefs import HealthMetricEntry, Template, WorkoutSession

DAY = datetime.date(2025, 3, 10)


def days_ago(n: int) -> datetime.date:
    return DAY - datetime.timedelta(days=n)


def entry(day: datetime.date, value: float) -> HealthMetricEntry:
    return HealthMetricEntry(date=day, value=value, unit="kg")


def assert_same_records(actual, expected, message="Records do not match"):
    diff = DeepDiff(dump_records(expected), dump_records(actual), ignore_order=False)
    assert not diff, f"{message}\n\nDifferences found:\n{diff.pretty()}"


# merge_records


def test_merge_is_union_of_ids():
    remote = [make_session("a", days_ago(1)), make_session("b", days_ago(2))]
    local = [make_session("b", days_ago(2)), make_session("c", days_ago(3))]

    merged = merge_records(remote, local, session_id)

    assert {s.id for s in merged} == {"a", "b", "c"}


def test_merge_keeps_remote_copy_on_collision():
    remote = [make_session("a", days_ago(1), name="Remote name")]
    local = [make_session("a", days_ago(1), name="Local edit")]

    merged = merge_records(remote, local, session_id)

    assert len(merged) == 1
    assert merged[0].name == "Remote name"


def test_merge_appends_local_only_after_remote():
    remote = [make_session("a", days_ago(5))]
    local = [make_session("z", days_ago(1)), make_session("a", days_ago(5))]

    assert [s.id for s in merge_records(remote, local, session_id)] == ["a", "z"]


def test_merge_is_idempotent():
    remote = [make_session("a", days_ago(1))]
    local = [make_session("b", days_ago(2)), make_session("c", days_ago(3))]

    once = merge_records(remote, local, session_id)
    twice = merge_records(once, local, session_id)

    assert_same_records(twice, once)


def test_merge_with_empty_sides():
    local = [make_session("a", days_ago(1))]

    assert merge_records([], local, session_id) == local
    assert merge_records(local, [], session_id) == local


def test_sort_sessions_newest_first():
    sessions = [
        make_session("old", days_ago(9)),
        make_session("new", days_ago(0)),
        make_session("mid", days_ago(4)),
    ]

    assert [s.id for s in sort_sessions(sessions)] == ["new", "mid", "old"]


def test_sort_treats_naive_timestamps_as_local_time():
    naive = datetime.datetime(2025, 3, 10, 12, 0)
    local = naive.astimezone()
    sessions = [
        WorkoutSession(
            id="earlier",
            date=(local - datetime.timedelta(minutes=1)).astimezone(datetime.UTC),
            name="Push Day",
        ),
        WorkoutSession(id="naive", date=naive, name="Push Day"),
        WorkoutSession(
            id="later",
            date=(local + datetime.timedelta(minutes=1)).astimezone(datetime.UTC),
            name="Push Day",
        ),
    ]

    assert [s.id for s in sort_sessions(sessions)] == ["later", "naive", "earlier"]
    assert session_day(sessions[1]) == naive.date()


def test_sort_keeps_order_of_equal_timestamps():
    sessions = [make_session("b", days_ago(1)), make_session("a", days_ago(1))]

    assert [s.id for s in sort_sessions(sessions)] == ["b", "a"]


def test_metric_entries_merge_by_date():
    remote = [entry(days_ago(1), 80.0)]
    local = [entry(days_ago(1), 81.0), entry(days_ago(2), 82.0)]

    merged = merge_records(remote, local, entry_date)

    assert [(e.date, e.value) for e in merged] == [
        (days_ago(1), 80.0),
        (days_ago(2), 82.0),
    ]


# SyncService.reconcile_user_data


def _remote_bundle(remote, sessions, templates=()):
    remote.documents[user_document_path(TEST_UID)] = {
        "sessions": dump_records(sessions),
        "templates": dump_records(templates),
        "lastUpdated": "2025-03-01T00:00:00+00:00",
    }


def test_missing_remote_document_leaves_local_untouched(sync, store, remote):
    local = [make_session("a", days_ago(1))]
    store.set_sessions(local)

    assert sync.reconcile_user_data(TEST_UID) is None
    assert store.get_sessions() == local
    assert remote.upserts == []


def test_fetch_failure_leaves_local_untouched(sync, store, remote, caplog):
    local = [make_session("a", days_ago(1))]
    store.set_sessions(local)
    remote.fail_fetch = True

    with caplog.at_level(logging.ERROR, logger="reconciliation"):
        assert sync.reconcile_user_data(TEST_UID) is None

    assert store.get_sessions() == local
    assert "Error fetching" in caplog.text


def test_malformed_remote_document_is_ignored(sync, store, remote):
    store.set_sessions([make_session("a", days_ago(1))])
    remote.documents[user_document_path(TEST_UID)] = {"sessions": [{"id": 3}]}

    assert sync.reconcile_user_data(TEST_UID) is None
    assert [s.id for s in store.get_sessions()] == ["a"]


def test_reconcile_merges_sorts_and_persists(sync, store, remote):
    _remote_bundle(
        remote,
        [make_session("r1", days_ago(3)), make_session("shared", days_ago(1), "Cloud")],
        [Template(id="t-remote", name="Pull", exercises=["Row"])],
    )
    store.set_sessions(
        [make_session("shared", days_ago(1), "Local"), make_session("l1", days_ago(0))]
    )
    store.set_templates([Template(id="t-local", name="Legs", exercises=["Squat"])])

    merged = sync.reconcile_user_data(TEST_UID)

    assert [s.id for s in merged.sessions] == ["l1", "shared", "r1"]
    assert merged.sessions[1].name == "Cloud"
    assert [t.id for t in merged.templates] == ["t-remote", "t-local"]
    assert_same_records(store.get_sessions(), merged.sessions)
    assert_same_records(store.get_templates(), merged.templates)


def test_reconcile_pushes_back_local_only_records(sync, store, remote):
    _remote_bundle(remote, [make_session("r1", days_ago(3))])
    store.set_sessions([make_session("l1", days_ago(0))])

    sync.reconcile_user_data(TEST_UID)

    assert len(remote.upserts) == 1
    path, document = remote.upserts[0]
    assert path == user_document_path(TEST_UID)
    assert [s["id"] for s in document["sessions"]] == ["l1", "r1"]
    assert "lastUpdated" in document


def test_reconcile_pushes_when_only_templates_are_new(sync, store, remote):
    _remote_bundle(remote, [make_session("r1", days_ago(3))])
    store.set_templates([Template(id="t1", name="Push", exercises=["Bench"])])

    sync.reconcile_user_data(TEST_UID)

    assert len(remote.upserts) == 1


def test_reconcile_without_local_only_records_does_not_push(sync, store, remote):
    _remote_bundle(remote, [make_session("r1", days_ago(3))])
    store.set_sessions([make_session("r1", days_ago(3), name="Stale local copy")])

    sync.reconcile_user_data(TEST_UID)

    assert remote.upserts == []


def test_reconcile_twice_is_stable(sync, store, remote):
    _remote_bundle(remote, [make_session("r1", days_ago(3))])
    store.set_sessions([make_session("l1", days_ago(0))])

    first = sync.reconcile_user_data(TEST_UID)
    second = sync.reconcile_user_data(TEST_UID)

    assert [s.id for s in second.sessions] == [s.id for s in first.sessions]
    # The first push made the remote complete, so nothing more to send
    assert len(remote.upserts) == 1


def test_push_failure_keeps_local_merge(sync, store, remote, caplog):
    _remote_bundle(remote, [make_session("r1", days_ago(3))])
    store.set_sessions([make_session("l1", days_ago(0))])
    remote.fail_upsert = True

    with caplog.at_level(logging.ERROR, logger="reconciliation"):
        merged = sync.reconcile_user_data(TEST_UID)

    assert [s.id for s in merged.sessions] == ["l1", "r1"]
    assert [s.id for s in store.get_sessions()] == ["l1", "r1"]
    assert "Error saving" in caplog.text


def test_push_is_deferred_to_scheduler(store, remote):
    scheduler = DeferredScheduler()
    sync = SyncService(store, remote, schedule=scheduler)
    store.set_sessions([make_session("l1", days_ago(0))])

    sync.push_user_data(TEST_UID)
    # Local changes after scheduling do not leak into the queued document
    store.set_sessions([])

    assert remote.upserts == []
    scheduler.run_all()
    assert [s["id"] for s in remote.upserts[0][1]["sessions"]] == ["l1"]


# SyncService.reconcile_health_metrics


def test_reconcile_health_metrics(sync, store, remote):
    path = health_metrics_document_path(TEST_UID, "bodyWeight")
    remote.documents[path] = {
        "entries": dump_records([entry(days_ago(2), 80.0), entry(days_ago(1), 79.5)])
    }
    store.set_health_metrics(
        "bodyWeight", [entry(days_ago(1), 70.0), entry(days_ago(0), 79.0)]
    )

    merged = sync.reconcile_health_metrics(TEST_UID, "bodyWeight")

    assert [(e.date, e.value) for e in merged] == [
        (days_ago(0), 79.0),
        (days_ago(1), 79.5),
        (days_ago(2), 80.0),
    ]
    assert store.get_health_metrics("bodyWeight") == merged
    assert remote.upserts[0][0] == path
    assert len(remote.upserts[0][1]["entries"]) == 3


def test_reconcile_health_metrics_without_remote(sync, store):
    store.set_health_metrics("bodyWeight", [entry(days_ago(0), 79.0)])

    assert sync.reconcile_health_metrics(TEST_UID, "bodyWeight") is None
    assert len(store.get_health_metrics("bodyWeight")) == 1


def test_push_health_metrics(sync, store, remote):
    store.set_health_metrics("waterIntake", [entry(days_ago(0), 2.5)])

    sync.push_health_metrics(TEST_UID, "waterIntake")

    path, document = remote.upserts[0]
    assert path == ("users", TEST_UID, "healthMetrics", "waterIntake")
    assert document["entries"][0]["value"] == 2.5
    assert "createdAt" in document["entries"][0]
