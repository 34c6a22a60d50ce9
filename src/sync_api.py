"""REST API endpoints that reconcile local data with the account's cloud copy."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from auth import FirebaseUser, verify_firebase_token
from dependencies import get_local_store, get_sync_service
from health_metrics import METRIC_UNITS
from local_store import LocalStore
from reconciliation import SyncService
from typedefs import HealthMetricEntry, Template, WorkoutSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


class UserDataSyncResponse(BaseModel):
    """Collections after reconciliation.

    synced is False when the cloud copy could not be read; the local
    collections are then returned unchanged.
    """

    synced: bool
    sessions: List[WorkoutSession]
    templates: List[Template]


class HealthMetricsSyncResponse(BaseModel):
    synced: bool
    entries: List[HealthMetricEntry]


@router.post("", response_model=UserDataSyncResponse)
def sync_user_data(
    user: FirebaseUser = Depends(verify_firebase_token),
    sync: SyncService = Depends(get_sync_service),
    store: LocalStore = Depends(get_local_store),
) -> UserDataSyncResponse:
    """Merge the account's sessions and templates into local storage.

    Local-only records are pushed back to the cloud in the background.
    """
    merged = sync.reconcile_user_data(user.uid)
    if merged is None:
        logger.info("Sync skipped for %s, using local data", user.uid)
        return UserDataSyncResponse(
            synced=False,
            sessions=store.get_sessions(),
            templates=store.get_templates(),
        )
    return UserDataSyncResponse(
        synced=True, sessions=merged.sessions, templates=merged.templates
    )


@router.post("/health-metrics/{metric_type}", response_model=HealthMetricsSyncResponse)
def sync_health_metrics(
    metric_type: str,
    user: FirebaseUser = Depends(verify_firebase_token),
    sync: SyncService = Depends(get_sync_service),
    store: LocalStore = Depends(get_local_store),
) -> HealthMetricsSyncResponse:
    if metric_type not in METRIC_UNITS:
        raise HTTPException(
            status_code=404, detail=f"Unknown metric type: {metric_type}"
        )

    merged = sync.reconcile_health_metrics(user.uid, metric_type)
    if merged is None:
        return HealthMetricsSyncResponse(
            synced=False, entries=store.get_health_metrics(metric_type)
        )
    return HealthMetricsSyncResponse(synced=True, entries=merged)
