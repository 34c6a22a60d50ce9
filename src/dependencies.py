"""FastAPI dependency providers for the store, sync service and managers."""

from typing import Optional

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from auth import get_account_id
from database import get_db
from health_metrics import HealthMetricManager
from local_store import LocalStore
from reconciliation import SyncService
from remote_store import RemoteStore, get_remote_store
from sessions import SessionManager


def get_local_store(db: Session = Depends(get_db)) -> LocalStore:
    return LocalStore(db)


def get_sync_service(
    background_tasks: BackgroundTasks,
    store: LocalStore = Depends(get_local_store),
    remote: RemoteStore = Depends(get_remote_store),
) -> SyncService:
    """Sync service whose remote pushes run after the response is sent."""
    return SyncService(store, remote, schedule=background_tasks.add_task)


def get_session_manager(
    store: LocalStore = Depends(get_local_store),
    sync: SyncService = Depends(get_sync_service),
    account_id: Optional[str] = Depends(get_account_id),
) -> SessionManager:
    return SessionManager(store, sync, account_id)


def get_health_metric_manager(
    store: LocalStore = Depends(get_local_store),
    sync: SyncService = Depends(get_sync_service),
    account_id: Optional[str] = Depends(get_account_id),
) -> HealthMetricManager:
    return HealthMetricManager(store, sync, account_id)
