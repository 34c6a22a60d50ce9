"""Firebase Admin SDK configuration and initialization."""

import logging
import os
from functools import lru_cache

import firebase_admin
from firebase_admin import auth, credentials, firestore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def initialize_firebase() -> firebase_admin.App:
    """Initialize Firebase Admin SDK (cached, only runs once).

    Returns:
        firebase_admin.App instance

    Raises:
        ValueError: If required environment variables are missing
    """
    # Check if already initialized
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass  # Not initialized yet

    project_id = os.environ.get("FIREBASE_PROJECT_ID")
    service_account_path = os.environ.get("FIREBASE_SERVICE_ACCOUNT_KEY_PATH")

    if not project_id:
        raise ValueError("FIREBASE_PROJECT_ID environment variable is required")

    # Service account in production, Application Default Credentials locally
    if service_account_path and os.path.exists(service_account_path):
        logger.info("Initializing Firebase with service account key")
        cred = credentials.Certificate(service_account_path)
        return firebase_admin.initialize_app(cred, {"projectId": project_id})

    logger.info("Initializing Firebase with application default credentials")
    cred = credentials.ApplicationDefault()
    return firebase_admin.initialize_app(cred, {"projectId": project_id})


def get_firebase_auth() -> auth:
    """Get Firebase Auth instance (ensures Firebase is initialized).

    Returns:
        firebase_admin.auth module
    """
    initialize_firebase()
    return auth


def get_firestore_client():
    """Get a Cloud Firestore client bound to the Firebase app."""
    return firestore.client(initialize_firebase())
