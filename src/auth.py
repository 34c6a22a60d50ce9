"""Firebase Authentication dependencies and utilities.

The core only needs "a user identifier or nothing": when a request carries a
valid Firebase ID token, local writes are mirrored to that account.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from firebase_admin import auth
from pydantic import BaseModel

from firebase_config import get_firebase_auth

logger = logging.getLogger(__name__)


class FirebaseUser(BaseModel):
    """Represents a verified Firebase user from token."""

    uid: str  # Firebase UID, also the remote document key
    email: Optional[str] = None
    email_verified: bool = False

    # Additional Firebase claims
    claims: dict = {}


def extract_token_from_request(request: Request) -> Optional[str]:
    """Extract Bearer token from Authorization header.

    Args:
        request: FastAPI Request object

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        return None

    return auth_header[7:]  # Remove "Bearer " prefix


def _to_user(decoded_token: dict) -> FirebaseUser:
    return FirebaseUser(
        uid=decoded_token["uid"],
        email=decoded_token.get("email"),
        email_verified=decoded_token.get("email_verified", False),
        claims=decoded_token,
    )


def verify_firebase_token(request: Request) -> FirebaseUser:
    """Verify Firebase ID token and return user info.

    Required for endpoints that talk to the account's remote copy.

    Args:
        request: FastAPI Request object

    Returns:
        FirebaseUser with verified user data

    Raises:
        HTTPException: 401 if token is invalid/missing
    """
    token = extract_token_from_request(request)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return _to_user(get_firebase_auth().verify_id_token(token))
    except auth.ExpiredIdTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err
    except auth.InvalidIdTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err
    except Exception as e:
        # Catch any other Firebase auth errors
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Authentication failed: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def optional_auth(request: Request) -> Optional[FirebaseUser]:
    """Optional authentication - returns None if not authenticated.

    Without a valid token the app works purely on local data.
    """
    token = extract_token_from_request(request)

    if not token:
        return None

    try:
        return _to_user(get_firebase_auth().verify_id_token(token))
    except Exception as e:
        # If token verification fails, treat as unauthenticated
        logger.warning("Ignoring unverifiable token, working offline: %s", e)
        return None


def get_account_id(
    user: Optional[FirebaseUser] = Depends(optional_auth),
) -> Optional[str]:
    """The active account's id, or None when working offline."""
    return user.uid if user else None
