"""
Resolution of the authenticated identity forwarded by the auth gateway.
"""
import logging
import sqlite3
import uuid
from typing import Dict, Optional

from fastapi import Request

from .config import config
from .database import db_get_user_by_clerk_id, db_upsert_user
from .results import Err, ErrorKind, Ok, Result, ServiceError

logger = logging.getLogger(__name__)


def get_auth_user_id(request: Request) -> Optional[str]:
    """Dependency returning the signed-in user's id, or None for anonymous requests."""
    value = request.headers.get(config.AUTH_USER_HEADER, "").strip()
    return value or None


def require_session(auth_user_id: Optional[str]) -> str:
    if not auth_user_id:
        raise ServiceError(ErrorKind.UNAUTHORIZED, "Unauthorized")
    return auth_user_id


def require_user(conn: sqlite3.Connection, auth_user_id: Optional[str]) -> Dict:
    """Internal user row for the authenticated id; unknown ids are unauthorized."""
    require_session(auth_user_id)
    user = db_get_user_by_clerk_id(conn, auth_user_id)
    if not user:
        raise ServiceError(ErrorKind.UNAUTHORIZED, "User not found")
    return user


def sync_user(services, auth_user_id: Optional[str], email: str,
              name: Optional[str] = None, image_url: Optional[str] = None) -> Result:
    """Create or refresh the internal user row for a signed-in identity."""
    try:
        require_session(auth_user_id)
        with services.connect() as conn:
            user = db_upsert_user(conn, str(uuid.uuid4()), auth_user_id, email, name, image_url)
        logger.info(f"Synced user {auth_user_id}")
        return Ok(user)
    except ServiceError as e:
        logger.warning(f"User sync rejected: {e.message}")
        return Err(e.kind, e.message)
    except sqlite3.Error as e:
        return Err(ErrorKind.UPSTREAM, f"Database error: {e}")
