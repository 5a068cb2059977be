"""
Statistics API route handlers.
"""
import logging
import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends

from ..database import get_statistics
from ..identity import get_auth_user_id, require_user
from ..models import StatsOut
from ..results import Err, ErrorKind, Ok, ServiceError, to_response
from ..services import Services, get_services

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["statistics"])


@router.get("/stats")
def get_api_stats(
    services: Services = Depends(get_services),
    auth_user_id: Optional[str] = Depends(get_auth_user_id),
):
    """Get inventory statistics for the admin dashboard."""
    try:
        with services.connect() as conn:
            require_user(conn, auth_user_id)
            stats_data = get_statistics(conn)
        return to_response(Ok(StatsOut(**stats_data)))

    except ServiceError as e:
        return to_response(Err(e.kind, e.message))
    except sqlite3.Error as e:
        logger.error(f"Error fetching statistics: {e}")
        return to_response(Err(ErrorKind.UPSTREAM, f"Database error: {e}"))
