"""
User route handlers.
"""
from typing import Optional

from fastapi import APIRouter, Depends

from ..identity import get_auth_user_id, sync_user
from ..models import UserSync
from ..results import to_response
from ..services import Services, get_services

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/sync")
def sync_current_user(
    body: UserSync,
    services: Services = Depends(get_services),
    auth_user_id: Optional[str] = Depends(get_auth_user_id),
):
    """Register the signed-in identity so admin operations can resolve it."""
    return to_response(sync_user(services, auth_user_id, body.email, body.name, body.image_url))
