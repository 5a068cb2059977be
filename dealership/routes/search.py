"""
Public search route handlers: listing page filters and image search.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from ..cars import get_car, search_cars
from ..results import Ok, to_response
from ..search import CarSearch, search_from_attributes, to_query_string
from ..services import Services, get_services
from .uploads import analyze_upload

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/search", tags=["search"])


def get_car_search(
    search: str = "",
    make: Optional[str] = None,
    body_type: Optional[str] = Query(None, alias="bodyType"),
    color: Optional[str] = None,
) -> CarSearch:
    """Dependency to extract listing filters from query parameters."""
    return CarSearch(text=search, make=make, body_type=body_type, color=color)


@router.get("/cars")
def list_public_cars(
    search: CarSearch = Depends(get_car_search),
    services: Services = Depends(get_services),
):
    """Cars matching the listing-page filters, newest first."""
    return to_response(search_cars(services, search))


@router.get("/cars/{car_id}")
def get_public_car(car_id: str, services: Services = Depends(get_services)):
    """Get a specific car by ID."""
    return to_response(get_car(services, car_id))


@router.post("/image")
async def image_search(
    image: UploadFile = File(...),
    services: Services = Depends(get_services),
):
    """Identify the car in a photo and return the matching listing query."""
    result = await analyze_upload(services, image)
    if isinstance(result, Ok):
        search = search_from_attributes(result.data)
        query = to_query_string(search)
        logger.info(f"Image search resolved to '{query}'")
        result = Ok({"attributes": result.data, "query": query})
    return to_response(result)
