"""
Admin API route handlers for car listings.
"""
import logging
from typing import Optional

import pandas as pd
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import StreamingResponse

from ..cars import create_car, delete_car, get_cars, update_car_status
from ..identity import get_auth_user_id
from ..models import CarStatusUpdate, CreateCarRequest
from ..results import Err, to_response
from ..services import Services, get_services
from .uploads import analyze_upload

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cars", tags=["cars"])

EXPORT_COLUMNS = [
    "id", "make", "model", "year", "price", "mileage", "color", "fuel_type",
    "transmission", "body_type", "seats", "status", "featured", "images", "created_at",
]


@router.post("/analyze")
async def analyze_image(
    image: UploadFile = File(...),
    services: Services = Depends(get_services),
):
    """Extract car attributes from a photo to pre-fill the car form."""
    return to_response(await analyze_upload(services, image))


@router.post("")
def add_car(
    body: CreateCarRequest,
    services: Services = Depends(get_services),
    auth_user_id: Optional[str] = Depends(get_auth_user_id),
):
    """Create a car from form attributes and embedded-image payloads."""
    result = create_car(services, auth_user_id, body.car_data, body.images)
    return to_response(result, status_code=201)


@router.get("")
def list_cars(
    search: str = "",
    services: Services = Depends(get_services),
    auth_user_id: Optional[str] = Depends(get_auth_user_id),
):
    """Admin listing, newest first, with optional text search."""
    return to_response(get_cars(services, auth_user_id, search))


@router.get("/export/csv")
def export_cars_csv(
    search: str = "",
    services: Services = Depends(get_services),
    auth_user_id: Optional[str] = Depends(get_auth_user_id),
):
    """Export the admin listing as CSV."""
    result = get_cars(services, auth_user_id, search)
    if isinstance(result, Err):
        return to_response(result)

    if not result.data:
        # Return empty CSV with headers
        df = pd.DataFrame(columns=EXPORT_COLUMNS)
    else:
        df = pd.DataFrame([car.model_dump(mode="json") for car in result.data])
        df["images"] = df["images"].map("|".join)
        df = df[EXPORT_COLUMNS]

    csv_content = df.to_csv(index=False).encode("utf-8")

    return StreamingResponse(
        iter([csv_content]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="cars.csv"'}
    )


@router.delete("/{car_id}")
def remove_car(
    car_id: str,
    services: Services = Depends(get_services),
    auth_user_id: Optional[str] = Depends(get_auth_user_id),
):
    """Delete a car and its stored images."""
    return to_response(delete_car(services, auth_user_id, car_id))


@router.patch("/{car_id}/status")
def set_car_status(
    car_id: str,
    body: CarStatusUpdate,
    services: Services = Depends(get_services),
    auth_user_id: Optional[str] = Depends(get_auth_user_id),
):
    """Update a car's status and/or featured flag."""
    result = update_car_status(services, auth_user_id, car_id, status=body.status, featured=body.featured)
    return to_response(result)
