"""
Car listing operations: creation pipeline, admin listing, public search and management.

Every function returns ``Ok``/``Err`` and logs the failures it reports.
"""
import logging
import sqlite3
import uuid
from typing import List, Optional

from .cache import ADMIN_CARS_PATH
from .database import (
    db_delete_car, db_get_car, db_insert_car, db_list_cars, db_update_car
)
from .identity import require_session, require_user
from .models import Car, CarIn, CarOut, CarStatus
from .results import Err, ErrorKind, Ok, Result, ServiceError
from .search import CarSearch
from .storage import StorageError
from .utils import car_folder_path, decode_image_data_url, image_filename

logger = logging.getLogger(__name__)


def _fail(action: str, e: Exception) -> Err:
    if isinstance(e, ServiceError):
        logger.error(f"Error {action}: {e.message}")
        return Err(e.kind, e.message)
    logger.error(f"Database error {action}: {e}")
    return Err(ErrorKind.UPSTREAM, f"Database error: {e}")


def _discard_uploads(storage, paths: List[str]) -> None:
    """Best-effort removal of blobs uploaded for a car that was never saved."""
    try:
        storage.remove(paths)
        logger.info(f"Removed {len(paths)} orphaned image(s) after failed car creation")
    except StorageError as e:
        logger.error(f"Could not remove orphaned images {paths}: {e.message}")


def _upload_images(storage, folder: str, images: List[str], uploaded_paths: List[str]) -> List[str]:
    """
    Upload embedded-image payloads in order and return their public URLs.

    Invalid entries are skipped. Each stored path is appended to
    ``uploaded_paths`` as soon as it exists.
    """
    image_urls = []
    for index, data_url in enumerate(images):
        decoded = decode_image_data_url(data_url)
        if decoded is None:
            logger.warning(f"Skipping invalid image data at position {index}")
            continue

        payload, ext = decoded
        path = f"{folder}/{image_filename(index, ext)}"
        url = storage.upload(path, payload, f"image/{ext}")
        uploaded_paths.append(path)
        image_urls.append(url)
    return image_urls


def create_car(services, auth_user_id: Optional[str], car_data: CarIn, images: List[str]) -> Result:
    """Upload a car's images and store the car with their URLs."""
    try:
        with services.connect() as conn:
            require_user(conn, auth_user_id)

        if services.storage is None:
            raise ServiceError(ErrorKind.CONFIGURATION, "Object storage is not configured")

        car_id = str(uuid.uuid4())
        uploaded_paths: List[str] = []
        try:
            image_urls = _upload_images(services.storage, car_folder_path(car_id), images, uploaded_paths)
            if not image_urls:
                raise ServiceError(ErrorKind.VALIDATION, "No valid images were uploaded")

            car = Car(id=car_id, images=image_urls, **car_data.model_dump())
            with services.connect() as conn:
                db_insert_car(conn, car)
        except (ServiceError, sqlite3.Error):
            if uploaded_paths:
                _discard_uploads(services.storage, uploaded_paths)
            raise

        services.cache.invalidate(ADMIN_CARS_PATH)
        logger.info(f"Created car {car_id} ({car.year} {car.make} {car.model}) with {len(image_urls)} image(s)")
        return Ok({"id": car_id, "images": image_urls})

    except (ServiceError, sqlite3.Error) as e:
        return _fail("adding car", e)


def get_cars(services, auth_user_id: Optional[str], search: str = "") -> Result:
    """Admin listing with optional free-text search, served from the view cache."""
    try:
        with services.connect() as conn:
            require_user(conn, auth_user_id)
            query = CarSearch(text=search)
            key = query.to_query_params().get("search", "")
            cached = services.cache.get(ADMIN_CARS_PATH, key)
            if cached is not None:
                return Ok(cached)

            cars = [CarOut(**row) for row in db_list_cars(conn, query)]
        services.cache.set(ADMIN_CARS_PATH, key, cars)
        return Ok(cars)
    except (ServiceError, sqlite3.Error) as e:
        return _fail("fetching cars", e)


def search_cars(services, search: CarSearch) -> Result:
    """Public listing: free text and/or make, body type and color filters."""
    try:
        with services.connect() as conn:
            rows = db_list_cars(conn, search)
        return Ok([CarOut(**row) for row in rows])
    except sqlite3.Error as e:
        return _fail("searching cars", e)


def get_car(services, car_id: str) -> Result:
    try:
        with services.connect() as conn:
            row = db_get_car(conn, car_id)
        if row is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "Car not found")
        return Ok(CarOut(**row))
    except (ServiceError, sqlite3.Error) as e:
        return _fail(f"fetching car {car_id}", e)


def _remove_car_images(services, image_urls: List[str]) -> None:
    """Delete stored images of a removed car; failures are only logged."""
    if services.storage is None:
        logger.warning("Object storage is not configured; leaving car images in place")
        return

    file_paths = []
    for url in image_urls:
        path = services.storage.path_from_public_url(url)
        if path:
            file_paths.append(path)

    if not file_paths:
        return
    try:
        services.storage.remove(file_paths)
    except StorageError as e:
        logger.error(f"Error deleting the images: {e.message}")


def delete_car(services, auth_user_id: Optional[str], car_id: str) -> Result:
    """Delete a car row, then its stored images."""
    try:
        with services.connect() as conn:
            require_user(conn, auth_user_id)
            car = db_get_car(conn, car_id)
            if car is None:
                raise ServiceError(ErrorKind.NOT_FOUND, "Car not found")
            db_delete_car(conn, car_id)
    except (ServiceError, sqlite3.Error) as e:
        return _fail(f"deleting car {car_id}", e)

    _remove_car_images(services, car["images"])
    services.cache.invalidate(ADMIN_CARS_PATH)
    logger.info(f"Deleted car {car_id}")
    return Ok()


def update_car_status(services, auth_user_id: Optional[str], car_id: str,
                      status: Optional[CarStatus] = None, featured: Optional[bool] = None) -> Result:
    """Update whichever of status and featured is provided."""
    updates = {}
    try:
        require_session(auth_user_id)
        if status is not None:
            try:
                updates["status"] = CarStatus(status).value
            except ValueError:
                raise ServiceError(ErrorKind.VALIDATION, f"Invalid status: {status}")
        if featured is not None:
            updates["featured"] = int(featured)

        with services.connect() as conn:
            if not db_update_car(conn, car_id, updates):
                raise ServiceError(ErrorKind.NOT_FOUND, "Car not found")
    except (ServiceError, sqlite3.Error) as e:
        return _fail(f"updating car {car_id}", e)

    services.cache.invalidate(ADMIN_CARS_PATH)
    logger.info(f"Updated car {car_id}: {updates}")
    return Ok()
