"""
Shared pytest fixtures: temporary database, fake storage and vision clients.
"""
import base64
import json

import pytest
from fastapi.testclient import TestClient

from dealership.database import db_init, db_insert_car, db_upsert_user
from dealership.models import Car, CarStatus
from dealership.services import Services, get_services
from dealership.storage import StorageError, SupabaseStorage

ADMIN_ID = "user_admin"
STORAGE_URL = "https://demo.supabase.co"

HONDA_REPLY = {
    "make": "Honda",
    "model": "CR-V",
    "year": 2019,
    "color": "Red",
    "price": "24000",
    "mileage": "45000",
    "bodyType": "SUV",
    "fuelType": "Petrol",
    "transmission": "Automatic",
    "description": "Red Honda CR-V in great condition",
    "confidence": 0.82,
}


class FakeStorage(SupabaseStorage):
    """Keeps objects in memory; URL/path handling comes from the real client."""

    def __init__(self, fail_upload_at=None, fail_remove=False):
        super().__init__(STORAGE_URL, "service-key", "car-images")
        self.objects = {}
        self.uploads = []
        self.removed = []
        self.fail_upload_at = fail_upload_at
        self.fail_remove = fail_remove

    def upload(self, path, data, content_type):
        if self.fail_upload_at is not None and len(self.uploads) == self.fail_upload_at:
            raise StorageError("Failed to upload image: bucket unavailable")
        self.uploads.append(path)
        self.objects[path] = (data, content_type)
        return self.public_url(path)

    def remove(self, paths):
        if self.fail_remove:
            raise StorageError("Failed to delete images: service unavailable")
        self.removed.append(list(paths))
        for path in paths:
            self.objects.pop(path, None)


class FakeVision:
    """Returns a canned model reply or raises a canned error."""

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def generate(self, image, mime_type, prompt):
        self.calls.append((image, mime_type, prompt))
        if self.error is not None:
            raise self.error
        return self.reply


def to_data_url(ext="png", payload=b"\x89PNG\r\n\x1a\nfake"):
    return f"data:image/{ext};base64,{base64.b64encode(payload).decode()}"


@pytest.fixture
def data_url():
    return to_data_url


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "db" / "dealership.db")
    db_init(path)
    return path


@pytest.fixture
def storage():
    s = FakeStorage()
    yield s
    s.close()


@pytest.fixture
def vision():
    return FakeVision(reply=json.dumps(HONDA_REPLY))


@pytest.fixture
def services(db_path, storage, vision):
    return Services(db_path=db_path, storage=storage, vision=vision)


@pytest.fixture
def admin(services):
    with services.connect() as conn:
        return db_upsert_user(conn, "u-1", ADMIN_ID, "admin@example.com", "Admin", None)


@pytest.fixture
def add_car(services):
    """Insert a car row directly, with a controlled creation time."""
    def _add(car_id, make, model, color, created_at, body_type="Sedan", images=None, **kwargs):
        car = Car(
            id=car_id, make=make, model=model, year=kwargs.pop("year", 2020),
            price=kwargs.pop("price", 20000.0), mileage=kwargs.pop("mileage", 30000),
            color=color, fuel_type="Petrol", transmission="Automatic", body_type=body_type,
            status=kwargs.pop("status", CarStatus.AVAILABLE), featured=kwargs.pop("featured", False),
            images=images if images is not None else [f"{STORAGE_URL}/storage/v1/object/public/car-images/cars/{car_id}/image-1-0.png"],
            created_at=created_at, updated_at=created_at,
        )
        with services.connect() as conn:
            db_insert_car(conn, car)
        return car_id
    return _add


@pytest.fixture
def client(services):
    from dealership.main import app

    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()
