"""
End-to-end tests of the HTTP routes with injected services.
"""
import asyncio
import io
import json
import time

import httpx
import pandas as pd
from fastapi import UploadFile

from dealership.conftest import ADMIN_ID, HONDA_REPLY, FakeVision
from dealership.routes.uploads import read_image
from dealership.services import get_services

AUTH = {"X-Clerk-User-Id": ADMIN_ID}

CAR_FORM = {
    "make": "Honda", "model": "CR-V", "year": 2019, "price": 24000, "mileage": 45000,
    "color": "Red", "fuel_type": "Petrol", "transmission": "Automatic", "body_type": "SUV",
}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_user_sync_then_admin_flow(client, data_url):
    response = client.post("/api/users/sync", json={"email": "admin@example.com", "name": "Admin"}, headers=AUTH)
    assert response.status_code == 200
    assert response.json()["data"]["clerk_user_id"] == ADMIN_ID

    response = client.post("/api/cars", json={"car_data": CAR_FORM, "images": [data_url()]}, headers=AUTH)
    assert response.status_code == 201
    car_id = response.json()["data"]["id"]

    listing = client.get("/api/cars", params={"search": "cr-v"}, headers=AUTH).json()
    assert [car["id"] for car in listing["data"]] == [car_id]

    response = client.patch(f"/api/cars/{car_id}/status", json={"status": "SOLD", "featured": True}, headers=AUTH)
    assert response.json() == {"success": True, "data": None}

    car = client.get(f"/api/search/cars/{car_id}").json()["data"]
    assert car["status"] == "SOLD"
    assert car["featured"] is True

    assert client.delete(f"/api/cars/{car_id}", headers=AUTH).status_code == 200
    assert client.get(f"/api/search/cars/{car_id}").status_code == 404


def test_admin_routes_reject_anonymous(client):
    response = client.get("/api/cars")
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Unauthorized", "kind": "unauthorized"}

    assert client.delete("/api/cars/abc").status_code == 401
    assert client.get("/api/stats").status_code == 401


def test_create_car_validation(client, admin):
    response = client.post("/api/cars", json={"car_data": dict(CAR_FORM, price=-1), "images": []}, headers=AUTH)
    assert response.status_code == 422

    response = client.post("/api/cars", json={"car_data": CAR_FORM, "images": ["nope"]}, headers=AUTH)
    assert response.status_code == 422
    assert response.json()["error"] == "No valid images were uploaded"


def test_analyze_image(client):
    files = {"image": ("car.png", b"\x89PNG fake", "image/png")}

    response = client.post("/api/cars/analyze", files=files)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["bodyType"] == "SUV"
    assert data["confidence"] == 0.82


def test_analyze_image_without_api_key(client, services):
    services.vision = None
    files = {"image": ("car.png", b"\x89PNG fake", "image/png")}

    response = client.post("/api/cars/analyze", files=files)

    assert response.status_code == 500
    assert response.json()["kind"] == "configuration"


def test_image_search_builds_listing_query(client, add_car):
    add_car("c1", "Honda", "CR-V", "Red", "2024-01-01T00:00:00+00:00", body_type="SUV")
    add_car("c2", "Honda", "Civic", "Red", "2024-01-02T00:00:00+00:00")

    response = client.post("/api/search/image", files={"image": ("suv.jpg", b"jpeg-bytes", "image/jpeg")})
    assert response.status_code == 200
    query = response.json()["data"]["query"]
    assert query == "make=Honda&bodyType=SUV&color=Red"

    listing = client.get(f"/api/search/cars?{query}").json()
    assert [car["id"] for car in listing["data"]] == ["c1"]


def test_public_text_search(client, add_car):
    add_car("c1", "Toyota", "Corolla", "Blue", "2024-01-01T00:00:00+00:00")
    add_car("c2", "Honda", "Civic", "Red", "2024-01-02T00:00:00+00:00")

    everything = client.get("/api/search/cars").json()["data"]
    assert [car["id"] for car in everything] == ["c2", "c1"]

    toyota = client.get("/api/search/cars", params={"search": "toyota"}).json()["data"]
    assert [car["id"] for car in toyota] == ["c1"]


def test_stats(client, admin, add_car):
    add_car("c1", "Toyota", "Corolla", "Blue", "2024-01-01T00:00:00+00:00", price=10000.0, featured=True)
    add_car("c2", "Toyota", "Yaris", "Red", "2024-01-02T00:00:00+00:00", price=20000.0)

    stats = client.get("/api/stats", headers=AUTH).json()["data"]

    assert stats["total_cars"] == 2
    assert stats["featured_cars"] == 1
    assert stats["avg_price"] == 15000.0
    assert stats["by_make"] == {"Toyota": 2}
    assert stats["by_status"] == {"AVAILABLE": 2}


def test_export_csv(client, admin, add_car):
    add_car("c1", "Toyota", "Corolla", "Blue", "2024-01-01T00:00:00+00:00",
            images=["https://x/a.png", "https://x/b.png"])

    response = client.get("/api/cars/export/csv", headers=AUTH)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    df = pd.read_csv(io.StringIO(response.text))
    assert list(df["id"]) == ["c1"]
    assert df.loc[0, "images"] == "https://x/a.png|https://x/b.png"


class SlowVision(FakeVision):
    """Model that takes a while to answer, like a real Gemini round-trip."""

    def __init__(self, delay):
        super().__init__(reply=json.dumps(HONDA_REPLY))
        self.delay = delay

    def generate(self, image, mime_type, prompt):
        time.sleep(self.delay)
        return super().generate(image, mime_type, prompt)


def test_slow_analysis_does_not_block_other_requests(services):
    """Concurrent analyze requests overlap instead of queuing on the event loop."""
    from dealership.main import app

    delay = 0.5
    services.vision = SlowVision(delay)
    app.dependency_overrides[get_services] = lambda: services

    async def send_all():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            requests = [
                http.post("/api/cars/analyze", files={"image": ("car.png", b"\x89PNG fake", "image/png")})
                for _ in range(3)
            ]
            return await asyncio.gather(*requests)

    try:
        started = time.monotonic()
        responses = asyncio.run(send_all())
        elapsed = time.monotonic() - started
    finally:
        app.dependency_overrides.clear()

    assert [r.status_code for r in responses] == [200, 200, 200]
    assert elapsed < delay * 2.5


def test_oversized_upload_rejected_before_analysis(client, services, vision):
    services.max_image_bytes = 16
    files = {"image": ("car.png", b"\x89PNG" + b"x" * 1024, "image/png")}

    response = client.post("/api/search/image", files=files)

    assert response.status_code == 422
    assert response.json()["kind"] == "validation"
    assert vision.calls == []


def test_read_image_stops_past_the_limit():
    upload = UploadFile(io.BytesIO(b"x" * 100), size=100, filename="car.png")

    data = asyncio.run(read_image(upload, 10))

    assert len(data) == 11
