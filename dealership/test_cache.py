"""
Tests for the view cache: expiry, size bound and invalidation.
"""
from dealership import cache
from dealership.cache import ViewCache


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_expired_entries_are_swept_on_write(monkeypatch):
    clock = Clock()
    monkeypatch.setattr(cache, "monotonic", clock)
    views = ViewCache(ttl=10)

    for term in ("bmw", "audi", "kia"):
        views.set("/admin/cars", term, [term])
    assert len(views) == 3

    clock.now += 11
    views.set("/admin/cars", "ford", ["ford"])

    assert len(views) == 1
    assert views.get("/admin/cars", "bmw") is None
    assert views.get("/admin/cars", "ford") == ["ford"]


def test_size_is_bounded():
    views = ViewCache(ttl=60, max_entries=3)

    for i in range(10):
        views.set("/admin/cars", f"term-{i}", i)

    assert len(views) == 3
    assert views.get("/admin/cars", "term-0") is None
    assert views.get("/admin/cars", "term-9") == 9


def test_invalidate_drops_only_that_view():
    views = ViewCache(ttl=60)
    views.set("/admin/cars", "", [])
    views.set("/admin/cars", "bmw", [])
    views.set("/cars", "", [])

    views.invalidate("/admin/cars")

    assert views.get("/admin/cars", "") is None
    assert views.get("/cars", "") == []
