from __future__ import annotations

import pytest

from where2.preferences.store import clear_all
from where2.search.cache import clear_cache
from where2.search.models import Venue


@pytest.fixture(autouse=True)
def _reset_in_memory_state():
    clear_cache()
    clear_all()
    yield
    clear_cache()
    clear_all()


@pytest.fixture
def make_venue():
    """Build a ``Venue`` with sensible defaults; keyword arguments override fields."""

    def _make(**overrides) -> Venue:
        data = {
            "id": "v1",
            "name": "Test Venue",
            "category": "cafe",
            "area": "Marina",
            "latitude": 25.0,
            "longitude": 55.0,
            "tags": [],
            "cuisine": [],
            "price_level": "Mid",
            "rating": 4.0,
        }
        data.update(overrides)
        return Venue(**data)

    return _make
