"""Shared fixtures: an isolated app per test with a fresh store and a fake geocoder."""

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.usage.store import MemoryUsageStore

TODAY = "2025-03-14"


class FakeGeocoder:
    """Records calls; returns `address` or raises `error`."""

    def __init__(self, address="서울 중구 태평로1가 31", error=None):
        self.address = address
        self.error = error
        self.calls = []

    def reverse(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.error is not None:
            raise self.error
        return self.address


@pytest.fixture
def store():
    return MemoryUsageStore()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def app(store, geocoder):
    return create_app(store=store, geocoder=geocoder, today=lambda: TODAY, js_api_key="test-js-key")


@pytest.fixture
def client(app):
    return TestClient(app)
