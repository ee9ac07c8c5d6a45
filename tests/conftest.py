"""
Test configuration and fixtures for the tracking service.
This centralizes all test setup, making individual tests clean.
"""

import os

# Must be set before settings are imported
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from main import app
from tracking_app.cache.strategies import InMemoryCache
from tracking_app.config import settings
from tracking_app.database.connection import Database, get_db
from tracking_app.dependencies import get_geolocation_resolver
from tracking_app.services.analytics import AnalyticsAggregator
from tracking_app.services.geolocation import GeolocationResolver
from tracking_app.services.link_registry import LinkRegistry
from tracking_app.services.visit_recorder import VisitRecorder
from tracking_app.storage.strategies import SQLAlchemyTrackingStorage

CHROME_DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)

PARIS_RESPONSE = {
    "ip": "81.2.69.142",
    "city": "Paris",
    "country_name": "France",
    "latitude": 48.8566,
    "longitude": 2.3522,
}


def make_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else PARIS_RESPONSE
    return response


@pytest.fixture(scope="function")
def database(tmp_path):
    """
    Fresh file-backed SQLite database for each test.
    File-backed so several threads can open their own connections.
    """
    db = Database(f"sqlite:///{tmp_path / 'tracking_test.db'}")
    db.create_tables()
    try:
        yield db
    finally:
        db.drop_tables()
        db.close()


@pytest.fixture(scope="function")
def db_session(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(db_session):
    return SQLAlchemyTrackingStorage(db_session)


@pytest.fixture
def geo_http():
    """Stub requests session: every lookup answers with Paris"""
    http = MagicMock()
    http.get.return_value = make_response()
    return http


@pytest.fixture
def resolver(geo_http):
    return GeolocationResolver(cache=InMemoryCache(), http=geo_http, timeout=1)


@pytest.fixture
def registry(storage):
    return LinkRegistry(storage)


@pytest.fixture
def recorder(storage, registry, resolver):
    return VisitRecorder(storage=storage, registry=registry, resolver=resolver)


@pytest.fixture
def aggregator(storage):
    return AnalyticsAggregator(storage)


@pytest.fixture(scope="function")
def client(database, resolver, monkeypatch):
    """
    Test client with the database and geolocation dependencies overridden.
    This is the main fixture that API tests use.
    """
    # Lifespan opens its own handle on the same file
    monkeypatch.setattr(settings, "database_url", database.url)

    def override_get_db():
        session = database.session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_geolocation_resolver] = lambda: resolver

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
