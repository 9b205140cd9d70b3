"""Pytest fixtures for API testing."""
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from realm_atlas.main import app
from realm_atlas.core.database import get_db
from realm_atlas.models.base import Base
from realm_atlas.models.place import Place
from realm_atlas.models.region import Region
from realm_atlas.services.region_graph import RegionGraphService
from realm_atlas.services.region_repository import RegionRepository

# In-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Test client with database override.

    Note: db_session already created tables, so we don't need to create them again.
    """
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def service(db_session):
    """Region graph service on the test session."""
    return RegionGraphService(RegionRepository(db_session))


@pytest.fixture
def file_engine(tmp_path):
    """SQLite database on disk, for tests that need two independent connections."""
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'atlas.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=file_engine)
    yield file_engine
    file_engine.dispose()


@pytest.fixture
def postgres_engine():
    """Engine for TEST_POSTGRES_URL; tests using it are skipped without one."""
    url = os.getenv("TEST_POSTGRES_URL")
    if not url:
        pytest.skip("TEST_POSTGRES_URL not set")
    pg_engine = create_engine(url)
    Base.metadata.drop_all(bind=pg_engine)
    Base.metadata.create_all(bind=pg_engine)
    yield pg_engine
    Base.metadata.drop_all(bind=pg_engine)
    pg_engine.dispose()


@pytest.fixture
def make_region(db_session):
    """Factory inserting region rows directly, bypassing the service."""
    def _make_region(region_id, name=None, connections=None, **fields):
        region = Region(
            id=region_id,
            name=name or region_id.title(),
            subtitle=fields.pop("subtitle", "Test Subtitle"),
            connections=list(connections or []),
            **fields
        )
        db_session.add(region)
        db_session.commit()
        db_session.refresh(region)
        return region
    return _make_region


@pytest.fixture
def make_place(db_session):
    """Factory inserting place rows directly, bypassing the service."""
    def _make_place(region_id, place_id, **fields):
        place = Place(
            id=place_id,
            region_id=region_id,
            name=fields.pop("name", place_id.title()),
            type=fields.pop("type", "city"),
            **fields
        )
        db_session.add(place)
        db_session.commit()
        db_session.refresh(place)
        return place
    return _make_place


@pytest.fixture
def sample_regions(make_region):
    """Three regions: oris <-> askar, askar -> duskar, duskar isolated and premium only."""
    oris = make_region("oris", connections=["askar"], position_x=50, position_y=40)
    askar = make_region("askar", connections=["oris", "duskar"], position_x=25, position_y=60)
    duskar = make_region(
        "duskar", connections=[],
        visibility_free_users=False, visibility_signed_in_users=False,
    )
    return {"oris": oris, "askar": askar, "duskar": duskar}
