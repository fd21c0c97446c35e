import os

# Must be set before app.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("MAPBOX_TOKEN", "test-token")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.crud.carpool_crud import create_carpool
from app.database import get_db
from app.main import app
from app.models.base import Base
from app.models.user import User
from app.schemas.common import GeoPoint
from app.security import create_access_token

VALENCIA = GeoPoint(latitude=39.4699, longitude=-0.3763, address="Valencia")
PAIPORTA = GeoPoint(latitude=39.4281, longitude=-0.4175, address="Paiporta")
MADRID = GeoPoint(latitude=40.4168, longitude=-3.7038, address="Madrid")

# --- Fixtures ---

@pytest.fixture(scope="function")
def db_session():
    """
    In-memory SQLite session per test. StaticPool keeps the single connection
    alive across the threads TestClient runs sync endpoints in.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()

    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def make_user(db_session):
    """Factory: make_user("Ana") -> persisted User with email and phone."""
    def _make(name, phone="600000000", roles=None):
        user = User(
            name=name,
            email=f"{name.lower()}@example.org",
            phone=phone,
            roles=roles or [],
            has_account=True,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_carpool(db_session):
    """Factory: make_carpool(driver, max_passengers=2) -> committed active carpool."""
    def _make(driver, max_passengers=2, departure=None, origin=VALENCIA, destination=PAIPORTA):
        carpool = create_carpool(
            db_session,
            driver_id=driver.id,
            origin=origin,
            destination=destination,
            departure_time=departure or datetime(2024, 11, 5, 9, 0, tzinfo=timezone.utc),
            max_passengers=max_passengers,
            description="Llevo palas y cubos",
        )
        db_session.commit()
        return carpool
    return _make


@pytest.fixture
def published(mocker):
    """Replaces the Redis publishers used by the carpool router."""
    return {
        "updated": mocker.patch("app.routers.carpools.publish_carpool_updated", new_callable=mocker.AsyncMock),
        "deleted": mocker.patch("app.routers.carpools.publish_carpool_deleted", new_callable=mocker.AsyncMock),
    }


@pytest.fixture
def client(db_session, published):
    """
    TestClient bound to the test session. Not used as a context manager, so
    the startup migration hook does not run.
    """
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
