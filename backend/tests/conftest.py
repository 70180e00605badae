import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MQTT_ENABLED", "false")

import itertools  # noqa: E402
from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from lotetrace.core.database import Base, get_db  # noqa: E402
from lotetrace.main import app  # noqa: E402
from lotetrace.models import Lote, Organization, Sensor, Zone  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def org(db):
    organization = Organization(name="Salumificio Valle", email="info@valle.example")
    db.add(organization)
    db.commit()
    return organization


@pytest.fixture
def other_org(db):
    organization = Organization(name="Altra Azienda", email="info@altra.example")
    db.add(organization)
    db.commit()
    return organization


@pytest.fixture
def make_zone(db, org):
    def _make(stage, name=None, organization=None, targets=None, is_active=True):
        zone = Zone(
            organization_id=(organization or org).id,
            name=name or f"{stage.capitalize()} zone",
            stage=stage,
            fixed_info={},
            targets=targets or {},
            is_active=is_active,
        )
        db.add(zone)
        db.commit()
        return zone

    return _make


@pytest.fixture
def zones(make_zone):
    """One active zone per stage."""
    return {
        stage: make_zone(stage)
        for stage in ("breeding", "fattening", "slaughter", "curing", "distribution")
    }


@pytest.fixture
def make_lote(db, org):
    def _make(identification="L-001", initial_animals=100, **kwargs):
        lote = Lote(
            organization_id=org.id,
            identification=identification,
            initial_animals=initial_animals,
            food_regime=kwargs.pop("food_regime", "acorn"),
            custom_data=kwargs.pop("custom_data", {"breed": "iberico"}),
            **kwargs,
        )
        db.add(lote)
        db.commit()
        return lote

    return _make


@pytest.fixture
def make_sensor(db, org):
    counter = itertools.count(1)

    def _make(zone, sensor_type="temperature", **kwargs):
        sensor = Sensor(
            organization_id=org.id,
            zone_id=zone.id,
            name=kwargs.pop("name", f"{sensor_type} probe"),
            device_id=kwargs.pop("device_id", f"dev-{zone.id}-{sensor_type}-{next(counter)}"),
            sensor_type=sensor_type,
            unit=kwargs.pop("unit", "C"),
            **kwargs,
        )
        db.add(sensor)
        db.commit()
        return sensor

    return _make


@pytest.fixture
def t():
    """Timestamps by day offset from 2025-01-01 (naive UTC)."""

    def _at(day, hour=0):
        return datetime(2025, 1, 1) + timedelta(days=day, hours=hour)

    return _at
