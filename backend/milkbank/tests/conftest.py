import os
os.environ["TESTING"] = "1"
os.environ.setdefault("MILKBANK_HOSPITAL_INITIALS", "HGT")
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import sys
from pathlib import Path
from datetime import date

sys.path.append(str(Path(__file__).resolve().parents[2]))

from milkbank import models, schemas
from milkbank.database import Base, build_engine, get_db
from milkbank.main import app
from milkbank.services import collection, donors, ledger, lifecycle

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_milkbank.db"
engine = build_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def make_donor(db, **overrides) -> models.Donor:
    """Register a clean donor, applying ``overrides`` to the create payload."""

    payload = {"first_name": "Ana", "last_name": "Lopez", **overrides}
    donor = donors.register_donor(db, schemas.DonorCreate(**payload))
    db.commit()
    return donor


def make_bottles(db, donor, volumes, collection_date: date | None = None) -> list[models.Bottle]:
    bottles = [
        collection.collect_bottle(
            db,
            schemas.BottleCreate(
                donor_id=donor.id, volume=volume, collection_date=collection_date
            ),
        )
        for volume in volumes
    ]
    db.commit()
    return bottles


def passing_physical(**overrides) -> schemas.PhysicalInspectionCreate:
    payload = {
        "inspector_name": "QA",
        "lid": True,
        "integrity": True,
        "seal": True,
        "label": True,
        **overrides,
    }
    return schemas.PhysicalInspectionCreate(**payload)


def passing_quality(**overrides) -> schemas.QualityControlCreate:
    payload = {
        "inspector_name": "QA",
        "acidity_dornic": 6,
        "coliforms_presence": False,
        **overrides,
    }
    return schemas.QualityControlCreate(**payload)


def approved_batch(db, volumes=(50, 30), today: date | None = None) -> models.Batch:
    """Conform a batch from a fresh donor and pass every bottle through both inspections."""

    donor = make_donor(db)
    bottles = make_bottles(db, donor, volumes)
    batch = lifecycle.conform_batch(db, [b.id for b in bottles], "HETEROLOGOUS")
    for bottle in bottles:
        lifecycle.record_physical_inspection(db, batch.id, bottle.id, passing_physical(), today=today)
        lifecycle.record_quality_control(db, batch.id, bottle.id, passing_quality(), today=today)
    db.commit()
    assert batch.status == "APPROVED"
    return batch


def make_recipient(db, name: str = "Baby Perez") -> models.Recipient:
    recipient = ledger.create_recipient(db, schemas.RecipientCreate(full_name=name))
    db.commit()
    return recipient
