"""Volume ledger tests: debits, availability and expiry write-offs."""

from datetime import date, timedelta

import pytest

from milkbank import models
from milkbank.errors import (
    BatchUnavailableError,
    InsufficientVolumeError,
    InvalidVolumeError,
    MilkBankError,
)
from milkbank.services import ledger, lifecycle

from .conftest import approved_batch, client, make_bottles, make_donor, make_recipient


def test_administration_and_discard_conserve_volume(db):
    batch = approved_batch(db, volumes=(60, 40))
    recipient = make_recipient(db)

    ledger.administer(db, recipient.id, batch.id, 25, "nurse")
    ledger.discard(db, batch.id, 10, "CONTAMINATION", "nurse")
    ledger.administer(db, recipient.id, batch.id, 15.5, "nurse")
    db.commit()

    administered = sum(r.volume for r in ledger.batch_administrations(db, batch.id))
    discarded = sum(r.volume for r in ledger.batch_discards(db, batch.id))
    assert batch.total_volume == 100
    assert batch.current_volume == pytest.approx(49.5)
    assert batch.current_volume + administered + discarded == pytest.approx(batch.total_volume)


def test_over_withdrawal_is_refused_without_side_effects(db):
    batch = approved_batch(db, volumes=(20, 10))
    recipient = make_recipient(db)
    with pytest.raises(InsufficientVolumeError) as excinfo:
        ledger.administer(db, recipient.id, batch.id, 50, "nurse")
    db.rollback()
    assert excinfo.value.requested == 50
    assert excinfo.value.available == 30
    db.refresh(batch)
    assert batch.current_volume == 30
    assert ledger.batch_administrations(db, batch.id) == []


def test_discard_can_empty_a_batch(db):
    batch = approved_batch(db, volumes=(20,))
    ledger.discard(db, batch.id, 20, "DOSAGE_ERROR", "nurse")
    db.commit()
    assert batch.current_volume == 0
    assert not ledger.is_available(batch)
    with pytest.raises(InsufficientVolumeError):
        ledger.discard(db, batch.id, 1, "OTHER", "nurse")


def test_reduce_volume_refuses_non_positive_amounts():
    batch = models.Batch(batch_number="LOT-TEST-001", current_volume=10, total_volume=10)
    with pytest.raises(InvalidVolumeError) as excinfo:
        ledger.reduce_volume(batch, 0)
    assert isinstance(excinfo.value, MilkBankError)
    with pytest.raises(InvalidVolumeError):
        ledger.reduce_volume(batch, -5)
    ledger.reduce_volume(batch, 10)
    assert batch.current_volume == 0


def test_unapproved_batch_cannot_be_administered(db):
    donor = make_donor(db)
    bottles = make_bottles(db, donor, [40])
    batch = lifecycle.conform_batch(db, [b.id for b in bottles], "HETEROLOGOUS")
    db.commit()
    recipient = make_recipient(db)
    with pytest.raises(BatchUnavailableError):
        ledger.administer(db, recipient.id, batch.id, 10, "nurse")
    assert batch.current_volume == 40


def test_expired_batch_cannot_be_administered(db):
    batch = approved_batch(db, volumes=(40,), today=date(2025, 1, 1))
    recipient = make_recipient(db)
    after_expiry = batch.expiration_date + timedelta(days=1)
    with pytest.raises(BatchUnavailableError):
        ledger.administer(db, recipient.id, batch.id, 10, "nurse", today=after_expiry)
    ledger.administer(db, recipient.id, batch.id, 10, "nurse", today=batch.expiration_date)
    assert batch.current_volume == 30


def test_available_batches_are_first_expiring_first(db):
    later = approved_batch(db, volumes=(30,), today=date(2025, 3, 1))
    sooner = approved_batch(db, volumes=(30,), today=date(2025, 2, 1))
    expired = approved_batch(db, volumes=(30,), today=date(2024, 1, 1))
    emptied = approved_batch(db, volumes=(30,), today=date(2025, 2, 15))
    ledger.discard(db, emptied.id, 30, "OTHER", "nurse")
    db.commit()

    available = ledger.list_available_batches(db, today=date(2025, 6, 1))
    assert [b.id for b in available] == [sooner.id, later.id]
    assert expired.id not in [b.id for b in available]


def test_discard_expired_writes_off_remaining_volume(db):
    expired = approved_batch(db, volumes=(30, 20), today=date(2024, 1, 1))
    fresh = approved_batch(db, volumes=(10,), today=date(2025, 5, 1))
    recipient = make_recipient(db)
    ledger.administer(db, recipient.id, expired.id, 15, "nurse", today=date(2024, 2, 1))
    db.commit()

    records = ledger.discard_expired(db, "scheduler", today=date(2025, 6, 1))
    db.commit()
    assert [(r.batch_id, r.volume, r.reason) for r in records] == [(expired.id, 35, "EXPIRATION")]
    assert expired.current_volume == 0
    assert fresh.current_volume == 10
    assert ledger.discard_expired(db, "scheduler", today=date(2025, 6, 1)) == []


def test_recipient_history(db):
    batch = approved_batch(db, volumes=(80,))
    first = make_recipient(db, "Baby Uno")
    second = make_recipient(db, "Baby Dos")
    ledger.administer(db, first.id, batch.id, 10, "nurse", notes="morning feed")
    ledger.administer(db, second.id, batch.id, 20, "nurse")
    db.commit()
    history = ledger.recipient_history(db, first.id)
    assert [(r.volume, r.batch_number, r.notes) for r in history] == [
        (10, batch.batch_number, "morning feed")
    ]


def _approved_batch_via_api(client, volumes=(20, 10)):
    donor = client.post("/api/donors", json={"first_name": "Paula", "last_name": "Rios"}).json()
    bottle_ids = [
        client.post("/api/bottles", json={"donor_id": donor["id"], "volume": v}).json()["id"]
        for v in volumes
    ]
    batch_id = client.post(
        "/api/batches", json={"bottle_ids": bottle_ids, "batch_type": "HETEROLOGOUS"}
    ).json()["id"]
    for bottle_id in bottle_ids:
        client.post(
            f"/api/batches/{batch_id}/bottles/{bottle_id}/physical-inspection",
            json={"inspector_name": "QA", "lid": True, "integrity": True, "seal": True, "label": True},
        )
        client.post(
            f"/api/batches/{batch_id}/bottles/{bottle_id}/quality-control",
            json={"inspector_name": "QA", "acidity_dornic": 4, "coliforms_presence": False},
        )
    return batch_id


def test_consumption_api_flow(client):
    batch_id = _approved_batch_via_api(client)
    inventory = client.get("/api/inventory/available").json()
    assert [b["id"] for b in inventory] == [batch_id]

    recipient = client.post("/api/recipients", json={"full_name": "Baby Cruz"})
    assert recipient.status_code == 201
    recipient_id = recipient.json()["id"]

    over = client.post(
        "/api/administrations",
        json={"recipient_id": recipient_id, "batch_id": batch_id, "volume": 50, "actor": "nurse"},
    )
    assert over.status_code == 409
    assert client.get(f"/api/batches/{batch_id}").json()["current_volume"] == 30

    given = client.post(
        "/api/administrations",
        json={"recipient_id": recipient_id, "batch_id": batch_id, "volume": 12, "actor": "nurse"},
    )
    assert given.status_code == 201
    dropped = client.post(
        "/api/discards",
        json={"batch_id": batch_id, "volume": 3, "reason": "CONTAMINATION", "actor": "nurse"},
    )
    assert dropped.status_code == 201
    assert client.get(f"/api/batches/{batch_id}").json()["current_volume"] == 15

    history = client.get(f"/api/recipients/{recipient_id}/administrations").json()
    assert [h["volume"] for h in history] == [12]
    assert len(client.get(f"/api/batches/{batch_id}/discards").json()) == 1


def test_discard_api_validates_reason_and_volume(client):
    batch_id = _approved_batch_via_api(client)
    bad_reason = client.post(
        "/api/discards",
        json={"batch_id": batch_id, "volume": 3, "reason": "SPILLED", "actor": "nurse"},
    )
    assert bad_reason.status_code == 422
    negative = client.post(
        "/api/discards",
        json={"batch_id": batch_id, "volume": -1, "reason": "OTHER", "actor": "nurse"},
    )
    assert negative.status_code == 422
