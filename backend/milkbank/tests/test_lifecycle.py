import uuid
from datetime import date, timedelta

import pytest

from milkbank.errors import (
    BatchConformationError,
    EntityNotFoundError,
    InvalidInspectionInputError,
    InvalidStatusTransitionError,
)
from milkbank.services import lifecycle

from .conftest import (
    approved_batch,
    client,
    make_bottles,
    make_donor,
    passing_physical,
    passing_quality,
)


def _batch_of(db, volumes, batch_type="HETEROLOGOUS", today=None):
    donor = make_donor(db)
    bottles = make_bottles(db, donor, volumes)
    batch = lifecycle.conform_batch(db, [b.id for b in bottles], batch_type, today=today)
    db.commit()
    return batch, bottles


def test_conform_batch_pools_volume_and_assigns_bottles(db):
    batch, bottles = _batch_of(db, [50, 30, 20], today=date(2025, 4, 10))
    assert batch.status == "IN_PROCESS"
    assert batch.batch_number == "LOT-202504-001"
    assert batch.total_volume == 100
    assert batch.current_volume == 100
    assert batch.bottle_count == 3
    assert batch.expiration_date is None
    assert all(b.status == "ASSIGNED" and b.batch_id == batch.id for b in bottles)


def test_batch_numbers_increase_within_month(db):
    first, _ = _batch_of(db, [10], today=date(2025, 4, 1))
    second, _ = _batch_of(db, [10], today=date(2025, 4, 28))
    assert (first.batch_number, second.batch_number) == ("LOT-202504-001", "LOT-202504-002")


def test_conform_requires_bottles(db):
    with pytest.raises(BatchConformationError):
        lifecycle.conform_batch(db, [], "HETEROLOGOUS")


def test_conform_refuses_already_assigned_bottle(db):
    _, bottles = _batch_of(db, [40])
    with pytest.raises(BatchConformationError):
        lifecycle.conform_batch(db, [bottles[0].id], "HETEROLOGOUS")


def test_conform_unknown_bottle(db):
    with pytest.raises(EntityNotFoundError):
        lifecycle.conform_batch(db, [uuid.uuid4()], "HETEROLOGOUS")


def test_homologous_batch_requires_single_donor(db):
    first = make_bottles(db, make_donor(db), [30])
    second = make_bottles(db, make_donor(db, first_name="Sara"), [30])
    with pytest.raises(BatchConformationError):
        lifecycle.conform_batch(db, [first[0].id, second[0].id], "HOMOLOGOUS")
    batch = lifecycle.conform_batch(db, [first[0].id, second[0].id], "HETEROLOGOUS")
    assert batch.bottle_count == 2


@pytest.mark.parametrize(
    "acidity, coliforms, verdict",
    [
        (6, False, "APPROVED"),
        (8, False, "APPROVED"),
        (9, False, "REJECTED"),
        (4, True, "REJECTED"),
    ],
)
def test_quality_control_verdict(acidity, coliforms, verdict):
    assert lifecycle.quality_control_verdict(acidity, coliforms) == verdict


def test_physical_verdict_requires_reason_on_failure():
    assert lifecycle.physical_verdict(passing_physical()) == "APPROVED"
    assert (
        lifecycle.physical_verdict(passing_physical(seal=False, rejection_reasons=["broken seal"]))
        == "REJECTED"
    )
    assert (
        lifecycle.physical_verdict(passing_physical(rejection_reasons=["dirt on cap"]))
        == "REJECTED"
    )
    with pytest.raises(InvalidInspectionInputError):
        lifecycle.physical_verdict(passing_physical(lid=False))
    with pytest.raises(InvalidInspectionInputError):
        lifecycle.physical_verdict(passing_physical(lid=False, rejection_reasons=["  "]))


def test_blank_reasons_are_not_stored(db):
    batch, bottles = _batch_of(db, [50, 30])
    lifecycle.record_physical_inspection(
        db, batch.id, bottles[0].id, passing_physical(rejection_reasons=["  ", ""])
    )
    lifecycle.record_physical_inspection(
        db,
        batch.id,
        bottles[1].id,
        passing_physical(seal=False, rejection_reasons=[" broken seal ", " "]),
    )
    db.commit()
    physical, _ = lifecycle.get_inspections(db, batch.id)
    stored = {record.bottle_id: (record.verdict, record.rejection_reasons) for record in physical}
    assert stored[bottles[0].id] == ("APPROVED", [])
    assert stored[bottles[1].id] == ("REJECTED", ["broken seal"])


def test_single_physical_failure_rejects_batch(db):
    batch, bottles = _batch_of(db, [50, 30, 20])
    lifecycle.record_physical_inspection(
        db,
        batch.id,
        bottles[0].id,
        passing_physical(integrity=False, rejection_reasons=["cracked container"]),
    )
    db.commit()
    assert bottles[0].status == "REJECTED"
    assert bottles[1].status == "ASSIGNED"
    assert batch.status == "REJECTED"
    assert batch.expiration_date is None


def test_partial_approval_is_pending_qc(db):
    batch, bottles = _batch_of(db, [50, 30, 20])
    for bottle in bottles[:2]:
        lifecycle.record_physical_inspection(db, batch.id, bottle.id, passing_physical())
        lifecycle.record_quality_control(db, batch.id, bottle.id, passing_quality())
    db.commit()
    assert [b.status for b in bottles] == ["APPROVED", "APPROVED", "ASSIGNED"]
    assert batch.status == "PENDING_QC"


def test_physical_pass_alone_keeps_bottle_assigned(db):
    batch, bottles = _batch_of(db, [50])
    lifecycle.record_physical_inspection(db, batch.id, bottles[0].id, passing_physical())
    db.commit()
    assert bottles[0].status == "ASSIGNED"
    assert batch.status == "PENDING_QC"


def test_full_approval_sets_expiration(db):
    today = date(2025, 5, 1)
    batch = approved_batch(db, volumes=(60, 40), today=today)
    assert batch.expiration_date == today + timedelta(days=180)
    assert all(b.status == "APPROVED" for b in batch.bottles)


def test_chemical_failure_rejects_batch(db):
    batch, bottles = _batch_of(db, [50, 30])
    for bottle in bottles:
        lifecycle.record_physical_inspection(db, batch.id, bottle.id, passing_physical())
    lifecycle.record_quality_control(db, batch.id, bottles[0].id, passing_quality())
    lifecycle.record_quality_control(
        db, batch.id, bottles[1].id, passing_quality(acidity_dornic=9)
    )
    db.commit()
    assert bottles[0].status == "APPROVED"
    assert bottles[1].status == "REJECTED"
    assert batch.status == "REJECTED"


def test_duplicate_inspection_refused(db):
    batch, bottles = _batch_of(db, [50])
    lifecycle.record_physical_inspection(db, batch.id, bottles[0].id, passing_physical())
    with pytest.raises(InvalidInspectionInputError):
        lifecycle.record_physical_inspection(db, batch.id, bottles[0].id, passing_physical())
    lifecycle.record_quality_control(db, batch.id, bottles[0].id, passing_quality())
    with pytest.raises(InvalidInspectionInputError):
        lifecycle.record_quality_control(db, batch.id, bottles[0].id, passing_quality())


def test_rejected_bottle_cannot_be_reinspected(db):
    batch, bottles = _batch_of(db, [50])
    lifecycle.record_quality_control(
        db, batch.id, bottles[0].id, passing_quality(coliforms_presence=True)
    )
    with pytest.raises(InvalidInspectionInputError):
        lifecycle.record_physical_inspection(db, batch.id, bottles[0].id, passing_physical())


def test_inspection_requires_batch_membership(db):
    batch, _ = _batch_of(db, [50])
    _, other_bottles = _batch_of(db, [20])
    with pytest.raises(InvalidInspectionInputError):
        lifecycle.record_physical_inspection(db, batch.id, other_bottles[0].id, passing_physical())


def test_inspections_are_listed_per_batch(db):
    batch = approved_batch(db, volumes=(10, 20))
    physical, chemical = lifecycle.get_inspections(db, batch.id)
    assert len(physical) == 2
    assert len(chemical) == 2
    assert {r.verdict for r in physical + chemical} == {"APPROVED"}


def test_manual_closure_transitions(db):
    batch, _ = _batch_of(db, [50])
    lifecycle.set_batch_status(db, batch.id, "COMPLETED")
    assert batch.status == "COMPLETED"
    lifecycle.set_batch_status(db, batch.id, "CANCELLED")
    assert batch.status == "CANCELLED"
    with pytest.raises(InvalidStatusTransitionError):
        lifecycle.set_batch_status(db, batch.id, "COMPLETED")


def test_manual_transition_cannot_set_quality_disposition(db):
    batch, _ = _batch_of(db, [50])
    with pytest.raises(InvalidStatusTransitionError):
        lifecycle.set_batch_status(db, batch.id, "APPROVED")
    approved = approved_batch(db)
    with pytest.raises(InvalidStatusTransitionError):
        lifecycle.set_batch_status(db, approved.id, "CANCELLED")


def test_cancelled_batch_refuses_inspections(db):
    batch, bottles = _batch_of(db, [50])
    lifecycle.set_batch_status(db, batch.id, "CANCELLED")
    with pytest.raises(InvalidInspectionInputError):
        lifecycle.record_physical_inspection(db, batch.id, bottles[0].id, passing_physical())


def test_batch_inspection_api_flow(client):
    donor = client.post("/api/donors", json={"first_name": "Ines", "last_name": "Vega"}).json()
    bottle_ids = [
        client.post("/api/bottles", json={"donor_id": donor["id"], "volume": v}).json()["id"]
        for v in (70, 30)
    ]
    created = client.post(
        "/api/batches", json={"bottle_ids": bottle_ids, "batch_type": "HOMOLOGOUS"}
    )
    assert created.status_code == 201
    batch_id = created.json()["id"]
    assert created.json()["total_volume"] == 100

    for bottle_id in bottle_ids:
        resp = client.post(
            f"/api/batches/{batch_id}/bottles/{bottle_id}/physical-inspection",
            json={"inspector_name": "QA", "lid": True, "integrity": True, "seal": True, "label": True},
        )
        assert resp.status_code == 201
    assert client.get(f"/api/batches/{batch_id}").json()["status"] == "PENDING_QC"

    for bottle_id in bottle_ids:
        resp = client.post(
            f"/api/batches/{batch_id}/bottles/{bottle_id}/quality-control",
            json={"inspector_name": "QA", "acidity_dornic": 5, "coliforms_presence": False},
        )
        assert resp.status_code == 201
        assert resp.json()["status"] == "APPROVED"

    batch = client.get(f"/api/batches/{batch_id}").json()
    assert batch["status"] == "APPROVED"
    assert batch["expiration_date"] is not None

    inspections = client.get(f"/api/batches/{batch_id}/inspections").json()
    assert len(inspections["physical"]) == 2
    assert len(inspections["quality_control"]) == 2


def test_physical_rejection_without_reason_is_bad_request(client):
    donor = client.post("/api/donors", json={"first_name": "Ines", "last_name": "Vega"}).json()
    bottle_id = client.post("/api/bottles", json={"donor_id": donor["id"], "volume": 40}).json()["id"]
    batch_id = client.post(
        "/api/batches", json={"bottle_ids": [bottle_id], "batch_type": "HETEROLOGOUS"}
    ).json()["id"]
    resp = client.post(
        f"/api/batches/{batch_id}/bottles/{bottle_id}/physical-inspection",
        json={"inspector_name": "QA", "lid": False, "integrity": True, "seal": True, "label": True},
    )
    assert resp.status_code == 400
    assert client.get(f"/api/bottles/{bottle_id}").json()["physical_inspection_id"] is None


def test_empty_batch_selection_is_bad_request(client):
    resp = client.post("/api/batches", json={"bottle_ids": [], "batch_type": "HETEROLOGOUS"})
    assert resp.status_code == 400
