"""Bottle and batch lifecycle: conformation, inspections and status aggregation."""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import (
    BatchConformationError,
    EntityNotFoundError,
    InvalidInspectionInputError,
    InvalidStatusTransitionError,
)
from .collection import get_bottle

# purpose: advance bottles on inspection verdicts and fold member bottle states into the batch status
# inputs: bottle selections, per-bottle physical and chemical findings, manual closure requests
# outputs: Batch and Bottle rows with recomputed statuses, append-only inspection records
# status: stable
# depends_on: milkbank.services.collection

logger = logging.getLogger(__name__)

MAX_DORNIC_ACIDITY = 8.0
_MANUAL_TARGETS = {"COMPLETED", "CANCELLED"}
_MANUAL_SOURCES = {"IN_PROCESS", "COMPLETED", "PENDING_QC"}


def _shelf_life() -> timedelta:
    return timedelta(days=int(os.getenv("MILKBANK_BATCH_SHELF_LIFE_DAYS", "180")))


def _given_reasons(findings: schemas.PhysicalInspectionCreate) -> list[str]:
    return [reason.strip() for reason in findings.rejection_reasons if reason and reason.strip()]


def physical_verdict(findings: schemas.PhysicalInspectionCreate) -> str:
    """APPROVED only when every container check passes and no reason is given."""

    containers_ok = all((findings.lid, findings.integrity, findings.seal, findings.label))
    reasons = _given_reasons(findings)
    if containers_ok and not reasons:
        return "APPROVED"
    if not reasons:
        raise InvalidInspectionInputError(
            "A rejected physical inspection must list at least one rejection reason"
        )
    return "REJECTED"


def quality_control_verdict(acidity_dornic: float, coliforms_presence: bool) -> str:
    # organoleptic and packaging fields are informational only
    if acidity_dornic > MAX_DORNIC_ACIDITY or coliforms_presence:
        return "REJECTED"
    return "APPROVED"


def aggregate_batch_status(bottles: Iterable[Any], current: str) -> str:
    """Reduce member bottle states to a batch status.

    Precedence: any REJECTED bottle rejects the batch; a batch is APPROVED only
    when every bottle carries both inspections and is APPROVED; any physical
    inspection on record means PENDING_QC; otherwise ``current`` is kept.
    """

    members = list(bottles)
    if any(bottle.status == "REJECTED" for bottle in members):
        return "REJECTED"
    if members and all(
        bottle.physical_inspection_id is not None
        and bottle.quality_control_id is not None
        and bottle.status == "APPROVED"
        for bottle in members
    ):
        return "APPROVED"
    if any(bottle.physical_inspection_id is not None for bottle in members):
        return "PENDING_QC"
    return current


def recompute_batch_status(batch: models.Batch, *, today: date | None = None) -> str:
    previous = batch.status
    status = aggregate_batch_status(batch.bottles, previous)
    if status == "APPROVED" and previous != "APPROVED":
        batch.expiration_date = (today or date.today()) + _shelf_life()
    if status != previous:
        logger.info("Batch %s status %s -> %s", batch.batch_number, previous, status)
    batch.status = status
    return status


def _advance_bottle(bottle: models.Bottle, verdict: str) -> None:
    if verdict == "REJECTED":
        bottle.status = "REJECTED"
    elif bottle.physical_inspection_id is not None and bottle.quality_control_id is not None:
        bottle.status = "APPROVED"


def get_batch(db: Session, batch_id: UUID) -> models.Batch:
    batch = db.get(models.Batch, batch_id)
    if batch is None:
        raise EntityNotFoundError("Batch", batch_id)
    return batch


def list_batches(db: Session, *, status: str | None = None) -> list[models.Batch]:
    query = db.query(models.Batch)
    if status:
        query = query.filter(models.Batch.status == status)
    return query.order_by(models.Batch.created_at.desc()).all()


def get_batch_bottles(db: Session, batch_id: UUID) -> list[models.Bottle]:
    return list(get_batch(db, batch_id).bottles)


def get_inspections(
    db: Session, batch_id: UUID
) -> tuple[list[models.PhysicalInspectionRecord], list[models.QualityControlRecord]]:
    batch = get_batch(db, batch_id)
    physical = (
        db.query(models.PhysicalInspectionRecord)
        .filter(models.PhysicalInspectionRecord.batch_id == batch.id)
        .order_by(models.PhysicalInspectionRecord.inspected_at.asc())
        .all()
    )
    chemical = (
        db.query(models.QualityControlRecord)
        .filter(models.QualityControlRecord.batch_id == batch.id)
        .order_by(models.QualityControlRecord.inspected_at.asc())
        .all()
    )
    return physical, chemical


def _next_batch_number(db: Session, today: date) -> str:
    prefix = f"LOT-{today:%Y%m}-"
    count = (
        db.query(func.count(models.Batch.id))
        .filter(models.Batch.batch_number.like(f"{prefix}%"))
        .scalar()
    )
    return f"{prefix}{(count or 0) + 1:03d}"


def conform_batch(
    db: Session,
    bottle_ids: list[UUID],
    batch_type: str,
    *,
    today: date | None = None,
) -> models.Batch:
    """Pool free bottles into a new IN_PROCESS batch with fixed membership."""

    if not bottle_ids:
        raise BatchConformationError("A batch requires at least one bottle")
    unique_ids = list(dict.fromkeys(bottle_ids))
    bottles = [get_bottle(db, bottle_id) for bottle_id in unique_ids]

    unavailable = [b.traceability_code for b in bottles if b.status != "COLLECTED" or b.batch_id]
    if unavailable:
        raise BatchConformationError(
            f"Bottles not available for conformation: {', '.join(unavailable)}"
        )
    if batch_type == "HOMOLOGOUS" and len({b.donor_id for b in bottles}) > 1:
        raise BatchConformationError("A HOMOLOGOUS batch must come from a single donor")

    today = today or date.today()
    total = sum(b.volume for b in bottles)
    batch = models.Batch(
        batch_number=_next_batch_number(db, today),
        batch_type=batch_type,
        status="IN_PROCESS",
        total_volume=total,
        current_volume=total,
        bottle_count=len(bottles),
        creation_date=today,
    )
    db.add(batch)
    db.flush()
    for bottle in bottles:
        bottle.batch = batch
        bottle.status = "ASSIGNED"
    db.flush()
    logger.info(
        "Conformed batch %s from %d bottles (%g ml)", batch.batch_number, len(bottles), total
    )
    return batch


def _inspectable_member(
    db: Session, batch_id: UUID, bottle_id: UUID
) -> tuple[models.Batch, models.Bottle]:
    batch = get_batch(db, batch_id)
    bottle = get_bottle(db, bottle_id)
    if bottle.batch_id != batch.id:
        raise InvalidInspectionInputError(
            f"Bottle {bottle.traceability_code} does not belong to batch {batch.batch_number}"
        )
    if batch.status == "CANCELLED":
        raise InvalidInspectionInputError(f"Batch {batch.batch_number} is cancelled")
    if bottle.status == "REJECTED":
        raise InvalidInspectionInputError(
            f"Bottle {bottle.traceability_code} already has a rejected disposition"
        )
    return batch, bottle


def record_physical_inspection(
    db: Session,
    batch_id: UUID,
    bottle_id: UUID,
    findings: schemas.PhysicalInspectionCreate,
    *,
    today: date | None = None,
) -> models.Bottle:
    batch, bottle = _inspectable_member(db, batch_id, bottle_id)
    if bottle.physical_inspection_id is not None:
        raise InvalidInspectionInputError(
            f"Bottle {bottle.traceability_code} already has a physical inspection"
        )
    verdict = physical_verdict(findings)

    record = models.PhysicalInspectionRecord(
        id=uuid.uuid4(),
        batch_id=batch.id,
        bottle_id=bottle.id,
        inspector_name=findings.inspector_name,
        lid_ok=findings.lid,
        integrity_ok=findings.integrity,
        seal_ok=findings.seal,
        label_ok=findings.label,
        milk_state=findings.milk_state,
        volume_check=findings.volume_check,
        observations=findings.observations,
        rejection_reasons=_given_reasons(findings),
        verdict=verdict,
    )
    db.add(record)
    bottle.physical_inspection_id = record.id
    _advance_bottle(bottle, verdict)
    logger.info("Physical inspection of %s: %s", bottle.traceability_code, verdict)
    recompute_batch_status(batch, today=today)
    db.flush()
    return bottle


def record_quality_control(
    db: Session,
    batch_id: UUID,
    bottle_id: UUID,
    findings: schemas.QualityControlCreate,
    *,
    today: date | None = None,
) -> models.Bottle:
    batch, bottle = _inspectable_member(db, batch_id, bottle_id)
    if bottle.quality_control_id is not None:
        raise InvalidInspectionInputError(
            f"Bottle {bottle.traceability_code} already has a quality control record"
        )
    verdict = quality_control_verdict(findings.acidity_dornic, findings.coliforms_presence)

    record = models.QualityControlRecord(
        id=uuid.uuid4(),
        batch_id=batch.id,
        bottle_id=bottle.id,
        inspector_name=findings.inspector_name,
        acidity_dornic=findings.acidity_dornic,
        crematocrit=findings.crematocrit,
        caloric_classification=findings.caloric_classification,
        flavor=findings.flavor,
        color=findings.color,
        packaging_state=findings.packaging_state,
        coliforms_presence=findings.coliforms_presence,
        notes=findings.notes,
        verdict=verdict,
    )
    db.add(record)
    bottle.quality_control_id = record.id
    _advance_bottle(bottle, verdict)
    logger.info("Quality control of %s: %s", bottle.traceability_code, verdict)
    recompute_batch_status(batch, today=today)
    db.flush()
    return bottle


def set_batch_status(db: Session, batch_id: UUID, status: str) -> models.Batch:
    """Administrative closure; never used for quality disposition."""

    batch = get_batch(db, batch_id)
    if status not in _MANUAL_TARGETS:
        raise InvalidStatusTransitionError(f"Batch status {status} cannot be set manually")
    if batch.status not in _MANUAL_SOURCES:
        raise InvalidStatusTransitionError(
            f"Batch {batch.batch_number} in status {batch.status} cannot move to {status}"
        )
    logger.info("Batch %s manually set %s -> %s", batch.batch_number, batch.status, status)
    batch.status = status
    db.flush()
    return batch
