"""Batch volume ledger: administration and discard debits."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import (
    BatchUnavailableError,
    EntityNotFoundError,
    InsufficientVolumeError,
    InvalidVolumeError,
)
from .lifecycle import get_batch

# purpose: conserve milk volume across administration and discard, debit-only
# inputs: batch ids, positive volumes, recipient ids and discard reasons
# outputs: immutable AdministrationRecord / DiscardRecord rows, decremented current_volume
# status: stable

logger = logging.getLogger(__name__)


def reduce_volume(batch: models.Batch, amount: float) -> models.Batch:
    """Debit ``amount`` from ``batch.current_volume``; ``total_volume`` is never touched."""

    if amount <= 0:
        raise InvalidVolumeError(f"Debit amount must be positive, got {amount:g} ml")
    if amount > batch.current_volume:
        logger.warning(
            "Refused debit of %g ml from batch %s holding %g ml",
            amount,
            batch.batch_number,
            batch.current_volume,
        )
        raise InsufficientVolumeError(batch.id, amount, batch.current_volume)
    batch.current_volume = batch.current_volume - amount
    return batch


def is_available(batch: models.Batch, today: date | None = None) -> bool:
    today = today or date.today()
    if batch.status != "APPROVED" or batch.current_volume <= 0:
        return False
    return batch.expiration_date is None or batch.expiration_date >= today


def list_available_batches(db: Session, today: date | None = None) -> list[models.Batch]:
    """Approved, non-empty, unexpired batches, first-expiring first."""

    today = today or date.today()
    candidates = (
        db.query(models.Batch)
        .filter(models.Batch.status == "APPROVED", models.Batch.current_volume > 0)
        .all()
    )
    available = [batch for batch in candidates if is_available(batch, today)]
    return sorted(
        available,
        key=lambda batch: (batch.expiration_date or date.max, batch.creation_date),
    )


def get_recipient(db: Session, recipient_id: UUID) -> models.Recipient:
    recipient = db.get(models.Recipient, recipient_id)
    if recipient is None:
        raise EntityNotFoundError("Recipient", recipient_id)
    return recipient


def list_recipients(db: Session, *, status: str | None = None) -> list[models.Recipient]:
    query = db.query(models.Recipient)
    if status:
        query = query.filter(models.Recipient.status == status)
    return query.order_by(models.Recipient.full_name.asc()).all()


def create_recipient(db: Session, payload: schemas.RecipientCreate) -> models.Recipient:
    recipient = models.Recipient(
        **payload.model_dump(), status="ACTIVE", registration_date=date.today()
    )
    db.add(recipient)
    db.flush()
    return recipient


def update_recipient(
    db: Session, recipient_id: UUID, payload: schemas.RecipientUpdate
) -> models.Recipient:
    recipient = get_recipient(db, recipient_id)
    for name, value in payload.model_dump(exclude_unset=True).items():
        setattr(recipient, name, value)
    db.flush()
    return recipient


def recipient_history(db: Session, recipient_id: UUID) -> list[models.AdministrationRecord]:
    return list(get_recipient(db, recipient_id).administrations)


def administer(
    db: Session,
    recipient_id: UUID,
    batch_id: UUID,
    volume: float,
    actor: str,
    *,
    notes: str | None = None,
    today: date | None = None,
) -> models.AdministrationRecord:
    recipient = get_recipient(db, recipient_id)
    batch = get_batch(db, batch_id)
    if not is_available(batch, today):
        raise BatchUnavailableError(
            f"Batch {batch.batch_number} ({batch.status}, {batch.current_volume:g} ml, "
            f"expires {batch.expiration_date}) is not available for administration"
        )
    reduce_volume(batch, volume)
    record = models.AdministrationRecord(
        recipient=recipient,
        batch=batch,
        batch_number=batch.batch_number,
        volume=volume,
        administered_by=actor,
        notes=notes,
    )
    db.add(record)
    db.flush()
    logger.info(
        "Administered %g ml from batch %s to recipient %s", volume, batch.batch_number, recipient.id
    )
    return record


def discard(
    db: Session,
    batch_id: UUID,
    volume: float,
    reason: str,
    actor: str,
) -> models.DiscardRecord:
    batch = get_batch(db, batch_id)
    reduce_volume(batch, volume)
    record = models.DiscardRecord(
        batch=batch,
        volume=volume,
        reason=reason,
        discarded_by=actor,
    )
    db.add(record)
    db.flush()
    logger.info("Discarded %g ml from batch %s (%s)", volume, batch.batch_number, reason)
    return record


def batch_administrations(db: Session, batch_id: UUID) -> list[models.AdministrationRecord]:
    return list(get_batch(db, batch_id).administrations)


def batch_discards(db: Session, batch_id: UUID) -> list[models.DiscardRecord]:
    return list(get_batch(db, batch_id).discards)


def discard_expired(db: Session, actor: str, *, today: date | None = None) -> list[models.DiscardRecord]:
    """Write off the remaining volume of every approved batch past its expiration date."""

    today = today or date.today()
    expired = (
        db.query(models.Batch)
        .filter(
            models.Batch.status == "APPROVED",
            models.Batch.current_volume > 0,
            models.Batch.expiration_date.is_not(None),
            models.Batch.expiration_date < today,
        )
        .order_by(models.Batch.expiration_date.asc())
        .all()
    )
    return [discard(db, batch.id, batch.current_volume, "EXPIRATION", actor) for batch in expired]
