"""Milk collection gate and bottle traceability."""

from __future__ import annotations

import logging
import os
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import EntityNotFoundError, IneligibleDonorError, InvalidStatusTransitionError
from .donors import get_donor

# purpose: refuse collection from non-active donors and label each bottle with a traceability code
# inputs: donor id, collected volume and collection metadata
# outputs: COLLECTED bottles placed in the free pool
# status: stable

logger = logging.getLogger(__name__)

_MONTH_CODES = "ABCDEFGHIJKL"


def _hospital_initials() -> str:
    return os.getenv("MILKBANK_HOSPITAL_INITIALS", "BLH")


def can_collect(donor: models.Donor) -> bool:
    return donor.status == "ACTIVE"


def ensure_can_collect(donor: models.Donor) -> None:
    if not can_collect(donor):
        logger.warning("Collection refused for donor %s in status %s", donor.id, donor.status)
        raise IneligibleDonorError(donor.id, donor.status)


def traceability_code(
    donation_type: str,
    collection_date: date,
    hospital_initials: str,
    daily_sequence: int,
) -> str:
    """Build ``[HO|HE][DD][month A-L][YY][NNN]-[hospital]`` for a bottle label."""

    type_code = "HO" if donation_type == "HOMOLOGOUS" else "HE"
    return (
        f"{type_code}"
        f"{collection_date.day:02d}"
        f"{_MONTH_CODES[collection_date.month - 1]}"
        f"{collection_date.year % 100:02d}"
        f"{daily_sequence:03d}"
        f"-{hospital_initials}"
    )


def _next_daily_sequence(db: Session, collection_date: date) -> int:
    count = (
        db.query(func.count(models.Bottle.id))
        .filter(models.Bottle.collection_date == collection_date)
        .scalar()
    )
    return (count or 0) + 1


def collect_bottle(db: Session, payload: schemas.BottleCreate) -> models.Bottle:
    """Create a COLLECTED bottle once the donor passes the collection gate."""

    donor = get_donor(db, payload.donor_id)
    ensure_can_collect(donor)

    collection_date = payload.collection_date or date.today()
    initials = _hospital_initials()
    code = traceability_code(
        donor.donation_type,
        collection_date,
        initials,
        _next_daily_sequence(db, collection_date),
    )
    bottle = models.Bottle(
        traceability_code=code,
        donor_id=donor.id,
        collection_date=collection_date,
        collected_at=payload.collected_at or datetime.now(timezone.utc),
        volume=payload.volume,
        hospital_initials=initials,
        milk_type=payload.milk_type,
        status="COLLECTED",
        donor_age_snapshot=payload.donor_age,
        gestational_age_snapshot=payload.gestational_age or donor.gestational_age_weeks,
        obstetric_event_type=payload.obstetric_event_type or donor.obstetric_event_type,
        responsible_name=payload.responsible_name,
        observations=payload.observations,
        storage_location=payload.storage_location,
    )
    db.add(bottle)
    db.flush()
    logger.info("Collected bottle %s (%g ml) from donor %s", code, bottle.volume, donor.id)
    return bottle


def get_bottle(db: Session, bottle_id: UUID) -> models.Bottle:
    bottle = db.get(models.Bottle, bottle_id)
    if bottle is None:
        raise EntityNotFoundError("Bottle", bottle_id)
    return bottle


def discard_bottle(db: Session, bottle_id: UUID) -> models.Bottle:
    """Retire a pooled bottle before it is assigned to any batch."""

    bottle = get_bottle(db, bottle_id)
    if bottle.status != "COLLECTED" or bottle.batch_id is not None:
        raise InvalidStatusTransitionError(
            f"Bottle {bottle.traceability_code} in status {bottle.status} cannot be discarded"
        )
    bottle.status = "DISCARDED"
    db.flush()
    logger.info("Discarded pooled bottle %s", bottle.traceability_code)
    return bottle


def list_available_bottles(db: Session) -> list[models.Bottle]:
    return (
        db.query(models.Bottle)
        .filter(models.Bottle.status == "COLLECTED", models.Bottle.batch_id.is_(None))
        .order_by(models.Bottle.collection_date.asc(), models.Bottle.traceability_code.asc())
        .all()
    )


def list_donor_bottles(db: Session, donor_id: UUID) -> list[models.Bottle]:
    donor = get_donor(db, donor_id)
    return (
        db.query(models.Bottle)
        .filter(models.Bottle.donor_id == donor.id)
        .order_by(models.Bottle.collection_date.desc())
        .all()
    )
