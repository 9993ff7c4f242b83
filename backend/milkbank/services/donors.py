"""Donor registration and clinical record maintenance."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import EntityNotFoundError, InvalidStatusTransitionError
from . import eligibility

# purpose: keep donor status a derived value of the eligibility classifier on every clinical write
# depends_on: milkbank.services.eligibility
# status: stable

logger = logging.getLogger(__name__)

_ADMINISTRATIVE_STATUSES = {"ACTIVE", "SCREENING", "INACTIVE", "SUSPENDED"}
_FALLBACK_DONATION_TYPE = "HETEROLOGOUS"


def _clinical_snapshot(donor: models.Donor) -> dict[str, Any]:
    return {name: getattr(donor, name) for name in eligibility.RULE_FIELDS}


def _resolve_status(verdict: eligibility.EligibilityVerdict, requested: str) -> str:
    if verdict.rejected:
        return "REJECTED"
    # a cleared record never keeps a stale rejection
    if requested not in _ADMINISTRATIVE_STATUSES:
        return "ACTIVE"
    return requested


def _apply_verdict(
    donor: models.Donor,
    verdict: eligibility.EligibilityVerdict,
    *,
    requested_status: str,
    requested_donation_type: str | None,
) -> None:
    donor.status = _resolve_status(verdict, requested_status)
    donor.rejection_reason = verdict.rejection_reason
    if verdict.rejected:
        donor.donation_type = "REJECTED"
    elif requested_donation_type and requested_donation_type != "REJECTED":
        donor.donation_type = requested_donation_type
    elif donor.donation_type in (None, "REJECTED"):
        donor.donation_type = _FALLBACK_DONATION_TYPE


def get_donor(db: Session, donor_id: UUID) -> models.Donor:
    donor = db.get(models.Donor, donor_id)
    if donor is None:
        raise EntityNotFoundError("Donor", donor_id)
    return donor


def list_donors(db: Session, *, status: str | None = None) -> list[models.Donor]:
    query = db.query(models.Donor)
    if status:
        query = query.filter(models.Donor.status == status)
    return query.order_by(models.Donor.last_name.asc(), models.Donor.first_name.asc()).all()


def register_donor(db: Session, payload: schemas.DonorCreate) -> models.Donor:
    """Create a donor and run the classifier once against the submitted record."""

    data = payload.model_dump(exclude={"initial_status", "donation_type"})
    verdict = eligibility.classify(data)
    donor = models.Donor(**data, registration_date=date.today())
    _apply_verdict(
        donor,
        verdict,
        requested_status=payload.initial_status,
        requested_donation_type=payload.donation_type,
    )
    db.add(donor)
    db.flush()
    logger.info("Registered donor %s with status %s", donor.id, donor.status)
    if verdict.rejected:
        logger.info("Donor %s rejected: %s", donor.id, donor.rejection_reason)
    return donor


def update_donor(db: Session, donor_id: UUID, updates: schemas.DonorUpdate) -> models.Donor:
    """Merge partial updates and reclassify when any exclusion field is touched."""

    donor = get_donor(db, donor_id)
    changes = updates.model_dump(exclude_unset=True)
    requested_donation_type = changes.pop("donation_type", None)

    if eligibility.touches_rule_fields(changes):
        merged = _clinical_snapshot(donor)
        merged.update({k: v for k, v in changes.items() if k in eligibility.RULE_FIELDS})
        verdict = eligibility.classify(merged)
        previous = donor.status
        for name, value in changes.items():
            setattr(donor, name, value)
        _apply_verdict(
            donor,
            verdict,
            requested_status=previous,
            requested_donation_type=requested_donation_type,
        )
        if previous != donor.status:
            logger.info("Donor %s reclassified %s -> %s", donor.id, previous, donor.status)
    else:
        for name, value in changes.items():
            setattr(donor, name, value)
        if requested_donation_type:
            if donor.status == "REJECTED":
                logger.warning("Ignoring donation type change for rejected donor %s", donor.id)
            elif requested_donation_type == "REJECTED":
                # the REJECTED marker only follows a classifier rejection
                logger.warning("Ignoring REJECTED donation type for eligible donor %s", donor.id)
            else:
                donor.donation_type = requested_donation_type

    db.flush()
    return donor


def set_donor_status(db: Session, donor_id: UUID, status: str) -> models.Donor:
    """Apply an administrative status; REJECTED always stays classifier-owned."""

    donor = get_donor(db, donor_id)
    if status not in _ADMINISTRATIVE_STATUSES:
        raise InvalidStatusTransitionError(f"Donor status {status} cannot be set directly")
    verdict = eligibility.classify(_clinical_snapshot(donor))
    if verdict.rejected:
        raise InvalidStatusTransitionError(
            f"Donor {donor.id} fails eligibility: {verdict.rejection_reason}"
        )
    logger.info("Donor %s status %s -> %s", donor.id, donor.status, status)
    donor.status = status
    db.flush()
    return donor
