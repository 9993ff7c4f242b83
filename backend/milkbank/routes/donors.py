"""Donor registration and eligibility API routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import audit, schemas
from ..database import get_db
from ..deps import get_actor
from ..errors import EntityNotFoundError, InvalidStatusTransitionError
from ..services import collection, donors, eligibility

router = APIRouter(prefix="/api/donors", tags=["donors"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=schemas.DonorOut)
def register_donor(
    payload: schemas.DonorCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    donor = donors.register_donor(db, payload)
    audit.log_action(
        db, actor, "register_donor", "donor", donor.id, {"status": donor.status}
    )
    db.commit()
    db.refresh(donor)
    return donor


@router.post("/eligibility", response_model=schemas.EligibilityOut)
def preview_eligibility(payload: schemas.ClinicalFields):
    verdict = eligibility.classify(payload)
    return schemas.EligibilityOut(status=verdict.status, reasons=verdict.reasons)


@router.get("", response_model=list[schemas.DonorOut])
def list_donors(
    status_filter: Optional[schemas.DonorStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
):
    return donors.list_donors(db, status=status_filter)


@router.get("/{donor_id}", response_model=schemas.DonorOut)
def get_donor(donor_id: UUID, db: Session = Depends(get_db)):
    try:
        return donors.get_donor(db, donor_id)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.patch("/{donor_id}", response_model=schemas.DonorOut)
def update_donor(
    donor_id: UUID,
    payload: schemas.DonorUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    try:
        donor = donors.update_donor(db, donor_id, payload)
        audit.log_action(
            db,
            actor,
            "update_donor",
            "donor",
            donor.id,
            {"fields": sorted(payload.model_dump(exclude_unset=True)), "status": donor.status},
        )
        db.commit()
        db.refresh(donor)
    except EntityNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return donor


@router.post("/{donor_id}/status", response_model=schemas.DonorOut)
def set_donor_status(
    donor_id: UUID,
    payload: schemas.DonorStatusUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    try:
        donor = donors.set_donor_status(db, donor_id, payload.status)
        audit.log_action(db, actor, "set_donor_status", "donor", donor.id, {"status": donor.status})
        db.commit()
        db.refresh(donor)
    except EntityNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidStatusTransitionError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return donor


@router.get("/{donor_id}/bottles", response_model=list[schemas.BottleOut])
def list_donor_bottles(donor_id: UUID, db: Session = Depends(get_db)):
    try:
        return collection.list_donor_bottles(db, donor_id)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
