"""Batch conformation and inspection API routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import audit, schemas
from ..database import get_db
from ..deps import get_actor
from ..errors import (
    BatchConformationError,
    EntityNotFoundError,
    InvalidInspectionInputError,
    InvalidStatusTransitionError,
)
from ..services import lifecycle

# purpose: expose batch conformation, per-bottle inspections and administrative closure
# depends_on: milkbank.services.lifecycle

router = APIRouter(prefix="/api/batches", tags=["batches", "quality"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=schemas.BatchOut)
def conform_batch(
    payload: schemas.BatchCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    try:
        batch = lifecycle.conform_batch(db, payload.bottle_ids, payload.batch_type)
        audit.log_action(
            db,
            actor,
            "conform_batch",
            "batch",
            batch.id,
            {"batch_number": batch.batch_number, "total_volume": batch.total_volume},
        )
        db.commit()
        db.refresh(batch)
    except EntityNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except BatchConformationError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return batch


@router.get("", response_model=list[schemas.BatchOut])
def list_batches(
    status_filter: Optional[schemas.BatchStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
):
    return lifecycle.list_batches(db, status=status_filter)


@router.get("/{batch_id}", response_model=schemas.BatchOut)
def get_batch(batch_id: UUID, db: Session = Depends(get_db)):
    try:
        return lifecycle.get_batch(db, batch_id)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/{batch_id}/bottles", response_model=list[schemas.BottleOut])
def get_batch_bottles(batch_id: UUID, db: Session = Depends(get_db)):
    try:
        return lifecycle.get_batch_bottles(db, batch_id)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/{batch_id}/inspections", response_model=schemas.BatchInspectionsOut)
def get_batch_inspections(batch_id: UUID, db: Session = Depends(get_db)):
    try:
        physical, chemical = lifecycle.get_inspections(db, batch_id)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return schemas.BatchInspectionsOut(
        physical=[schemas.PhysicalInspectionOut.model_validate(r) for r in physical],
        quality_control=[schemas.QualityControlOut.model_validate(r) for r in chemical],
    )


def _record_inspection(db: Session, actor: str, action: str, recorder, batch_id, bottle_id, findings):
    try:
        bottle = recorder(db, batch_id, bottle_id, findings)
        audit.log_action(
            db,
            actor,
            action,
            "bottle",
            bottle.id,
            {"batch_id": str(batch_id), "bottle_status": bottle.status},
        )
        db.commit()
        db.refresh(bottle)
    except EntityNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidInspectionInputError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return bottle


@router.post(
    "/{batch_id}/bottles/{bottle_id}/physical-inspection",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.BottleOut,
)
def record_physical_inspection(
    batch_id: UUID,
    bottle_id: UUID,
    payload: schemas.PhysicalInspectionCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    return _record_inspection(
        db,
        actor,
        "physical_inspection",
        lifecycle.record_physical_inspection,
        batch_id,
        bottle_id,
        payload,
    )


@router.post(
    "/{batch_id}/bottles/{bottle_id}/quality-control",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.BottleOut,
)
def record_quality_control(
    batch_id: UUID,
    bottle_id: UUID,
    payload: schemas.QualityControlCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    return _record_inspection(
        db,
        actor,
        "quality_control",
        lifecycle.record_quality_control,
        batch_id,
        bottle_id,
        payload,
    )


@router.post("/{batch_id}/status", response_model=schemas.BatchOut)
def set_batch_status(
    batch_id: UUID,
    payload: schemas.BatchStatusUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    try:
        batch = lifecycle.set_batch_status(db, batch_id, payload.status)
        audit.log_action(db, actor, "set_batch_status", "batch", batch.id, {"status": batch.status})
        db.commit()
        db.refresh(batch)
    except EntityNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidStatusTransitionError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return batch
