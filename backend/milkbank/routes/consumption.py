"""Inventory, recipient and volume ledger API routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import audit, schemas
from ..database import get_db
from ..deps import get_actor
from ..errors import (
    BatchUnavailableError,
    EntityNotFoundError,
    InsufficientVolumeError,
    InvalidVolumeError,
)
from ..services import ledger

router = APIRouter(prefix="/api", tags=["consumption"])


@router.get("/inventory/available", response_model=list[schemas.BatchOut])
def list_available_batches(db: Session = Depends(get_db)):
    return ledger.list_available_batches(db)


@router.post(
    "/administrations",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.AdministrationOut,
)
def administer(payload: schemas.AdministrationCreate, db: Session = Depends(get_db)):
    try:
        record = ledger.administer(
            db,
            payload.recipient_id,
            payload.batch_id,
            payload.volume,
            payload.actor,
            notes=payload.notes,
        )
        audit.log_action(
            db,
            payload.actor,
            "administer",
            "batch",
            payload.batch_id,
            {"recipient_id": str(payload.recipient_id), "volume": payload.volume},
        )
        db.commit()
        db.refresh(record)
    except EntityNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidVolumeError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except (InsufficientVolumeError, BatchUnavailableError) as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return record


@router.post("/discards", status_code=status.HTTP_201_CREATED, response_model=schemas.DiscardOut)
def discard(payload: schemas.DiscardCreate, db: Session = Depends(get_db)):
    try:
        record = ledger.discard(db, payload.batch_id, payload.volume, payload.reason, payload.actor)
        audit.log_action(
            db,
            payload.actor,
            "discard",
            "batch",
            payload.batch_id,
            {"reason": payload.reason, "volume": payload.volume},
        )
        db.commit()
        db.refresh(record)
    except EntityNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidVolumeError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except InsufficientVolumeError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return record


@router.get("/batches/{batch_id}/administrations", response_model=list[schemas.AdministrationOut])
def list_batch_administrations(batch_id: UUID, db: Session = Depends(get_db)):
    try:
        return ledger.batch_administrations(db, batch_id)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/batches/{batch_id}/discards", response_model=list[schemas.DiscardOut])
def list_batch_discards(batch_id: UUID, db: Session = Depends(get_db)):
    try:
        return ledger.batch_discards(db, batch_id)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("/recipients", status_code=status.HTTP_201_CREATED, response_model=schemas.RecipientOut)
def create_recipient(
    payload: schemas.RecipientCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    recipient = ledger.create_recipient(db, payload)
    audit.log_action(db, actor, "create_recipient", "recipient", recipient.id)
    db.commit()
    db.refresh(recipient)
    return recipient


@router.get("/recipients", response_model=list[schemas.RecipientOut])
def list_recipients(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
):
    return ledger.list_recipients(db, status=status_filter)


@router.get("/recipients/{recipient_id}", response_model=schemas.RecipientOut)
def get_recipient(recipient_id: UUID, db: Session = Depends(get_db)):
    try:
        return ledger.get_recipient(db, recipient_id)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.patch("/recipients/{recipient_id}", response_model=schemas.RecipientOut)
def update_recipient(
    recipient_id: UUID,
    payload: schemas.RecipientUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    try:
        recipient = ledger.update_recipient(db, recipient_id, payload)
        audit.log_action(db, actor, "update_recipient", "recipient", recipient.id)
        db.commit()
        db.refresh(recipient)
    except EntityNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return recipient


@router.get(
    "/recipients/{recipient_id}/administrations",
    response_model=list[schemas.AdministrationOut],
)
def recipient_history(recipient_id: UUID, db: Session = Depends(get_db)):
    try:
        return ledger.recipient_history(db, recipient_id)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
