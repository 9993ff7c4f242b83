"""Milk collection API routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import audit, schemas
from ..database import get_db
from ..deps import get_actor
from ..errors import EntityNotFoundError, IneligibleDonorError, InvalidStatusTransitionError
from ..services import collection

router = APIRouter(prefix="/api/bottles", tags=["collection"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=schemas.BottleOut)
def collect_bottle(
    payload: schemas.BottleCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    try:
        bottle = collection.collect_bottle(db, payload)
        audit.log_action(
            db,
            actor,
            "collect_bottle",
            "bottle",
            bottle.id,
            {"traceability_code": bottle.traceability_code, "volume": bottle.volume},
        )
        db.commit()
        db.refresh(bottle)
    except EntityNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except IneligibleDonorError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return bottle


@router.get("/available", response_model=list[schemas.BottleOut])
def list_available_bottles(db: Session = Depends(get_db)):
    return collection.list_available_bottles(db)


@router.get("/{bottle_id}", response_model=schemas.BottleOut)
def get_bottle(bottle_id: UUID, db: Session = Depends(get_db)):
    try:
        return collection.get_bottle(db, bottle_id)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("/{bottle_id}/discard", response_model=schemas.BottleOut)
def discard_bottle(
    bottle_id: UUID,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    try:
        bottle = collection.discard_bottle(db, bottle_id)
        audit.log_action(db, actor, "discard_bottle", "bottle", bottle.id)
        db.commit()
        db.refresh(bottle)
    except EntityNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidStatusTransitionError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return bottle
