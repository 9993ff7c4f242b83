"""Operational summaries derived from donors, batches and the volume ledger."""

from __future__ import annotations

from collections import Counter
from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from .lifecycle import MAX_DORNIC_ACIDITY

# purpose: dashboard and quality indicators computed from persisted state
# status: pilot


def _count(db: Session, column, *criteria) -> int:
    return db.query(func.count(column)).filter(*criteria).scalar() or 0


def dashboard_stats(db: Session, *, today: date | None = None) -> schemas.DashboardStats:
    today = today or date.today()
    month_start = today.replace(day=1)
    available = (
        db.query(func.coalesce(func.sum(models.Batch.current_volume), 0.0))
        .filter(models.Batch.status == "APPROVED")
        .scalar()
    )
    return schemas.DashboardStats(
        total_donors=_count(db, models.Donor.id),
        active_donors=_count(db, models.Donor.id, models.Donor.status == "ACTIVE"),
        new_donors_this_month=_count(
            db,
            models.Donor.id,
            models.Donor.registration_date >= month_start,
            models.Donor.registration_date <= today,
        ),
        pending_screening=_count(db, models.Donor.id, models.Donor.status == "SCREENING"),
        batches_in_process=_count(db, models.Batch.id, models.Batch.status == "IN_PROCESS"),
        batches_pending_qc=_count(
            db, models.Batch.id, models.Batch.status.in_(("COMPLETED", "PENDING_QC"))
        ),
        active_recipients=_count(db, models.Recipient.id, models.Recipient.status == "ACTIVE"),
        available_milk_volume=float(available or 0.0),
    )


def quality_stats(db: Session) -> schemas.QualityStats:
    """Batch dispositions plus a tally of why individual bottles failed."""

    reasons: Counter[str] = Counter()
    rejected_physical = (
        db.query(models.PhysicalInspectionRecord)
        .filter(models.PhysicalInspectionRecord.verdict == "REJECTED")
        .all()
    )
    for record in rejected_physical:
        for reason in record.rejection_reasons or []:
            reasons[reason] += 1
    rejected_chemical = (
        db.query(models.QualityControlRecord)
        .filter(models.QualityControlRecord.verdict == "REJECTED")
        .all()
    )
    for record in rejected_chemical:
        if record.coliforms_presence:
            reasons["coliforms present"] += 1
        if record.acidity_dornic > MAX_DORNIC_ACIDITY:
            reasons["high Dornic acidity"] += 1

    return schemas.QualityStats(
        approved_count=_count(db, models.Batch.id, models.Batch.status == "APPROVED"),
        rejected_count=_count(db, models.Batch.id, models.Batch.status == "REJECTED"),
        rejection_reasons=[
            schemas.ReasonCount(reason=reason, count=count)
            for reason, count in reasons.most_common()
        ],
    )


def kpi_metrics(db: Session) -> schemas.KPIMetrics:
    approved = _count(db, models.Batch.id, models.Batch.status == "APPROVED")
    rejected = _count(db, models.Batch.id, models.Batch.status == "REJECTED")
    concluded = approved + rejected
    approval_rate = round(approved / concluded * 100) if concluded else 100

    conformed = db.query(func.coalesce(func.sum(models.Batch.total_volume), 0.0)).scalar() or 0.0
    discarded = (
        db.query(func.coalesce(func.sum(models.DiscardRecord.volume), 0.0)).scalar() or 0.0
    )
    waste_rate = round(discarded / conformed * 100, 1) if conformed else 0.0

    return schemas.KPIMetrics(
        active_donors_count=_count(db, models.Donor.id, models.Donor.status == "ACTIVE"),
        quality_approval_rate=approval_rate,
        waste_rate=waste_rate,
    )
