from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import audit, schemas
from ..database import get_db
from ..services import reports

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/dashboard", response_model=schemas.DashboardStats)
def dashboard(db: Session = Depends(get_db)):
    return reports.dashboard_stats(db)


@router.get("/quality", response_model=schemas.QualityStats)
def quality(db: Session = Depends(get_db)):
    return reports.quality_stats(db)


@router.get("/kpi", response_model=schemas.KPIMetrics)
def kpi(db: Session = Depends(get_db)):
    return reports.kpi_metrics(db)


@router.get("/audit")
def audit_summary(target_type: str | None = None, db: Session = Depends(get_db)):
    return audit.summarize_actions(db, target_type)
