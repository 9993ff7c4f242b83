"""Pydantic request and response contracts for the milk bank API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

DonorStatus = Literal["ACTIVE", "SCREENING", "REJECTED", "INACTIVE", "SUSPENDED"]
AdministrativeDonorStatus = Literal["ACTIVE", "SCREENING", "INACTIVE", "SUSPENDED"]
DonationType = Literal["HOMOLOGOUS", "HETEROLOGOUS", "MIXED", "REJECTED"]
BatchType = Literal["HOMOLOGOUS", "HETEROLOGOUS"]
BatchStatus = Literal["IN_PROCESS", "COMPLETED", "PENDING_QC", "APPROVED", "REJECTED", "CANCELLED"]
BottleStatus = Literal["COLLECTED", "ASSIGNED", "APPROVED", "REJECTED", "DISCARDED"]
MilkType = Literal["PRECOLOSTRUM", "COLOSTRUM", "TRANSITION", "MATURE"]
Verdict = Literal["APPROVED", "REJECTED"]
DiscardReason = Literal["EXPIRATION", "CONTAMINATION", "DOSAGE_ERROR", "OTHER"]


class PathologyDetail(BaseModel):
    name: str
    present: bool = False
    specification: Optional[str] = None
    time_elapsed: Optional[str] = None


class LabResult(BaseModel):
    performed: bool = False
    result_date: Optional[str] = None
    result: Optional[str] = None


class LabTestDetail(BaseModel):
    name: str
    before: LabResult = Field(default_factory=LabResult)
    during: LabResult = Field(default_factory=LabResult)
    after: LabResult = Field(default_factory=LabResult)


class ClinicalFields(BaseModel):
    toxic_substances: bool = False
    chemical_exposure: bool = False
    recent_vaccines: bool = False
    blood_transfusion_risk: bool = False
    pathologies: list[PathologyDetail] = Field(default_factory=list)
    lab_tests: list[LabTestDetail] = Field(default_factory=list)


class DonorCreate(ClinicalFields):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    folio: Optional[str] = None
    file_number: Optional[str] = None
    birth_date: Optional[date] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    delivery_date: Optional[date] = None
    gestational_age_weeks: Optional[int] = Field(default=None, ge=0)
    obstetric_event_type: Optional[Literal["VAGINAL", "CESAREAN"]] = None
    donation_type: DonationType = "HETEROLOGOUS"
    donation_reason: Literal["SURPLUS", "DEATH", "OTHER"] = "SURPLUS"
    donor_category: Literal["INTERNAL", "EXTERNAL", "HOME", "LACTARIUM"] = "INTERNAL"
    initial_status: AdministrativeDonorStatus = "ACTIVE"
    medical_notes: Optional[str] = None
    interviewer_name: Optional[str] = None


_REQUIRED_DONOR_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "donation_type",
        "toxic_substances",
        "chemical_exposure",
        "recent_vaccines",
        "blood_transfusion_risk",
        "pathologies",
        "lab_tests",
    }
)


class DonorUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    birth_date: Optional[date] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    delivery_date: Optional[date] = None
    gestational_age_weeks: Optional[int] = Field(default=None, ge=0)
    donation_type: Optional[DonationType] = None
    donor_category: Optional[Literal["INTERNAL", "EXTERNAL", "HOME", "LACTARIUM"]] = None
    toxic_substances: Optional[bool] = None
    chemical_exposure: Optional[bool] = None
    recent_vaccines: Optional[bool] = None
    blood_transfusion_risk: Optional[bool] = None
    pathologies: Optional[list[PathologyDetail]] = None
    lab_tests: Optional[list[LabTestDetail]] = None
    medical_notes: Optional[str] = None

    @model_validator(mode="after")
    def reject_cleared_required_fields(self) -> "DonorUpdate":
        cleared = sorted(
            name for name in self.model_fields_set & _REQUIRED_DONOR_FIELDS if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
        return self


class DonorStatusUpdate(BaseModel):
    status: AdministrativeDonorStatus


class DonorOut(BaseModel):
    id: UUID
    folio: Optional[str] = None
    first_name: str
    last_name: str
    full_name: str
    birth_date: Optional[date] = None
    registration_date: date
    donation_type: str
    donor_category: Optional[str] = None
    toxic_substances: bool
    chemical_exposure: bool
    recent_vaccines: bool
    blood_transfusion_risk: bool
    pathologies: list[PathologyDetail] = Field(default_factory=list)
    lab_tests: list[LabTestDetail] = Field(default_factory=list)
    status: DonorStatus
    rejection_reason: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class EligibilityOut(BaseModel):
    status: Literal["ACTIVE", "REJECTED"]
    reasons: list[str]


class BottleCreate(BaseModel):
    donor_id: UUID
    volume: float = Field(gt=0)
    collection_date: Optional[date] = None
    milk_type: MilkType = "MATURE"
    collected_at: Optional[datetime] = None
    donor_age: Optional[int] = Field(default=None, ge=0)
    gestational_age: Optional[int] = Field(default=None, ge=0)
    obstetric_event_type: Optional[Literal["VAGINAL", "CESAREAN"]] = None
    responsible_name: Optional[str] = None
    observations: Optional[str] = None
    storage_location: Optional[str] = None


class BottleOut(BaseModel):
    id: UUID
    traceability_code: str
    donor_id: UUID
    collection_date: date
    volume: float
    hospital_initials: str
    milk_type: Optional[str] = None
    status: BottleStatus
    batch_id: Optional[UUID] = None
    physical_inspection_id: Optional[UUID] = None
    quality_control_id: Optional[UUID] = None
    responsible_name: Optional[str] = None
    storage_location: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class BatchCreate(BaseModel):
    bottle_ids: list[UUID]
    batch_type: BatchType


class BatchStatusUpdate(BaseModel):
    status: Literal["COMPLETED", "CANCELLED"]


class BatchOut(BaseModel):
    id: UUID
    batch_number: str
    batch_type: BatchType
    status: BatchStatus
    total_volume: float
    current_volume: float
    bottle_count: int
    creation_date: date
    expiration_date: Optional[date] = None
    model_config = ConfigDict(from_attributes=True)


class PhysicalInspectionCreate(BaseModel):
    inspector_name: str = Field(min_length=1)
    lid: bool
    integrity: bool
    seal: bool
    label: bool
    milk_state: Optional[Literal["FROZEN", "REFRIGERATED", "THAWED"]] = None
    volume_check: Optional[float] = Field(default=None, ge=0)
    observations: Optional[str] = None
    rejection_reasons: list[str] = Field(default_factory=list)


class PhysicalInspectionOut(BaseModel):
    id: UUID
    batch_id: UUID
    bottle_id: UUID
    inspector_name: str
    inspected_at: datetime
    lid_ok: bool
    integrity_ok: bool
    seal_ok: bool
    label_ok: bool
    milk_state: Optional[str] = None
    rejection_reasons: list[str] = Field(default_factory=list)
    verdict: Verdict
    model_config = ConfigDict(from_attributes=True)


class QualityControlCreate(BaseModel):
    inspector_name: str = Field(min_length=1)
    acidity_dornic: float = Field(ge=0)
    coliforms_presence: bool
    crematocrit: Optional[float] = Field(default=None, ge=0)
    caloric_classification: Optional[Literal["HYPOCALORIC", "NORMOCALORIC", "HYPERCALORIC"]] = None
    flavor: Optional[Literal["NORMAL", "OFF_FLAVOR"]] = None
    color: Optional[str] = None
    packaging_state: Optional[Literal["OK", "DAMAGED"]] = None
    notes: Optional[str] = None


class QualityControlOut(BaseModel):
    id: UUID
    batch_id: UUID
    bottle_id: UUID
    inspector_name: str
    inspected_at: datetime
    acidity_dornic: float
    coliforms_presence: bool
    crematocrit: Optional[float] = None
    caloric_classification: Optional[str] = None
    verdict: Verdict
    model_config = ConfigDict(from_attributes=True)


class BatchInspectionsOut(BaseModel):
    physical: list[PhysicalInspectionOut]
    quality_control: list[QualityControlOut]


class RecipientCreate(BaseModel):
    full_name: str = Field(min_length=1)
    birth_date: Optional[date] = None
    gender: Optional[Literal["MALE", "FEMALE"]] = None
    hospital_service: Optional[str] = None
    doctor_name: Optional[str] = None
    diagnosis: Optional[str] = None
    weight_grams: Optional[int] = Field(default=None, gt=0)


class RecipientUpdate(BaseModel):
    full_name: Optional[str] = None
    hospital_service: Optional[str] = None
    doctor_name: Optional[str] = None
    diagnosis: Optional[str] = None
    weight_grams: Optional[int] = Field(default=None, gt=0)
    status: Optional[Literal["ACTIVE", "DISCHARGED"]] = None


class RecipientOut(BaseModel):
    id: UUID
    full_name: str
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    hospital_service: Optional[str] = None
    doctor_name: Optional[str] = None
    diagnosis: Optional[str] = None
    weight_grams: Optional[int] = None
    status: str
    registration_date: date
    model_config = ConfigDict(from_attributes=True)


class AdministrationCreate(BaseModel):
    recipient_id: UUID
    batch_id: UUID
    volume: float = Field(gt=0)
    actor: str = Field(min_length=1)
    notes: Optional[str] = None


class AdministrationOut(BaseModel):
    id: UUID
    recipient_id: UUID
    batch_id: UUID
    batch_number: str
    volume: float
    administered_at: datetime
    administered_by: str
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class DiscardCreate(BaseModel):
    batch_id: UUID
    volume: float = Field(gt=0)
    reason: DiscardReason
    actor: str = Field(min_length=1)


class DiscardOut(BaseModel):
    id: UUID
    batch_id: UUID
    volume: float
    reason: DiscardReason
    discarded_at: datetime
    discarded_by: str
    model_config = ConfigDict(from_attributes=True)


class DashboardStats(BaseModel):
    total_donors: int
    active_donors: int
    new_donors_this_month: int
    pending_screening: int
    batches_in_process: int
    batches_pending_qc: int
    active_recipients: int
    available_milk_volume: float


class ReasonCount(BaseModel):
    reason: str
    count: int


class QualityStats(BaseModel):
    approved_count: int
    rejected_count: int
    rejection_reasons: list[ReasonCount]


class KPIMetrics(BaseModel):
    active_donors_count: int
    quality_approval_rate: int
    waste_rate: float
