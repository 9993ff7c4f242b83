import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
    Float,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Donor(Base):
    __tablename__ = "donors"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    folio = Column(String, index=True)
    file_number = Column(String)
    registration_date = Column(Date, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    birth_date = Column(Date)
    phone = Column(String)
    email = Column(String)
    address = Column(String)
    delivery_date = Column(Date)
    gestational_age_weeks = Column(Integer)
    obstetric_event_type = Column(String)
    donation_type = Column(String, default="HETEROLOGOUS", nullable=False)
    donation_reason = Column(String, default="SURPLUS")
    donor_category = Column(String, default="INTERNAL")
    # exclusion flags evaluated by services.eligibility
    toxic_substances = Column(Boolean, default=False, nullable=False)
    chemical_exposure = Column(Boolean, default=False, nullable=False)
    recent_vaccines = Column(Boolean, default=False, nullable=False)
    blood_transfusion_risk = Column(Boolean, default=False, nullable=False)
    pathologies = Column(JSON, default=list)
    lab_tests = Column(JSON, default=list)
    # derived by the classifier, never written by callers
    status = Column(String, default="ACTIVE", nullable=False, index=True)
    rejection_reason = Column(Text)
    medical_notes = Column(Text)
    interviewer_name = Column(String)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    bottles = relationship("Bottle", back_populates="donor")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Bottle(Base):
    __tablename__ = "bottles"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    traceability_code = Column(String, unique=True, nullable=False)
    donor_id = Column(UUID(as_uuid=True), ForeignKey("donors.id"), nullable=False)
    collection_date = Column(Date, nullable=False, index=True)
    collected_at = Column(DateTime, default=_utcnow)
    volume = Column(Float, nullable=False)
    hospital_initials = Column(String, nullable=False)
    milk_type = Column(String, default="MATURE")
    status = Column(String, default="COLLECTED", nullable=False, index=True)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"))
    # at most one inspection of each kind, set once the record exists
    physical_inspection_id = Column(UUID(as_uuid=True))
    quality_control_id = Column(UUID(as_uuid=True))
    donor_age_snapshot = Column(Integer)
    gestational_age_snapshot = Column(Integer)
    obstetric_event_type = Column(String)
    responsible_name = Column(String)
    observations = Column(Text)
    storage_location = Column(String)

    donor = relationship("Donor", back_populates="bottles")
    batch = relationship("Batch", back_populates="bottles")


class Batch(Base):
    __tablename__ = "batches"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_number = Column(String, unique=True, nullable=False)
    batch_type = Column(String, nullable=False)
    status = Column(String, default="IN_PROCESS", nullable=False, index=True)
    total_volume = Column(Float, nullable=False)
    current_volume = Column(Float, nullable=False)
    bottle_count = Column(Integer, nullable=False)
    creation_date = Column(Date, nullable=False)
    expiration_date = Column(Date)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    bottles = relationship(
        "Bottle",
        back_populates="batch",
        order_by="Bottle.traceability_code",
    )
    administrations = relationship(
        "AdministrationRecord",
        back_populates="batch",
        order_by="AdministrationRecord.administered_at.desc()",
    )
    discards = relationship(
        "DiscardRecord",
        back_populates="batch",
        order_by="DiscardRecord.discarded_at.desc()",
    )


class PhysicalInspectionRecord(Base):
    __tablename__ = "physical_inspections"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False)
    bottle_id = Column(UUID(as_uuid=True), ForeignKey("bottles.id"), nullable=False, unique=True)
    inspector_name = Column(String, nullable=False)
    inspected_at = Column(DateTime, default=_utcnow)
    lid_ok = Column(Boolean, nullable=False)
    integrity_ok = Column(Boolean, nullable=False)
    seal_ok = Column(Boolean, nullable=False)
    label_ok = Column(Boolean, nullable=False)
    milk_state = Column(String)
    volume_check = Column(Float)
    observations = Column(Text)
    rejection_reasons = Column(JSON, default=list)
    verdict = Column(String, nullable=False)


class QualityControlRecord(Base):
    __tablename__ = "quality_control_records"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False)
    bottle_id = Column(UUID(as_uuid=True), ForeignKey("bottles.id"), nullable=False, unique=True)
    inspector_name = Column(String, nullable=False)
    inspected_at = Column(DateTime, default=_utcnow)
    acidity_dornic = Column(Float, nullable=False)
    crematocrit = Column(Float)
    caloric_classification = Column(String)
    flavor = Column(String)
    color = Column(String)
    packaging_state = Column(String)
    coliforms_presence = Column(Boolean, nullable=False)
    notes = Column(Text)
    verdict = Column(String, nullable=False)


class Recipient(Base):
    __tablename__ = "recipients"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    full_name = Column(String, nullable=False)
    birth_date = Column(Date)
    gender = Column(String)
    hospital_service = Column(String)
    doctor_name = Column(String)
    diagnosis = Column(Text)
    weight_grams = Column(Integer)
    status = Column(String, default="ACTIVE", nullable=False)
    registration_date = Column(Date, nullable=False)

    administrations = relationship(
        "AdministrationRecord",
        back_populates="recipient",
        order_by="AdministrationRecord.administered_at.desc()",
    )


class AdministrationRecord(Base):
    __tablename__ = "administration_records"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    recipient_id = Column(UUID(as_uuid=True), ForeignKey("recipients.id"), nullable=False)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False)
    batch_number = Column(String, nullable=False)
    volume = Column(Float, nullable=False)
    administered_at = Column(DateTime, default=_utcnow)
    administered_by = Column(String, nullable=False)
    notes = Column(Text)

    recipient = relationship("Recipient", back_populates="administrations")
    batch = relationship("Batch", back_populates="administrations")


class DiscardRecord(Base):
    __tablename__ = "discard_records"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False)
    volume = Column(Float, nullable=False)
    reason = Column(String, nullable=False)
    discarded_at = Column(DateTime, default=_utcnow)
    discarded_by = Column(String, nullable=False)

    batch = relationship("Batch", back_populates="discards")


class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    actor = Column(String, nullable=False)
    action = Column(String, nullable=False)
    target_type = Column(String)
    target_id = Column(UUID(as_uuid=True))
    details = Column(JSON, default=dict)
    created_at = Column(DateTime, default=_utcnow)
