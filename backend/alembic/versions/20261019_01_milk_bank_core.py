"""Introduce donor, bottle, batch, inspection and ledger tables."""

from __future__ import annotations

from typing import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261019_01"
down_revision: str | Sequence[str] | None = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "donors",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("folio", sa.String(), nullable=True),
        sa.Column("file_number", sa.String(), nullable=True),
        sa.Column("registration_date", sa.Date(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("delivery_date", sa.Date(), nullable=True),
        sa.Column("gestational_age_weeks", sa.Integer(), nullable=True),
        sa.Column("obstetric_event_type", sa.String(), nullable=True),
        sa.Column("donation_type", sa.String(), nullable=False, server_default="HETEROLOGOUS"),
        sa.Column("donation_reason", sa.String(), nullable=True),
        sa.Column("donor_category", sa.String(), nullable=True),
        sa.Column("toxic_substances", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("chemical_exposure", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recent_vaccines", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("blood_transfusion_risk", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pathologies", sa.JSON(), nullable=True),
        sa.Column("lab_tests", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="ACTIVE"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("medical_notes", sa.Text(), nullable=True),
        sa.Column("interviewer_name", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_donors_folio", "donors", ["folio"])
    op.create_index("ix_donors_status", "donors", ["status"])

    op.create_table(
        "batches",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("batch_number", sa.String(), nullable=False, unique=True),
        sa.Column("batch_type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="IN_PROCESS"),
        sa.Column("total_volume", sa.Float(), nullable=False),
        sa.Column("current_volume", sa.Float(), nullable=False),
        sa.Column("bottle_count", sa.Integer(), nullable=False),
        sa.Column("creation_date", sa.Date(), nullable=False),
        sa.Column("expiration_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_batches_status", "batches", ["status"])

    op.create_table(
        "bottles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("traceability_code", sa.String(), nullable=False, unique=True),
        sa.Column("donor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("donors.id"), nullable=False),
        sa.Column("collection_date", sa.Date(), nullable=False),
        sa.Column("collected_at", sa.DateTime(), nullable=True),
        sa.Column("volume", sa.Float(), nullable=False),
        sa.Column("hospital_initials", sa.String(), nullable=False),
        sa.Column("milk_type", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="COLLECTED"),
        sa.Column("batch_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("batches.id"), nullable=True),
        sa.Column("physical_inspection_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("quality_control_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("donor_age_snapshot", sa.Integer(), nullable=True),
        sa.Column("gestational_age_snapshot", sa.Integer(), nullable=True),
        sa.Column("obstetric_event_type", sa.String(), nullable=True),
        sa.Column("responsible_name", sa.String(), nullable=True),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("storage_location", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bottles_collection_date", "bottles", ["collection_date"])
    op.create_index("ix_bottles_status", "bottles", ["status"])

    op.create_table(
        "physical_inspections",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("batch_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("bottle_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bottles.id"), nullable=False, unique=True),
        sa.Column("inspector_name", sa.String(), nullable=False),
        sa.Column("inspected_at", sa.DateTime(), nullable=True),
        sa.Column("lid_ok", sa.Boolean(), nullable=False),
        sa.Column("integrity_ok", sa.Boolean(), nullable=False),
        sa.Column("seal_ok", sa.Boolean(), nullable=False),
        sa.Column("label_ok", sa.Boolean(), nullable=False),
        sa.Column("milk_state", sa.String(), nullable=True),
        sa.Column("volume_check", sa.Float(), nullable=True),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("rejection_reasons", sa.JSON(), nullable=True),
        sa.Column("verdict", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "quality_control_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("batch_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("bottle_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bottles.id"), nullable=False, unique=True),
        sa.Column("inspector_name", sa.String(), nullable=False),
        sa.Column("inspected_at", sa.DateTime(), nullable=True),
        sa.Column("acidity_dornic", sa.Float(), nullable=False),
        sa.Column("crematocrit", sa.Float(), nullable=True),
        sa.Column("caloric_classification", sa.String(), nullable=True),
        sa.Column("flavor", sa.String(), nullable=True),
        sa.Column("color", sa.String(), nullable=True),
        sa.Column("packaging_state", sa.String(), nullable=True),
        sa.Column("coliforms_presence", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("verdict", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "recipients",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(), nullable=True),
        sa.Column("hospital_service", sa.String(), nullable=True),
        sa.Column("doctor_name", sa.String(), nullable=True),
        sa.Column("diagnosis", sa.Text(), nullable=True),
        sa.Column("weight_grams", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="ACTIVE"),
        sa.Column("registration_date", sa.Date(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "administration_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("recipient_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("recipients.id"), nullable=False),
        sa.Column("batch_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("batch_number", sa.String(), nullable=False),
        sa.Column("volume", sa.Float(), nullable=False),
        sa.Column("administered_at", sa.DateTime(), nullable=True),
        sa.Column("administered_by", sa.String(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "discard_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("batch_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("volume", sa.Float(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("discarded_at", sa.DateTime(), nullable=True),
        sa.Column("discarded_by", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("actor", sa.String(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("target_type", sa.String(), nullable=True),
        sa.Column("target_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("discard_records")
    op.drop_table("administration_records")
    op.drop_table("recipients")
    op.drop_table("quality_control_records")
    op.drop_table("physical_inspections")
    op.drop_index("ix_bottles_status", table_name="bottles")
    op.drop_index("ix_bottles_collection_date", table_name="bottles")
    op.drop_table("bottles")
    op.drop_index("ix_batches_status", table_name="batches")
    op.drop_table("batches")
    op.drop_index("ix_donors_status", table_name="donors")
    op.drop_index("ix_donors_folio", table_name="donors")
    op.drop_table("donors")
