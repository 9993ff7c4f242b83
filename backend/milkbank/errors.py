"""Typed failures raised by the milk bank lifecycle services."""

from __future__ import annotations

# purpose: single error taxonomy shared by eligibility, collection, lifecycle and ledger services
# status: stable


class MilkBankError(RuntimeError):
    """Base error for milk bank domain operations."""


class EntityNotFoundError(MilkBankError):
    """Raised when a donor, bottle, batch or recipient id cannot be located."""

    def __init__(self, entity: str, entity_id) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class IneligibleDonorError(MilkBankError):
    """Raised when milk is collected from a donor that is not ACTIVE."""

    def __init__(self, donor_id, status: str) -> None:
        super().__init__(f"Donor {donor_id} cannot donate while in status {status}")
        self.donor_id = donor_id
        self.status = status


class InvalidVolumeError(MilkBankError):
    """Raised when a debit amount is zero or negative."""


class InsufficientVolumeError(MilkBankError):
    """Raised when a debit exceeds the batch's current volume."""

    def __init__(self, batch_id, requested: float, available: float) -> None:
        super().__init__(
            f"Batch {batch_id} holds {available:g} ml, cannot withdraw {requested:g} ml"
        )
        self.batch_id = batch_id
        self.requested = requested
        self.available = available


class InvalidInspectionInputError(MilkBankError):
    """Raised for malformed, duplicate or out-of-sequence inspection submissions."""


class BatchConformationError(MilkBankError):
    """Raised when a bottle selection cannot form a batch."""


class InvalidStatusTransitionError(MilkBankError):
    """Raised when a manual status change is not permitted from the current state."""


class BatchUnavailableError(MilkBankError):
    """Raised when a batch is not approved, empty or expired stock."""
