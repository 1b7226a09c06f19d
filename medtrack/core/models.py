"""Modèles Pydantic pour l'API et les services."""
from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AdjustmentType = Literal["increase", "decrease", "correction"]
MedicationStatus = Literal["active", "inactive"]
PrescriptionStatus = Literal["active", "completed", "cancelled"]
AdministrationStatus = Literal["administered", "skipped", "refused"]
ExpiryStatus = Literal["normal", "expiring", "expired"]
StockLevel = Literal["adequate", "low", "critical", "out"]
AdvisoryKind = Literal["expired", "expiring", "out_of_stock", "low_stock"]

ADJUSTMENT_TYPES: frozenset[str] = frozenset({"increase", "decrease", "correction"})
ADMINISTRATION_STATUSES: frozenset[str] = frozenset({"administered", "skipped", "refused"})
PRESCRIPTION_STATUSES: frozenset[str] = frozenset({"active", "completed", "cancelled"})

# Plus grand entier stockable dans une colonne INTEGER SQLite.
SQLITE_MAX_INTEGER = 2**63 - 1


class MedicationItemBase(BaseModel):
    name: str = Field(..., max_length=128)
    dosage: str = Field(..., max_length=64)
    category: str = Field(..., max_length=128)
    active_ingredient: Optional[str] = Field(default=None, max_length=128)
    manufacturer: Optional[str] = Field(default=None, max_length=128)
    batch_number: Optional[str] = Field(default=None, max_length=64)
    expiration_date: Optional[date] = None
    observations: Optional[str] = None


class MedicationItemCreate(MedicationItemBase):
    stock: int = Field(default=0, ge=0, le=SQLITE_MAX_INTEGER)


class MedicationItemUpdate(BaseModel):
    """Mise à jour partielle ; le stock ne se modifie que par mouvement."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, max_length=128)
    dosage: Optional[str] = Field(default=None, max_length=64)
    category: Optional[str] = Field(default=None, max_length=128)
    active_ingredient: Optional[str] = Field(default=None, max_length=128)
    manufacturer: Optional[str] = Field(default=None, max_length=128)
    batch_number: Optional[str] = Field(default=None, max_length=64)
    expiration_date: Optional[date] = None
    observations: Optional[str] = None


class MedicationItem(MedicationItemBase):
    id: int
    clinic_id: str
    stock: int
    status: MedicationStatus = "active"
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class StockMovementCreate(BaseModel):
    adjustment_type: str
    quantity: int = Field(..., le=SQLITE_MAX_INTEGER)
    notes: Optional[str] = None


class StockMovement(BaseModel):
    id: int
    clinic_id: str
    medication_id: int
    sequence: int
    adjustment_type: AdjustmentType
    quantity: int
    delta: int
    resulting_stock: int
    notes: str | None = None
    created_by: str | None = None
    administration_id: int | None = None
    created_at: datetime


class StockLevelReport(BaseModel):
    medication_id: int
    stock: int


class StockReconciliation(BaseModel):
    medication_id: int
    recorded_stock: int
    replayed_stock: int
    movement_count: int
    lowest_running_stock: int
    consistent: bool


class PrescriptionCreate(BaseModel):
    patient_id: str = Field(..., min_length=1, max_length=64)
    medication_id: int = Field(..., gt=0, le=SQLITE_MAX_INTEGER)
    dosage: str = Field(..., max_length=64)
    frequency: str = Field(..., max_length=128)
    start_date: date
    end_date: Optional[date] = None
    observations: Optional[str] = None


class PrescriptionUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dosage: Optional[str] = Field(default=None, max_length=64)
    frequency: Optional[str] = Field(default=None, max_length=128)
    end_date: Optional[date] = None
    observations: Optional[str] = None


class Prescription(BaseModel):
    id: int
    clinic_id: str
    patient_id: str
    medication_id: int
    medication_name: str | None = None
    dosage: str
    frequency: str
    start_date: date
    end_date: date | None = None
    cancelled: bool = False
    cancelled_at: datetime | None = None
    observations: str | None = None
    created_by: str | None = None
    created_at: datetime
    status: PrescriptionStatus


class AdministrationCreate(BaseModel):
    prescription_id: int = Field(..., gt=0, le=SQLITE_MAX_INTEGER)
    administered_by: str = Field(..., max_length=128)
    status: str = "administered"
    dosage: Optional[str] = Field(default=None, max_length=64)
    administered_at: Optional[datetime] = None
    observations: Optional[str] = None


class AdministrationObservationsUpdate(BaseModel):
    observations: Optional[str] = None


class Administration(BaseModel):
    id: int
    clinic_id: str
    prescription_id: int
    medication_id: int
    medication_name: str | None = None
    patient_id: str
    dosage: str
    administered_by: str
    administered_at: datetime
    status: AdministrationStatus
    observations: str | None = None
    created_by: str | None = None
    created_at: datetime


class ExpirationScan(BaseModel):
    threshold_days: int
    expiring_items: list[MedicationItem] = Field(default_factory=list)
    expired_items: list[MedicationItem] = Field(default_factory=list)


class DispensaryEntry(BaseModel):
    item: MedicationItem
    expiry_status: ExpiryStatus
    days_until_expiration: int | None = None
    stock_level: StockLevel


class LowStockEntry(BaseModel):
    item: MedicationItem
    stock_level: StockLevel


class Advisory(BaseModel):
    kind: AdvisoryKind
    medication_id: int
    medication_name: str
    message: str


class DashboardSummary(BaseModel):
    has_data: bool
    total_items: int
    active_items: int
    expiring_count: int
    expired_count: int
    low_stock_count: int
    out_of_stock_count: int
    active_prescriptions: int
    administrations_today: int
