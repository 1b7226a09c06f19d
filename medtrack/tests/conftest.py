from __future__ import annotations

import os
import sys
import tempfile
from datetime import date
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

_DATA_DIR = tempfile.mkdtemp(prefix="medtrack-tests-")
os.environ.setdefault("MEDTRACK_DATA_DIR", _DATA_DIR)
os.environ["CLINIC_TIMEZONE"] = "UTC"

from medtrack.core import db, inventory, models, prescriptions  # noqa: E402
from medtrack.tests.clinic_helpers import CLINIC, TODAY  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_database(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "STOCK_DB_PATH", tmp_path / "medtrack.db")
    db.init_database()
    yield db.STOCK_DB_PATH


@pytest.fixture
def make_item():
    def _make(stock: int = 0, clinic_id: str = CLINIC, **overrides) -> models.MedicationItem:
        fields = {
            "name": "Diazépam",
            "dosage": "10 mg",
            "category": "Anxiolytique",
            "stock": stock,
        }
        fields.update(overrides)
        return inventory.create_item(clinic_id, models.MedicationItemCreate(**fields), "infirmier-1")

    return _make


@pytest.fixture
def make_prescription(make_item):
    def _make(
        medication_id: int | None = None,
        clinic_id: str = CLINIC,
        **overrides,
    ) -> models.Prescription:
        if medication_id is None:
            medication_id = make_item(stock=10, clinic_id=clinic_id).id
        fields = {
            "patient_id": "patient-1",
            "medication_id": medication_id,
            "dosage": "10 mg",
            "frequency": "2x par jour",
            "start_date": date(2026, 10, 1),
        }
        fields.update(overrides)
        return prescriptions.create_prescription(
            clinic_id, models.PrescriptionCreate(**fields), "medecin-1", today=TODAY
        )

    return _make
